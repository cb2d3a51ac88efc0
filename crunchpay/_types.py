"""
Core types for crunchpay.

Re-exports from kungfu + money and clock aliases shared by every component.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, UTC
from decimal import Decimal, ROUND_HALF_UP

# Re-export from kungfu
from kungfu import Result, Ok, Error

# ═══════════════════════════════════════════════════════════════════════════════
# Money
# ═══════════════════════════════════════════════════════════════════════════════

type Money = Decimal
"""Rupee amount with paise precision."""

PAISE = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal | int | str) -> Money:
    """Quantize to paise, half-up (the gateway rounds the same way)."""
    return Decimal(value).quantize(PAISE, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Money) -> int:
    """Rupees → paise."""
    return int((to_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


# ═══════════════════════════════════════════════════════════════════════════════
# Clock
# ═══════════════════════════════════════════════════════════════════════════════

type Clock = Callable[[], datetime]
"""Source of the current instant. Always timezone-aware."""


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(moment: datetime) -> datetime:
    """Attach UTC to naive instants (SQLite drops tzinfo on the way back)."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    # Money
    "Money",
    "PAISE",
    "ZERO",
    "to_money",
    "to_minor_units",
    # Clock
    "Clock",
    "utcnow",
    "as_utc",
)
