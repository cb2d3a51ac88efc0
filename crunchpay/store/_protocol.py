"""
Ledger — typed storage protocol for orders and coupons.

All methods return Result for explicit error handling. Writes are
compare-and-set against the previous state of the order.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from kungfu import Result

from crunchpay.coupons import Coupon
from crunchpay.orders import Order


# ═══════════════════════════════════════════════════════════════════════════════
# Store Error
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class StoreError:
    """Storage operation error."""

    message: str
    cause: Exception | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Commit — Outcome of a Conditional Write
# ═══════════════════════════════════════════════════════════════════════════════


class Commit(Enum):
    """
    Outcome of a conditional order write.

    APPLIED: the new state (and any coupon redemption) is durable.
    STALE: the order was no longer in the expected state; nothing written.
    GLOBAL_LIMIT_REACHED / PER_USER_LIMIT_REACHED: settlement rolled back
    because the coupon use could not be counted.
    """

    APPLIED = "applied"
    STALE = "stale"
    GLOBAL_LIMIT_REACHED = "global_limit_reached"
    PER_USER_LIMIT_REACHED = "per_user_limit_reached"


# ═══════════════════════════════════════════════════════════════════════════════
# Ledger Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class Ledger(Protocol):
    """
    Persistence for the payment engine.

    Note: `previous` is the order exactly as the caller read it. A write only
    lands if the stored status and fulfillment still match it.
    """

    async def add_coupon(self, coupon: Coupon) -> Result[None, StoreError]:
        """Insert a coupon. Fails if the code already exists."""
        ...

    async def get_coupon(self, code: str) -> Result[Coupon | None, StoreError]:
        """Get coupon by normalized code. Returns Ok(None) if not found."""
        ...

    async def insert_order(self, order: Order) -> Result[None, StoreError]:
        ...

    async def get_order(self, order_id: str) -> Result[Order | None, StoreError]:
        ...

    async def find_by_gateway_order(
        self, gateway_order_id: str
    ) -> Result[Order | None, StoreError]:
        """Look an order up by the id the gateway asserted."""
        ...

    async def apply(self, order: Order, previous: Order) -> Result[Commit, StoreError]:
        """Write a transition that carries no coupon side effect."""
        ...

    async def settle(self, order: Order, previous: Order) -> Result[Commit, StoreError]:
        """
        Write the PAID transition and count its coupon redemption.

        Must be atomic: both land or neither does.
        """
        ...


__all__ = (
    "StoreError",
    "Commit",
    "Ledger",
)
