"""
Coupon types — persisted coupon state, cart context, outcomes and rejections.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from crunchpay._types import Money, ZERO


# ═══════════════════════════════════════════════════════════════════════════════
# Discount Type
# ═══════════════════════════════════════════════════════════════════════════════


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


# ═══════════════════════════════════════════════════════════════════════════════
# Coupon — Persisted State
# ═══════════════════════════════════════════════════════════════════════════════


def normalize_code(raw: str) -> str:
    """Coupon codes are case-insensitive and stored upper-case."""
    return raw.strip().upper()


@dataclass(frozen=True, slots=True)
class Coupon:
    """
    A coupon as currently persisted.

    Note: usage_count and used_by only change when an order is settled as
    paid. Evaluating a coupon never touches them.
    """

    code: str
    discount_type: DiscountType
    discount_value: Decimal
    valid_from: datetime
    valid_until: datetime
    minimum_purchase: Money = ZERO
    maximum_discount: Money | None = None
    usage_limit: int | None = None
    per_user_limit: int = 1
    is_active: bool = True
    usage_count: int = 0
    used_by: dict[str, int] = field(default_factory=dict[str, int])
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "code", normalize_code(self.code))
        if not self.code:
            raise ValueError("Coupon code must not be empty")
        if self.discount_value <= 0:
            raise ValueError("discount_value must be positive")
        if self.discount_type is DiscountType.PERCENTAGE and self.discount_value > 100:
            raise ValueError("Percentage discount must be in (0, 100]")
        if self.minimum_purchase < 0:
            raise ValueError("minimum_purchase must not be negative")
        if self.maximum_discount is not None and self.maximum_discount < 0:
            raise ValueError("maximum_discount must not be negative")
        if self.usage_limit is not None and self.usage_limit < 1:
            raise ValueError("usage_limit must be at least 1")
        if self.per_user_limit < 1:
            raise ValueError("per_user_limit must be at least 1")
        if self.valid_from.tzinfo is None or self.valid_until.tzinfo is None:
            raise ValueError("valid_from and valid_until must be timezone-aware")
        if self.valid_from > self.valid_until:
            raise ValueError("valid_from must not be after valid_until")

    def uses_by(self, user_id: str) -> int:
        return self.used_by.get(user_id, 0)


# ═══════════════════════════════════════════════════════════════════════════════
# Evaluation Input / Output
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartContext:
    """What a coupon is evaluated against. user_id is None for guests."""

    subtotal: Money
    user_id: str | None
    now: datetime


@dataclass(frozen=True, slots=True)
class DiscountOutcome:
    discount: Money
    final_total: Money


class CouponRejection(Enum):
    """
    Why a coupon does not apply.

    Note: evaluate() reports the first failing check, in declaration order
    (UNKNOWN_COUPON is decided by the caller before evaluation).
    """

    UNKNOWN_COUPON = "unknown_coupon"
    INACTIVE = "inactive"
    EXPIRED_OR_NOT_YET_VALID = "expired_or_not_yet_valid"
    GLOBAL_LIMIT_REACHED = "global_limit_reached"
    LOGIN_REQUIRED = "login_required"
    PER_USER_LIMIT_REACHED = "per_user_limit_reached"
    BELOW_MINIMUM_PURCHASE = "below_minimum_purchase"

    @property
    def message(self) -> str:
        return _REJECTION_MESSAGES[self]


_REJECTION_MESSAGES: dict[CouponRejection, str] = {
    CouponRejection.UNKNOWN_COUPON: "Coupon not found",
    CouponRejection.INACTIVE: "This coupon is no longer active",
    CouponRejection.EXPIRED_OR_NOT_YET_VALID: "This coupon has expired or is not yet valid",
    CouponRejection.GLOBAL_LIMIT_REACHED: "This coupon has reached its usage limit",
    CouponRejection.LOGIN_REQUIRED: "Please sign in to use a coupon",
    CouponRejection.PER_USER_LIMIT_REACHED: (
        "You have already used this coupon the maximum number of times"
    ),
    CouponRejection.BELOW_MINIMUM_PURCHASE: "Order total is below the coupon minimum",
}


# ═══════════════════════════════════════════════════════════════════════════════
# Redemption — Applied at Settlement
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Redemption:
    """One coupon use to be counted when an order is settled as paid."""

    code: str
    user_id: str


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "DiscountType",
    "Coupon",
    "normalize_code",
    "CartContext",
    "DiscountOutcome",
    "CouponRejection",
    "Redemption",
)
