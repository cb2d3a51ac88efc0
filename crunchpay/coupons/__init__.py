"""
Coupons — validation and discount calculation.

    from crunchpay import coupons as C

    cart = C.CartContext(subtotal=Decimal("1000"), user_id="u1", now=utcnow())
    match C.evaluate(coupon, cart):
        case Ok(outcome):
            ...
        case Error(rejection):
            ...

Checks run in a fixed order and the first failure wins:

    INACTIVE → EXPIRED_OR_NOT_YET_VALID → GLOBAL_LIMIT_REACHED
             → LOGIN_REQUIRED / PER_USER_LIMIT_REACHED → BELOW_MINIMUM_PURCHASE
"""

from crunchpay.coupons._types import (
    DiscountType,
    Coupon,
    normalize_code,
    CartContext,
    DiscountOutcome,
    CouponRejection,
    Redemption,
)
from crunchpay.coupons._evaluate import (
    check,
    discount_for,
    evaluate,
)

__all__ = (
    # Types
    "DiscountType",
    "Coupon",
    "normalize_code",
    "CartContext",
    "DiscountOutcome",
    "CouponRejection",
    "Redemption",
    # Evaluation
    "check",
    "discount_for",
    "evaluate",
)
