"""
Coupon evaluation — validation checks + discount calculation.

Pure: no I/O, no mutation. The same coupon and cart always give the same
answer, so checkout can price an order without reserving a coupon use.
"""

from __future__ import annotations

from kungfu import Result, Ok, Error

from crunchpay._types import Money, ZERO, to_money
from crunchpay.coupons._types import (
    Coupon,
    CartContext,
    DiscountOutcome,
    DiscountType,
    CouponRejection,
)


# ═══════════════════════════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════════════════════════


def check(coupon: Coupon, cart: CartContext) -> CouponRejection | None:
    """Return the first failing check, or None when the coupon applies."""
    if not coupon.is_active:
        return CouponRejection.INACTIVE

    if cart.now < coupon.valid_from or cart.now > coupon.valid_until:
        return CouponRejection.EXPIRED_OR_NOT_YET_VALID

    if coupon.usage_limit is not None and coupon.usage_count >= coupon.usage_limit:
        return CouponRejection.GLOBAL_LIMIT_REACHED

    if cart.user_id is None:
        return CouponRejection.LOGIN_REQUIRED

    if coupon.uses_by(cart.user_id) >= coupon.per_user_limit:
        return CouponRejection.PER_USER_LIMIT_REACHED

    if cart.subtotal < coupon.minimum_purchase:
        return CouponRejection.BELOW_MINIMUM_PURCHASE

    return None


# ═══════════════════════════════════════════════════════════════════════════════
# Discount
# ═══════════════════════════════════════════════════════════════════════════════


def discount_for(coupon: Coupon, subtotal: Money) -> Money:
    """Discount in paise precision, never above the subtotal."""
    match coupon.discount_type:
        case DiscountType.PERCENTAGE:
            raw = subtotal * coupon.discount_value / 100
            if coupon.maximum_discount is not None:
                raw = min(raw, coupon.maximum_discount)
        case DiscountType.FIXED:
            raw = coupon.discount_value

    return to_money(max(ZERO, min(raw, subtotal)))


def evaluate(
    coupon: Coupon,
    cart: CartContext,
) -> Result[DiscountOutcome, CouponRejection]:
    """
    Decide whether coupon applies to cart and price it.

    Example:
        match evaluate(coupon, CartContext(Decimal("1000"), "u1", now)):
            case Ok(outcome):
                outcome.final_total   # Decimal("850.00") for SAVE20 capped at 150
            case Error(reason):
                reason.message
    """
    rejection = check(coupon, cart)
    if rejection is not None:
        return Error(rejection)

    subtotal = to_money(cart.subtotal)
    discount = discount_for(coupon, subtotal)
    return Ok(DiscountOutcome(discount=discount, final_total=subtotal - discount))


__all__ = ("check", "discount_for", "evaluate")
