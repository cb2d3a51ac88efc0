"""Tests for crunchpay.coupons."""

from datetime import timedelta
from decimal import Decimal

import pytest

from crunchpay.coupons import (
    CartContext,
    CouponRejection,
    DiscountType,
    discount_for,
    evaluate,
    normalize_code,
)

from tests.helpers import NOW, make_coupon, unwrap, unwrap_err


def cart(subtotal: str, user_id: str | None = "u1") -> CartContext:
    return CartContext(subtotal=Decimal(subtotal), user_id=user_id, now=NOW)


# ------------------------------------------------------------------ #
#  Scenarios                                                           #
# ------------------------------------------------------------------ #


class TestScenarios:
    def test_save20_capped_at_150(self):
        coupon = make_coupon(
            "SAVE20", discount_value=Decimal("20"), maximum_discount=Decimal("150")
        )
        outcome = unwrap(evaluate(coupon, cart("1000")))
        assert outcome.discount == Decimal("150.00")
        assert outcome.final_total == Decimal("850.00")

    def test_min500_below_minimum(self):
        coupon = make_coupon(
            "MIN500",
            discount_type=DiscountType.FIXED,
            discount_value=Decimal("50"),
            minimum_purchase=Decimal("500"),
        )
        assert unwrap_err(evaluate(coupon, cart("300"))) is CouponRejection.BELOW_MINIMUM_PURCHASE

    def test_minimum_is_inclusive(self):
        coupon = make_coupon(minimum_purchase=Decimal("500"))
        outcome = unwrap(evaluate(coupon, cart("500")))
        assert outcome.discount == Decimal("100.00")


# ------------------------------------------------------------------ #
#  Check order                                                         #
# ------------------------------------------------------------------ #


class TestCheckOrder:
    def test_inactive_wins_over_expired(self):
        coupon = make_coupon(
            is_active=False,
            valid_from=NOW - timedelta(days=10),
            valid_until=NOW - timedelta(days=1),
        )
        assert unwrap_err(evaluate(coupon, cart("1000"))) is CouponRejection.INACTIVE

    def test_expired_wins_over_global_limit(self):
        coupon = make_coupon(
            valid_from=NOW - timedelta(days=10),
            valid_until=NOW - timedelta(days=1),
            usage_limit=1,
            usage_count=1,
        )
        assert (
            unwrap_err(evaluate(coupon, cart("1000")))
            is CouponRejection.EXPIRED_OR_NOT_YET_VALID
        )

    def test_not_yet_valid(self):
        coupon = make_coupon(
            valid_from=NOW + timedelta(seconds=1), valid_until=NOW + timedelta(days=1)
        )
        assert (
            unwrap_err(evaluate(coupon, cart("1000")))
            is CouponRejection.EXPIRED_OR_NOT_YET_VALID
        )

    def test_window_bounds_are_inclusive(self):
        assert unwrap(evaluate(make_coupon(valid_from=NOW), cart("100")))
        assert unwrap(evaluate(make_coupon(valid_until=NOW, valid_from=NOW - timedelta(days=1)), cart("100")))

    def test_global_limit_wins_over_per_user(self):
        coupon = make_coupon(usage_limit=5, usage_count=5, used_by={"u1": 1})
        assert unwrap_err(evaluate(coupon, cart("1000"))) is CouponRejection.GLOBAL_LIMIT_REACHED

    def test_guest_needs_login(self):
        coupon = make_coupon()
        assert unwrap_err(evaluate(coupon, cart("1000", user_id=None))) is CouponRejection.LOGIN_REQUIRED

    def test_per_user_wins_over_minimum(self):
        coupon = make_coupon(
            per_user_limit=2, used_by={"u1": 2}, minimum_purchase=Decimal("5000")
        )
        assert (
            unwrap_err(evaluate(coupon, cart("1000")))
            is CouponRejection.PER_USER_LIMIT_REACHED
        )

    def test_other_users_usage_does_not_count(self):
        coupon = make_coupon(used_by={"u2": 1})
        assert unwrap(evaluate(coupon, cart("1000"))).discount == Decimal("200.00")


# ------------------------------------------------------------------ #
#  Discount arithmetic                                                 #
# ------------------------------------------------------------------ #


class TestDiscount:
    def test_fixed_never_exceeds_subtotal(self):
        coupon = make_coupon(discount_type=DiscountType.FIXED, discount_value=Decimal("500"))
        for subtotal in ("0.01", "1", "299.99", "499.99", "500", "1200"):
            discount = discount_for(coupon, Decimal(subtotal))
            assert Decimal("0") <= discount <= Decimal(subtotal)

    def test_fixed_larger_than_subtotal_gives_zero_total(self):
        coupon = make_coupon(discount_type=DiscountType.FIXED, discount_value=Decimal("500"))
        outcome = unwrap(evaluate(coupon, cart("300")))
        assert outcome.discount == Decimal("300.00")
        assert outcome.final_total == Decimal("0.00")

    def test_percentage_never_exceeds_cap(self):
        coupon = make_coupon(discount_value=Decimal("50"), maximum_discount=Decimal("99.50"))
        for subtotal in ("10", "199", "199.01", "1000", "99999.99"):
            assert discount_for(coupon, Decimal(subtotal)) <= Decimal("99.50")

    def test_percentage_rounds_half_up_to_paise(self):
        coupon = make_coupon(discount_value=Decimal("10"))
        assert discount_for(coupon, Decimal("999.99")) == Decimal("100.00")
        assert discount_for(coupon, Decimal("0.05")) == Decimal("0.01")

    def test_full_percentage(self):
        coupon = make_coupon(discount_value=Decimal("100"))
        outcome = unwrap(evaluate(coupon, cart("420.50")))
        assert outcome.final_total == Decimal("0.00")

    def test_cap_ignored_for_fixed(self):
        coupon = make_coupon(
            discount_type=DiscountType.FIXED,
            discount_value=Decimal("200"),
            maximum_discount=Decimal("50"),
        )
        assert discount_for(coupon, Decimal("1000")) == Decimal("200.00")


# ------------------------------------------------------------------ #
#  Coupon construction                                                 #
# ------------------------------------------------------------------ #


class TestCoupon:
    def test_code_is_normalized(self):
        assert make_coupon("  save20 ").code == "SAVE20"
        assert normalize_code(" Save20") == "SAVE20"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"discount_value": Decimal("0")},
            {"discount_value": Decimal("100.01")},
            {"minimum_purchase": Decimal("-1")},
            {"usage_limit": 0},
            {"per_user_limit": 0},
            {"valid_from": NOW + timedelta(days=60)},
            {"valid_from": NOW.replace(tzinfo=None)},
            {"valid_until": (NOW + timedelta(days=30)).replace(tzinfo=None)},
            {
                "valid_from": NOW.replace(tzinfo=None),
                "valid_until": (NOW + timedelta(days=30)).replace(tzinfo=None),
            },
        ],
    )
    def test_invalid_values_raise(self, overrides):
        with pytest.raises(ValueError):
            make_coupon(**overrides)

    def test_empty_code_raises(self):
        with pytest.raises(ValueError, match="must not be empty"):
            make_coupon("   ")

    def test_rejections_have_messages(self):
        for rejection in CouponRejection:
            assert rejection.message
