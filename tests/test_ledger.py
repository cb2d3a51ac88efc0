"""Tests for crunchpay.store, run against every ledger backend."""

import asyncio
from decimal import Decimal

from crunchpay.orders import (
    AppliedCoupon,
    FulfillmentStatus,
    LineItem,
    Order,
    OrderStatus,
    new_order,
)
from crunchpay.store import Commit, Ledger

from tests.helpers import NOW, make_coupon, unwrap, unwrap_err


def order_for(user_id: str | None = "u1", coupon: str | None = "SAVE20") -> Order:
    return new_order(
        user_id=user_id,
        line_items=(LineItem("granola", "Crunchy Granola", 4, Decimal("250.00")),),
        applied_coupon=AppliedCoupon(coupon, Decimal("150.00")) if coupon else None,
        currency="INR",
        created_at=NOW,
    )


async def awaiting(ledger: Ledger, order: Order, gateway_order_id: str) -> Order:
    unwrap(await ledger.insert_order(order))
    moved = order.with_intent(gateway_order_id)
    assert unwrap(await ledger.apply(moved, order)) is Commit.APPLIED
    return moved


# ------------------------------------------------------------------ #
#  Coupons                                                             #
# ------------------------------------------------------------------ #


class TestCoupons:
    async def test_roundtrip(self, ledger: Ledger):
        coupon = make_coupon(
            "SAVE20",
            maximum_discount=Decimal("150"),
            minimum_purchase=Decimal("499.50"),
            usage_limit=10,
            per_user_limit=2,
            used_by={"u9": 1},
            usage_count=1,
            description="Monsoon sale",
        )
        unwrap(await ledger.add_coupon(coupon))

        stored = unwrap(await ledger.get_coupon("save20"))
        assert stored == coupon

    async def test_unknown(self, ledger: Ledger):
        assert unwrap(await ledger.get_coupon("NOPE")) is None

    async def test_duplicate_code(self, ledger: Ledger):
        unwrap(await ledger.add_coupon(make_coupon("SAVE20")))
        err = unwrap_err(await ledger.add_coupon(make_coupon("save20")))
        assert "already exists" in err.message


# ------------------------------------------------------------------ #
#  Orders                                                              #
# ------------------------------------------------------------------ #


class TestOrders:
    async def test_roundtrip(self, ledger: Ledger):
        order = order_for()
        unwrap(await ledger.insert_order(order))
        assert unwrap(await ledger.get_order(order.id)) == order

    async def test_guest_without_coupon(self, ledger: Ledger):
        order = order_for(user_id=None, coupon=None)
        unwrap(await ledger.insert_order(order))
        assert unwrap(await ledger.get_order(order.id)) == order

    async def test_missing(self, ledger: Ledger):
        assert unwrap(await ledger.get_order("WC-000000000000")) is None
        assert unwrap(await ledger.find_by_gateway_order("order_missing")) is None

    async def test_find_by_gateway_order(self, ledger: Ledger):
        moved = await awaiting(ledger, order_for(), "order_A")
        assert unwrap(await ledger.find_by_gateway_order("order_A")) == moved

    async def test_apply_is_compare_and_set(self, ledger: Ledger):
        order = order_for()
        moved = await awaiting(ledger, order, "order_A")

        # Writing from the stale CREATED snapshot loses.
        again = order.with_intent("order_B")
        assert unwrap(await ledger.apply(again, order)) is Commit.STALE
        assert unwrap(await ledger.get_order(order.id)) == moved

    async def test_fulfillment_is_part_of_the_guard(self, ledger: Ledger):
        moved = await awaiting(ledger, order_for(coupon=None), "order_A")
        paid = moved.settle("pay_1", paid_at=NOW)
        assert unwrap(await ledger.settle(paid, moved)) is Commit.APPLIED

        processing = paid.advance(FulfillmentStatus.PROCESSING, NOW)
        cancelled = paid.advance(FulfillmentStatus.CANCELLED, NOW)
        assert unwrap(await ledger.apply(processing, paid)) is Commit.APPLIED
        assert unwrap(await ledger.apply(cancelled, paid)) is Commit.STALE


# ------------------------------------------------------------------ #
#  Settlement                                                          #
# ------------------------------------------------------------------ #


class TestSettle:
    async def test_counts_coupon_once(self, ledger: Ledger):
        unwrap(await ledger.add_coupon(make_coupon("SAVE20", per_user_limit=3)))
        moved = await awaiting(ledger, order_for(), "order_A")
        paid = moved.settle("pay_1", paid_at=NOW)

        assert unwrap(await ledger.settle(paid, moved)) is Commit.APPLIED
        assert unwrap(await ledger.settle(paid, moved)) is Commit.STALE

        stored = unwrap(await ledger.get_order(moved.id))
        assert stored.status is OrderStatus.PAID
        assert stored.paid_at == NOW

        coupon = unwrap(await ledger.get_coupon("SAVE20"))
        assert coupon.usage_count == 1
        assert coupon.used_by == {"u1": 1}

    async def test_concurrent_replays_settle_once(self, ledger: Ledger):
        unwrap(await ledger.add_coupon(make_coupon("SAVE20", per_user_limit=5)))
        moved = await awaiting(ledger, order_for(), "order_A")
        paid = moved.settle("pay_1", paid_at=NOW)

        results = await asyncio.gather(*(ledger.settle(paid, moved) for _ in range(5)))
        commits = [unwrap(r) for r in results]

        assert commits.count(Commit.APPLIED) == 1
        assert commits.count(Commit.STALE) == 4
        assert unwrap(await ledger.get_coupon("SAVE20")).usage_count == 1

    async def test_global_limit_rolls_back(self, ledger: Ledger):
        unwrap(await ledger.add_coupon(make_coupon("SAVE20", usage_limit=1, usage_count=1)))
        moved = await awaiting(ledger, order_for(), "order_A")

        commit = unwrap(await ledger.settle(moved.settle("pay_1", paid_at=NOW), moved))

        assert commit is Commit.GLOBAL_LIMIT_REACHED
        assert unwrap(await ledger.get_order(moved.id)) == moved
        assert unwrap(await ledger.get_coupon("SAVE20")).usage_count == 1

    async def test_per_user_limit_rolls_back(self, ledger: Ledger):
        unwrap(await ledger.add_coupon(make_coupon("SAVE20", used_by={"u1": 1})))
        moved = await awaiting(ledger, order_for(), "order_A")

        commit = unwrap(await ledger.settle(moved.settle("pay_1", paid_at=NOW), moved))

        assert commit is Commit.PER_USER_LIMIT_REACHED
        assert unwrap(await ledger.get_order(moved.id)).status is OrderStatus.AWAITING_PAYMENT
        coupon = unwrap(await ledger.get_coupon("SAVE20"))
        assert coupon.usage_count == 0
        assert coupon.used_by == {"u1": 1}

    async def test_usage_limit_one_race(self, ledger: Ledger):
        unwrap(await ledger.add_coupon(make_coupon("SAVE20", usage_limit=1)))
        first = await awaiting(ledger, order_for(user_id="u1"), "order_A")
        second = await awaiting(ledger, order_for(user_id="u2"), "order_B")

        commits = [
            unwrap(r)
            for r in await asyncio.gather(
                ledger.settle(first.settle("pay_1", paid_at=NOW), first),
                ledger.settle(second.settle("pay_2", paid_at=NOW), second),
            )
        ]

        assert sorted(c.value for c in commits) == ["applied", "global_limit_reached"]
        assert unwrap(await ledger.get_coupon("SAVE20")).usage_count == 1

    async def test_same_user_two_orders_race(self, ledger: Ledger):
        unwrap(await ledger.add_coupon(make_coupon("SAVE20", per_user_limit=1)))
        first = await awaiting(ledger, order_for(), "order_A")
        second = await awaiting(ledger, order_for(), "order_B")

        commits = [
            unwrap(r)
            for r in await asyncio.gather(
                ledger.settle(first.settle("pay_1", paid_at=NOW), first),
                ledger.settle(second.settle("pay_2", paid_at=NOW), second),
            )
        ]

        assert sorted(c.value for c in commits) == ["applied", "per_user_limit_reached"]
        coupon = unwrap(await ledger.get_coupon("SAVE20"))
        assert coupon.used_by == {"u1": 1}
        assert coupon.usage_count == 1

    async def test_without_coupon(self, ledger: Ledger):
        moved = await awaiting(ledger, order_for(coupon=None), "order_A")
        assert unwrap(await ledger.settle(moved.settle("pay_1", paid_at=NOW), moved)) is Commit.APPLIED
