"""
In-memory ledger.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace

from kungfu import Result, Ok, Error

from crunchpay.coupons import Coupon, Redemption, normalize_code
from crunchpay.orders import Order
from crunchpay.store._protocol import StoreError, Commit


class MemoryLedger:
    """
    In-memory ledger.

    Note: single-instance / tests only. One lock covers orders and coupons,
    so a settlement and its redemption are a single critical section.
    """

    def __init__(self) -> None:
        self._orders: dict[str, Order] = {}
        self._by_gateway: dict[str, str] = {}
        self._coupons: dict[str, Coupon] = {}
        self._lock = asyncio.Lock()

    async def add_coupon(self, coupon: Coupon) -> Result[None, StoreError]:
        async with self._lock:
            if coupon.code in self._coupons:
                return Error(StoreError("Coupon code already exists"))
            self._coupons[coupon.code] = coupon
            return Ok(None)

    async def get_coupon(self, code: str) -> Result[Coupon | None, StoreError]:
        async with self._lock:
            return Ok(self._coupons.get(normalize_code(code)))

    async def insert_order(self, order: Order) -> Result[None, StoreError]:
        async with self._lock:
            if order.id in self._orders:
                return Error(StoreError(f"Order already exists: {order.id}"))
            self._orders[order.id] = order
            self._index(order)
            return Ok(None)

    async def get_order(self, order_id: str) -> Result[Order | None, StoreError]:
        async with self._lock:
            return Ok(self._orders.get(order_id))

    async def find_by_gateway_order(
        self, gateway_order_id: str
    ) -> Result[Order | None, StoreError]:
        async with self._lock:
            order_id = self._by_gateway.get(gateway_order_id)
            return Ok(self._orders.get(order_id) if order_id else None)

    async def apply(self, order: Order, previous: Order) -> Result[Commit, StoreError]:
        async with self._lock:
            if not self._matches(previous):
                return Ok(Commit.STALE)
            self._orders[order.id] = order
            self._index(order)
            return Ok(Commit.APPLIED)

    async def settle(self, order: Order, previous: Order) -> Result[Commit, StoreError]:
        async with self._lock:
            if not self._matches(previous):
                return Ok(Commit.STALE)

            redemption = order.redemption()
            if redemption is not None:
                verdict = self._redeem(redemption)
                if verdict is not Commit.APPLIED:
                    return Ok(verdict)

            self._orders[order.id] = order
            self._index(order)
            return Ok(Commit.APPLIED)

    # ───────────────────────────────────────────────────────────────────────────
    # Internals — call with the lock held
    # ───────────────────────────────────────────────────────────────────────────

    def _matches(self, previous: Order) -> bool:
        stored = self._orders.get(previous.id)
        return (
            stored is not None
            and stored.status is previous.status
            and stored.fulfillment is previous.fulfillment
        )

    def _index(self, order: Order) -> None:
        if order.payment.gateway_order_id:
            self._by_gateway[order.payment.gateway_order_id] = order.id

    def _redeem(self, redemption: Redemption) -> Commit:
        coupon = self._coupons.get(redemption.code)
        if coupon is None:
            return Commit.GLOBAL_LIMIT_REACHED
        if coupon.usage_limit is not None and coupon.usage_count >= coupon.usage_limit:
            return Commit.GLOBAL_LIMIT_REACHED
        if coupon.uses_by(redemption.user_id) >= coupon.per_user_limit:
            return Commit.PER_USER_LIMIT_REACHED

        used_by = dict(coupon.used_by)
        used_by[redemption.user_id] = used_by.get(redemption.user_id, 0) + 1
        self._coupons[coupon.code] = replace(
            coupon, usage_count=coupon.usage_count + 1, used_by=used_by
        )
        return Commit.APPLIED


__all__ = ("MemoryLedger",)
