"""
Order aggregate — the persisted purchase and every legal transition on it.

Transitions return a new Order and never touch storage. The store applies
them with a compare-and-set on the previous status, which is what makes a
replayed confirmation a no-op instead of a second settlement.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime

from crunchpay._types import Money, ZERO, to_money
from crunchpay.coupons import Redemption
from crunchpay.orders._types import (
    OrderStatus,
    FulfillmentStatus,
    FULFILLMENT_TRANSITIONS,
    LineItem,
    AppliedCoupon,
    PaymentRecord,
    TransitionError,
)


def new_order_id() -> str:
    return f"WC-{uuid.uuid4().hex[:12].upper()}"


@dataclass(frozen=True, slots=True)
class Order:
    id: str
    user_id: str | None
    line_items: tuple[LineItem, ...]
    subtotal: Money
    applied_coupon: AppliedCoupon | None
    total_price: Money
    currency: str
    payment: PaymentRecord
    status: OrderStatus
    created_at: datetime
    fulfillment: FulfillmentStatus | None = None
    paid_at: datetime | None = None
    delivered_at: datetime | None = None

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    @property
    def discount(self) -> Money:
        return self.applied_coupon.discount if self.applied_coupon else ZERO

    # ───────────────────────────────────────────────────────────────────────────
    # Payment lifecycle
    # ───────────────────────────────────────────────────────────────────────────

    def with_intent(self, gateway_order_id: str) -> Order:
        """CREATED → AWAITING_PAYMENT, recording the gateway intent."""
        self._require(OrderStatus.CREATED, OrderStatus.AWAITING_PAYMENT)
        return replace(
            self,
            status=OrderStatus.AWAITING_PAYMENT,
            payment=replace(self.payment, gateway_order_id=gateway_order_id),
        )

    def settle(self, gateway_payment_id: str, paid_at: datetime) -> Order:
        """AWAITING_PAYMENT → PAID. Only called with a verified confirmation."""
        self._require(OrderStatus.AWAITING_PAYMENT, OrderStatus.PAID)
        return replace(
            self,
            status=OrderStatus.PAID,
            paid_at=paid_at,
            payment=replace(
                self.payment,
                gateway_payment_id=gateway_payment_id,
                signature_verified=True,
                is_paid=True,
                failure_reason=None,
            ),
        )

    def fail(
        self,
        reason: str,
        gateway_payment_id: str | None = None,
        signature_verified: bool = False,
    ) -> Order:
        """AWAITING_PAYMENT → PAYMENT_FAILED."""
        self._require(OrderStatus.AWAITING_PAYMENT, OrderStatus.PAYMENT_FAILED)
        return replace(
            self,
            status=OrderStatus.PAYMENT_FAILED,
            payment=replace(
                self.payment,
                gateway_payment_id=gateway_payment_id or self.payment.gateway_payment_id,
                signature_verified=signature_verified,
                is_paid=False,
                failure_reason=reason,
            ),
        )

    def redemption(self) -> Redemption | None:
        """Coupon use counted when this order settles."""
        if self.applied_coupon is None or self.user_id is None:
            return None
        return Redemption(code=self.applied_coupon.code, user_id=self.user_id)

    # ───────────────────────────────────────────────────────────────────────────
    # Fulfillment
    # ───────────────────────────────────────────────────────────────────────────

    def advance(self, target: FulfillmentStatus, at: datetime) -> Order:
        if self.status is not OrderStatus.PAID:
            raise TransitionError(self.id, self.status, target)
        if target not in FULFILLMENT_TRANSITIONS[self.fulfillment]:
            raise TransitionError(self.id, self.fulfillment, target)

        delivered_at = at if target is FulfillmentStatus.DELIVERED else self.delivered_at
        return replace(self, fulfillment=target, delivered_at=delivered_at)

    def _require(self, source: OrderStatus, target: OrderStatus) -> None:
        if self.status is not source:
            raise TransitionError(self.id, self.status, target)


def new_order(
    *,
    user_id: str | None,
    line_items: tuple[LineItem, ...],
    applied_coupon: AppliedCoupon | None,
    currency: str,
    created_at: datetime,
    order_id: str | None = None,
) -> Order:
    """
    Build an order in CREATED.

    Totals are computed here once and frozen: total = subtotal - discount,
    floored at zero.
    """
    subtotal = to_money(sum((item.line_total for item in line_items), ZERO))
    discount = applied_coupon.discount if applied_coupon else ZERO
    total = max(ZERO, subtotal - discount)

    return Order(
        id=order_id or new_order_id(),
        user_id=user_id,
        line_items=line_items,
        subtotal=subtotal,
        applied_coupon=applied_coupon,
        total_price=to_money(total),
        currency=currency,
        payment=PaymentRecord(),
        status=OrderStatus.CREATED,
        created_at=created_at,
    )


__all__ = ("Order", "new_order", "new_order_id")
