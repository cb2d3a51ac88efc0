"""
Order types — statuses, line item snapshots, payment sub-record.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from crunchpay._types import Money


# ═══════════════════════════════════════════════════════════════════════════════
# Status — Payment Lifecycle
# ═══════════════════════════════════════════════════════════════════════════════


class OrderStatus(Enum):
    """
    Payment lifecycle.

        CREATED → AWAITING_PAYMENT → PAID
                                   → PAYMENT_FAILED

    PAID and PAYMENT_FAILED are terminal. A failed order is never retried
    in place; the customer checks out again.
    """

    CREATED = "created"
    AWAITING_PAYMENT = "awaiting_payment"
    PAID = "paid"
    PAYMENT_FAILED = "payment_failed"

    @property
    def is_final(self) -> bool:
        return self in (OrderStatus.PAID, OrderStatus.PAYMENT_FAILED)


class FulfillmentStatus(Enum):
    """
    Fulfillment, only meaningful once PAID.

        (none) → PROCESSING → SHIPPED → DELIVERED
        (none) | PROCESSING | SHIPPED → CANCELLED
    """

    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


FULFILLMENT_TRANSITIONS: dict[FulfillmentStatus | None, frozenset[FulfillmentStatus]] = {
    None: frozenset({FulfillmentStatus.PROCESSING, FulfillmentStatus.CANCELLED}),
    FulfillmentStatus.PROCESSING: frozenset(
        {FulfillmentStatus.SHIPPED, FulfillmentStatus.CANCELLED}
    ),
    FulfillmentStatus.SHIPPED: frozenset(
        {FulfillmentStatus.DELIVERED, FulfillmentStatus.CANCELLED}
    ),
    FulfillmentStatus.DELIVERED: frozenset(),
    FulfillmentStatus.CANCELLED: frozenset(),
}


# ═══════════════════════════════════════════════════════════════════════════════
# Snapshots
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class LineItem:
    """Price snapshot taken at checkout. Never re-read from the catalog."""

    product_id: str
    name: str
    quantity: int
    unit_price: Money

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity


@dataclass(frozen=True, slots=True)
class AppliedCoupon:
    """Coupon frozen onto the order at checkout."""

    code: str
    discount: Money


@dataclass(frozen=True, slots=True)
class PaymentRecord:
    """
    Gateway side of the order.

    Note: is_paid implies signature_verified. The reverse does not hold,
    a verified payment can still fail settlement.
    """

    gateway_order_id: str | None = None
    gateway_payment_id: str | None = None
    signature_verified: bool = False
    is_paid: bool = False
    failure_reason: str | None = None

    def __post_init__(self) -> None:
        if self.is_paid and not self.signature_verified:
            raise ValueError("A payment cannot be paid without a verified signature")


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class TransitionError(Exception):
    """Illegal lifecycle transition. Callers guard with status checks first."""

    def __init__(self, order_id: str, source: object, target: object) -> None:
        super().__init__(f"Order {order_id}: cannot move from {source} to {target}")
        self.order_id = order_id
        self.source = source
        self.target = target


__all__ = (
    "OrderStatus",
    "FulfillmentStatus",
    "FULFILLMENT_TRANSITIONS",
    "LineItem",
    "AppliedCoupon",
    "PaymentRecord",
    "TransitionError",
)
