"""
Orders — the order aggregate and its lifecycle.

    from crunchpay import orders as O

    order = O.new_order(user_id="u1", line_items=items, applied_coupon=None,
                        currency="INR", created_at=now)
    order = order.with_intent("order_Nx1")            # CREATED → AWAITING_PAYMENT
    order = order.settle("pay_Nx9", paid_at=now)       # AWAITING_PAYMENT → PAID

There is no way from CREATED to PAID: settle() requires a recorded intent.
"""

from crunchpay.orders._types import (
    OrderStatus,
    FulfillmentStatus,
    FULFILLMENT_TRANSITIONS,
    LineItem,
    AppliedCoupon,
    PaymentRecord,
    TransitionError,
)
from crunchpay.orders._aggregate import (
    Order,
    new_order,
    new_order_id,
)

__all__ = (
    "OrderStatus",
    "FulfillmentStatus",
    "FULFILLMENT_TRANSITIONS",
    "LineItem",
    "AppliedCoupon",
    "PaymentRecord",
    "TransitionError",
    "Order",
    "new_order",
    "new_order_id",
)
