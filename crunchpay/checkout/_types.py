"""
Checkout types — requests, results and the closed error taxonomy.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from crunchpay._types import Money
from crunchpay.coupons import CouponRejection
from crunchpay.gateway import Confirmation, GatewayError, PaymentIntent
from crunchpay.orders import Order, OrderStatus


# ═══════════════════════════════════════════════════════════════════════════════
# Requests
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartLine:
    product_id: str
    quantity: int


@dataclass(frozen=True, slots=True)
class CheckoutRequest:
    """A cart to price and open for payment. user_id is None for guests."""

    items: tuple[CartLine, ...]
    coupon_code: str | None = None
    user_id: str | None = None


@dataclass(frozen=True, slots=True)
class PreviewRequest:
    items: tuple[CartLine, ...]
    coupon_code: str | None = None
    user_id: str | None = None


@dataclass(frozen=True, slots=True)
class ConfirmRequest:
    """
    The gateway's confirmation triple as posted back by the client.

    order_id is optional: the order is always located through the
    gateway-asserted id, the local id is only cross-checked.
    """

    confirmation: Confirmation
    user_id: str | None = None
    order_id: str | None = None


@dataclass(frozen=True, slots=True)
class FailureReport:
    """Gateway-reported failure (checkout widget closed with an error)."""

    gateway_order_id: str
    reason: str
    user_id: str | None = None
    gateway_payment_id: str | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Results
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CheckoutReceipt:
    order: Order
    intent: PaymentIntent


@dataclass(frozen=True, slots=True)
class Quote:
    subtotal: Money
    discount: Money
    final_total: Money
    coupon_code: str | None


@dataclass(frozen=True, slots=True)
class ConfirmOutcome:
    order_id: str
    status: OrderStatus
    already_finalized: bool
    failure_reason: str | None = None

    @classmethod
    def of(cls, order: Order, *, already_finalized: bool) -> ConfirmOutcome:
        return cls(
            order_id=order.id,
            status=order.status,
            already_finalized=already_finalized,
            failure_reason=order.payment.failure_reason,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Checkout Errors
# ═══════════════════════════════════════════════════════════════════════════════


UNAVAILABLE_MESSAGE = "Service temporarily unavailable, please retry"


class CheckoutErrorKind(Enum):
    MALFORMED_CART = "malformed_cart"
    UNKNOWN_PRODUCT = "unknown_product"
    COUPON_REJECTED = "coupon_rejected"
    NOTHING_TO_PAY = "nothing_to_pay"
    GATEWAY_UNAVAILABLE = "gateway_unavailable"
    GATEWAY_REJECTED = "gateway_rejected"
    STORE_UNAVAILABLE = "store_unavailable"


@dataclass(frozen=True, slots=True)
class CheckoutError:
    kind: CheckoutErrorKind
    message: str
    rejection: CouponRejection | None = None

    @property
    def retryable(self) -> bool:
        return self.kind in (
            CheckoutErrorKind.GATEWAY_UNAVAILABLE,
            CheckoutErrorKind.STORE_UNAVAILABLE,
        )


class CheckoutErrors:
    @staticmethod
    def malformed_cart(msg: str) -> CheckoutError:
        return CheckoutError(CheckoutErrorKind.MALFORMED_CART, msg)

    @staticmethod
    def unknown_product(product_id: str) -> CheckoutError:
        return CheckoutError(
            CheckoutErrorKind.UNKNOWN_PRODUCT, f"Product is not available: {product_id}"
        )

    @staticmethod
    def coupon_rejected(rejection: CouponRejection) -> CheckoutError:
        return CheckoutError(CheckoutErrorKind.COUPON_REJECTED, rejection.message, rejection)

    @staticmethod
    def nothing_to_pay() -> CheckoutError:
        return CheckoutError(CheckoutErrorKind.NOTHING_TO_PAY, "Order total must be positive")

    @staticmethod
    def gateway(err: GatewayError) -> CheckoutError:
        if err.retryable:
            return CheckoutError(CheckoutErrorKind.GATEWAY_UNAVAILABLE, UNAVAILABLE_MESSAGE)
        return CheckoutError(
            CheckoutErrorKind.GATEWAY_REJECTED, "Payment could not be initiated"
        )

    @staticmethod
    def store() -> CheckoutError:
        return CheckoutError(CheckoutErrorKind.STORE_UNAVAILABLE, UNAVAILABLE_MESSAGE)


# ═══════════════════════════════════════════════════════════════════════════════
# Confirmation Errors
# ═══════════════════════════════════════════════════════════════════════════════


class ConfirmErrorKind(Enum):
    INVALID_SIGNATURE = "invalid_signature"
    ORDER_NOT_FOUND = "order_not_found"
    ORDER_MISMATCH = "order_mismatch"
    NOT_ORDER_OWNER = "not_order_owner"
    STORE_UNAVAILABLE = "store_unavailable"


@dataclass(frozen=True, slots=True)
class ConfirmError:
    kind: ConfirmErrorKind
    message: str

    @property
    def retryable(self) -> bool:
        return self.kind is ConfirmErrorKind.STORE_UNAVAILABLE


class ConfirmErrors:
    @staticmethod
    def invalid_signature() -> ConfirmError:
        return ConfirmError(ConfirmErrorKind.INVALID_SIGNATURE, "Payment verification failed")

    @staticmethod
    def order_not_found() -> ConfirmError:
        return ConfirmError(ConfirmErrorKind.ORDER_NOT_FOUND, "Order not found")

    @staticmethod
    def order_mismatch() -> ConfirmError:
        return ConfirmError(
            ConfirmErrorKind.ORDER_MISMATCH, "Payment does not belong to this order"
        )

    @staticmethod
    def not_order_owner() -> ConfirmError:
        return ConfirmError(ConfirmErrorKind.NOT_ORDER_OWNER, "Order belongs to another user")

    @staticmethod
    def store() -> ConfirmError:
        return ConfirmError(ConfirmErrorKind.STORE_UNAVAILABLE, UNAVAILABLE_MESSAGE)


# ═══════════════════════════════════════════════════════════════════════════════
# Fulfillment Errors
# ═══════════════════════════════════════════════════════════════════════════════


class FulfillmentErrorKind(Enum):
    ORDER_NOT_FOUND = "order_not_found"
    ILLEGAL_TRANSITION = "illegal_transition"
    CONFLICT = "conflict"
    STORE_UNAVAILABLE = "store_unavailable"


@dataclass(frozen=True, slots=True)
class FulfillmentError:
    kind: FulfillmentErrorKind
    message: str


__all__ = (
    # Requests
    "CartLine",
    "CheckoutRequest",
    "PreviewRequest",
    "ConfirmRequest",
    "FailureReport",
    # Results
    "CheckoutReceipt",
    "Quote",
    "ConfirmOutcome",
    # Errors
    "UNAVAILABLE_MESSAGE",
    "CheckoutErrorKind",
    "CheckoutError",
    "CheckoutErrors",
    "ConfirmErrorKind",
    "ConfirmError",
    "ConfirmErrors",
    "FulfillmentErrorKind",
    "FulfillmentError",
)
