"""
HTTP schemas — pydantic request/response models for the wire codecs.

Requests implement to_domain(headers); responses implement
from_domain(result) and expose the HTTP status via status_code. Error bodies
carry a closed `kind`, a coupon `reason` where one applies, a user-facing
message and whether retrying can help. Nothing internal leaks into them.
"""

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from pydantic import AliasChoices, BaseModel, Field
from kungfu import Result, Ok, Error

from crunchpay.checkout import (
    CartLine,
    CheckoutRequest,
    PreviewRequest,
    ConfirmRequest,
    FailureReport,
    CheckoutReceipt,
    Quote,
    ConfirmOutcome,
    CheckoutError,
    CheckoutErrorKind,
    ConfirmError,
    ConfirmErrorKind,
)
from crunchpay.gateway import Confirmation

USER_HEADER = "x-user-id"


def user_from(headers: Mapping[str, str]) -> str | None:
    """Upstream auth puts the acting user in X-User-Id. Absent means guest."""
    user_id = headers.get(USER_HEADER, "").strip()
    return user_id or None


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class ErrorBody(BaseModel):
    kind: str
    reason: str | None = None
    message: str
    retryable: bool


CHECKOUT_STATUS: dict[CheckoutErrorKind, int] = {
    CheckoutErrorKind.MALFORMED_CART: 400,
    CheckoutErrorKind.UNKNOWN_PRODUCT: 400,
    CheckoutErrorKind.COUPON_REJECTED: 422,
    CheckoutErrorKind.NOTHING_TO_PAY: 422,
    CheckoutErrorKind.GATEWAY_UNAVAILABLE: 503,
    CheckoutErrorKind.GATEWAY_REJECTED: 502,
    CheckoutErrorKind.STORE_UNAVAILABLE: 503,
}

CONFIRM_STATUS: dict[ConfirmErrorKind, int] = {
    ConfirmErrorKind.INVALID_SIGNATURE: 400,
    ConfirmErrorKind.ORDER_NOT_FOUND: 404,
    ConfirmErrorKind.ORDER_MISMATCH: 400,
    ConfirmErrorKind.NOT_ORDER_OWNER: 403,
    ConfirmErrorKind.STORE_UNAVAILABLE: 503,
}


def checkout_error_body(err: CheckoutError) -> ErrorBody:
    return ErrorBody(
        kind=err.kind.value,
        reason=err.rejection.value if err.rejection else None,
        message=err.message,
        retryable=err.retryable,
    )


def confirm_error_body(err: ConfirmError) -> ErrorBody:
    return ErrorBody(
        kind=err.kind.value, reason=None, message=err.message, retryable=err.retryable
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════════════


class CartLineIn(BaseModel):
    product_id: str = Field(max_length=64)
    quantity: int


def _cart(items: list[CartLineIn]) -> tuple[CartLine, ...]:
    return tuple(CartLine(product_id=i.product_id, quantity=i.quantity) for i in items)


# ═══════════════════════════════════════════════════════════════════════════════
# POST /checkout
# ═══════════════════════════════════════════════════════════════════════════════


class CheckoutIn(BaseModel):
    items: list[CartLineIn]
    coupon_code: str | None = Field(default=None, max_length=64)

    def to_domain(self, headers: Mapping[str, str]) -> CheckoutRequest:
        return CheckoutRequest(
            items=_cart(self.items),
            coupon_code=self.coupon_code,
            user_id=user_from(headers),
        )


class IntentOut(BaseModel):
    gateway_order_id: str
    amount: int
    currency: str
    key_id: str


class CheckoutOut(BaseModel):
    order_id: str | None = None
    subtotal: Decimal | None = None
    discount: Decimal | None = None
    total_price: Decimal | None = None
    currency: str | None = None
    coupon_code: str | None = None
    intent: IntentOut | None = None
    error: ErrorBody | None = None

    @classmethod
    def from_domain(cls, dom: Result[CheckoutReceipt, CheckoutError]) -> "CheckoutOut":
        match dom:
            case Ok(receipt):
                order, intent = receipt.order, receipt.intent
                return cls(
                    order_id=order.id,
                    subtotal=order.subtotal,
                    discount=order.discount,
                    total_price=order.total_price,
                    currency=order.currency,
                    coupon_code=order.applied_coupon.code if order.applied_coupon else None,
                    intent=IntentOut(
                        gateway_order_id=intent.gateway_order_id,
                        amount=intent.amount,
                        currency=intent.currency,
                        key_id=intent.key_id,
                    ),
                )
            case Error(e):
                return cls(error=checkout_error_body(e))

    @property
    def status_code(self) -> int:
        if self.error is None:
            return 201
        return CHECKOUT_STATUS[CheckoutErrorKind(self.error.kind)]


# ═══════════════════════════════════════════════════════════════════════════════
# POST /coupons/preview
# ═══════════════════════════════════════════════════════════════════════════════


class PreviewIn(BaseModel):
    items: list[CartLineIn]
    coupon_code: str | None = Field(default=None, max_length=64)

    def to_domain(self, headers: Mapping[str, str]) -> PreviewRequest:
        return PreviewRequest(
            items=_cart(self.items),
            coupon_code=self.coupon_code,
            user_id=user_from(headers),
        )


class PreviewOut(BaseModel):
    subtotal: Decimal | None = None
    discount: Decimal | None = None
    final_total: Decimal | None = None
    coupon_code: str | None = None
    error: ErrorBody | None = None

    @classmethod
    def from_domain(cls, dom: Result[Quote, CheckoutError]) -> "PreviewOut":
        match dom:
            case Ok(quote):
                return cls(
                    subtotal=quote.subtotal,
                    discount=quote.discount,
                    final_total=quote.final_total,
                    coupon_code=quote.coupon_code,
                )
            case Error(e):
                return cls(error=checkout_error_body(e))

    @property
    def status_code(self) -> int:
        if self.error is None:
            return 200
        return CHECKOUT_STATUS[CheckoutErrorKind(self.error.kind)]


# ═══════════════════════════════════════════════════════════════════════════════
# POST /checkout/confirm, POST /checkout/failure
# ═══════════════════════════════════════════════════════════════════════════════


class ConfirmIn(BaseModel):
    # Razorpay's checkout widget hands back razorpay_* names; accept both.
    gateway_order_id: str = Field(
        max_length=64, validation_alias=AliasChoices("gateway_order_id", "razorpay_order_id")
    )
    gateway_payment_id: str = Field(
        max_length=64, validation_alias=AliasChoices("gateway_payment_id", "razorpay_payment_id")
    )
    signature: str = Field(
        max_length=256, validation_alias=AliasChoices("signature", "razorpay_signature")
    )
    order_id: str | None = Field(
        default=None, max_length=32, validation_alias=AliasChoices("order_id", "orderId")
    )

    def to_domain(self, headers: Mapping[str, str]) -> ConfirmRequest:
        return ConfirmRequest(
            confirmation=Confirmation(
                gateway_order_id=self.gateway_order_id,
                gateway_payment_id=self.gateway_payment_id,
                signature=self.signature,
            ),
            user_id=user_from(headers),
            order_id=self.order_id,
        )


class FailureIn(BaseModel):
    gateway_order_id: str = Field(
        max_length=64, validation_alias=AliasChoices("gateway_order_id", "razorpay_order_id")
    )
    reason: str = Field(default="payment_failed", max_length=256)
    gateway_payment_id: str | None = Field(
        default=None,
        max_length=64,
        validation_alias=AliasChoices("gateway_payment_id", "razorpay_payment_id"),
    )

    def to_domain(self, headers: Mapping[str, str]) -> FailureReport:
        return FailureReport(
            gateway_order_id=self.gateway_order_id,
            reason=self.reason,
            user_id=user_from(headers),
            gateway_payment_id=self.gateway_payment_id,
        )


class ConfirmOut(BaseModel):
    order_id: str | None = None
    status: str | None = None
    already_finalized: bool | None = None
    failure_reason: str | None = None
    error: ErrorBody | None = None

    @classmethod
    def from_domain(cls, dom: Result[ConfirmOutcome, ConfirmError]) -> "ConfirmOut":
        match dom:
            case Ok(outcome):
                return cls(
                    order_id=outcome.order_id,
                    status=outcome.status.value,
                    already_finalized=outcome.already_finalized,
                    failure_reason=outcome.failure_reason,
                )
            case Error(e):
                return cls(error=confirm_error_body(e))

    @property
    def status_code(self) -> int:
        if self.error is None:
            return 200
        return CONFIRM_STATUS[ConfirmErrorKind(self.error.kind)]


def validation_error_body(errors: list[Any]) -> dict[str, Any]:
    """Body for requests pydantic refused before they reached the service."""
    fields = sorted({".".join(str(p) for p in e.get("loc", ())[1:]) for e in errors} - {""})
    message = f"Invalid fields: {', '.join(fields)}" if fields else "Malformed request body"
    body = ErrorBody(kind="malformed_request", reason=None, message=message, retryable=False)
    return {"error": body.model_dump()}


__all__ = (
    "USER_HEADER",
    "user_from",
    "ErrorBody",
    "CartLineIn",
    "CheckoutIn",
    "IntentOut",
    "CheckoutOut",
    "PreviewIn",
    "PreviewOut",
    "ConfirmIn",
    "FailureIn",
    "ConfirmOut",
    "validation_error_body",
)
