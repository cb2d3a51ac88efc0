"""
Checkout — the order lifecycle controller.

    from crunchpay import checkout as K

    service = K.CheckoutService(ledger, gateway, catalog, currency="INR")

    await service.checkout(K.CheckoutRequest(items=(K.CartLine("p1", 2),), coupon_code="SAVE20", user_id="u1"))
    await service.confirm(K.ConfirmRequest(confirmation, user_id="u1"))
    await service.report_failure(K.FailureReport(gateway_order_id, "payment_cancelled", user_id="u1"))
"""

from crunchpay.checkout._types import (
    CartLine,
    CheckoutRequest,
    PreviewRequest,
    ConfirmRequest,
    FailureReport,
    CheckoutReceipt,
    Quote,
    ConfirmOutcome,
    UNAVAILABLE_MESSAGE,
    CheckoutErrorKind,
    CheckoutError,
    CheckoutErrors,
    ConfirmErrorKind,
    ConfirmError,
    ConfirmErrors,
    FulfillmentErrorKind,
    FulfillmentError,
)
from crunchpay.checkout._service import (
    CheckoutService,
    COUPON_LIMIT_REACHED,
    INVALID_SIGNATURE,
)

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
    # Service
    "CheckoutService",
    "COUPON_LIMIT_REACHED",
    "INVALID_SIGNATURE",
)
