"""
API — the checkout HTTP surface.

    from crunchpay.api import create_app

    app = create_app()   # settings from the environment

    POST /checkout            cart + coupon → order and gateway intent (201)
    POST /checkout/confirm    signed gateway confirmation → final status
    POST /checkout/failure    gateway-reported failure → payment_failed
    POST /coupons/preview     price a cart with a coupon, no side effects

The acting user comes from the X-User-Id header; without it the caller is a
guest.
"""

from crunchpay.api._app import create_app, build_application
from crunchpay.api._schemas import (
    USER_HEADER,
    ErrorBody,
    CheckoutIn,
    CheckoutOut,
    PreviewIn,
    PreviewOut,
    ConfirmIn,
    FailureIn,
    ConfirmOut,
)

__all__ = (
    "create_app",
    "build_application",
    "USER_HEADER",
    "ErrorBody",
    "CheckoutIn",
    "CheckoutOut",
    "PreviewIn",
    "PreviewOut",
    "ConfirmIn",
    "FailureIn",
    "ConfirmOut",
)
