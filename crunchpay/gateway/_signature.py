"""
Payment signatures — HMAC-SHA256 over "<gateway_order_id>|<gateway_payment_id>".
"""

from __future__ import annotations

import hashlib
import hmac

from kungfu import Result, Ok, Error

from crunchpay.gateway._types import Confirmation, VerifiedPayment, VerificationError


def sign(secret: str, gateway_order_id: str, gateway_payment_id: str) -> str:
    """Hex digest the gateway attaches to a successful payment."""
    message = f"{gateway_order_id}|{gateway_payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def verify_signature(
    secret: str,
    confirmation: Confirmation,
) -> Result[VerifiedPayment, VerificationError]:
    """
    Recompute the signature and compare in constant time.

    Empty identifiers or signature are rejected without hashing.
    """
    if not (
        confirmation.gateway_order_id
        and confirmation.gateway_payment_id
        and confirmation.signature
    ):
        return Error(VerificationError.INVALID_SIGNATURE)

    expected = sign(
        secret, confirmation.gateway_order_id, confirmation.gateway_payment_id
    )
    provided = confirmation.signature.strip().lower()
    if not hmac.compare_digest(expected.encode(), provided.encode()):
        return Error(VerificationError.INVALID_SIGNATURE)

    return Ok(
        VerifiedPayment(
            gateway_order_id=confirmation.gateway_order_id,
            gateway_payment_id=confirmation.gateway_payment_id,
        )
    )


__all__ = ("sign", "verify_signature")
