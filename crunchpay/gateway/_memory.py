"""
In-memory gateway for tests and local development.
"""

from __future__ import annotations

import uuid

from kungfu import Result, Ok, Error

from crunchpay._types import Money, to_minor_units
from crunchpay.gateway._types import (
    PaymentIntent,
    GatewayError,
    GatewayErrorKind,
    Confirmation,
    VerifiedPayment,
    VerificationError,
)
from crunchpay.gateway._signature import sign, verify_signature


class MemoryGateway:
    """
    In-process gateway.

    Note: signs confirmations with the same HMAC scheme as Razorpay, so the
    checkout service cannot tell the difference.

    fail_next: number of upcoming create_intent calls that fail with
    UNAVAILABLE, for exercising the retry path.
    """

    def __init__(self, key_secret: str = "test_secret", key_id: str = "rzp_test_memory") -> None:
        self._key_id = key_id
        self._key_secret = key_secret
        self.intents: dict[str, PaymentIntent] = {}
        self.fail_next = 0
        self.call_count = 0

    @property
    def key_id(self) -> str:
        return self._key_id

    async def create_intent(
        self,
        order_id: str,
        amount: Money,
        currency: str,
    ) -> Result[PaymentIntent, GatewayError]:
        self.call_count += 1
        if self.fail_next > 0:
            self.fail_next -= 1
            return Error(GatewayError(GatewayErrorKind.UNAVAILABLE, "Gateway unavailable"))

        amount_minor = to_minor_units(amount)
        if amount_minor <= 0:
            return Error(GatewayError(GatewayErrorKind.REJECTED, "Amount must be positive"))

        intent = PaymentIntent(
            gateway_order_id=f"order_{uuid.uuid4().hex[:14]}",
            amount=amount_minor,
            currency=currency,
            key_id=self._key_id,
        )
        self.intents[intent.gateway_order_id] = intent
        return Ok(intent)

    def verify(
        self, confirmation: Confirmation
    ) -> Result[VerifiedPayment, VerificationError]:
        return verify_signature(self._key_secret, confirmation)

    def pay(self, gateway_order_id: str) -> Confirmation:
        """Simulate the customer paying: issue a correctly signed confirmation."""
        payment_id = f"pay_{uuid.uuid4().hex[:14]}"
        return Confirmation(
            gateway_order_id=gateway_order_id,
            gateway_payment_id=payment_id,
            signature=sign(self._key_secret, gateway_order_id, payment_id),
        )


__all__ = ("MemoryGateway",)
