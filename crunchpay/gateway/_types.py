"""
Gateway types — intents, confirmations, verification results.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from kungfu import Result

from crunchpay._types import Money


# ═══════════════════════════════════════════════════════════════════════════════
# Intent
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PaymentIntent:
    """
    Gateway-side reservation of the amount to be paid.

    amount is in minor units (paise), exactly what the gateway registered.
    """

    gateway_order_id: str
    amount: int
    currency: str
    key_id: str


class GatewayErrorKind(Enum):
    UNAVAILABLE = "unavailable"  # network, timeout, 5xx; retry checkout
    REJECTED = "rejected"  # 4xx; retrying the same request will not help
    MALFORMED_RESPONSE = "malformed_response"


@dataclass(frozen=True, slots=True)
class GatewayError:
    kind: GatewayErrorKind
    message: str
    status_code: int | None = None

    @property
    def retryable(self) -> bool:
        return self.kind is GatewayErrorKind.UNAVAILABLE


# ═══════════════════════════════════════════════════════════════════════════════
# Confirmation
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Confirmation:
    """What the client posts back after paying out-of-band."""

    gateway_order_id: str
    gateway_payment_id: str
    signature: str


@dataclass(frozen=True, slots=True)
class VerifiedPayment:
    """Identity asserted by the gateway. The order is looked up by this."""

    gateway_order_id: str
    gateway_payment_id: str


class VerificationError(Enum):
    INVALID_SIGNATURE = "invalid_signature"


# ═══════════════════════════════════════════════════════════════════════════════
# Gateway Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class Gateway(Protocol):
    """
    Payment gateway adapter.

    Note: never persists anything. Results are handed to the checkout
    service, which owns every order write.
    """

    @property
    def key_id(self) -> str: ...

    async def create_intent(
        self,
        order_id: str,
        amount: Money,
        currency: str,
    ) -> Result[PaymentIntent, GatewayError]: ...

    def verify(
        self, confirmation: Confirmation
    ) -> Result[VerifiedPayment, VerificationError]: ...


__all__ = (
    "PaymentIntent",
    "GatewayErrorKind",
    "GatewayError",
    "Confirmation",
    "VerifiedPayment",
    "VerificationError",
    "Gateway",
)
