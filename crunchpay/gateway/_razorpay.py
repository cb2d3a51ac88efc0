"""
Razorpay adapter — payment intents over HTTP, signature verification locally.

Intent creation is the only network call. Failures come back as GatewayError
values; nothing here raises for gateway trouble.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from kungfu import Result, Ok, Error
from combinators import lift as L

from crunchpay._types import Money, to_minor_units
from crunchpay.gateway._types import (
    PaymentIntent,
    GatewayError,
    GatewayErrorKind,
    Confirmation,
    VerifiedPayment,
    VerificationError,
)
from crunchpay.gateway._signature import verify_signature

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.razorpay.com"


def classify_error(exc: Exception) -> GatewayError:
    """Map transport failures onto retryable / non-retryable gateway errors."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status >= 500 or status == 429:
            return GatewayError(GatewayErrorKind.UNAVAILABLE, f"Gateway returned HTTP {status}", status)
        return GatewayError(GatewayErrorKind.REJECTED, f"Gateway rejected request: HTTP {status}", status)
    if isinstance(exc, httpx.TimeoutException):
        return GatewayError(GatewayErrorKind.UNAVAILABLE, "Gateway timed out")
    if isinstance(exc, httpx.TransportError):
        return GatewayError(GatewayErrorKind.UNAVAILABLE, f"Gateway unreachable: {type(exc).__name__}")
    if isinstance(exc, ValueError):
        return GatewayError(GatewayErrorKind.MALFORMED_RESPONSE, "Gateway returned invalid JSON")
    return GatewayError(GatewayErrorKind.UNAVAILABLE, f"Gateway call failed: {type(exc).__name__}")


class RazorpayGateway:
    """
    Razorpay orders API + HMAC verification.

    Example:
        gateway = RazorpayGateway(key_id="rzp_test_x", key_secret="...")
        match await gateway.create_intent("WC-1A2B", Decimal("850.00"), "INR"):
            case Ok(intent):
                intent.amount   # 85000
            case Error(err):
                err.retryable
    """

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._key_id = key_id
        self._key_secret = key_secret
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client

    @property
    def key_id(self) -> str:
        return self._key_id

    async def create_intent(
        self,
        order_id: str,
        amount: Money,
        currency: str,
    ) -> Result[PaymentIntent, GatewayError]:
        amount_minor = to_minor_units(amount)
        if amount_minor <= 0:
            return Error(GatewayError(GatewayErrorKind.REJECTED, "Amount must be positive"))

        payload = {
            "amount": amount_minor,
            "currency": currency,
            "receipt": order_id,
            "notes": {"order_id": order_id},
        }

        result = await L.catching_async(
            lambda: self._post("/v1/orders", payload),
            on_error=classify_error,
        )

        match result:
            case Ok(body):
                return self._to_intent(order_id, amount_minor, body)
            case Error(err):
                logger.warning(
                    "Intent creation failed for %s: %s (%s)", order_id, err.message, err.kind.value
                )
                return Error(err)

    def verify(
        self, confirmation: Confirmation
    ) -> Result[VerifiedPayment, VerificationError]:
        return verify_signature(self._key_secret, confirmation)

    async def _post(self, path: str, payload: dict[str, Any]) -> Any:
        url = f"{self._base_url}{path}"
        auth = (self._key_id, self._key_secret)

        if self._client is not None:
            resp = await self._client.post(url, json=payload, auth=auth, timeout=self._timeout)
            resp.raise_for_status()
            return resp.json()

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            resp = await client.post(url, json=payload, auth=auth)
            resp.raise_for_status()
            return resp.json()

    def _to_intent(
        self, order_id: str, amount_minor: int, body: Any
    ) -> Result[PaymentIntent, GatewayError]:
        try:
            intent = PaymentIntent(
                gateway_order_id=str(body["id"]),
                amount=int(body["amount"]),
                currency=str(body["currency"]),
                key_id=self._key_id,
            )
        except (KeyError, TypeError, ValueError):
            logger.error("Unexpected intent payload for %s: %r", order_id, body)
            return Error(
                GatewayError(GatewayErrorKind.MALFORMED_RESPONSE, "Gateway returned an unexpected payload")
            )

        if intent.amount != amount_minor:
            logger.error(
                "Intent %s for %s is for %d, expected %d",
                intent.gateway_order_id,
                order_id,
                intent.amount,
                amount_minor,
            )
            return Error(
                GatewayError(GatewayErrorKind.MALFORMED_RESPONSE, "Gateway created an intent for a different amount")
            )

        logger.info("Created intent %s for %s (%d %s)", intent.gateway_order_id, order_id, intent.amount, intent.currency)
        return Ok(intent)


__all__ = ("RazorpayGateway", "classify_error", "DEFAULT_BASE_URL")
