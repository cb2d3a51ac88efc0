"""
Gateway — payment intents and confirmation verification.

    from crunchpay import gateway as P

    gw = P.RazorpayGateway(key_id, key_secret)
    intent = await gw.create_intent(order.id, order.total_price, "INR")
    verified = gw.verify(P.Confirmation(gateway_order_id, gateway_payment_id, signature))

The adapter is the trust boundary (signatures), never the durability
boundary: it does not write orders.
"""

from crunchpay.gateway._types import (
    PaymentIntent,
    GatewayErrorKind,
    GatewayError,
    Confirmation,
    VerifiedPayment,
    VerificationError,
    Gateway,
)
from crunchpay.gateway._signature import (
    sign,
    verify_signature,
)
from crunchpay.gateway._razorpay import (
    RazorpayGateway,
    classify_error,
    DEFAULT_BASE_URL,
)
from crunchpay.gateway._memory import MemoryGateway

__all__ = (
    # Types
    "PaymentIntent",
    "GatewayErrorKind",
    "GatewayError",
    "Confirmation",
    "VerifiedPayment",
    "VerificationError",
    "Gateway",
    # Signatures
    "sign",
    "verify_signature",
    # Adapters
    "RazorpayGateway",
    "classify_error",
    "DEFAULT_BASE_URL",
    "MemoryGateway",
)
