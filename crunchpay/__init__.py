"""
crunchpay — order payment and discount engine.

    from crunchpay import coupons as C   # Coupon validation and pricing
    from crunchpay import orders as O    # Order aggregate and lifecycle
    from crunchpay import gateway as P   # Payment intents and signatures
    from crunchpay import store as S     # Ledger backends
    from crunchpay import checkout as K  # The lifecycle controller
"""

from crunchpay import coupons
from crunchpay import orders
from crunchpay import gateway
from crunchpay import store
from crunchpay import checkout
from crunchpay._types import (
    Money,
    Clock,
    to_money,
    to_minor_units,
    utcnow,
)

__version__ = "0.1.0"

__all__ = (
    "coupons",
    "orders",
    "gateway",
    "store",
    "checkout",
    "Money",
    "Clock",
    "to_money",
    "to_minor_units",
    "utcnow",
)
