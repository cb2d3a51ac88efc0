"""
Wire — expose async handlers via triggers and codecs.

    from crunchpay.wire import endpoint, Application
    from crunchpay.wire.triggers.http import HTTPRouteTrigger
    from crunchpay.wire.codecs.rrc import RequestResponseCodec

    endp = endpoint(service.checkout).expose(
        HTTPRouteTrigger("POST", "/checkout", headers=frozenset({"x-user-id"}), status_code=201),
        RequestResponseCodec(CheckoutIn, CheckoutOut),
    )
    app = Application().mount(endp)
"""

from crunchpay.wire._endpoint import (
    Endpoint,
    Handler,
    endpoint,
)
from crunchpay.wire._app import Application, application
from crunchpay.wire._types import (
    Trigger,
    Codec,
    Exposure,
)

# Common codecs and triggers
from crunchpay.wire.codecs.rrc import RequestResponseCodec
from crunchpay.wire.triggers.http import (
    HTTPRouteTrigger,
    Method,
    Path,
    Header,
    Headers,
)

# Subpackages
from crunchpay.wire import codecs, triggers, contrib

__all__ = (
    # Core API
    "Endpoint",
    "Handler",
    "endpoint",
    "Application",
    "application",
    "Trigger",
    "Codec",
    "Exposure",
    # Built-ins
    "RequestResponseCodec",
    "HTTPRouteTrigger",
    "Method",
    "Path",
    "Header",
    "Headers",
    # Subpackages
    "codecs",
    "triggers",
    "contrib",
)
