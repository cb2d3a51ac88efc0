"""
Codecs — convert transport payloads to domain requests and back.

    from crunchpay.wire.codecs import RequestResponseCodec

    # class Request(...): implements to_domain(headers)
    # class Response(...): implements from_domain(result) and status_code
    # codec = RequestResponseCodec(Request, Response)
"""

from crunchpay.wire.codecs.rrc import (
    RequestResponseCodec,
    ToDomain,
    FromDomain,
)

__all__ = (
    "RequestResponseCodec",
    "ToDomain",
    "FromDomain",
)
