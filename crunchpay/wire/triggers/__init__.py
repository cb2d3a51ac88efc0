"""
Triggers — describe how endpoints are exposed (e.g., HTTP routes).

    from crunchpay.wire.triggers.http import HTTPRouteTrigger

    http = HTTPRouteTrigger("POST", "/checkout", headers=frozenset({"x-user-id"}))
"""

from crunchpay.wire.triggers import http


__all__ = ("http",)
