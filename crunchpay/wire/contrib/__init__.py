"""
Contrib — framework integrations. Access integrations via submodules.

    from crunchpay.wire.contrib import fastapi
    # app = fastapi.from_application(Application())
"""

from crunchpay.wire.contrib import fastapi

__all__ = ("fastapi",)
