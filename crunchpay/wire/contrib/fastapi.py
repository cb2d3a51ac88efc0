"""
FastAPI integration for crunchpay.wire.

    from crunchpay.wire.contrib import fastapi
    # fapp = fastapi.from_application(app, lifespan=lifespan)
"""

from crunchpay.wire.contrib._fastapi import (
    add_endpoint_to_app,
    from_application,
    compile_to_fastapi_route,
)

__all__ = (
    "add_endpoint_to_app",
    "from_application",
    "compile_to_fastapi_route",
)
