"""
Application factory — settings + collaborators → FastAPI app.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import fastapi
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from crunchpay import wire as W
from crunchpay._types import Clock, utcnow
from crunchpay.catalog import Catalog, SQLAlchemyCatalog
from crunchpay.checkout import CheckoutService
from crunchpay.config import Settings
from crunchpay.gateway import Gateway, RazorpayGateway
from crunchpay.store import Ledger, SQLAlchemyLedger, connect, create_tables
from crunchpay.api._schemas import (
    USER_HEADER,
    CheckoutIn,
    CheckoutOut,
    PreviewIn,
    PreviewOut,
    ConfirmIn,
    FailureIn,
    ConfirmOut,
    validation_error_body,
)

logger = logging.getLogger(__name__)

_USER = frozenset({USER_HEADER})


def build_application(service: CheckoutService) -> W.Application:
    """Mount the checkout endpoints."""
    return W.application().mount(
        W.endpoint(service.checkout).expose(
            W.HTTPRouteTrigger("POST", "/checkout", headers=_USER, status_code=201),
            W.RequestResponseCodec(CheckoutIn, CheckoutOut),
        ),
        W.endpoint(service.confirm).expose(
            W.HTTPRouteTrigger("POST", "/checkout/confirm", headers=_USER),
            W.RequestResponseCodec(ConfirmIn, ConfirmOut),
        ),
        W.endpoint(service.report_failure).expose(
            W.HTTPRouteTrigger("POST", "/checkout/failure", headers=_USER),
            W.RequestResponseCodec(FailureIn, ConfirmOut),
        ),
        W.endpoint(service.preview).expose(
            W.HTTPRouteTrigger("POST", "/coupons/preview", headers=_USER),
            W.RequestResponseCodec(PreviewIn, PreviewOut),
        ),
    )


async def _malformed_request(
    request: fastapi.Request, exc: Exception
) -> JSONResponse:
    errors = exc.errors() if isinstance(exc, RequestValidationError) else []
    return JSONResponse(status_code=400, content=validation_error_body(list(errors)))


def create_app(
    settings: Settings | None = None,
    *,
    ledger: Ledger | None = None,
    gateway: Gateway | None = None,
    catalog: Catalog | None = None,
    clock: Clock = utcnow,
) -> fastapi.FastAPI:
    """
    Build the HTTP app.

    Collaborators not passed in are built from settings: a Razorpay gateway
    and SQLAlchemy-backed ledger and catalog on settings.database_url, whose
    tables are created at startup.

    Example:
        app = create_app(Settings.from_env())
        # uvicorn.run(app)
    """
    settings = settings or Settings.from_env()
    engine = None

    if ledger is None or catalog is None:
        session_factory, engine = connect(settings.database_url)
        ledger = ledger or SQLAlchemyLedger(session_factory)
        catalog = catalog or SQLAlchemyCatalog(session_factory)

    if gateway is None:
        gateway = RazorpayGateway(
            settings.razorpay_key_id,
            settings.razorpay_key_secret,
            base_url=settings.razorpay_base_url,
            timeout=settings.gateway_timeout,
        )

    service = CheckoutService(
        ledger,
        gateway,
        catalog,
        currency=settings.currency,
        clock=clock,
        max_line_quantity=settings.max_line_quantity,
    )

    @asynccontextmanager
    async def lifespan(_: fastapi.FastAPI) -> AsyncIterator[None]:
        if engine is not None:
            await create_tables(engine)
            logger.info("Database ready at %s", engine.url.render_as_string(hide_password=True))
        yield
        if engine is not None:
            await engine.dispose()

    app = W.contrib.fastapi.from_application(
        build_application(service),
        title="crunchpay",
        lifespan=lifespan,
    )
    app.add_exception_handler(RequestValidationError, _malformed_request)
    app.state.checkout = service
    return app


__all__ = ("create_app", "build_application")
