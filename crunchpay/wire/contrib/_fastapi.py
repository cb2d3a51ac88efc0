from typing import Any

import fastapi
from kungfu import Result

from crunchpay.wire._app import Application
from crunchpay.wire._endpoint import Endpoint, Handler
from crunchpay.wire._types import Exposure
from crunchpay.wire.codecs.rrc import RequestResponseCodec
from crunchpay.wire.triggers.http import HTTPRouteTrigger


type Route = tuple[HTTPRouteTrigger, Any]  # (trigger, route_func)


def is_target(exposure: Exposure) -> bool:
    trigger, codec = exposure
    return isinstance(trigger, HTTPRouteTrigger) and isinstance(codec, RequestResponseCodec)


def make_handler(
    trigger: HTTPRouteTrigger,
    req_cls: type[Any],
    resp_cls: type[Any],
    handler: Handler,
) -> Any:
    async def _route_handler(
        req: Any, request: fastapi.Request, response: fastapi.Response
    ) -> Any:
        headers = {
            name: value
            for name in trigger.headers
            if (value := request.headers.get(name)) is not None
        }
        domain_req = req.to_domain(headers)
        result: Result[Any, Any] = await handler(domain_req)
        out = resp_cls.from_domain(result)
        response.status_code = out.status_code
        return out

    _route_handler.__annotations__ = {
        "req": req_cls,
        "request": fastapi.Request,
        "response": fastapi.Response,
        "return": resp_cls,
    }
    return _route_handler


def compile_to_fastapi_route(endp: Endpoint) -> list[Route]:
    routes: list[Route] = []

    for exposure in endp.exposures:
        if not is_target(exposure):
            continue

        trigger, codec = exposure
        routes.append(
            (trigger, make_handler(trigger, codec.request, codec.response, endp.handler))
        )

    return routes


def add_endpoint_to_app(
    app: fastapi.FastAPI,
    endp: Endpoint,
) -> None:
    for trigger, handler in compile_to_fastapi_route(endp):
        route_method = getattr(app, trigger.method.lower(), None)
        if route_method is None:
            raise ValueError(f"Unsupported HTTP method: {trigger.method}")

        route_method(
            trigger.path,
            status_code=trigger.status_code,
            response_model_exclude_unset=True,
        )(handler)


def from_application(app: Application, **fastapi_kwargs: Any) -> fastapi.FastAPI:
    f_app = fastapi.FastAPI(**fastapi_kwargs)

    for endp in app.endpoints:
        add_endpoint_to_app(f_app, endp)

    return f_app
