from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from kungfu import Result

from crunchpay.wire._types import Codec, Exposure, Trigger

type Handler = Callable[[Any], Awaitable[Result[Any, Any]]]


@dataclass(slots=True)
class Endpoint:
    handler: Handler
    exposures: list[Exposure] = field(default_factory=list[Exposure])

    @classmethod
    def from_handler(cls, handler: Handler) -> Endpoint:
        return cls(handler=handler)

    def expose(self, trigger: Trigger, codec: Codec) -> Endpoint:
        return Endpoint(
            handler=self.handler, exposures=[*self.exposures, (trigger, codec)]
        )


def endpoint(handler: Handler) -> Endpoint:
    return Endpoint.from_handler(handler)
