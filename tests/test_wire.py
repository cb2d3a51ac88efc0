"""Tests for crunchpay.wire."""

from kungfu import Ok
from fastapi.testclient import TestClient
from pydantic import BaseModel

from crunchpay import wire as W
from crunchpay.wire.contrib.fastapi import compile_to_fastapi_route


class EchoIn(BaseModel):
    text: str

    def to_domain(self, headers):
        return (self.text, headers.get("x-tenant"))


class EchoOut(BaseModel):
    text: str | None = None
    tenant: str | None = None

    @classmethod
    def from_domain(cls, dom):
        match dom:
            case Ok((text, tenant)):
                return cls(text=text.upper(), tenant=tenant)
        return cls()

    @property
    def status_code(self) -> int:
        return 202 if self.tenant else 200


async def echo(req):
    return Ok(req)


def echo_endpoint() -> W.Endpoint:
    return W.endpoint(echo).expose(
        W.HTTPRouteTrigger("POST", "/echo", headers=frozenset({"x-tenant"})),
        W.RequestResponseCodec(EchoIn, EchoOut),
    )


class TestEndpoint:
    def test_expose_is_persistent(self):
        base = W.endpoint(echo)
        exposed = base.expose(W.HTTPRouteTrigger("POST", "/a"), W.RequestResponseCodec(EchoIn, EchoOut))
        assert base.exposures == []
        assert len(exposed.exposures) == 1

    def test_mount_many(self):
        app = W.application().mount(echo_endpoint(), echo_endpoint())
        assert len(app.endpoints) == 2

    def test_non_http_exposures_are_skipped(self):
        endp = echo_endpoint().expose("queue:echo", W.RequestResponseCodec(EchoIn, EchoOut))
        assert [trigger.path for trigger, _ in compile_to_fastapi_route(endp)] == ["/echo"]


class TestFastAPI:
    def test_headers_and_status(self):
        app = W.contrib.fastapi.from_application(W.application().mount(echo_endpoint()))
        client = TestClient(app)

        plain = client.post("/echo", json={"text": "hi"})
        tenant = client.post("/echo", json={"text": "hi"}, headers={"X-Tenant": "acme"})

        assert (plain.status_code, plain.json()) == (200, {"text": "HI", "tenant": None})
        assert (tenant.status_code, tenant.json()) == (202, {"text": "HI", "tenant": "acme"})
