"""Tests for the HTTP surface (crunchpay.api)."""

import asyncio
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from crunchpay.api import create_app
from crunchpay.catalog import MemoryCatalog
from crunchpay.config import Settings
from crunchpay.coupons import CouponRejection, DiscountType
from crunchpay.gateway import MemoryGateway
from crunchpay.orders import OrderStatus
from crunchpay.store import MemoryLedger

from tests.helpers import PRODUCTS, clock, make_coupon, unwrap

SETTINGS = Settings(razorpay_key_id="rzp_test_key", razorpay_key_secret="test_secret")
USER = {"X-User-Id": "u1"}
CART = {"items": [{"product_id": "granola", "quantity": 4}]}


@pytest.fixture
def ledger() -> MemoryLedger:
    ledger = MemoryLedger()
    coupons = [
        make_coupon("SAVE20", maximum_discount=Decimal("150")),
        make_coupon(
            "MIN500",
            discount_type=DiscountType.FIXED,
            discount_value=Decimal("50"),
            minimum_purchase=Decimal("500"),
        ),
    ]
    for coupon in coupons:
        unwrap(asyncio.run(ledger.add_coupon(coupon)))
    return ledger


@pytest.fixture
def gateway() -> MemoryGateway:
    return MemoryGateway(key_secret="test_secret", key_id="rzp_test_key")


@pytest.fixture
def client(ledger: MemoryLedger, gateway: MemoryGateway):
    app = create_app(
        SETTINGS,
        ledger=ledger,
        gateway=gateway,
        catalog=MemoryCatalog(PRODUCTS),
        clock=clock,
    )
    with TestClient(app) as client:
        yield client


def confirm_body(gateway: MemoryGateway, gateway_order_id: str) -> dict[str, str]:
    conf = gateway.pay(gateway_order_id)
    return {
        "gateway_order_id": conf.gateway_order_id,
        "gateway_payment_id": conf.gateway_payment_id,
        "signature": conf.signature,
    }


# ------------------------------------------------------------------ #
#  POST /checkout                                                      #
# ------------------------------------------------------------------ #


class TestCheckoutRoute:
    def test_created(self, client: TestClient):
        resp = client.post("/checkout", json={**CART, "coupon_code": "save20"}, headers=USER)

        assert resp.status_code == 201
        body = resp.json()
        assert body["order_id"].startswith("WC-")
        assert (body["subtotal"], body["discount"], body["total_price"]) == ("1000.00", "150.00", "850.00")
        assert body["coupon_code"] == "SAVE20"
        assert body["currency"] == "INR"
        assert body["intent"]["amount"] == 85000
        assert body["intent"]["key_id"] == "rzp_test_key"
        assert "error" not in body

    def test_coupon_rejected(self, client: TestClient):
        resp = client.post(
            "/checkout",
            json={"items": [{"product_id": "bar", "quantity": 3}], "coupon_code": "MIN500"},
            headers=USER,
        )

        assert resp.status_code == 422
        assert resp.json() == {
            "error": {
                "kind": "coupon_rejected",
                "reason": "below_minimum_purchase",
                "message": CouponRejection.BELOW_MINIMUM_PURCHASE.message,
                "retryable": False,
            }
        }

    def test_guest_cannot_use_coupon(self, client: TestClient):
        resp = client.post("/checkout", json={**CART, "coupon_code": "SAVE20"})
        assert resp.status_code == 422
        assert resp.json()["error"]["reason"] == "login_required"

    def test_malformed_cart(self, client: TestClient):
        resp = client.post("/checkout", json={"items": []}, headers=USER)
        assert resp.status_code == 400
        assert resp.json()["error"]["kind"] == "malformed_cart"

    def test_unparseable_body(self, client: TestClient):
        resp = client.post("/checkout", json={"items": "granola"}, headers=USER)
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["kind"] == "malformed_request"
        assert error["retryable"] is False

    def test_gateway_unavailable(self, client: TestClient, gateway: MemoryGateway):
        gateway.fail_next = 1
        resp = client.post("/checkout", json=CART, headers=USER)

        assert resp.status_code == 503
        error = resp.json()["error"]
        assert error["kind"] == "gateway_unavailable"
        assert error["retryable"] is True
        assert "Gateway" not in error["message"]


# ------------------------------------------------------------------ #
#  POST /checkout/confirm                                              #
# ------------------------------------------------------------------ #


class TestConfirmRoute:
    def test_paid_then_replayed(self, client: TestClient, gateway: MemoryGateway, ledger: MemoryLedger):
        created = client.post("/checkout", json={**CART, "coupon_code": "SAVE20"}, headers=USER).json()
        body = {**confirm_body(gateway, created["intent"]["gateway_order_id"]), "order_id": created["order_id"]}

        first = client.post("/checkout/confirm", json=body, headers=USER)
        second = client.post("/checkout/confirm", json=body, headers=USER)

        assert first.status_code == 200
        assert first.json() == {
            "order_id": created["order_id"],
            "status": "paid",
            "already_finalized": False,
            "failure_reason": None,
        }
        assert second.status_code == 200
        assert second.json()["already_finalized"] is True
        assert unwrap(asyncio.run(ledger.get_coupon("SAVE20"))).usage_count == 1

    def test_razorpay_field_names(self, client: TestClient, gateway: MemoryGateway):
        created = client.post("/checkout", json=CART, headers=USER).json()
        conf = gateway.pay(created["intent"]["gateway_order_id"])

        resp = client.post(
            "/checkout/confirm",
            json={
                "razorpay_order_id": conf.gateway_order_id,
                "razorpay_payment_id": conf.gateway_payment_id,
                "razorpay_signature": conf.signature,
                "orderId": created["order_id"],
            },
            headers=USER,
        )

        assert resp.status_code == 200
        assert resp.json()["status"] == OrderStatus.PAID.value

    def test_invalid_signature(self, client: TestClient):
        created = client.post("/checkout", json=CART, headers=USER).json()
        resp = client.post(
            "/checkout/confirm",
            json={
                "gateway_order_id": created["intent"]["gateway_order_id"],
                "gateway_payment_id": "pay_forged",
                "signature": "deadbeef",
            },
            headers=USER,
        )

        assert resp.status_code == 400
        assert resp.json()["error"]["kind"] == "invalid_signature"

    def test_unknown_order(self, client: TestClient, gateway: MemoryGateway):
        resp = client.post("/checkout/confirm", json=confirm_body(gateway, "order_nope"), headers=USER)
        assert resp.status_code == 404

    def test_wrong_owner(self, client: TestClient, gateway: MemoryGateway):
        created = client.post("/checkout", json=CART, headers=USER).json()
        resp = client.post(
            "/checkout/confirm",
            json=confirm_body(gateway, created["intent"]["gateway_order_id"]),
            headers={"X-User-Id": "u2"},
        )
        assert resp.status_code == 403
        assert resp.json()["error"]["kind"] == "not_order_owner"

    def test_order_mismatch(self, client: TestClient, gateway: MemoryGateway):
        created = client.post("/checkout", json=CART, headers=USER).json()
        body = {**confirm_body(gateway, created["intent"]["gateway_order_id"]), "order_id": "WC-000000000000"}
        resp = client.post("/checkout/confirm", json=body, headers=USER)
        assert resp.status_code == 400
        assert resp.json()["error"]["kind"] == "order_mismatch"


# ------------------------------------------------------------------ #
#  POST /checkout/failure, POST /coupons/preview                       #
# ------------------------------------------------------------------ #


class TestOtherRoutes:
    def test_failure_report(self, client: TestClient):
        created = client.post("/checkout", json=CART, headers=USER).json()
        resp = client.post(
            "/checkout/failure",
            json={"razorpay_order_id": created["intent"]["gateway_order_id"], "reason": "payment_cancelled"},
            headers=USER,
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "payment_failed"
        assert resp.json()["failure_reason"] == "payment_cancelled"

    def test_preview(self, client: TestClient):
        resp = client.post("/coupons/preview", json={**CART, "coupon_code": "SAVE20"}, headers=USER)
        assert resp.status_code == 200
        assert resp.json() == {
            "subtotal": "1000.00",
            "discount": "150.00",
            "final_total": "850.00",
            "coupon_code": "SAVE20",
        }

    def test_preview_rejection(self, client: TestClient):
        resp = client.post("/coupons/preview", json={**CART, "coupon_code": "NOPE"}, headers=USER)
        assert resp.status_code == 422
        assert resp.json()["error"]["reason"] == "unknown_coupon"


# ------------------------------------------------------------------ #
#  SQL-backed app                                                      #
# ------------------------------------------------------------------ #


class TestDatabaseBackedApp:
    def test_lifespan_creates_tables(self, tmp_path):
        settings = Settings(
            razorpay_key_id="rzp_test_key",
            razorpay_key_secret="test_secret",
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'app.db'}",
        )
        app = create_app(settings, gateway=MemoryGateway(), clock=clock)

        with TestClient(app) as client:
            resp = client.post("/checkout", json=CART, headers=USER)

        # Empty catalog: the request reached the database and found nothing.
        assert resp.status_code == 400
        assert resp.json()["error"]["kind"] == "unknown_product"
