"""Shared builders for the test suite."""

from datetime import datetime, timedelta, UTC
from decimal import Decimal
from typing import Any

from kungfu import Result, Ok, Error

from crunchpay.catalog import Product
from crunchpay.coupons import Coupon, DiscountType

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)

PRODUCTS = [
    Product("granola", "Crunchy Granola", Decimal("250.00")),
    Product("bar", "Protein Bar", Decimal("100.00")),
    Product("mix", "Trail Mix", Decimal("500.00")),
]


def clock() -> datetime:
    return NOW


def unwrap[T](result: Result[T, Any]) -> T:
    match result:
        case Ok(value):
            return value
        case Error(e):
            raise AssertionError(f"expected Ok, got Error({e!r})")


def unwrap_err[E](result: Result[Any, E]) -> E:
    match result:
        case Ok(value):
            raise AssertionError(f"expected Error, got Ok({value!r})")
        case Error(e):
            return e


def make_coupon(code: str = "SAVE20", **overrides: Any) -> Coupon:
    fields: dict[str, Any] = {
        "code": code,
        "discount_type": DiscountType.PERCENTAGE,
        "discount_value": Decimal("20"),
        "valid_from": NOW - timedelta(days=30),
        "valid_until": NOW + timedelta(days=30),
    }
    fields.update(overrides)
    return Coupon(**fields)
