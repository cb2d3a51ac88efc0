"""
Catalog collaborator — product id → current unit price.

Consulted only while snapshotting a cart into line items. Prices on an
existing order never change when the catalog does.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kungfu import Result, Ok, Error

from crunchpay._types import Money, to_money
from crunchpay.store import StoreError, ProductTable


@dataclass(frozen=True, slots=True)
class Product:
    id: str
    name: str
    price: Money


class Catalog(Protocol):
    async def price_snapshot(self, product_id: str) -> Result[Product | None, StoreError]:
        """Current price of a purchasable product. Ok(None) if unknown or inactive."""
        ...


class MemoryCatalog:
    def __init__(self, products: list[Product] | None = None) -> None:
        self._products: dict[str, Product] = {p.id: p for p in products or []}

    def add(self, product: Product) -> None:
        self._products[product.id] = product

    def remove(self, product_id: str) -> None:
        self._products.pop(product_id, None)

    async def price_snapshot(self, product_id: str) -> Result[Product | None, StoreError]:
        return Ok(self._products.get(product_id))


class SQLAlchemyCatalog:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def price_snapshot(self, product_id: str) -> Result[Product | None, StoreError]:
        try:
            async with self._session_factory() as session:
                stmt = select(ProductTable).where(
                    ProductTable.id == product_id,
                    ProductTable.is_active.is_(True),
                )
                row = (await session.execute(stmt)).scalar_one_or_none()
                if row is None:
                    return Ok(None)
                return Ok(Product(id=row.id, name=row.name, price=to_money(row.price)))

        except Exception as e:
            return Error(StoreError(f"Failed to read catalog: {e}", e))

    async def add(self, product: Product) -> Result[None, StoreError]:
        """Seed or replace a product (admin tooling and tests)."""
        try:
            async with self._session_factory() as session:
                await session.merge(
                    ProductTable(id=product.id, name=product.name, price=product.price, is_active=True)
                )
                await session.commit()
                return Ok(None)

        except Exception as e:
            return Error(StoreError(f"Failed to add product: {e}", e))


__all__ = ("Product", "Catalog", "MemoryCatalog", "SQLAlchemyCatalog")
