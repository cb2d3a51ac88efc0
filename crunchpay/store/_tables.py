"""
Database layer — SQLAlchemy models and session factory.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ═══════════════════════════════════════════════════════════════════════════════
# Base
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


def _money() -> Numeric:
    return Numeric(12, 2, asdecimal=True)


# ═══════════════════════════════════════════════════════════════════════════════
# Coupons
# ═══════════════════════════════════════════════════════════════════════════════


class CouponTable(Base):
    __tablename__ = "coupons"

    code: Mapped[str] = mapped_column(String(64), primary_key=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    discount_type: Mapped[str] = mapped_column(String(16), nullable=False)
    discount_value: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    minimum_purchase: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    maximum_discount: Mapped[Decimal | None] = mapped_column(_money(), nullable=True)

    # Limits — counters only move inside a settlement transaction
    usage_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    per_user_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    valid_from: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    valid_until: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    redemptions: Mapped[list["CouponRedemptionTable"]] = relationship(
        lazy="selectin",
        cascade="all, delete-orphan",
    )


class CouponRedemptionTable(Base):
    """Per-user redemption counter (the coupon's used_by)."""

    __tablename__ = "coupon_redemptions"
    __table_args__ = (UniqueConstraint("coupon_code", "user_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    coupon_code: Mapped[str] = mapped_column(
        String(64), ForeignKey("coupons.code"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    used_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


class OrderTable(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    # Totals — frozen at checkout
    subtotal: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    coupon_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    coupon_discount: Mapped[Decimal | None] = mapped_column(_money(), nullable=True)
    total_price: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    # Lifecycle
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    fulfillment: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Payment sub-record
    gateway_order_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, unique=True
    )
    gateway_payment_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    signature_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    failure_reason: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    items: Mapped[list["OrderItemTable"]] = relationship(
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="OrderItemTable.position",
    )


class OrderItemTable(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("orders.id"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(_money(), nullable=False)


# ═══════════════════════════════════════════════════════════════════════════════
# Catalog — read-only from here
# ═══════════════════════════════════════════════════════════════════════════════


class ProductTable(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


# ═══════════════════════════════════════════════════════════════════════════════
# Database Setup
# ═══════════════════════════════════════════════════════════════════════════════


def connect(
    url: str = "sqlite+aiosqlite:///crunchpay.db",
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Engine and session factory, without touching the database yet."""
    engine = create_async_engine(url, echo=False)
    return async_sessionmaker(engine, expire_on_commit=False), engine


async def create_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def create_database(
    url: str = "sqlite+aiosqlite:///crunchpay.db",
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Create tables and return (session_factory, engine)."""
    session_factory, engine = connect(url)
    await create_tables(engine)
    return session_factory, engine


__all__ = (
    "Base",
    "CouponTable",
    "CouponRedemptionTable",
    "OrderTable",
    "OrderItemTable",
    "ProductTable",
    "connect",
    "create_tables",
    "create_database",
)
