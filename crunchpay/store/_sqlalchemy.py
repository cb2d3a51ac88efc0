"""
SQLAlchemy ledger — conditional updates instead of read-modify-write.

Order transitions:

    UPDATE orders SET ... WHERE id = :id AND status = :prev AND fulfillment IS :prev

Settlement, in the same transaction:

    UPDATE coupons SET usage_count = usage_count + 1
     WHERE code = :code AND (usage_limit IS NULL OR usage_count < usage_limit)

    INSERT INTO coupon_redemptions ... ON CONFLICT DO NOTHING
    UPDATE coupon_redemptions SET used_count = used_count + 1
     WHERE coupon_code = :code AND user_id = :user
       AND used_count < (SELECT per_user_limit FROM coupons WHERE code = :code)

Any zero rowcount rolls the whole transaction back.
"""

from datetime import datetime, UTC
from typing import Any, cast

from sqlalchemy import select, update, or_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kungfu import Result, Ok, Error

from crunchpay._types import to_money, as_utc
from crunchpay.coupons import Coupon, DiscountType, Redemption, normalize_code
from crunchpay.orders import (
    Order,
    OrderStatus,
    FulfillmentStatus,
    LineItem,
    AppliedCoupon,
    PaymentRecord,
)
from crunchpay.store._protocol import StoreError, Commit
from crunchpay.store._tables import (
    CouponTable,
    CouponRedemptionTable,
    OrderTable,
    OrderItemTable,
)


class SQLAlchemyLedger:
    """
    Ledger over any SQLAlchemy async engine (SQLite via aiosqlite, PostgreSQL).

    Example:
        session_factory, engine = await create_database("sqlite+aiosqlite:///shop.db")
        ledger = SQLAlchemyLedger(session_factory)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # ───────────────────────────────────────────────────────────────────────────
    # Coupons
    # ───────────────────────────────────────────────────────────────────────────

    async def add_coupon(self, coupon: Coupon) -> Result[None, StoreError]:
        try:
            async with self._session_factory() as session:
                if await session.get(CouponTable, coupon.code) is not None:
                    return Error(StoreError("Coupon code already exists"))

                session.add(_coupon_row(coupon))
                await session.commit()
                return Ok(None)

        except Exception as e:
            return Error(StoreError(f"Failed to add coupon: {e}", e))

    async def get_coupon(self, code: str) -> Result[Coupon | None, StoreError]:
        try:
            async with self._session_factory() as session:
                stmt = select(CouponTable).where(CouponTable.code == normalize_code(code))
                row = (await session.execute(stmt)).scalar_one_or_none()
                return Ok(_to_coupon(row) if row is not None else None)

        except Exception as e:
            return Error(StoreError(f"Failed to get coupon: {e}", e))

    # ───────────────────────────────────────────────────────────────────────────
    # Orders
    # ───────────────────────────────────────────────────────────────────────────

    async def insert_order(self, order: Order) -> Result[None, StoreError]:
        try:
            async with self._session_factory() as session:
                session.add(_order_row(order))
                await session.commit()
                return Ok(None)

        except Exception as e:
            return Error(StoreError(f"Failed to insert order: {e}", e))

    async def get_order(self, order_id: str) -> Result[Order | None, StoreError]:
        try:
            async with self._session_factory() as session:
                stmt = select(OrderTable).where(OrderTable.id == order_id)
                row = (await session.execute(stmt)).scalar_one_or_none()
                return Ok(_to_order(row) if row is not None else None)

        except Exception as e:
            return Error(StoreError(f"Failed to get order: {e}", e))

    async def find_by_gateway_order(
        self, gateway_order_id: str
    ) -> Result[Order | None, StoreError]:
        try:
            async with self._session_factory() as session:
                stmt = select(OrderTable).where(OrderTable.gateway_order_id == gateway_order_id)
                row = (await session.execute(stmt)).scalar_one_or_none()
                return Ok(_to_order(row) if row is not None else None)

        except Exception as e:
            return Error(StoreError(f"Failed to find order: {e}", e))

    async def apply(self, order: Order, previous: Order) -> Result[Commit, StoreError]:
        try:
            async with self._session_factory() as session:
                cursor = cast(CursorResult[Any], await session.execute(_transition(order, previous)))
                if cursor.rowcount == 0:
                    await session.rollback()
                    return Ok(Commit.STALE)

                await session.commit()
                return Ok(Commit.APPLIED)

        except Exception as e:
            return Error(StoreError(f"Failed to update order: {e}", e))

    async def settle(self, order: Order, previous: Order) -> Result[Commit, StoreError]:
        try:
            async with self._session_factory() as session:
                cursor = cast(CursorResult[Any], await session.execute(_transition(order, previous)))
                if cursor.rowcount == 0:
                    await session.rollback()
                    return Ok(Commit.STALE)

                redemption = order.redemption()
                if redemption is not None:
                    verdict = await self._redeem(session, redemption)
                    if verdict is not Commit.APPLIED:
                        await session.rollback()
                        return Ok(verdict)

                await session.commit()
                return Ok(Commit.APPLIED)

        except Exception as e:
            return Error(StoreError(f"Failed to settle order: {e}", e))

    async def _redeem(self, session: AsyncSession, redemption: Redemption) -> Commit:
        global_stmt = (
            update(CouponTable)
            .where(
                CouponTable.code == redemption.code,
                or_(
                    CouponTable.usage_limit.is_(None),
                    CouponTable.usage_count < CouponTable.usage_limit,
                ),
            )
            .values(usage_count=CouponTable.usage_count + 1)
            .execution_options(synchronize_session=False)
        )
        cursor = cast(CursorResult[Any], await session.execute(global_stmt))
        if cursor.rowcount == 0:
            return Commit.GLOBAL_LIMIT_REACHED

        dialect = session.get_bind().dialect.name
        await session.execute(_insert_redemption_row(dialect, redemption))

        per_user_limit = (
            select(CouponTable.per_user_limit)
            .where(CouponTable.code == redemption.code)
            .scalar_subquery()
        )
        per_user_stmt = (
            update(CouponRedemptionTable)
            .where(
                CouponRedemptionTable.coupon_code == redemption.code,
                CouponRedemptionTable.user_id == redemption.user_id,
                CouponRedemptionTable.used_count < per_user_limit,
            )
            .values(used_count=CouponRedemptionTable.used_count + 1)
            .execution_options(synchronize_session=False)
        )
        cursor = cast(CursorResult[Any], await session.execute(per_user_stmt))
        if cursor.rowcount == 0:
            return Commit.PER_USER_LIMIT_REACHED

        return Commit.APPLIED


# ═══════════════════════════════════════════════════════════════════════════════
# Statements
# ═══════════════════════════════════════════════════════════════════════════════


def _transition(order: Order, previous: Order) -> Any:
    """Compare-and-set on (status, fulfillment) of the previous state."""
    fulfillment_matches = (
        OrderTable.fulfillment.is_(None)
        if previous.fulfillment is None
        else OrderTable.fulfillment == previous.fulfillment.value
    )
    return (
        update(OrderTable)
        .where(
            OrderTable.id == previous.id,
            OrderTable.status == previous.status.value,
            fulfillment_matches,
        )
        .values(**_mutable_values(order))
        .execution_options(synchronize_session=False)
    )


def _insert_redemption_row(dialect: str, redemption: Redemption) -> Any:
    """INSERT ... ON CONFLICT DO NOTHING for the (coupon, user) counter."""
    match dialect:
        case "postgresql":
            insert = pg_insert
        case "sqlite":
            insert = sqlite_insert
        case _:
            raise NotImplementedError(f"Unsupported dialect for redemptions: {dialect}")

    return (
        insert(CouponRedemptionTable)
        .values(coupon_code=redemption.code, user_id=redemption.user_id, used_count=0)
        .on_conflict_do_nothing(index_elements=["coupon_code", "user_id"])
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Mapping
# ═══════════════════════════════════════════════════════════════════════════════


def _db_time(moment: datetime | None) -> datetime | None:
    if moment is None:
        return None
    return as_utc(moment).astimezone(UTC)


def _maybe_utc(moment: datetime | None) -> datetime | None:
    return as_utc(moment) if moment is not None else None


def _coupon_row(coupon: Coupon) -> CouponTable:
    return CouponTable(
        code=coupon.code,
        description=coupon.description,
        discount_type=coupon.discount_type.value,
        discount_value=coupon.discount_value,
        minimum_purchase=coupon.minimum_purchase,
        maximum_discount=coupon.maximum_discount,
        usage_limit=coupon.usage_limit,
        usage_count=coupon.usage_count,
        per_user_limit=coupon.per_user_limit,
        valid_from=_db_time(coupon.valid_from),
        valid_until=_db_time(coupon.valid_until),
        is_active=coupon.is_active,
        redemptions=[
            CouponRedemptionTable(coupon_code=coupon.code, user_id=user_id, used_count=count)
            for user_id, count in coupon.used_by.items()
        ],
    )


def _to_coupon(row: CouponTable) -> Coupon:
    return Coupon(
        code=row.code,
        description=row.description,
        discount_type=DiscountType(row.discount_type),
        discount_value=row.discount_value,
        minimum_purchase=to_money(row.minimum_purchase),
        maximum_discount=(
            to_money(row.maximum_discount) if row.maximum_discount is not None else None
        ),
        usage_limit=row.usage_limit,
        usage_count=row.usage_count,
        per_user_limit=row.per_user_limit,
        valid_from=as_utc(row.valid_from),
        valid_until=as_utc(row.valid_until),
        is_active=row.is_active,
        used_by={r.user_id: r.used_count for r in row.redemptions},
    )


def _mutable_values(order: Order) -> dict[str, Any]:
    """Columns a transition may change. Totals and items never change."""
    return {
        "status": order.status.value,
        "fulfillment": order.fulfillment.value if order.fulfillment else None,
        "gateway_order_id": order.payment.gateway_order_id,
        "gateway_payment_id": order.payment.gateway_payment_id,
        "signature_verified": order.payment.signature_verified,
        "is_paid": order.payment.is_paid,
        "failure_reason": order.payment.failure_reason,
        "paid_at": _db_time(order.paid_at),
        "delivered_at": _db_time(order.delivered_at),
    }


def _order_row(order: Order) -> OrderTable:
    return OrderTable(
        id=order.id,
        user_id=order.user_id,
        subtotal=order.subtotal,
        coupon_code=order.applied_coupon.code if order.applied_coupon else None,
        coupon_discount=order.applied_coupon.discount if order.applied_coupon else None,
        total_price=order.total_price,
        currency=order.currency,
        created_at=_db_time(order.created_at),
        items=[
            OrderItemTable(
                position=position,
                product_id=item.product_id,
                name=item.name,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            for position, item in enumerate(order.line_items)
        ],
        **_mutable_values(order),
    )


def _to_order(row: OrderTable) -> Order:
    applied = (
        AppliedCoupon(code=row.coupon_code, discount=to_money(row.coupon_discount or 0))
        if row.coupon_code
        else None
    )
    return Order(
        id=row.id,
        user_id=row.user_id,
        line_items=tuple(
            LineItem(
                product_id=item.product_id,
                name=item.name,
                quantity=item.quantity,
                unit_price=to_money(item.unit_price),
            )
            for item in row.items
        ),
        subtotal=to_money(row.subtotal),
        applied_coupon=applied,
        total_price=to_money(row.total_price),
        currency=row.currency,
        payment=PaymentRecord(
            gateway_order_id=row.gateway_order_id,
            gateway_payment_id=row.gateway_payment_id,
            signature_verified=row.signature_verified,
            is_paid=row.is_paid,
            failure_reason=row.failure_reason,
        ),
        status=OrderStatus(row.status),
        fulfillment=FulfillmentStatus(row.fulfillment) if row.fulfillment else None,
        created_at=as_utc(row.created_at),
        paid_at=_maybe_utc(row.paid_at),
        delivered_at=_maybe_utc(row.delivered_at),
    )


__all__ = ("SQLAlchemyLedger",)
