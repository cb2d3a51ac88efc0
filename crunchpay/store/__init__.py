"""
Store — where orders and coupon counters live.

    from crunchpay import store as S

    session_factory, engine = await S.create_database("sqlite+aiosqlite:///shop.db")
    ledger = S.SQLAlchemyLedger(session_factory)

    match await ledger.settle(paid, previous=awaiting):
        case Ok(S.Commit.APPLIED): ...
        case Ok(S.Commit.STALE): ...          # someone else finished it
        case Ok(S.Commit.GLOBAL_LIMIT_REACHED): ...
        case Error(e): ...
"""

from crunchpay.store._protocol import (
    StoreError,
    Commit,
    Ledger,
)
from crunchpay.store._memory import MemoryLedger
from crunchpay.store._tables import (
    Base,
    CouponTable,
    CouponRedemptionTable,
    OrderTable,
    OrderItemTable,
    ProductTable,
    connect,
    create_tables,
    create_database,
)
from crunchpay.store._sqlalchemy import SQLAlchemyLedger

__all__ = (
    # Protocol
    "StoreError",
    "Commit",
    "Ledger",
    # Implementations
    "MemoryLedger",
    "SQLAlchemyLedger",
    # Tables
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
