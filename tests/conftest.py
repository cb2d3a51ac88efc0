from collections.abc import AsyncIterator

import pytest

from crunchpay.catalog import MemoryCatalog
from crunchpay.checkout import CheckoutService
from crunchpay.gateway import MemoryGateway
from crunchpay.store import Ledger, MemoryLedger, SQLAlchemyLedger, create_database

from tests.helpers import PRODUCTS, clock


@pytest.fixture(params=["memory", "sqlalchemy"])
async def ledger(request: pytest.FixtureRequest, tmp_path) -> AsyncIterator[Ledger]:
    if request.param == "memory":
        yield MemoryLedger()
        return

    session_factory, engine = await create_database(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}"
    )
    yield SQLAlchemyLedger(session_factory)
    await engine.dispose()


@pytest.fixture
def gateway() -> MemoryGateway:
    return MemoryGateway()


@pytest.fixture
def catalog() -> MemoryCatalog:
    return MemoryCatalog(PRODUCTS)


@pytest.fixture
def service(ledger: Ledger, gateway: MemoryGateway, catalog: MemoryCatalog) -> CheckoutService:
    return CheckoutService(ledger, gateway, catalog, clock=clock)
