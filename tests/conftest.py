import os

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

# order_service.main reads its configuration at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CUSTOMER_SERVICE_URL", "http://customer-service")
os.environ.setdefault("PRODUCT_SERVICE_URL", "http://product-service")
os.environ.setdefault("PAYMENT_SERVICE_URL", "http://payment-service/payments")

from order_service.commands import OrderPersister  # noqa: E402
from order_service.exceptions import ServiceError  # noqa: E402
from order_service.models import Customer, OrderRequest  # noqa: E402
from order_service.orchestrator import OrderOrchestrator  # noqa: E402
from order_service.schema import create_tables  # noqa: E402

from .fakes import (  # noqa: E402
    FakeCustomers,
    FakeProducts,
    InMemoryStore,
    RecordingChannel,
    RecordingPayments,
)


@pytest.fixture()
def customer():
    return Customer(id="1", firstname="Ada", lastname="Lovelace", email="ada@example.com")


@pytest.fixture()
def customers(customer):
    return FakeCustomers([customer])


@pytest.fixture()
def products():
    return FakeProducts({1: "p1", 2: "p2"})


@pytest.fixture()
def store():
    return InMemoryStore()


@pytest.fixture()
def payments():
    return RecordingPayments()


@pytest.fixture()
def channel():
    return RecordingChannel()


@pytest.fixture()
def orchestrator(customers, products, store, payments, channel):
    return OrderOrchestrator(
        customers=customers,
        products=products,
        store=store,
        payments=payments,
        confirmations=channel,
        step_timeout=1.0,
    )


@pytest.fixture()
def order_request():
    return OrderRequest(
        customer_id="1",
        products=[
            {"product_id": 1, "quantity": 2},
            {"product_id": 2, "quantity": 1},
        ],
        amount=59.99,
        payment_method="CARD",
        reference="ORD-1",
    )


@pytest_asyncio.fixture()
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture()
def persister(session_factory):
    return OrderPersister(session_factory)


@pytest.fixture()
def unavailable():
    return ServiceError("test-service", "connection refused")
