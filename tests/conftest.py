# tests/conftest.py
from datetime import datetime, timedelta

import httpx
import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from cart_recovery import models  # noqa: F401  registers tables
from cart_recovery.core.config import Settings, get_settings
from cart_recovery.database import Base
from cart_recovery.services.notification_gate import NotificationGate
from tests.mocks.mock_platform import MockCommerce, MockDelivery

# In-memory SQLite; the same SQL runs on PostgreSQL in production
TEST_DATABASE_URL = "sqlite+aiosqlite://"

T0 = datetime(2026, 3, 2, 12, 0, 0)


class FrozenClock:
    """Deterministic replacement for utcnow()"""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def settings():
    """Provide test settings"""
    return Settings(
        _env_file=None,
        DATABASE_URL=TEST_DATABASE_URL,
        RESTRICTED_MODE=False,
        RESTRICTED_RECIPIENT="",
        SCHEDULER_ENABLED=False,
        SENDER_EMAIL="shop@example.com",
        STORE_URL="https://shop.example.com",
    )


@pytest.fixture(scope="function")
async def test_engine():
    """Create and configure the test database engine (function-scoped)."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite/aiosqlite transaction handling breaks SAVEPOINT; let
    # SQLAlchemy emit BEGIN itself
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Provide a database session for tests"""
    async with session_factory() as session:
        yield session


# Mock fixtures for external services
@pytest.fixture
def mock_delivery():
    return MockDelivery()


@pytest.fixture
def mock_commerce():
    return MockCommerce()


@pytest.fixture
def gate(mock_delivery):
    return NotificationGate(mock_delivery, restricted_mode=False)


@pytest.fixture
async def api_client(session_factory, settings, mock_commerce, mock_delivery):
    """
    httpx client bound to the app in this event loop, with the database,
    settings and platform clients swapped for test doubles. The lifespan
    (real engine, scheduler) is not started.
    """
    from cart_recovery.dependencies import (
        get_commerce_client,
        get_db,
        get_delivery,
        get_notification_gate,
    )
    from cart_recovery.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_commerce_client] = lambda: mock_commerce
    app.dependency_overrides[get_delivery] = lambda: mock_delivery
    app.dependency_overrides[get_notification_gate] = lambda: NotificationGate(
        mock_delivery,
        restricted_mode=settings.RESTRICTED_MODE,
        allowed_recipient=settings.RESTRICTED_RECIPIENT,
    )

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def sample_cart_data():
    """BigCommerce /v3/carts/{id} payload"""
    return {
        "id": "cart-1",
        "customer_id": 0,
        "email": "",
        "cart_amount": 24.95,
        "line_items": {
            "physical_items": [],
            "digital_items": [{
                "name": "Wildflower Dress",
                "image_url": "https://cdn.example.com/wildflower.jpg",
                "url": "https://shop.example.com/wildflower-dress/",
                "list_price": 12.95,
                "sale_price": 11.5,
            }],
            "custom_items": [],
        },
    }
