"""Pytest fixtures for Brokerdesk tests."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
import structlog
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from brokerdesk.config.settings import Settings
from brokerdesk.db.config import build_session_factory, enable_sqlite_savepoints
from brokerdesk.db.models import Base, Customer, RecordStore, reference_set


# =============================================================================
# Structlog Configuration Fixture
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_structlog_after_test():
    """Reset structlog configuration after each test.

    This ensures tests that modify structlog global state
    don't affect other tests.
    """
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


# =============================================================================
# Tenants
# =============================================================================


@pytest.fixture
def tenant_id() -> UUID:
    """Tenant the test acts for."""
    return uuid4()


@pytest.fixture
def other_tenant_id() -> UUID:
    """A second, unrelated tenant."""
    return uuid4()


# =============================================================================
# Database fixtures
# =============================================================================


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_savepoints(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return build_session_factory(test_engine)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def customer_factory(
    db_session: AsyncSession, tenant_id: UUID
) -> Callable[..., Awaitable[Customer]]:
    """Insert and commit a customer (of the test tenant unless given)."""

    async def _create(**fields: Any) -> Customer:
        fields.setdefault("tenant_id", tenant_id)
        customer = Customer(**fields)
        db_session.add(customer)
        await db_session.commit()
        return customer

    return _create


@pytest.fixture
def record_factory(db_session: AsyncSession, tenant_id: UUID) -> Callable[..., Awaitable[Any]]:
    """Insert and commit a record into a store (of the test tenant unless given)."""

    async def _create(store: RecordStore = RecordStore.CONFIRMED, **fields: Any):
        fields.setdefault("tenant_id", tenant_id)
        record = reference_set(store).model(**fields)
        db_session.add(record)
        await db_session.commit()
        return record

    return _create


@pytest.fixture
def reload(db_session: AsyncSession) -> Callable[..., Awaitable[Any]]:
    """Re-read a row from the database, bypassing the identity map."""

    async def _reload(model: type, pk: Any):
        pk_column = model.__mapper__.primary_key[0]
        stmt = select(model).where(pk_column == pk).execution_options(populate_existing=True)
        result = await db_session.execute(stmt)
        return result.scalar_one_or_none()

    return _reload


# =============================================================================
# API test fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Create settings for API testing."""
    return Settings(
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        ENVIRONMENT="test",
        DEBUG=True,
        log_level="DEBUG",
    )


@pytest.fixture
def test_app(
    test_settings: Settings,
    test_engine: AsyncEngine,
    session_factory: async_sessionmaker[AsyncSession],
) -> FastAPI:
    """Create a FastAPI test application bound to the test database."""
    from brokerdesk.api.app import create_app

    app = create_app(settings=test_settings)
    app.state.engine = test_engine
    app.state.session_factory = session_factory
    return app


@pytest_asyncio.fixture
async def test_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for API testing.

    Provides an httpx.AsyncClient configured to call the test application
    directly without network overhead.
    """
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as client:
        yield client
