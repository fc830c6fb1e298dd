"""Database configuration and session management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from brokerdesk.config.settings import Settings


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Let pysqlite honour SAVEPOINT by taking over BEGIN emission.

    The sqlite3 driver opens transactions lazily and commits implicitly,
    which breaks nested transactions. This is the workaround documented by
    SQLAlchemy for the pysqlite/aiosqlite dialects.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for the configured database.

    Args:
        settings: Application settings

    Returns:
        Configured AsyncEngine
    """
    if settings.is_sqlite:
        in_memory = ":memory:" in settings.DATABASE_URL
        engine = create_async_engine(
            settings.DATABASE_URL,
            echo=settings.DATABASE_ECHO,
            poolclass=StaticPool if in_memory else NullPool,
            connect_args={"check_same_thread": False} if in_memory else {},
        )
        enable_sqlite_savepoints(engine)
        return engine

    if settings.ENVIRONMENT == "test":
        return create_async_engine(
            settings.DATABASE_URL, echo=settings.DATABASE_ECHO, poolclass=NullPool
        )

    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory bound to an engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Verify database connectivity.

    Called during application startup to ensure the connection pool
    is ready before accepting requests.
    """
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))


async def close_db(engine: AsyncEngine) -> None:
    """Close database connections gracefully.

    Called during application shutdown to release all connections
    in the pool.
    """
    await engine.dispose()


@asynccontextmanager
async def get_async_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Context manager for obtaining a database session.

    Use this when you need a session outside of FastAPI dependency injection,
    such as in an import job.

    Usage:
        async with get_async_session(factory) as session:
            matcher = BatchMatcher(session)

    Yields:
        AsyncSession: A database session that will be automatically closed
    """
    async with session_factory() as session:
        yield session
