"""Transactional boundary for multi-step writes.

Identity assignment and customer merge each touch several tables. Every
write of one call must commit together or not at all, so the services run
their work inside :func:`unit_of_work`.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.core.exceptions import StorageFailureError

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def unit_of_work(
    session: AsyncSession, operation: str | None = None
) -> AsyncGenerator[AsyncSession, None]:
    """Run a block atomically.

    Opens a transaction, or a SAVEPOINT when the session is already inside
    one, so callers can compose units of work. On any exception every write
    made inside the block is rolled back. Database errors are re-raised as
    ``StorageFailureError``; domain errors propagate unchanged.

    Args:
        session: Session to run in
        operation: Name used in logs and in the storage error

    Yields:
        The same session
    """
    begin = session.begin_nested if session.in_transaction() else session.begin
    try:
        async with begin():
            yield session
    except SQLAlchemyError as e:
        logger.error(
            "unit_of_work_failed",
            operation=operation,
            error_type=type(e).__name__,
        )
        raise StorageFailureError(
            f"storage failure during {operation or 'unit of work'}", operation=operation
        ) from e
