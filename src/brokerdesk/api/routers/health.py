"""Health check endpoints."""

from datetime import UTC, datetime
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.api.schemas.health import HealthResponse, HealthStatus
from brokerdesk.db.dependencies import get_db

logger = structlog.get_logger()

router = APIRouter(tags=["health"])

APP_VERSION = "0.1.0"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Liveness status; with check_db=true also verifies database connectivity.",
)
async def health_check(
    db: Annotated[AsyncSession, Depends(get_db)],
    check_db: Annotated[bool, Query()] = False,
) -> HealthResponse:
    """Report service health."""
    database: HealthStatus | None = None
    if check_db:
        try:
            await db.execute(text("SELECT 1"))
            database = HealthStatus.HEALTHY
        except SQLAlchemyError as e:
            logger.warning("health_database_unreachable", error_type=type(e).__name__)
            database = HealthStatus.UNHEALTHY

    return HealthResponse(
        status=HealthStatus.UNHEALTHY if database == HealthStatus.UNHEALTHY else HealthStatus.HEALTHY,
        version=APP_VERSION,
        timestamp=datetime.now(UTC),
        database=database,
    )
