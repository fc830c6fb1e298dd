"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from brokerdesk.api.middleware import ErrorHandlingMiddleware, RequestLoggingMiddleware
from brokerdesk.api.routers import health_router, v1_router
from brokerdesk.config.settings import Settings, get_settings
from brokerdesk.config.validation import get_configuration_summary, validate_or_raise
from brokerdesk.core.logging import setup_logging
from brokerdesk.db.config import build_engine, build_session_factory, close_db, init_db

logger = structlog.get_logger("brokerdesk.api")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Assembles middleware, routers and the database lifespan. The engine
    and session factory are created here and stored on ``app.state`` so
    tests can run the app against their own database.

    Args:
        settings: Optional settings override (useful for testing)

    Returns:
        Configured FastAPI application

    Raises:
        ConfigurationError: If the settings fail validation

    Example:
        # Production
        app = create_app()

        # Run with uvicorn
        uvicorn brokerdesk.api.app:create_app --factory
    """
    if settings is None:
        settings = get_settings()

    validate_or_raise(settings)

    app = FastAPI(
        title="Brokerdesk API",
        description="Customer identity resolution and deduplication",
        version="0.1.0",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=_lifespan,
    )

    app.state.settings = settings
    app.state.engine = build_engine(settings)
    app.state.session_factory = build_session_factory(app.state.engine)

    _configure_middleware(app)
    _configure_routers(app)

    return app


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Configures logging and verifies database connectivity on startup,
    releases the pool on shutdown.

    Args:
        app: FastAPI application

    Yields:
        None (context for application lifetime)
    """
    setup_logging(settings=app.state.settings)
    logger.info("api_starting", **get_configuration_summary(app.state.settings))
    await init_db(app.state.engine)
    logger.info("database_connected")

    yield

    logger.info("api_stopping")
    await close_db(app.state.engine)


def _configure_middleware(app: FastAPI) -> None:
    """Configure middleware stack.

    Middleware order (outermost to innermost execution):
    1. RequestLoggingMiddleware - Assigns request IDs and logs requests
    2. ErrorHandlingMiddleware - Converts exceptions to HTTP responses

    Note: Middleware is added in reverse order because Starlette
    processes them from last-added to first-added.

    Args:
        app: FastAPI application
    """
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)


def _configure_routers(app: FastAPI) -> None:
    """Configure API routers.

    Args:
        app: FastAPI application
    """
    # Health check endpoints (no prefix - at root level)
    app.include_router(health_router)

    app.include_router(v1_router)
