"""Error handling middleware for mapping exceptions to HTTP responses."""

from datetime import UTC, datetime
from typing import Callable

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from brokerdesk.api.schemas.errors import APIError, ErrorCode
from brokerdesk.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
    StorageFailureError,
)
from brokerdesk.core.logging import log_exception

logger = structlog.get_logger("brokerdesk.api.errors")


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware that catches exceptions and returns standardized error responses.

    Maps domain exceptions to appropriate HTTP status codes and formats
    all errors using the APIError schema.
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        """Process request and handle any exceptions."""
        try:
            return await call_next(request)
        except Exception as exc:
            return self._handle_exception(request, exc)

    def _handle_exception(self, request: Request, exc: Exception) -> JSONResponse:
        """Convert exception to JSON error response."""
        request_id = str(getattr(request.state, "request_id", "unknown"))
        status_code, error_code, message, details = self._map_exception(request, exc)

        if status_code >= 500:
            log_exception(logger, exc, request_id=request_id, http_path=request.url.path)

        error = APIError(
            error_code=error_code,
            message=message,
            details=details,
            request_id=request_id,
            timestamp=datetime.now(UTC),
        )

        return JSONResponse(
            status_code=status_code,
            content=error.model_dump(mode="json"),
            headers={"X-Request-ID": request_id},
        )

    def _map_exception(
        self, request: Request, exc: Exception
    ) -> tuple[int, str, str, dict | None]:
        """Map exception to (status_code, error_code, message, details)."""
        if isinstance(exc, InvalidArgumentError):
            return (
                400,
                ErrorCode.INVALID_ARGUMENT.value,
                str(exc),
                {"field": exc.field} if exc.field else None,
            )

        if isinstance(exc, NotFoundError):
            return (
                404,
                ErrorCode.NOT_FOUND.value,
                str(exc),
                {"resource": exc.resource, "resource_id": str(exc.resource_id)},
            )

        if isinstance(exc, ForbiddenError):
            # The foreign resource id is not echoed back to the caller
            return (
                403,
                ErrorCode.FORBIDDEN.value,
                exc.args[0],
                {"resource": exc.resource},
            )

        if isinstance(exc, ConflictError):
            return (
                409,
                ErrorCode.CONFLICT.value,
                str(exc),
                {"field": exc.field} if exc.field else None,
            )

        if isinstance(exc, StorageFailureError):
            return (
                503,
                ErrorCode.STORAGE_FAILURE.value,
                "Storage is temporarily unavailable",
                {"operation": exc.operation} if exc.operation else None,
            )

        if isinstance(exc, ValidationError):
            return (
                422,
                ErrorCode.VALIDATION_ERROR.value,
                "Request validation failed",
                {"errors": exc.errors(include_url=False, include_context=False)},
            )

        return (
            500,
            ErrorCode.INTERNAL_ERROR.value,
            "Internal server error",
            {"type": type(exc).__name__} if self._is_debug(request) else None,
        )

    def _is_debug(self, request: Request) -> bool:
        """Check if debug mode is enabled."""
        settings = getattr(request.app.state, "settings", None)
        return bool(settings and settings.DEBUG)
