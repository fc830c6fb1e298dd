"""Request logging middleware."""

import time
from typing import Callable
from uuid import uuid4

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from brokerdesk.core.logging import bind_contextvars, log_request_end, unbind_contextvars

logger = structlog.get_logger("brokerdesk.api.requests")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware that assigns a request ID and logs every request.

    The request ID is taken from an incoming ``X-Request-ID`` header when
    present, stored on ``request.state`` and bound to the structlog context
    so every log line of the request carries it.
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        """Process request and log request/response."""
        start_time = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request.state.request_id = request_id

        bind_contextvars(
            request_id=request_id,
            tenant_id=request.headers.get("X-Tenant-ID"),
        )
        try:
            response = await call_next(request)
        finally:
            unbind_contextvars("request_id", "tenant_id")

        duration_ms = (time.perf_counter() - start_time) * 1000
        log_request_end(
            logger,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            request_id=request_id,
        )
        response.headers["X-Request-ID"] = request_id
        return response
