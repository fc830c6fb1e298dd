"""API middleware."""

from .errors import ErrorHandlingMiddleware
from .logging import RequestLoggingMiddleware

__all__ = ["ErrorHandlingMiddleware", "RequestLoggingMiddleware"]
