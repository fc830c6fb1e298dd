"""Core services and utilities for Brokerdesk."""

from .audit import AuditLogger
from .error_handling import ErrorHandler, ErrorRecord, error_code_for
from .exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
    StorageFailureError,
)

__all__ = [
    # Audit
    "AuditLogger",
    # Error handling
    "ErrorHandler",
    "ErrorRecord",
    "error_code_for",
    # Exceptions
    "ConflictError",
    "ForbiddenError",
    "InvalidArgumentError",
    "NotFoundError",
    "StorageFailureError",
]
