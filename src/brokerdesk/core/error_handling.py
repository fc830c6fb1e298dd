"""Error collection for batch operations.

Batch operations keep going when one item fails. They record each failure
with :class:`ErrorHandler`, which logs every recorded error on exit and keeps
the records in input order for the aggregate result.

Usage:
    from brokerdesk.core.error_handling import ErrorHandler

    async with ErrorHandler(resource_type="confirmed_record") as handler:
        for item in items:
            try:
                await process(item)
            except BrokerdeskError as e:
                handler.record_exception(e, resource_id=str(item.record_id))
"""

import re
from datetime import UTC, datetime
from typing import Any

import structlog

from brokerdesk.db.models.audit import AuditSeverity
from brokerdesk.utils.exceptions import BrokerdeskError

logger = structlog.get_logger("brokerdesk.errors")

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def error_code_for(exc: BaseException) -> str:
    """Derive a machine-readable error code from an exception.

    Domain errors carry their own ``code``. Other Brokerdesk errors map to
    their class name in snake_case (``ConfigurationError`` becomes
    ``configuration_error``); anything else is ``internal_error``.
    """
    if isinstance(exc, BrokerdeskError):
        code = getattr(exc, "code", None)
        return code or _CAMEL_BOUNDARY.sub("_", type(exc).__name__).lower()
    return "internal_error"


class ErrorRecord:
    """Record of an error that occurred while processing one item.

    Attributes:
        error_code: Machine-readable error code
        message: Human-readable error message
        exception: The original exception (if any)
        details: Additional error context
        severity: Error severity level
        timestamp: When the error occurred
    """

    def __init__(
        self,
        error_code: str,
        message: str,
        exception: BaseException | None = None,
        details: dict | None = None,
        severity: AuditSeverity = AuditSeverity.ERROR,
    ):
        self.error_code = error_code
        self.message = message
        self.exception = exception
        self.details = details or {}
        self.severity = severity
        self.timestamp = datetime.now(UTC)

        if exception is not None:
            self.details["exception_type"] = type(exception).__name__

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "timestamp": self.timestamp.isoformat(),
        }


class ErrorHandler:
    """Context manager collecting per-item errors during a batch.

    Errors are logged when the context exits. Unhandled exceptions are
    recorded and then propagate.
    """

    def __init__(
        self,
        resource_type: str | None = None,
        tenant_id: Any = None,
    ):
        """Initialize error handler.

        Args:
            resource_type: Type of resource being processed
            tenant_id: Tenant the batch runs for (logged with each error)
        """
        self.resource_type = resource_type
        self.tenant_id = tenant_id
        self.errors: list[ErrorRecord] = []

    async def __aenter__(self) -> "ErrorHandler":
        """Enter context."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        """Exit context and log any recorded errors."""
        if exc_val is not None:
            self.record_error(error_code_for(exc_val), str(exc_val), exception=exc_val)

        for error in self.errors:
            self._log_error(error)

        return False

    def record_error(
        self,
        error_code: str,
        message: str,
        exception: BaseException | None = None,
        details: dict | None = None,
        severity: AuditSeverity = AuditSeverity.ERROR,
    ) -> ErrorRecord:
        """Record an error.

        Args:
            error_code: Machine-readable error code
            message: Human-readable message
            exception: The exception that caused the error
            details: Additional context
            severity: Error severity level

        Returns:
            The created ErrorRecord
        """
        record = ErrorRecord(
            error_code=error_code,
            message=message,
            exception=exception,
            details=details,
            severity=severity,
        )
        self.errors.append(record)
        return record

    def record_exception(
        self,
        exc: BaseException,
        resource_id: str,
        severity: AuditSeverity = AuditSeverity.WARNING,
    ) -> ErrorRecord:
        """Record a failed item as ``"id {resource_id}: {exc}"``.

        Args:
            exc: The exception the item failed with
            resource_id: Identifier of the failed item
            severity: Error severity level

        Returns:
            The created ErrorRecord
        """
        return self.record_error(
            error_code_for(exc),
            f"id {resource_id}: {exc}",
            exception=exc,
            details={"resource_id": resource_id},
            severity=severity,
        )

    def has_errors(self) -> bool:
        """Check if any errors were recorded."""
        return len(self.errors) > 0

    def messages(self) -> list[str]:
        """Recorded error messages in the order they were recorded."""
        return [error.message for error in self.errors]

    def _log_error(self, error: ErrorRecord) -> None:
        """Log error through structlog."""
        log_method = logger.error if error.severity == AuditSeverity.ERROR else logger.warning
        if error.severity == AuditSeverity.CRITICAL:
            log_method = logger.critical

        log_method(
            "batch_item_failed",
            error_code=error.error_code,
            error_message=error.message,
            resource_type=self.resource_type,
            tenant_id=str(self.tenant_id) if self.tenant_id else None,
            **{k: v for k, v in error.details.items() if k != "resource_type"},
        )
