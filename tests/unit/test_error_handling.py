"""Unit tests for batch error collection."""

from unittest.mock import patch
from uuid import uuid4

import pytest

from brokerdesk.core.error_handling import ErrorHandler, ErrorRecord, error_code_for
from brokerdesk.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
    StorageFailureError,
)
from brokerdesk.db.models.audit import AuditSeverity
from brokerdesk.utils.exceptions import ConfigurationError


# =============================================================================
# Error codes
# =============================================================================


class TestErrorCodeFor:
    """Tests for error_code_for()."""

    def test_domain_errors_use_their_code(self):
        """Test domain errors map to their machine code."""
        assert error_code_for(NotFoundError("customer", uuid4())) == "not_found"
        assert error_code_for(InvalidArgumentError("bad")) == "invalid_argument"
        assert error_code_for(ConflictError("taken")) == "conflict"
        assert error_code_for(StorageFailureError("down")) == "storage_failure"
        assert error_code_for(ForbiddenError("no", uuid4(), "customer", uuid4())) == "forbidden"

    def test_other_brokerdesk_errors_use_class_name(self):
        """Test errors without a code fall back to the snake_case class name."""
        assert error_code_for(ConfigurationError("bad config")) == "configuration_error"

    def test_foreign_exceptions_are_internal(self):
        """Test non-Brokerdesk exceptions are internal errors."""
        assert error_code_for(ValueError("x")) == "internal_error"


# =============================================================================
# Exceptions
# =============================================================================


class TestDomainExceptions:
    """Tests for domain exception messages."""

    def test_not_found_message(self):
        """Test NotFoundError names the resource and id."""
        error = NotFoundError("confirmed record", "abc")
        assert str(error) == "confirmed record abc not found"
        assert error.resource == "confirmed record"
        assert error.resource_id == "abc"

    def test_forbidden_message_includes_resource(self):
        """Test ForbiddenError string names the foreign resource."""
        resource_id = uuid4()
        error = ForbiddenError("customer belongs to another tenant", uuid4(), "customer", resource_id)
        assert str(error) == f"customer belongs to another tenant (customer={resource_id})"


# =============================================================================
# ErrorHandler
# =============================================================================


class TestErrorRecord:
    """Tests for ErrorRecord."""

    def test_to_dict(self):
        """Test serialization includes the exception type."""
        record = ErrorRecord("conflict", "taken", exception=ConflictError("taken"))

        data = record.to_dict()

        assert data["error_code"] == "conflict"
        assert data["severity"] == AuditSeverity.ERROR.value
        assert data["details"]["exception_type"] == "ConflictError"
        assert "timestamp" in data


class TestErrorHandler:
    """Tests for ErrorHandler."""

    async def test_no_errors(self):
        """Test a clean batch records nothing."""
        async with ErrorHandler(resource_type="confirmed_record") as handler:
            pass

        assert not handler.has_errors()
        assert handler.messages() == []

    async def test_record_exception_formats_message(self):
        """Test failed items are reported as 'id {id}: {error}'."""
        async with ErrorHandler(resource_type="confirmed_record") as handler:
            handler.record_exception(InvalidArgumentError("no identifier"), "r1")
            handler.record_exception(NotFoundError("confirmed record", "r2"), "r2")

        assert handler.messages() == [
            "id r1: no identifier",
            "id r2: confirmed record r2 not found",
        ]
        assert handler.errors[0].severity == AuditSeverity.WARNING
        assert handler.errors[1].error_code == "not_found"

    async def test_errors_logged_on_exit(self):
        """Test every recorded error is logged when the context exits."""
        with patch("brokerdesk.core.error_handling.logger") as mock_logger:
            async with ErrorHandler(resource_type="pooled_record", tenant_id=uuid4()) as handler:
                handler.record_exception(ConflictError("taken"), "r1")
                mock_logger.warning.assert_not_called()

        mock_logger.warning.assert_called_once()
        args, kwargs = mock_logger.warning.call_args
        assert args == ("batch_item_failed",)
        assert kwargs["resource_type"] == "pooled_record"
        assert kwargs["resource_id"] == "r1"

    async def test_unhandled_exception_recorded_and_propagated(self):
        """Test an exception escaping the block is recorded and re-raised."""
        with pytest.raises(StorageFailureError):
            async with ErrorHandler() as handler:
                raise StorageFailureError("down")

        assert handler.errors[-1].error_code == "storage_failure"
