"""Error response schemas for API."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Caller errors
    INVALID_ARGUMENT = "invalid_argument"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    VALIDATION_ERROR = "validation_error"

    # System errors
    STORAGE_FAILURE = "storage_failure"
    INTERNAL_ERROR = "internal_error"


class APIError(BaseModel):
    """Standardized API error response format.

    All API errors return this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(
        default=None, description="Additional error context"
    )
    request_id: str = Field(..., description="Request ID for tracing")
    timestamp: datetime = Field(..., description="When the error occurred")

    model_config = {"json_schema_extra": {"example": {
        "error_code": "not_found",
        "message": "customer 9b2f4c1e-0d6a-4f3b-8a52-1c7e9d0f2a61 not found",
        "details": {"resource": "customer"},
        "request_id": "5d0c8a0e-2f6b-4d2e-9b1a-7c3e4f5a6b7c",
        "timestamp": "2026-01-30T12:00:00Z",
    }}}
