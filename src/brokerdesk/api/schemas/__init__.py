"""API request and response schemas."""

from .errors import APIError, ErrorCode
from .health import HealthResponse, HealthStatus
from .identity import (
    AssignIdentityRequest,
    BatchAssignIdentityRequest,
    CandidateListResponse,
    CandidateSearchRequest,
    ImportMatchRequest,
    ImportMatchResponse,
    MergeRequest,
)

__all__ = [
    "APIError",
    "ErrorCode",
    "HealthResponse",
    "HealthStatus",
    "AssignIdentityRequest",
    "BatchAssignIdentityRequest",
    "CandidateListResponse",
    "CandidateSearchRequest",
    "ImportMatchRequest",
    "ImportMatchResponse",
    "MergeRequest",
]
