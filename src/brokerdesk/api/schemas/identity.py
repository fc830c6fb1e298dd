"""Request and response schemas for identity endpoints."""

from uuid import UUID

from pydantic import BaseModel, Field

from brokerdesk.identity.types import (
    BatchMatchRow,
    IdentityAssignmentItem,
    MatchCandidate,
    MatchResult,
    Signals,
)


class CandidateSearchRequest(Signals):
    """Signals to look up, with an optional cap on name matches."""

    limit: int | None = Field(default=None, ge=1, le=100)


class CandidateListResponse(BaseModel):
    """Candidates in finder order."""

    candidates: list[MatchCandidate]


class MergeRequest(BaseModel):
    """Customers to merge."""

    primary_id: UUID
    secondary_id: UUID


class ImportMatchRequest(BaseModel):
    """Parsed import rows for one tenant."""

    rows: list[BatchMatchRow] = Field(..., min_length=1)


class ImportMatchResponse(BaseModel):
    """Per-row outcome keyed by row id."""

    results: dict[str, MatchResult]


class AssignIdentityRequest(BaseModel):
    """Identifiers to assign to one record."""

    national_id: str | None = None
    tax_id: str | None = None


class BatchAssignIdentityRequest(BaseModel):
    """Records and identifiers to assign."""

    items: list[IdentityAssignmentItem] = Field(..., min_length=1)
