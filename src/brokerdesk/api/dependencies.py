"""FastAPI dependencies for API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.config.settings import Settings
from brokerdesk.db.dependencies import get_db, get_required_tenant_id_from_header
from brokerdesk.identity import (
    BatchMatcher,
    CandidateFinder,
    CustomerMergeService,
    IdentityAssignmentService,
    MatchResolver,
)

__all__ = [
    "get_db",
    "get_settings",
    "TenantId",
    "get_candidate_finder",
    "get_match_resolver",
    "get_batch_matcher",
    "get_assignment_service",
    "get_merge_service",
]

TenantId = Annotated[UUID, Depends(get_required_tenant_id_from_header)]
DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_settings(request: Request) -> Settings:
    """Get the settings the application was created with."""
    return request.app.state.settings


AppSettings = Annotated[Settings, Depends(get_settings)]


def get_candidate_finder(db: DbSession, settings: AppSettings) -> CandidateFinder:
    """Get a CandidateFinder bound to the request's session."""
    return CandidateFinder(db, settings.matching)


def get_match_resolver(db: DbSession, settings: AppSettings) -> MatchResolver:
    """Get a MatchResolver bound to the request's session."""
    return MatchResolver(db, settings.matching)


def get_batch_matcher(db: DbSession, settings: AppSettings) -> BatchMatcher:
    """Get a BatchMatcher bound to the request's session."""
    return BatchMatcher(db, settings.matching)


def get_assignment_service(db: DbSession, settings: AppSettings) -> IdentityAssignmentService:
    """Get an IdentityAssignmentService bound to the request's session."""
    return IdentityAssignmentService(db, settings.matching)


def get_merge_service(db: DbSession) -> CustomerMergeService:
    """Get a CustomerMergeService bound to the request's session."""
    return CustomerMergeService(db)
