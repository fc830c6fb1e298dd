"""Customer identity endpoints.

- POST /v1/customers/candidates - Candidate customers for raw signals
- POST /v1/customers/resolve - Best existing customer for raw signals
- POST /v1/customers/merge - Merge a duplicate customer into another
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends

from brokerdesk.api.dependencies import (
    TenantId,
    get_candidate_finder,
    get_match_resolver,
    get_merge_service,
)
from brokerdesk.api.schemas.errors import APIError
from brokerdesk.api.schemas.identity import (
    CandidateListResponse,
    CandidateSearchRequest,
    MergeRequest,
)
from brokerdesk.identity import (
    CandidateFinder,
    CustomerMergeService,
    MatchResolver,
    MatchResult,
    MergeResult,
    Signals,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/customers", tags=["customers"])


@router.post(
    "/candidates",
    response_model=CandidateListResponse,
    summary="Find candidate customers",
    description="Look up customers that may match a national ID, tax ID, plate or name.",
)
async def find_candidates(
    request: CandidateSearchRequest,
    tenant_id: TenantId,
    finder: Annotated[CandidateFinder, Depends(get_candidate_finder)],
) -> CandidateListResponse:
    """Return candidates in lookup order, strongest signals first."""
    signals = Signals(**request.model_dump(exclude={"limit"}))
    candidates = await finder.find_candidates(tenant_id, signals, limit=request.limit)
    return CandidateListResponse(candidates=candidates)


@router.post(
    "/resolve",
    response_model=MatchResult,
    summary="Resolve signals to a customer",
    description="Pick the best existing customer. Never creates a customer.",
)
async def resolve(
    signals: Signals,
    tenant_id: TenantId,
    resolver: Annotated[MatchResolver, Depends(get_match_resolver)],
) -> MatchResult:
    """Resolve raw signals to at most one existing customer."""
    return await resolver.resolve(tenant_id, signals)


@router.post(
    "/merge",
    response_model=MergeResult,
    summary="Merge two customers",
    responses={
        400: {"model": APIError, "description": "Self-merge"},
        403: {"model": APIError, "description": "Customer of another tenant"},
        404: {"model": APIError, "description": "Customer not found"},
    },
)
async def merge_customers(
    request: MergeRequest,
    tenant_id: TenantId,
    service: Annotated[CustomerMergeService, Depends(get_merge_service)],
) -> MergeResult:
    """Fold the secondary customer into the primary and delete it."""
    result = await service.merge(tenant_id, request.primary_id, request.secondary_id)
    logger.info(
        "merge_request_completed",
        primary_id=str(result.primary_id),
        secondary_id=str(result.secondary_id),
    )
    return result
