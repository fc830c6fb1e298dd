"""Import matching endpoint.

- POST /v1/imports/match - Match parsed import rows to customers
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from brokerdesk.api.dependencies import TenantId, get_batch_matcher
from brokerdesk.api.schemas.identity import ImportMatchRequest, ImportMatchResponse
from brokerdesk.identity import BatchMatcher

router = APIRouter(prefix="/imports", tags=["imports"])


@router.post(
    "/match",
    response_model=ImportMatchResponse,
    summary="Match import rows",
    description="""
    Match every row of an import to a customer of the tenant.

    Rows carrying a valid national ID or tax ID that match nothing create a
    new customer (`auto_created`). Failed rows carry an `error` and never
    fail the request. Row ids must be unique within the request; a
    repeated id rejects the whole import with 400.
    """,
)
async def match_import(
    request: ImportMatchRequest,
    tenant_id: TenantId,
    matcher: Annotated[BatchMatcher, Depends(get_batch_matcher)],
) -> ImportMatchResponse:
    """Match import rows, creating customers where allowed."""
    results = await matcher.batch_match(tenant_id, request.rows)
    return ImportMatchResponse(results=results)
