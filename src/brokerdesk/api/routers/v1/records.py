"""Record identity assignment endpoints.

- POST /v1/records/{store}/{record_id}/identity - Assign identifiers to one record
- POST /v1/records/{store}/identity/batch - Assign identifiers to many records
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends

from brokerdesk.api.dependencies import TenantId, get_assignment_service
from brokerdesk.api.schemas.errors import APIError
from brokerdesk.api.schemas.identity import AssignIdentityRequest, BatchAssignIdentityRequest
from brokerdesk.db.models.records import RecordStore
from brokerdesk.identity import (
    BatchAssignmentResult,
    IdentityAssignmentResult,
    IdentityAssignmentService,
)

router = APIRouter(prefix="/records", tags=["records"])


@router.post(
    "/{store}/identity/batch",
    response_model=BatchAssignmentResult,
    summary="Assign identities to many records",
)
async def assign_identities(
    store: RecordStore,
    request: BatchAssignIdentityRequest,
    tenant_id: TenantId,
    service: Annotated[IdentityAssignmentService, Depends(get_assignment_service)],
) -> BatchAssignmentResult:
    """Assign identifiers record by record; failures are reported, not raised."""
    return await service.assign_identities(tenant_id, store, request.items)


@router.post(
    "/{store}/{record_id}/identity",
    response_model=IdentityAssignmentResult,
    summary="Assign an identity to a record",
    responses={
        400: {"model": APIError, "description": "No identifier supplied"},
        404: {"model": APIError, "description": "Record not found"},
    },
)
async def assign_identity(
    store: RecordStore,
    record_id: UUID,
    request: AssignIdentityRequest,
    tenant_id: TenantId,
    service: Annotated[IdentityAssignmentService, Depends(get_assignment_service)],
) -> IdentityAssignmentResult:
    """Write identifiers onto a record, resolve it and cascade to siblings."""
    return await service.assign_identity(
        tenant_id, store, record_id, request.national_id, request.tax_id
    )
