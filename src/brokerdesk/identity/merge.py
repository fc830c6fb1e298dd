"""Customer merge: folding a duplicate customer into the one that stays.

Merging rewrites every customer reference in the three record stores from the
secondary customer to the primary, fills the primary's blank attributes from
the secondary, and deletes the secondary. All of it is one unit of work.
"""

from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.core.audit import AuditLogger
from brokerdesk.core.exceptions import ForbiddenError, InvalidArgumentError, NotFoundError
from brokerdesk.core.logging import LogContext, get_logger
from brokerdesk.db.models.audit import AuditEventType
from brokerdesk.db.models.customer import Customer
from brokerdesk.db.models.records import RecordStore
from brokerdesk.db.repositories.customer import CustomerRepository
from brokerdesk.db.repositories.record import RecordRepository
from brokerdesk.db.transaction import unit_of_work

from .identifiers import is_blank
from .types import MergeResult

logger = get_logger(__name__)

# Attributes copied from secondary to primary when the primary's is blank
MERGEABLE_FIELDS = (
    "national_id",
    "tax_id",
    "phone",
    "email",
    "birth_date",
    "birthplace",
    "address",
)


def merge_fields(primary: Customer, secondary_values: dict[str, Any]) -> list[str]:
    """Fill the primary's blank attributes from the secondary's values.

    Non-blank primary values are never changed, even when the secondary
    holds a different value.

    Args:
        primary: Customer being kept
        secondary_values: Secondary's mergeable attribute values

    Returns:
        Names of the attributes that were copied
    """
    copied: list[str] = []
    for name in MERGEABLE_FIELDS:
        value = secondary_values.get(name)
        if is_blank(getattr(primary, name)) and not is_blank(value):
            setattr(primary, name, value)
            copied.append(name)
    return copied


class CustomerMergeService:
    """Merges duplicate customers of one tenant."""

    def __init__(self, session: AsyncSession, audit_logger: AuditLogger | None = None):
        """Initialize the merge service.

        Args:
            session: Database session
            audit_logger: Audit logger (built from session when omitted)
        """
        self._session = session
        self._audit = audit_logger or AuditLogger(session)

    async def merge(self, tenant_id: UUID, primary_id: UUID, secondary_id: UUID) -> MergeResult:
        """Merge a secondary customer into a primary customer.

        Args:
            tenant_id: Tenant the caller acts for
            primary_id: Customer that is kept
            secondary_id: Customer that is folded in and deleted

        Returns:
            MergeResult with per-store counts of rewritten references

        Raises:
            InvalidArgumentError: If both ids are the same customer
            NotFoundError: If either customer does not exist
            ForbiddenError: If either customer belongs to another tenant
            StorageFailureError: If the database fails; nothing is written
        """
        if primary_id == secondary_id:
            raise InvalidArgumentError("a customer cannot be merged with itself", field="secondary_id")

        with LogContext(operation="customer_merge", tenant_id=str(tenant_id)):
            async with unit_of_work(self._session, operation="customer_merge"):
                customers = CustomerRepository(self._session, tenant_id)
                primary, secondary = await self._load_pair(customers, primary_id, secondary_id)

                logger.info(
                    "customer_merge_started",
                    primary_id=str(primary_id),
                    secondary_id=str(secondary_id),
                )

                secondary_values = {name: getattr(secondary, name) for name in MERGEABLE_FIELDS}

                counts = {
                    store: await RecordRepository(self._session, tenant_id, store).reassign_customer(
                        secondary_id, primary_id
                    )
                    for store in RecordStore
                }

                # The secondary goes first: it still holds the tenant-unique identifiers
                await customers.delete(secondary)
                fields_backfilled = merge_fields(primary, secondary_values)
                await self._session.flush()

                result = MergeResult(
                    success=True,
                    primary_id=primary_id,
                    secondary_id=secondary_id,
                    policies_updated=sum(counts[RecordStore.CONFIRMED].values()),
                    pool_updated=sum(counts[RecordStore.POOLED].values()),
                    captured_updated=sum(counts[RecordStore.CAPTURED].values()),
                    fields_backfilled=fields_backfilled,
                )

                await self._audit.log_event(
                    AuditEventType.CUSTOMER_MERGED,
                    tenant_id=tenant_id,
                    event_data={
                        "secondary_id": str(secondary_id),
                        "policies_updated": result.policies_updated,
                        "pool_updated": result.pool_updated,
                        "captured_updated": result.captured_updated,
                        "fields_backfilled": fields_backfilled,
                    },
                    customer_id=primary_id,
                    resource_type="customer",
                    resource_id=str(primary_id),
                )

            logger.info(
                "customer_merge_completed",
                primary_id=str(primary_id),
                secondary_id=str(secondary_id),
                policies_updated=result.policies_updated,
                pool_updated=result.pool_updated,
                captured_updated=result.captured_updated,
            )

        return result

    async def _load_pair(
        self,
        customers: CustomerRepository,
        primary_id: UUID,
        secondary_id: UUID,
    ) -> tuple[Customer, Customer]:
        """Load both customers, checking existence first and tenancy second."""
        primary = await customers.get_unscoped(primary_id)
        secondary = await customers.get_unscoped(secondary_id)

        if primary is None:
            raise NotFoundError("customer", primary_id)
        if secondary is None:
            raise NotFoundError("customer", secondary_id)

        for customer in (primary, secondary):
            if customer.tenant_id != customers.tenant_id:
                logger.warning(
                    "tenant_access_denied",
                    security_event=True,
                    tenant_id=str(customers.tenant_id),
                    customer_id=str(customer.customer_id),
                    owner_tenant_id=str(customer.tenant_id),
                )
                raise ForbiddenError(
                    "customer belongs to another tenant",
                    tenant_id=customers.tenant_id,
                    resource="customer",
                    resource_id=customer.customer_id,
                )

        return primary, secondary
