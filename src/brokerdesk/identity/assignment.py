"""Identity assignment and cascade.

An operator supplies a national ID and/or tax ID for one record. The
identifiers are written onto the record, the record is resolved to an
existing customer, and the same customer is then cascaded to every other
unresolved record of the same store and tenant that carries the same
identifier. Resolved records are never touched, so running the same
assignment twice cascades nothing the second time.

This path never creates customers: an identifier nobody holds yet leaves the
record unresolved. Customers for new identifiers come from bulk import, and
concurrent imports can race to create the same one (see
:mod:`brokerdesk.identity.batch`). An assignment that runs before such an
import commits finds no customer and leaves the record unresolved.
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.config.settings import MatchingConfig
from brokerdesk.core.audit import AuditLogger
from brokerdesk.core.error_handling import ErrorHandler
from brokerdesk.core.exceptions import InvalidArgumentError
from brokerdesk.core.logging import LogContext, get_logger
from brokerdesk.db.models.audit import AuditEventType
from brokerdesk.db.models.records import RecordStore
from brokerdesk.db.repositories.record import RecordRepository
from brokerdesk.db.transaction import unit_of_work
from brokerdesk.utils.exceptions import BrokerdeskError

from .identifiers import clean
from .resolver import MatchResolver
from .types import (
    BatchAssignmentResult,
    IdentityAssignmentItem,
    IdentityAssignmentResult,
    Signals,
)

logger = get_logger(__name__)


class IdentityAssignmentService:
    """Assigns customer identities to records and cascades them."""

    def __init__(
        self,
        session: AsyncSession,
        config: MatchingConfig | None = None,
        resolver: MatchResolver | None = None,
        audit_logger: AuditLogger | None = None,
    ):
        """Initialize the assignment service.

        Args:
            session: Database session
            config: Matching configuration
            resolver: Match resolver (built from session when omitted)
            audit_logger: Audit logger (built from session when omitted)
        """
        self._session = session
        self._resolver = resolver or MatchResolver(session, config)
        self._audit = audit_logger or AuditLogger(session)

    async def assign_identity(
        self,
        tenant_id: UUID,
        store: RecordStore,
        record_id: UUID,
        national_id: str | None = None,
        tax_id: str | None = None,
    ) -> IdentityAssignmentResult:
        """Assign identifiers to a record, resolve it and cascade the result.

        Runs as one unit of work: the record update, every cascade update and
        the audit event commit together or not at all.

        Args:
            tenant_id: Tenant the record belongs to
            store: Record store holding the record
            record_id: Target record
            national_id: National ID to write (blank leaves the field as is)
            tax_id: Tax ID to write (blank leaves the field as is)

        Returns:
            IdentityAssignmentResult with the resolved customer and cascade count

        Raises:
            InvalidArgumentError: If neither identifier is supplied
            NotFoundError: If the record does not exist in the tenant's store
            StorageFailureError: If the database fails; nothing is written
        """
        national_id = clean(national_id)
        tax_id = clean(tax_id)
        if national_id is None and tax_id is None:
            raise InvalidArgumentError(
                "at least one of national_id or tax_id is required", field="national_id"
            )

        store = RecordStore(store)
        with LogContext(operation="identity_assignment", tenant_id=str(tenant_id)):
            async with unit_of_work(self._session, operation="assign_identity"):
                records = RecordRepository(self._session, tenant_id, store)
                record = await records.get_or_raise(record_id)

                if national_id is not None:
                    record.national_id = national_id
                if tax_id is not None:
                    record.tax_id = tax_id

                match = await self._resolver.resolve(
                    tenant_id,
                    Signals(
                        national_id=record.national_id,
                        tax_id=record.tax_id,
                        name=record.insured_name,
                        plate=record.plate,
                    ),
                )

                cascade_count = 0
                if match.customer_id is not None:
                    record.customer_id = match.customer_id
                    await self._session.flush()
                    for field_name, value in (("national_id", national_id), ("tax_id", tax_id)):
                        if value is None:
                            continue
                        cascade_count += await records.cascade_customer(
                            field_name,
                            value,
                            match.customer_id,
                            exclude_record_id=record.record_id,
                        )
                else:
                    await self._session.flush()

                await self._audit.log_event(
                    AuditEventType.IDENTITY_ASSIGNED,
                    tenant_id=tenant_id,
                    event_data={
                        "store": store.value,
                        "confidence": match.confidence.value,
                        "matched_by": match.matched_by.value,
                        "cascade_count": cascade_count,
                    },
                    customer_id=match.customer_id,
                    resource_type=f"{store.value}_record",
                    resource_id=str(record.record_id),
                )

            logger.info(
                "identity_assigned",
                store=store.value,
                record_id=str(record_id),
                customer_id=str(match.customer_id) if match.customer_id else None,
                confidence=match.confidence.value,
                cascade_count=cascade_count,
            )

        return IdentityAssignmentResult(
            record_id=record_id,
            customer_id=match.customer_id,
            confidence=match.confidence,
            matched_by=match.matched_by,
            auto_created=False,
            cascade_count=cascade_count,
        )

    async def assign_identities(
        self,
        tenant_id: UUID,
        store: RecordStore,
        items: Iterable[IdentityAssignmentItem],
    ) -> BatchAssignmentResult:
        """Apply :meth:`assign_identity` to many records.

        Items are processed one after another, each in its own unit of work.
        A failing item is counted and reported as ``"id {record_id}: {error}"``
        in input order; it never stops the batch.

        Args:
            tenant_id: Tenant the records belong to
            store: Record store holding the records
            items: Records and the identifiers to assign to them

        Returns:
            BatchAssignmentResult with counts and error messages
        """
        store = RecordStore(store)
        result = BatchAssignmentResult()

        async with ErrorHandler(resource_type=f"{store.value}_record", tenant_id=tenant_id) as handler:
            for item in items:
                try:
                    outcome = await self.assign_identity(
                        tenant_id, store, item.record_id, item.national_id, item.tax_id
                    )
                except BrokerdeskError as e:
                    result.failed_count += 1
                    handler.record_exception(e, str(item.record_id))
                    continue

                result.success_count += 1
                result.total_cascade_updated += outcome.cascade_count

        result.errors = handler.messages()
        logger.info(
            "identities_assigned",
            tenant_id=str(tenant_id),
            store=store.value,
            success_count=result.success_count,
            failed_count=result.failed_count,
            total_cascade_updated=result.total_cascade_updated,
        )
        return result
