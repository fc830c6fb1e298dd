"""Bulk matching of import rows against a tenant snapshot.

Import files carry hundreds or thousands of rows for one tenant. Instead of
querying per row, the matcher loads the tenant's customers once, indexes
them by national ID, tax ID and normalized full name, and resolves every row
against that snapshot with the same priority rules as the resolver.

Unlike the resolver, the batch path creates a customer when a row carries a
valid national ID or tax ID and nothing matches. New customers join the
snapshot at once, so later rows with the same identifier resolve to them.

Two imports running at the same time for one tenant work from separate
snapshots, so both may decide to create a customer for the same new
identifier. No lock prevents this. The per-tenant unique constraint on
national_id and tax_id rejects the second insert, and that row is reported
as a ConflictError instead of being matched to the winner.
"""

from collections import Counter, defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.config.settings import MatchingConfig
from brokerdesk.core.audit import AuditLogger
from brokerdesk.core.exceptions import ConflictError, InvalidArgumentError, StorageFailureError
from brokerdesk.core.logging import LogContext, get_logger
from brokerdesk.db.models.audit import AuditEventType
from brokerdesk.db.models.customer import Customer, OwnerType
from brokerdesk.db.models.records import ConfirmedRecord
from brokerdesk.db.repositories.customer import CustomerRepository
from brokerdesk.db.repositories.record import PlateEvidenceRepository
from brokerdesk.db.transaction import unit_of_work

from .finder import name_confidence, plate_cutoff
from .identifiers import (
    is_blank,
    is_valid_national_id,
    is_valid_tax_id,
    names_conflict,
    normalize_name,
    normalize_plate,
    split_full_name,
    truncate_address,
)
from .resolver import build_result
from .types import (
    BatchMatchRow,
    Confidence,
    MatchCandidate,
    MatchResult,
    MatchSignal,
)

logger = get_logger(__name__)


@dataclass
class TenantSnapshot:
    """In-memory index of one tenant's customers for the length of a batch."""

    by_id: dict[UUID, Customer] = field(default_factory=dict)
    by_national_id: dict[str, Customer] = field(default_factory=dict)
    by_tax_id: dict[str, Customer] = field(default_factory=dict)
    by_name: dict[str, list[Customer]] = field(default_factory=lambda: defaultdict(list))
    plates: dict[str, ConfirmedRecord] = field(default_factory=dict)
    created: set[UUID] = field(default_factory=set)
    backfilled: set[UUID] = field(default_factory=set)

    def add(self, customer: Customer) -> None:
        """Index a customer under each of its keys. First holder of a key wins."""
        self.by_id[customer.customer_id] = customer
        if not is_blank(customer.national_id):
            self.by_national_id.setdefault(customer.national_id.strip(), customer)
        if not is_blank(customer.tax_id):
            self.by_tax_id.setdefault(customer.tax_id.strip(), customer)
        name_key = normalize_name(customer.full_name)
        if name_key and customer not in self.by_name[name_key]:
            self.by_name[name_key].append(customer)


class BatchMatcher:
    """Matches many import rows of one tenant in a single pass."""

    def __init__(
        self,
        session: AsyncSession,
        config: MatchingConfig | None = None,
        audit_logger: AuditLogger | None = None,
    ):
        """Initialize the batch matcher.

        Args:
            session: Database session for queries and customer creation
            config: Matching configuration
            audit_logger: Audit logger (built from session when omitted)
        """
        self._session = session
        self._config = config or MatchingConfig()
        self._audit = audit_logger or AuditLogger(session)

    async def batch_match(
        self, tenant_id: UUID, rows: Iterable[BatchMatchRow]
    ) -> dict[str, MatchResult]:
        """Match import rows to customers, creating customers where allowed.

        A row that fails gets ``error`` set and ``confidence`` NONE; the rest
        of the batch carries on.

        Args:
            tenant_id: Tenant the import belongs to
            rows: Parsed import rows

        Returns:
            Results keyed by ``row_id``, in input order

        Raises:
            InvalidArgumentError: If two rows share a ``row_id``; nothing is written
        """
        rows = list(rows)
        duplicates = sorted(
            row_id for row_id, count in Counter(row.row_id for row in rows).items() if count > 1
        )
        if duplicates:
            raise InvalidArgumentError(
                f"duplicate row_id in batch: {', '.join(duplicates)}", field="row_id"
            )

        results: dict[str, MatchResult] = {}

        with LogContext(operation="batch_match", tenant_id=str(tenant_id)):
            logger.info("batch_match_started", row_count=len(rows))

            async with unit_of_work(self._session, operation="batch_match"):
                snapshot = await self._load_snapshot(tenant_id, rows)

                for row in rows:
                    results[row.row_id] = await self._match_row(tenant_id, snapshot, row)

                summary = self._summarize(results)
                await self._audit.log_event(
                    AuditEventType.IMPORT_BATCH_MATCHED,
                    tenant_id=tenant_id,
                    event_data=summary,
                    resource_type="import_batch",
                )

            logger.info("batch_match_completed", **summary)

        return results

    async def _load_snapshot(self, tenant_id: UUID, rows: list[BatchMatchRow]) -> TenantSnapshot:
        """Load and index the tenant's customers and the batch's plate evidence."""
        snapshot = TenantSnapshot()
        for customer in await CustomerRepository(self._session, tenant_id).list_all():
            snapshot.add(customer)

        plate_keys = {normalize_plate(row.plate) for row in rows if row.plate}
        if plate_keys:
            evidence = PlateEvidenceRepository(self._session, tenant_id)
            snapshot.plates = await evidence.latest_for_plates(
                plate_keys, since=plate_cutoff(self._config)
            )

        logger.debug(
            "batch_snapshot_loaded",
            customer_count=len(snapshot.by_id),
            plate_count=len(snapshot.plates),
        )
        return snapshot

    async def _match_row(
        self, tenant_id: UUID, snapshot: TenantSnapshot, row: BatchMatchRow
    ) -> MatchResult:
        """Resolve one row against the snapshot, creating a customer if allowed."""
        signals = row.to_signals()
        result = build_result(self._candidates(snapshot, row), signals)

        if result.is_resolved:
            if result.matched_by in (MatchSignal.NATIONAL_ID, MatchSignal.TAX_ID):
                await self._backfill(snapshot, snapshot.by_id[result.customer_id], row)
            return result

        national_id = signals.national_id if is_valid_national_id(signals.national_id) else None
        tax_id = signals.tax_id if is_valid_tax_id(signals.tax_id) else None
        if national_id is None and tax_id is None:
            return result

        try:
            customer = await self._create_customer(tenant_id, row, national_id, tax_id)
        except (ConflictError, StorageFailureError) as e:
            logger.warning(
                "batch_row_failed",
                row_id=row.row_id,
                error_type=type(e).__name__,
            )
            return MatchResult(candidates=result.candidates, error=str(e))

        snapshot.add(customer)
        snapshot.created.add(customer.customer_id)
        signal = MatchSignal.NATIONAL_ID if national_id else MatchSignal.TAX_ID
        return MatchResult(
            customer_id=customer.customer_id,
            confidence=Confidence.EXACT if national_id else Confidence.HIGH,
            matched_by=signal,
            auto_created=True,
            candidates=result.candidates,
        )

    def _candidates(self, snapshot: TenantSnapshot, row: BatchMatchRow) -> list[MatchCandidate]:
        """Candidate lookups of the finder, answered from the snapshot."""
        candidates: list[MatchCandidate] = []
        seen: set[UUID] = set()

        def add(customer: Customer | None, confidence: Confidence, signal: MatchSignal) -> None:
            if customer is None or customer.customer_id in seen:
                return
            seen.add(customer.customer_id)
            candidates.append(MatchCandidate.from_customer(customer, confidence, signal))

        if row.national_id:
            add(snapshot.by_national_id.get(row.national_id), Confidence.EXACT, MatchSignal.NATIONAL_ID)

        if row.tax_id:
            add(snapshot.by_tax_id.get(row.tax_id), Confidence.HIGH, MatchSignal.TAX_ID)

        if row.plate:
            record = snapshot.plates.get(normalize_plate(row.plate))
            if record is not None:
                if names_conflict(row.full_name, record.insured_name):
                    logger.debug(
                        "plate_owner_changed",
                        row_id=row.row_id,
                        record_id=str(record.record_id),
                    )
                else:
                    add(snapshot.by_id.get(record.customer_id), Confidence.MEDIUM, MatchSignal.PLATE)

        name_key = normalize_name(row.full_name)
        if name_key:
            matches = snapshot.by_name.get(name_key, [])[: self._config.candidate_limit]
            confidence = name_confidence(len(matches))
            for customer in matches:
                add(customer, confidence, MatchSignal.NAME)

        return candidates

    async def _create_customer(
        self,
        tenant_id: UUID,
        row: BatchMatchRow,
        national_id: str | None,
        tax_id: str | None,
    ) -> Customer:
        """Create a customer for a row inside its own SAVEPOINT.

        Raises:
            ConflictError: If the identifier is already taken in the tenant
            StorageFailureError: If the insert fails for another reason
        """
        first_name, last_name = split_full_name(row.insured_name, row.insured_surname)
        customer = Customer(
            tenant_id=tenant_id,
            national_id=national_id,
            tax_id=None if national_id else tax_id,
            owner_type=(OwnerType.INDIVIDUAL if national_id else OwnerType.ORGANIZATION).value,
            first_name=first_name,
            last_name=last_name,
            address=truncate_address(row.address),
        )

        try:
            async with self._session.begin_nested():
                self._session.add(customer)
                await self._session.flush()
                await self._audit.log_event(
                    AuditEventType.CUSTOMER_CREATED,
                    tenant_id=tenant_id,
                    event_data={"row_id": row.row_id, "source": "batch_import"},
                    customer_id=customer.customer_id,
                    resource_type="customer",
                    resource_id=str(customer.customer_id),
                )
        except IntegrityError as e:
            field_name = "national_id" if national_id else "tax_id"
            raise ConflictError(
                f"a customer with this {field_name} already exists",
                field=field_name,
                value=national_id or tax_id,
            ) from e
        except SQLAlchemyError as e:
            raise StorageFailureError(
                "could not create customer", operation="batch_match"
            ) from e

        logger.info(
            "customer_auto_created",
            customer_id=str(customer.customer_id),
            row_id=row.row_id,
        )
        return customer

    async def _backfill(self, snapshot: TenantSnapshot, customer: Customer, row: BatchMatchRow) -> None:
        """Fill a matched customer's blank fields from the row, once per batch.

        Failures are logged and the customer is reloaded; the import goes on.
        """
        if customer.customer_id in snapshot.backfilled or customer.customer_id in snapshot.created:
            return
        snapshot.backfilled.add(customer.customer_id)

        updates = backfill_updates(customer, row)
        if not updates:
            return

        try:
            async with self._session.begin_nested():
                for name, value in updates.items():
                    setattr(customer, name, value)
                await self._session.flush()
        except SQLAlchemyError as e:
            logger.warning(
                "customer_backfill_failed",
                customer_id=str(customer.customer_id),
                row_id=row.row_id,
                error_type=type(e).__name__,
            )
            await self._session.refresh(customer)
            return

        for name in ("national_id", "tax_id"):
            if name in updates:
                snapshot.add(customer)
                break

        logger.debug(
            "customer_backfilled",
            customer_id=str(customer.customer_id),
            fields=sorted(updates),
        )

    @staticmethod
    def _summarize(results: dict[str, MatchResult]) -> dict[str, int]:
        values = results.values()
        return {
            "row_count": len(results),
            "matched_count": sum(1 for r in values if r.is_resolved and not r.auto_created),
            "created_count": sum(1 for r in values if r.auto_created),
            "unmatched_count": sum(1 for r in values if not r.is_resolved and not r.failed),
            "failed_count": sum(1 for r in values if r.failed),
        }


def backfill_updates(customer: Customer, row: BatchMatchRow) -> dict[str, str]:
    """Values a row can add to a customer without overwriting anything.

    Identifiers are only taken when valid. The owner type is derived from
    the identifiers the customer ends up with.

    Args:
        customer: Existing customer
        row: Import row matched to it

    Returns:
        Mapping of attribute name to new value, only for blank attributes
    """
    updates: dict[str, str] = {}
    first_name, last_name = split_full_name(row.insured_name, row.insured_surname)

    if is_blank(customer.first_name) and first_name:
        updates["first_name"] = first_name
    if is_blank(customer.last_name) and last_name:
        updates["last_name"] = last_name
    if is_blank(customer.national_id) and is_valid_national_id(row.national_id):
        updates["national_id"] = row.national_id
    if is_blank(customer.tax_id) and is_valid_tax_id(row.tax_id):
        updates["tax_id"] = row.tax_id
    if is_blank(customer.address) and row.address:
        updates["address"] = truncate_address(row.address)

    if is_blank(customer.owner_type):
        has_national_id = not is_blank(customer.national_id) or "national_id" in updates
        has_tax_id = not is_blank(customer.tax_id) or "tax_id" in updates
        if has_national_id:
            updates["owner_type"] = OwnerType.INDIVIDUAL.value
        elif has_tax_id:
            updates["owner_type"] = OwnerType.ORGANIZATION.value

    return updates
