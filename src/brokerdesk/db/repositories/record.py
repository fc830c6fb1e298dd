"""Record repository for the captured, pooled and confirmed stores."""

from datetime import date
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.db.models.records import (
    ConfirmedRecord,
    MatchableRecord,
    RecordStore,
    reference_set,
)
from brokerdesk.db.repositories.base import BaseRepository


class RecordRepository(BaseRepository[MatchableRecord, UUID]):
    """Repository for one record store.

    The store is chosen at construction time; the model and its customer
    reference columns come from the store's reference set.

    Example:
        repo = RecordRepository(db, tenant_id, RecordStore.CONFIRMED)
        record = await repo.get_or_raise(record_id)
    """

    resource_name = "record"

    def __init__(self, db: AsyncSession, tenant_id: UUID, store: RecordStore):
        """Initialize repository for a store.

        Args:
            db: Async SQLAlchemy session
            tenant_id: Owning tenant for all reads and writes
            store: Which record store to operate on
        """
        super().__init__(db, tenant_id)
        self.store = RecordStore(store)
        self.references = reference_set(self.store)
        self.model = self.references.model
        self.resource_name = f"{self.store.value} record"

    async def cascade_customer(
        self,
        field: str,
        value: str,
        customer_id: UUID,
        *,
        exclude_record_id: UUID,
    ) -> int:
        """Point unresolved records sharing an identifier at a customer.

        Only records of this tenant whose ``field`` equals ``value`` exactly
        and whose ``customer_id`` is still null are updated. Resolved records
        are never touched.

        Args:
            field: Raw identifier column ("national_id" or "tax_id")
            value: Trimmed identifier value
            customer_id: Customer to assign
            exclude_record_id: Record that triggered the cascade

        Returns:
            Number of records updated
        """
        column = getattr(self.model, field)
        stmt = (
            update(self.model)
            .where(
                self.model.tenant_id == self.tenant_id,
                column == value,
                self.model.customer_id.is_(None),
                self.model.record_id != exclude_record_id,
            )
            .values(customer_id=customer_id)
        )
        result = await self.db.execute(stmt)
        return result.rowcount

    async def reassign_customer(self, old_customer_id: UUID, new_customer_id: UUID) -> dict[str, int]:
        """Rewrite every customer reference of this store from one customer to another.

        Args:
            old_customer_id: Customer being folded away
            new_customer_id: Customer taking over the references

        Returns:
            Rows rewritten per reference column
        """
        counts: dict[str, int] = {}
        for column_name in self.references.columns:
            column = getattr(self.model, column_name)
            stmt = (
                update(self.model)
                .where(self.model.tenant_id == self.tenant_id, column == old_customer_id)
                .values({column_name: new_customer_id})
            )
            result = await self.db.execute(stmt)
            counts[column_name] = result.rowcount
        return counts

    async def count_references(self, customer_id: UUID) -> int:
        """Count rows of this store referencing a customer in any reference column."""
        total = 0
        for column_name in self.references.columns:
            column = getattr(self.model, column_name)
            stmt = select(func.count()).select_from(self.model).where(
                self.model.tenant_id == self.tenant_id, column == customer_id
            )
            result = await self.db.execute(stmt)
            total += result.scalar() or 0
        return total


def plate_key_expression():
    """SQL expression normalising a confirmed record's plate for comparison."""
    return func.upper(func.replace(ConfirmedRecord.plate, " ", ""))


class PlateEvidenceRepository:
    """Reads vehicle-plate ownership evidence from confirmed records.

    A confirmed record is evidence that its customer owns the plate when it
    is resolved and its policy started on or after the look-back cutoff.
    """

    def __init__(self, db: AsyncSession, tenant_id: UUID):
        self.db = db
        self.tenant_id = tenant_id

    def _evidence(self, since: date):
        return (
            select(ConfirmedRecord)
            .where(
                ConfirmedRecord.tenant_id == self.tenant_id,
                ConfirmedRecord.customer_id.is_not(None),
                ConfirmedRecord.start_date.is_not(None),
                ConfirmedRecord.start_date >= since,
            )
            .order_by(
                ConfirmedRecord.start_date.desc(),
                ConfirmedRecord.created_at.desc(),
                ConfirmedRecord.record_id,
            )
        )

    async def latest_for_plate(self, plate_key: str, *, since: date) -> ConfirmedRecord | None:
        """Get the most recent confirmed record for a normalised plate.

        Args:
            plate_key: Plate upper-cased with whitespace removed
            since: Oldest acceptable policy start date

        Returns:
            The newest matching record, or None
        """
        stmt = self._evidence(since).where(plate_key_expression() == plate_key).limit(1)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def latest_for_plates(
        self, plate_keys: set[str], *, since: date
    ) -> dict[str, ConfirmedRecord]:
        """Get the most recent confirmed record for each of several plates.

        Args:
            plate_keys: Normalised plates
            since: Oldest acceptable policy start date

        Returns:
            Mapping of plate key to its newest record; plates without
            evidence are absent
        """
        if not plate_keys:
            return {}

        stmt = self._evidence(since).where(plate_key_expression().in_(plate_keys))
        result = await self.db.execute(stmt)

        latest: dict[str, ConfirmedRecord] = {}
        for record in result.scalars().all():
            key = "".join((record.plate or "").split()).upper()
            latest.setdefault(key, record)
        return latest
