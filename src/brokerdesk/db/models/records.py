"""Insurance record stores that reference customers.

A raw insurance record passes through three stores: captured (ingested from a
file or feed), pooled (staged for reconciliation) and confirmed (the final
ledger). All three share the same matchable shape: raw identity signals plus
an optional customer reference. A record whose ``customer_id`` is set is
*resolved* and is never touched by cascading identity assignment.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from .base import Base, PortableUUID, TimestampMixin


class RecordStore(str, Enum):
    """The three record stores that carry customer references."""

    CAPTURED = "captured"
    POOLED = "pooled"
    CONFIRMED = "confirmed"


class MatchableRecordMixin(TimestampMixin):
    """Columns shared by every record store."""

    record_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False, index=True)

    @declared_attr
    def customer_id(cls) -> Mapped[UUID | None]:
        return mapped_column(
            PortableUUID(), ForeignKey("customers.customer_id"), nullable=True, index=True
        )

    # Raw identity signals
    national_id: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    tax_id: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    insured_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    plate: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Policy start, used to age out plate evidence
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    @property
    def is_resolved(self) -> bool:
        """Whether the record already points at a customer."""
        return self.customer_id is not None


class CapturedRecord(Base, MatchableRecordMixin):
    """A raw record ingested from a file or external feed."""

    __tablename__ = "captured_records"


class PooledRecord(Base, MatchableRecordMixin):
    """A record staged for reconciliation.

    Besides the insured party it references the contracting party (the
    policyholder), which is also a customer.
    """

    __tablename__ = "pooled_records"

    contracting_party_id: Mapped[UUID | None] = mapped_column(
        PortableUUID(), ForeignKey("customers.customer_id"), nullable=True, index=True
    )


class ConfirmedRecord(Base, MatchableRecordMixin):
    """A finalized policy in the ledger. Plate matching reads from here."""

    __tablename__ = "confirmed_records"

    __table_args__ = (Index("idx_confirmed_tenant_plate", "tenant_id", "plate"),)


MatchableRecord = CapturedRecord | PooledRecord | ConfirmedRecord


@dataclass(frozen=True)
class CustomerReferenceSet:
    """The customer-reference columns of one record store.

    Attributes:
        store: Which store this describes
        model: ORM model of the store
        insured_column: Column holding the insured party reference
        extra_columns: Further customer references (e.g., contracting party)
    """

    store: RecordStore
    model: type[MatchableRecordMixin]
    insured_column: str = "customer_id"
    extra_columns: tuple[str, ...] = ()

    @property
    def columns(self) -> tuple[str, ...]:
        """All reference columns, insured first."""
        return (self.insured_column, *self.extra_columns)


STORE_REFERENCES: dict[RecordStore, CustomerReferenceSet] = {
    RecordStore.CAPTURED: CustomerReferenceSet(RecordStore.CAPTURED, CapturedRecord),
    RecordStore.POOLED: CustomerReferenceSet(
        RecordStore.POOLED, PooledRecord, extra_columns=("contracting_party_id",)
    ),
    RecordStore.CONFIRMED: CustomerReferenceSet(RecordStore.CONFIRMED, ConfirmedRecord),
}


def reference_set(store: RecordStore) -> CustomerReferenceSet:
    """Get the reference set for a store."""
    return STORE_REFERENCES[RecordStore(store)]
