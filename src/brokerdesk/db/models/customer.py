"""Customer model: the authoritative, tenant-scoped identity table."""

from datetime import date
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import Date, Index, String, UniqueConstraint, event, inspect
from sqlalchemy.orm import Mapped, mapped_column

from brokerdesk.utils.text import normalize_name

from .base import Base, PortableUUID, TimestampMixin

# Column widths shared with the import path, which truncates to fit
FIRST_NAME_MAX_LENGTH = 150
LAST_NAME_MAX_LENGTH = 30
ADDRESS_MAX_LENGTH = 500
NAME_KEY_MAX_LENGTH = FIRST_NAME_MAX_LENGTH + 1 + LAST_NAME_MAX_LENGTH


class OwnerType(str, Enum):
    """Kind of party a customer represents."""

    INDIVIDUAL = "individual"  # identified by a national ID
    ORGANIZATION = "organization"  # identified by a tax ID


class Customer(Base, TimestampMixin):
    """A customer of one tenant (brokerage firm).

    Within a tenant at most one customer carries a given national ID and at
    most one carries a given tax ID. Customers are created explicitly or by
    the bulk import matcher, and are only ever deleted as the secondary side
    of a merge.
    """

    __tablename__ = "customers"

    customer_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)

    # Identifiers
    national_id: Mapped[str | None] = mapped_column(String(20), nullable=True)
    tax_id: Mapped[str | None] = mapped_column(String(20), nullable=True)
    owner_type: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Profile
    first_name: Mapped[str | None] = mapped_column(String(FIRST_NAME_MAX_LENGTH), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(LAST_NAME_MAX_LENGTH), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    birthplace: Mapped[str | None] = mapped_column(String(100), nullable=True)
    address: Mapped[str | None] = mapped_column(String(ADDRESS_MAX_LENGTH), nullable=True)

    # Folded "first last" name for search; maintained on flush
    name_key: Mapped[str | None] = mapped_column(String(NAME_KEY_MAX_LENGTH), nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "national_id"),
        UniqueConstraint("tenant_id", "tax_id"),
        Index("idx_customer_tenant_last_name", "tenant_id", "last_name"),
        Index("idx_customer_tenant_first_name", "tenant_id", "first_name"),
        Index("idx_customer_tenant_name_key", "tenant_id", "name_key"),
    )

    @property
    def full_name(self) -> str:
        """First and last name joined by a space, blanks skipped."""
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def __repr__(self) -> str:
        return f"<Customer(id={self.customer_id}, tenant={self.tenant_id})>"


@event.listens_for(Customer, "before_insert")
def _set_name_key(mapper, connection, target: Customer) -> None:
    target.name_key = normalize_name(target.full_name) or None


@event.listens_for(Customer, "before_update")
def _refresh_name_key(mapper, connection, target: Customer) -> None:
    attrs = inspect(target).attrs
    if attrs.first_name.history.has_changes() or attrs.last_name.history.has_changes():
        target.name_key = normalize_name(target.full_name) or None
