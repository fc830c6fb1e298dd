"""Audit event models for identity decisions and merges."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, PortableJSON, PortableUUID


class AuditEventType(str, Enum):
    """Types of audit events tracked in the system."""

    CUSTOMER_CREATED = "customer.created"
    CUSTOMER_MERGED = "customer.merged"
    IDENTITY_ASSIGNED = "identity.assigned"
    IMPORT_BATCH_MATCHED = "import.batch_matched"


class AuditSeverity(str, Enum):
    """Severity levels for audit events."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(Base):
    """Append-only audit log entry.

    Rows are written in the same transaction as the change they describe, so a
    rolled-back merge or assignment leaves no audit trace.
    """

    __tablename__ = "audit_events"

    audit_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid4)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default="info")

    # Context
    tenant_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)
    correlation_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)

    # Event details
    customer_id: Mapped[UUID | None] = mapped_column(
        PortableUUID(), nullable=True
    )  # Customer affected
    resource_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    resource_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    event_data: Mapped[dict] = mapped_column(PortableJSON(), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_audit_tenant", "tenant_id"),
        Index("idx_audit_correlation", "correlation_id"),
        Index("idx_audit_event_type", "event_type"),
        Index("idx_audit_customer", "customer_id"),
        Index("idx_audit_created", "created_at"),
        Index("idx_audit_resource", "resource_type", "resource_id"),
    )

    def __repr__(self) -> str:
        return f"<AuditEvent(id={self.audit_id}, type={self.event_type})>"
