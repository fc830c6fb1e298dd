"""Audit logging service for identity decisions and merges."""

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.db.models.audit import AuditEvent, AuditEventType, AuditSeverity


class AuditLogger:
    """Service for creating and querying audit events.

    Audit events are append-only. They are added to the caller's session and
    flushed, never committed, so they share the fate of the change they record.
    """

    def __init__(self, db: AsyncSession):
        """Initialize audit logger with database session.

        Args:
            db: Async SQLAlchemy session for database operations
        """
        self.db = db

    async def log_event(
        self,
        event_type: AuditEventType | str,
        tenant_id: UUID,
        event_data: dict[str, Any],
        severity: AuditSeverity | str = AuditSeverity.INFO,
        correlation_id: UUID | None = None,
        customer_id: UUID | None = None,
        resource_type: str | None = None,
        resource_id: str | None = None,
    ) -> AuditEvent:
        """Create an audit log entry.

        Args:
            event_type: Type of event (customer.merged, identity.assigned, etc.)
            tenant_id: Tenant the event belongs to
            event_data: Structured event details (must be JSON serializable)
            severity: Event severity level (default: INFO)
            correlation_id: Correlation ID for tracing related events (generated if omitted)
            customer_id: Customer affected by the event
            resource_type: Optional resource type (e.g., "confirmed_record")
            resource_id: Optional resource ID

        Returns:
            Created AuditEvent instance

        Example:
            >>> audit = AuditLogger(db_session)
            >>> event = await audit.log_event(
            ...     AuditEventType.CUSTOMER_MERGED,
            ...     tenant_id=tenant_uuid,
            ...     event_data={"secondary_id": str(secondary_id)},
            ...     customer_id=primary_id,
            ... )
        """
        if isinstance(event_type, AuditEventType):
            event_type = event_type.value
        if isinstance(severity, AuditSeverity):
            severity = severity.value

        event = AuditEvent(
            event_type=event_type,
            severity=severity,
            tenant_id=tenant_id,
            correlation_id=correlation_id or uuid4(),
            customer_id=customer_id,
            resource_type=resource_type,
            resource_id=resource_id,
            event_data=event_data,
        )

        self.db.add(event)
        await self.db.flush()

        return event

    async def query_events(
        self,
        tenant_id: UUID,
        event_type: AuditEventType | str | None = None,
        customer_id: UUID | None = None,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Query audit events of a tenant, newest first.

        Args:
            tenant_id: Tenant to read
            event_type: Filter by event type
            customer_id: Filter by affected customer
            limit: Max results (max 1000)

        Returns:
            List of matching audit events
        """
        if isinstance(event_type, AuditEventType):
            event_type = event_type.value

        query = (
            select(AuditEvent)
            .where(AuditEvent.tenant_id == tenant_id)
            .order_by(AuditEvent.created_at.desc(), AuditEvent.audit_id.desc())
        )
        if event_type is not None:
            query = query.where(AuditEvent.event_type == event_type)
        if customer_id is not None:
            query = query.where(AuditEvent.customer_id == customer_id)

        result = await self.db.execute(query.limit(min(limit, 1000)))
        return list(result.scalars().all())
