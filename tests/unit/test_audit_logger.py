"""Unit tests for Audit Logging System."""

from uuid import uuid4

import pytest

from brokerdesk.core.audit import AuditLogger
from brokerdesk.db.models.audit import AuditEventType, AuditSeverity


@pytest.mark.asyncio
async def test_log_event_basic(db_session, tenant_id):
    """Test creating a basic audit event."""
    logger = AuditLogger(db_session)
    correlation_id = uuid4()

    event = await logger.log_event(
        event_type=AuditEventType.CUSTOMER_CREATED,
        tenant_id=tenant_id,
        correlation_id=correlation_id,
        event_data={"row_id": "42"},
        severity=AuditSeverity.INFO,
    )

    assert event.audit_id is not None
    assert event.event_type == AuditEventType.CUSTOMER_CREATED.value
    assert event.severity == AuditSeverity.INFO.value
    assert event.tenant_id == tenant_id
    assert event.correlation_id == correlation_id
    assert event.event_data == {"row_id": "42"}


@pytest.mark.asyncio
async def test_log_event_generates_correlation_id(db_session, tenant_id):
    """Test a correlation id is generated when none is given."""
    event = await AuditLogger(db_session).log_event(
        AuditEventType.IDENTITY_ASSIGNED,
        tenant_id=tenant_id,
        event_data={},
    )

    assert event.correlation_id is not None


@pytest.mark.asyncio
async def test_log_event_with_resource(db_session, tenant_id):
    """Test logging an event with customer and resource references."""
    customer_id = uuid4()
    record_id = uuid4()

    event = await AuditLogger(db_session).log_event(
        AuditEventType.IDENTITY_ASSIGNED,
        tenant_id=tenant_id,
        event_data={"cascade_count": 2},
        customer_id=customer_id,
        resource_type="confirmed_record",
        resource_id=str(record_id),
    )

    assert event.customer_id == customer_id
    assert event.resource_type == "confirmed_record"
    assert event.resource_id == str(record_id)


@pytest.mark.asyncio
async def test_log_event_accepts_strings(db_session, tenant_id):
    """Test plain string event types and severities are stored as given."""
    event = await AuditLogger(db_session).log_event(
        "customer.merged",
        tenant_id=tenant_id,
        event_data={},
        severity="warning",
    )

    assert event.event_type == "customer.merged"
    assert event.severity == "warning"


@pytest.mark.asyncio
async def test_events_not_committed(db_session, tenant_id):
    """Test events share the caller's transaction."""
    await AuditLogger(db_session).log_event(AuditEventType.CUSTOMER_MERGED, tenant_id=tenant_id, event_data={})
    await db_session.rollback()

    assert await AuditLogger(db_session).query_events(tenant_id) == []


@pytest.mark.asyncio
async def test_query_events_filters(db_session, tenant_id, other_tenant_id):
    """Test querying by tenant, event type and customer."""
    audit = AuditLogger(db_session)
    customer_id = uuid4()
    await audit.log_event(AuditEventType.CUSTOMER_MERGED, tenant_id=tenant_id, event_data={}, customer_id=customer_id)
    await audit.log_event(AuditEventType.CUSTOMER_CREATED, tenant_id=tenant_id, event_data={})
    await audit.log_event(AuditEventType.CUSTOMER_MERGED, tenant_id=other_tenant_id, event_data={})

    assert len(await audit.query_events(tenant_id)) == 2
    merged = await audit.query_events(tenant_id, event_type=AuditEventType.CUSTOMER_MERGED)
    assert len(merged) == 1
    assert merged[0].customer_id == customer_id
    assert len(await audit.query_events(tenant_id, customer_id=customer_id)) == 1
    assert len(await audit.query_events(tenant_id, limit=1)) == 1
