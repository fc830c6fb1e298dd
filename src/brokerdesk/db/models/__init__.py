"""Database models for Brokerdesk."""

from .audit import AuditEvent, AuditEventType, AuditSeverity
from .base import Base, PortableJSON, PortableUUID, TimestampMixin
from .customer import Customer, OwnerType
from .records import (
    STORE_REFERENCES,
    CapturedRecord,
    ConfirmedRecord,
    CustomerReferenceSet,
    MatchableRecord,
    PooledRecord,
    RecordStore,
    reference_set,
)

__all__ = [
    "Base",
    "PortableJSON",
    "PortableUUID",
    "TimestampMixin",
    "Customer",
    "OwnerType",
    "CapturedRecord",
    "PooledRecord",
    "ConfirmedRecord",
    "MatchableRecord",
    "RecordStore",
    "CustomerReferenceSet",
    "STORE_REFERENCES",
    "reference_set",
    "AuditEvent",
    "AuditEventType",
    "AuditSeverity",
]
