"""Database repositories for tenant-scoped data access."""

from .base import BaseRepository
from .customer import CustomerRepository
from .record import PlateEvidenceRepository, RecordRepository

__all__ = [
    "BaseRepository",
    "CustomerRepository",
    "PlateEvidenceRepository",
    "RecordRepository",
]
