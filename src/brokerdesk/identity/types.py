"""Identity resolution type definitions.

This module defines the core types for identity resolution: the ordered
confidence levels, the signals a match can come from, candidate and result
models, and the inputs and outputs of assignment and merge.
"""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from brokerdesk.db.models.customer import Customer


class Confidence(str, Enum):
    """How strongly a candidate is believed to be the right customer.

    Levels are totally ordered: ``EXACT > HIGH > MEDIUM > LOW > NONE``.
    Comparison operators use that order, not the string values.
    """

    NONE = "none"  # No usable match
    LOW = "low"  # Name match with several candidates
    MEDIUM = "medium"  # Plate match, or a single name match
    HIGH = "high"  # Tax ID match
    EXACT = "exact"  # National ID match

    @property
    def rank(self) -> int:
        """Position in the total order, NONE being 0."""
        return _CONFIDENCE_RANK[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Confidence):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Confidence):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Confidence):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Confidence):
            return NotImplemented
        return self.rank >= other.rank


_CONFIDENCE_RANK = {
    Confidence.NONE: 0,
    Confidence.LOW: 1,
    Confidence.MEDIUM: 2,
    Confidence.HIGH: 3,
    Confidence.EXACT: 4,
}


class MatchSignal(str, Enum):
    """Raw identity attribute that produced a candidate."""

    NONE = "none"
    NAME = "name"
    PLATE = "plate"
    TAX_ID = "tax_id"
    NATIONAL_ID = "national_id"

    @property
    def priority(self) -> int:
        """Tie-break priority, national ID highest."""
        return _SIGNAL_PRIORITY[self]

    @property
    def is_weak(self) -> bool:
        """Whether the signal is circumstantial (plate or name)."""
        return self in (MatchSignal.PLATE, MatchSignal.NAME)


_SIGNAL_PRIORITY = {
    MatchSignal.NONE: 0,
    MatchSignal.NAME: 1,
    MatchSignal.PLATE: 2,
    MatchSignal.TAX_ID: 3,
    MatchSignal.NATIONAL_ID: 4,
}


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class Signals(BaseModel):
    """Raw identity signals for one lookup.

    Values are trimmed; blank strings become None.
    """

    national_id: str | None = None
    tax_id: str | None = None
    name: str | None = None
    plate: str | None = None

    @field_validator("national_id", "tax_id", "name", "plate", mode="before")
    @classmethod
    def strip_blank(cls, v: str | None) -> str | None:
        return _blank_to_none(v)

    @property
    def is_empty(self) -> bool:
        """True when no signal was supplied."""
        return not (self.national_id or self.tax_id or self.name or self.plate)


class MatchCandidate(BaseModel):
    """A customer that might be the party behind a set of signals."""

    customer_id: UUID
    first_name: str | None = None
    last_name: str | None = None
    national_id: str | None = None
    tax_id: str | None = None
    phone: str | None = None
    email: str | None = None
    confidence: Confidence
    matched_by: MatchSignal

    @classmethod
    def from_customer(
        cls,
        customer: Customer,
        confidence: Confidence,
        matched_by: MatchSignal,
    ) -> "MatchCandidate":
        """Build a candidate from a customer row."""
        return cls(
            customer_id=customer.customer_id,
            first_name=customer.first_name,
            last_name=customer.last_name,
            national_id=customer.national_id,
            tax_id=customer.tax_id,
            phone=customer.phone,
            email=customer.email,
            confidence=confidence,
            matched_by=matched_by,
        )


class MatchResult(BaseModel):
    """Outcome of resolving one set of signals.

    In a batch import a caller distinguishes three outcomes: resolved to an
    existing customer (``customer_id`` set, ``auto_created`` False), created
    a new customer (``auto_created`` True) and failed (``error`` set).
    """

    customer_id: UUID | None = None
    confidence: Confidence = Confidence.NONE
    matched_by: MatchSignal = MatchSignal.NONE
    auto_created: bool = False
    candidates: list[MatchCandidate] = Field(default_factory=list)
    error: str | None = None

    @property
    def is_resolved(self) -> bool:
        """Whether a customer was chosen or created."""
        return self.customer_id is not None

    @property
    def failed(self) -> bool:
        """Whether the row failed with an error."""
        return self.error is not None


class BatchMatchRow(BaseModel):
    """One parsed import row to be matched to a customer."""

    row_id: str
    national_id: str | None = None
    tax_id: str | None = None
    insured_name: str | None = None
    insured_surname: str | None = None
    plate: str | None = None
    address: str | None = None

    @field_validator(
        "national_id", "tax_id", "insured_name", "insured_surname", "plate", "address",
        mode="before",
    )
    @classmethod
    def strip_blank(cls, v: str | None) -> str | None:
        return _blank_to_none(v)

    @property
    def full_name(self) -> str | None:
        """Insured name and surname joined, or None when both are blank."""
        parts = [p for p in (self.insured_name, self.insured_surname) if p]
        return " ".join(parts) or None

    def to_signals(self) -> Signals:
        """Signals this row carries."""
        return Signals(
            national_id=self.national_id,
            tax_id=self.tax_id,
            name=self.full_name,
            plate=self.plate,
        )


class IdentityAssignmentItem(BaseModel):
    """One record to assign an identity to."""

    record_id: UUID
    national_id: str | None = None
    tax_id: str | None = None


class IdentityAssignmentResult(BaseModel):
    """Outcome of assigning an identity to one record."""

    record_id: UUID
    customer_id: UUID | None = None
    confidence: Confidence = Confidence.NONE
    matched_by: MatchSignal = MatchSignal.NONE
    auto_created: bool = False  # Never True: assignment does not create customers
    cascade_count: int = 0


class BatchAssignmentResult(BaseModel):
    """Aggregate outcome of assigning identities to many records."""

    success_count: int = 0
    failed_count: int = 0
    total_cascade_updated: int = 0
    errors: list[str] = Field(default_factory=list)


class MergeResult(BaseModel):
    """Outcome of folding a secondary customer into a primary one."""

    success: bool
    primary_id: UUID
    secondary_id: UUID
    policies_updated: int = 0  # Confirmed records
    pool_updated: int = 0  # Pooled records, insured and contracting party
    captured_updated: int = 0  # Captured records
    fields_backfilled: list[str] = Field(default_factory=list)
