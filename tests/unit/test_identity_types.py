"""Unit tests for identity resolution types."""

from uuid import uuid4

import pytest

from brokerdesk.db.models import Customer
from brokerdesk.identity.types import (
    BatchMatchRow,
    Confidence,
    MatchCandidate,
    MatchResult,
    MatchSignal,
    Signals,
)


# =============================================================================
# Confidence and MatchSignal
# =============================================================================


class TestConfidence:
    """Tests for Confidence ordering."""

    def test_total_order(self):
        """Test EXACT > HIGH > MEDIUM > LOW > NONE."""
        assert Confidence.EXACT > Confidence.HIGH > Confidence.MEDIUM > Confidence.LOW > Confidence.NONE

    def test_order_ignores_string_values(self):
        """Test ordering uses rank, not alphabetical order of the values."""
        # "exact" < "high" alphabetically
        assert Confidence.EXACT > Confidence.HIGH
        assert Confidence.MEDIUM > Confidence.LOW

    def test_sorting(self):
        """Test sorted() follows the confidence order."""
        levels = [Confidence.MEDIUM, Confidence.NONE, Confidence.EXACT, Confidence.LOW, Confidence.HIGH]
        assert sorted(levels) == [
            Confidence.NONE,
            Confidence.LOW,
            Confidence.MEDIUM,
            Confidence.HIGH,
            Confidence.EXACT,
        ]

    def test_comparison_with_other_types(self):
        """Test comparing with a non-Confidence value is a TypeError."""
        with pytest.raises(TypeError):
            _ = Confidence.HIGH < 3

    def test_equality_with_value(self):
        """Test str enum members still equal their values."""
        assert Confidence.EXACT == "exact"


class TestMatchSignal:
    """Tests for MatchSignal priority."""

    def test_priority_order(self):
        """Test national ID > tax ID > plate > name > none."""
        priorities = [s.priority for s in (
            MatchSignal.NATIONAL_ID,
            MatchSignal.TAX_ID,
            MatchSignal.PLATE,
            MatchSignal.NAME,
            MatchSignal.NONE,
        )]
        assert priorities == sorted(priorities, reverse=True)

    def test_weak_signals(self):
        """Test only plate and name are weak."""
        assert MatchSignal.PLATE.is_weak
        assert MatchSignal.NAME.is_weak
        assert not MatchSignal.NATIONAL_ID.is_weak
        assert not MatchSignal.TAX_ID.is_weak


# =============================================================================
# Models
# =============================================================================


class TestSignals:
    """Tests for the Signals model."""

    def test_blank_values_become_none(self):
        """Test blank strings are normalized to None."""
        signals = Signals(national_id="  ", tax_id="", name=" Ali ", plate=None)
        assert signals.national_id is None
        assert signals.tax_id is None
        assert signals.name == "Ali"

    def test_is_empty(self):
        """Test is_empty is True only without any signal."""
        assert Signals().is_empty
        assert Signals(name="  ").is_empty
        assert not Signals(plate="34ABC123").is_empty


class TestMatchCandidate:
    """Tests for MatchCandidate."""

    def test_from_customer(self):
        """Test candidate fields are copied from the customer."""
        customer = Customer(
            customer_id=uuid4(),
            tenant_id=uuid4(),
            national_id="12345678901",
            first_name="Ayşe",
            last_name="Yılmaz",
            email="ayse@example.com",
        )

        candidate = MatchCandidate.from_customer(customer, Confidence.EXACT, MatchSignal.NATIONAL_ID)

        assert candidate.customer_id == customer.customer_id
        assert candidate.first_name == "Ayşe"
        assert candidate.national_id == "12345678901"
        assert candidate.email == "ayse@example.com"
        assert candidate.tax_id is None
        assert candidate.confidence == Confidence.EXACT
        assert candidate.matched_by == MatchSignal.NATIONAL_ID


class TestMatchResult:
    """Tests for MatchResult."""

    def test_defaults(self):
        """Test an empty result is unresolved with NONE confidence."""
        result = MatchResult()
        assert result.customer_id is None
        assert result.confidence == Confidence.NONE
        assert result.matched_by == MatchSignal.NONE
        assert not result.auto_created
        assert not result.is_resolved
        assert not result.failed

    def test_failed(self):
        """Test a result with an error is failed."""
        result = MatchResult(error="a customer with this national_id already exists")
        assert result.failed
        assert not result.is_resolved

    def test_serializes_enum_values(self):
        """Test JSON output uses enum values."""
        data = MatchResult(customer_id=uuid4(), confidence=Confidence.HIGH).model_dump(mode="json")
        assert data["confidence"] == "high"
        assert data["matched_by"] == "none"


class TestBatchMatchRow:
    """Tests for BatchMatchRow."""

    def test_full_name_joins_name_and_surname(self):
        """Test name and surname are joined."""
        row = BatchMatchRow(row_id="1", insured_name="Ayşe", insured_surname="Yılmaz")
        assert row.full_name == "Ayşe Yılmaz"

    def test_full_name_without_surname(self):
        """Test the name alone is used when no surname is given."""
        row = BatchMatchRow(row_id="1", insured_name="Ayşe Yılmaz", insured_surname="  ")
        assert row.full_name == "Ayşe Yılmaz"

    def test_full_name_blank(self):
        """Test full_name is None without any name."""
        assert BatchMatchRow(row_id="1").full_name is None

    def test_to_signals(self):
        """Test a row converts to the signals it carries."""
        row = BatchMatchRow(
            row_id="7",
            national_id=" 12345678901 ",
            insured_name="Ali",
            insured_surname="Veli",
            plate="34 ABC 123",
        )
        signals = row.to_signals()
        assert signals.national_id == "12345678901"
        assert signals.tax_id is None
        assert signals.name == "Ali Veli"
        assert signals.plate == "34 ABC 123"
