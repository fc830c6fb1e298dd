"""Unit tests for BatchMatcher.

Covers snapshot matching, auto-creation of customers for rows with valid
identifiers, per-row failures and one-time backfill of matched customers.
"""

from datetime import date, timedelta
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from brokerdesk.core.audit import AuditLogger
from brokerdesk.core.exceptions import InvalidArgumentError
from brokerdesk.db.models import AuditEventType, Customer, OwnerType
from brokerdesk.db.repositories.customer import CustomerRepository
from brokerdesk.identity.batch import BatchMatcher, TenantSnapshot, backfill_updates
from brokerdesk.identity.types import BatchMatchRow, Confidence, MatchSignal


async def count_customers(session, tenant_id) -> int:
    stmt = select(func.count()).select_from(Customer).where(Customer.tenant_id == tenant_id)
    return await session.scalar(stmt)


# =============================================================================
# Matching existing customers
# =============================================================================


class TestMatchExisting:
    """Tests for rows that match customers already in the store."""

    async def test_match_by_national_id(self, db_session, tenant_id, customer_factory):
        """Test a known national ID resolves EXACT without creating."""
        customer = await customer_factory(national_id="12345678901", first_name="Ayşe", last_name="Yılmaz")

        results = await BatchMatcher(db_session).batch_match(
            tenant_id, [BatchMatchRow(row_id="1", national_id="12345678901")]
        )

        result = results["1"]
        assert result.customer_id == customer.customer_id
        assert result.confidence == Confidence.EXACT
        assert result.matched_by == MatchSignal.NATIONAL_ID
        assert not result.auto_created
        assert await count_customers(db_session, tenant_id) == 1

    async def test_match_by_tax_id(self, db_session, tenant_id, customer_factory):
        """Test a known tax ID resolves HIGH."""
        customer = await customer_factory(tax_id="1234567890")

        results = await BatchMatcher(db_session).batch_match(
            tenant_id, [BatchMatchRow(row_id="1", tax_id="1234567890")]
        )

        assert results["1"].customer_id == customer.customer_id
        assert results["1"].confidence == Confidence.HIGH

    async def test_match_by_normalized_name(self, db_session, tenant_id, customer_factory):
        """Test a name-only row matches the same name in another spelling."""
        customer = await customer_factory(first_name="Ayşe", last_name="Yılmaz")

        results = await BatchMatcher(db_session).batch_match(
            tenant_id,
            [BatchMatchRow(row_id="1", insured_name="AYSE", insured_surname="YILMAZ")],
        )

        assert results["1"].customer_id == customer.customer_id
        assert results["1"].matched_by == MatchSignal.NAME
        assert results["1"].confidence == Confidence.MEDIUM

    async def test_match_by_plate(self, db_session, tenant_id, customer_factory, record_factory):
        """Test a recent plate resolves to its owner."""
        owner = await customer_factory(first_name="Ali", last_name="Veli")
        await record_factory(
            customer_id=owner.customer_id,
            plate="34ABC123",
            start_date=date.today() - timedelta(days=20),
        )

        results = await BatchMatcher(db_session).batch_match(
            tenant_id, [BatchMatchRow(row_id="1", plate="34 abc 123")]
        )

        assert results["1"].customer_id == owner.customer_id
        assert results["1"].matched_by == MatchSignal.PLATE

    async def test_plate_with_other_insured_name_ignored(
        self, db_session, tenant_id, customer_factory, record_factory
    ):
        """Test a plate whose last insured had another name is not used."""
        owner = await customer_factory(first_name="Ali", last_name="Veli")
        await record_factory(
            customer_id=owner.customer_id,
            plate="34ABC123",
            insured_name="Ali Veli",
            start_date=date.today() - timedelta(days=20),
        )

        results = await BatchMatcher(db_session).batch_match(
            tenant_id,
            [BatchMatchRow(row_id="1", plate="34ABC123", insured_name="Zeynep Demir")],
        )

        assert results["1"].customer_id is None

    async def test_other_tenant_not_matched(self, db_session, tenant_id, other_tenant_id, customer_factory):
        """Test a customer of another tenant is never matched."""
        foreign = await customer_factory(tenant_id=other_tenant_id, national_id="12345678901")

        results = await BatchMatcher(db_session).batch_match(
            tenant_id, [BatchMatchRow(row_id="1", national_id="12345678901")]
        )

        assert results["1"].customer_id != foreign.customer_id
        assert results["1"].auto_created
        assert await count_customers(db_session, other_tenant_id) == 1


# =============================================================================
# Auto-creation
# =============================================================================


class TestAutoCreate:
    """Tests for customer creation from unmatched rows."""

    async def test_creates_individual_for_national_id(self, db_session, tenant_id, reload):
        """Test a valid unknown national ID creates an individual customer."""
        results = await BatchMatcher(db_session).batch_match(
            tenant_id,
            [
                BatchMatchRow(
                    row_id="1",
                    national_id="12345678901",
                    tax_id="1234567890",
                    insured_name="Ayşe Nur",
                    insured_surname="Yılmaz",
                    address="Kadıköy, İstanbul",
                )
            ],
        )

        result = results["1"]
        assert result.auto_created
        assert result.confidence == Confidence.EXACT
        assert result.matched_by == MatchSignal.NATIONAL_ID

        customer = await reload(Customer, result.customer_id)
        assert customer.tenant_id == tenant_id
        assert customer.national_id == "12345678901"
        assert customer.tax_id is None
        assert customer.owner_type == OwnerType.INDIVIDUAL.value
        assert customer.first_name == "Ayşe Nur"
        assert customer.last_name == "Yılmaz"
        assert customer.address == "Kadıköy, İstanbul"

    async def test_creates_organization_for_tax_id(self, db_session, tenant_id, reload):
        """Test a valid unknown tax ID alone creates an organization."""
        results = await BatchMatcher(db_session).batch_match(
            tenant_id,
            [BatchMatchRow(row_id="1", tax_id="1234567890", insured_name="Acme Sigorta Ltd")],
        )

        result = results["1"]
        assert result.auto_created
        assert result.confidence == Confidence.HIGH
        assert result.matched_by == MatchSignal.TAX_ID

        customer = await reload(Customer, result.customer_id)
        assert customer.tax_id == "1234567890"
        assert customer.national_id is None
        assert customer.owner_type == OwnerType.ORGANIZATION.value

    async def test_same_new_identifier_shares_one_customer(self, db_session, tenant_id):
        """Test two rows with one new national ID resolve to one new customer."""
        results = await BatchMatcher(db_session).batch_match(
            tenant_id,
            [
                BatchMatchRow(row_id="a", national_id="12345678901", insured_name="Ali Veli"),
                BatchMatchRow(row_id="b", national_id="12345678901", insured_name="Ali Veli"),
            ],
        )

        assert results["a"].auto_created
        assert not results["b"].auto_created
        assert results["b"].customer_id == results["a"].customer_id
        assert results["b"].confidence == Confidence.EXACT
        assert await count_customers(db_session, tenant_id) == 1

    async def test_invalid_identifiers_do_not_create(self, db_session, tenant_id):
        """Test malformed identifiers leave the row unresolved."""
        results = await BatchMatcher(db_session).batch_match(
            tenant_id,
            [
                BatchMatchRow(row_id="1", national_id="01234567890"),
                BatchMatchRow(row_id="2", tax_id="12345"),
                BatchMatchRow(row_id="3", insured_name="Ali Veli"),
            ],
        )

        for result in results.values():
            assert result.customer_id is None
            assert result.confidence == Confidence.NONE
            assert not result.auto_created
            assert not result.failed
        assert await count_customers(db_session, tenant_id) == 0

    async def test_results_keyed_in_input_order(self, db_session, tenant_id):
        """Test results are keyed by row id in the order given."""
        rows = [BatchMatchRow(row_id=str(i), insured_name="Nobody") for i in (3, 1, 2)]

        results = await BatchMatcher(db_session).batch_match(tenant_id, rows)

        assert list(results) == ["3", "1", "2"]


# =============================================================================
# Failures
# =============================================================================


class TestRowFailures:
    """Tests for per-row failures."""

    async def test_uniqueness_conflict_fails_row_only(self, db_session, tenant_id, customer_factory):
        """Test a creation conflict is reported on the row and the batch goes on."""
        await customer_factory(national_id="12345678901")

        # Simulate a stale snapshot: another writer created the customer after loading
        with patch.object(CustomerRepository, "list_all", AsyncMock(return_value=[])):
            results = await BatchMatcher(db_session).batch_match(
                tenant_id,
                [
                    BatchMatchRow(row_id="1", national_id="12345678901"),
                    BatchMatchRow(row_id="2", national_id="98765432109"),
                ],
            )

        failed = results["1"]
        assert failed.failed
        assert failed.customer_id is None
        assert failed.confidence == Confidence.NONE
        assert "already exists" in failed.error

        assert results["2"].auto_created
        assert await count_customers(db_session, tenant_id) == 2

    async def test_duplicate_row_ids_rejected(self, db_session, tenant_id):
        """Test a batch reusing a row id is refused before any row is processed."""
        rows = [
            BatchMatchRow(row_id="1", national_id="12345678901"),
            BatchMatchRow(row_id="2", national_id="98765432109"),
            BatchMatchRow(row_id="1", tax_id="1234567890"),
        ]

        with pytest.raises(InvalidArgumentError) as exc_info:
            await BatchMatcher(db_session).batch_match(tenant_id, rows)

        assert exc_info.value.field == "row_id"
        assert "1" in str(exc_info.value)
        assert await count_customers(db_session, tenant_id) == 0

    async def test_backfill_failure_keeps_match(self, db_session, tenant_id, customer_factory, reload):
        """Test a failed backfill is logged and the row stays matched."""
        by_tax = await customer_factory(tax_id="1234567890")
        await customer_factory(national_id="12345678901")
        by_tax_id = by_tax.customer_id

        # The national ID holder is missing from the snapshot, so backfill collides with it
        with patch.object(CustomerRepository, "list_all", AsyncMock(return_value=[by_tax])):
            results = await BatchMatcher(db_session).batch_match(
                tenant_id,
                [BatchMatchRow(row_id="1", national_id="12345678901", tax_id="1234567890")],
            )

        assert results["1"].customer_id == by_tax_id
        assert not results["1"].failed
        customer = await reload(Customer, by_tax_id)
        assert customer.national_id is None


# =============================================================================
# Backfill
# =============================================================================


class TestBackfill:
    """Tests for filling blank fields of matched customers."""

    async def test_blank_fields_filled(self, db_session, tenant_id, customer_factory, reload):
        """Test a matched customer's blank fields take the row's values."""
        customer = await customer_factory(national_id="12345678901")

        await BatchMatcher(db_session).batch_match(
            tenant_id,
            [
                BatchMatchRow(
                    row_id="1",
                    national_id="12345678901",
                    tax_id="1234567890",
                    insured_name="Ayşe",
                    insured_surname="Yılmaz",
                    address="Ankara",
                )
            ],
        )

        customer = await reload(Customer, customer.customer_id)
        assert customer.first_name == "Ayşe"
        assert customer.last_name == "Yılmaz"
        assert customer.tax_id == "1234567890"
        assert customer.address == "Ankara"
        assert customer.owner_type == OwnerType.INDIVIDUAL.value

    async def test_existing_values_not_overwritten(self, db_session, tenant_id, customer_factory, reload):
        """Test non-blank customer fields are kept."""
        customer = await customer_factory(national_id="12345678901", first_name="Fatma", address="İzmir")

        await BatchMatcher(db_session).batch_match(
            tenant_id,
            [
                BatchMatchRow(
                    row_id="1",
                    national_id="12345678901",
                    insured_name="Ayşe",
                    address="Ankara",
                )
            ],
        )

        customer = await reload(Customer, customer.customer_id)
        assert customer.first_name == "Fatma"
        assert customer.address == "İzmir"

    async def test_backfill_once_per_batch(self, db_session, tenant_id, customer_factory, reload):
        """Test only the first matching row backfills a customer."""
        customer = await customer_factory(national_id="12345678901")

        await BatchMatcher(db_session).batch_match(
            tenant_id,
            [
                BatchMatchRow(row_id="1", national_id="12345678901", address="Ankara"),
                BatchMatchRow(row_id="2", national_id="12345678901", insured_name="Ayşe"),
            ],
        )

        customer = await reload(Customer, customer.customer_id)
        assert customer.address == "Ankara"
        assert customer.first_name is None


class TestBackfillUpdates:
    """Tests for the backfill_updates() helper."""

    def test_invalid_identifiers_not_taken(self):
        """Test malformed identifiers never backfill."""
        customer = Customer(first_name="Ali")
        row = BatchMatchRow(row_id="1", national_id="123", tax_id="abc")

        assert backfill_updates(customer, row) == {}

    def test_owner_type_from_tax_id(self):
        """Test a customer gaining only a tax ID becomes an organization."""
        customer = Customer(first_name="Acme")
        row = BatchMatchRow(row_id="1", tax_id="1234567890")

        updates = backfill_updates(customer, row)

        assert updates == {"tax_id": "1234567890", "owner_type": OwnerType.ORGANIZATION.value}

    def test_owner_type_kept(self):
        """Test an existing owner type is not changed."""
        customer = Customer(owner_type=OwnerType.ORGANIZATION.value)
        row = BatchMatchRow(row_id="1", national_id="12345678901")

        assert backfill_updates(customer, row) == {"national_id": "12345678901"}


class TestTenantSnapshot:
    """Tests for TenantSnapshot indexing."""

    def test_first_holder_of_key_wins(self):
        """Test a later customer does not replace an indexed identifier."""
        first = Customer(customer_id=uuid4(), national_id="12345678901", first_name="Ali")
        second = Customer(customer_id=uuid4(), national_id="12345678901", first_name="Veli")
        snapshot = TenantSnapshot()

        snapshot.add(first)
        snapshot.add(second)

        assert snapshot.by_national_id["12345678901"] is first
        assert set(snapshot.by_id) == {first.customer_id, second.customer_id}

    def test_name_index_normalized(self):
        """Test customers are indexed by normalized full name."""
        customer = Customer(customer_id=uuid4(), first_name="Ayşe", last_name="Yılmaz")
        snapshot = TenantSnapshot()
        snapshot.add(customer)

        assert snapshot.by_name["AYSE YILMAZ"] == [customer]


# =============================================================================
# Audit
# =============================================================================


class TestBatchAudit:
    """Tests for the batch audit trail."""

    async def test_summary_event_recorded(self, db_session, tenant_id, customer_factory):
        """Test one summary event and one creation event per new customer."""
        await customer_factory(national_id="12345678901")

        await BatchMatcher(db_session).batch_match(
            tenant_id,
            [
                BatchMatchRow(row_id="1", national_id="12345678901"),
                BatchMatchRow(row_id="2", tax_id="1234567890"),
                BatchMatchRow(row_id="3", insured_name="Nobody"),
            ],
        )

        audit = AuditLogger(db_session)
        summaries = await audit.query_events(tenant_id, event_type=AuditEventType.IMPORT_BATCH_MATCHED)
        created = await audit.query_events(tenant_id, event_type=AuditEventType.CUSTOMER_CREATED)

        assert len(summaries) == 1
        assert summaries[0].event_data == {
            "row_count": 3,
            "matched_count": 1,
            "created_count": 1,
            "unmatched_count": 1,
            "failed_count": 0,
        }
        assert len(created) == 1
        assert created[0].event_data["row_id"] == "2"
