"""Candidate finding over the customer store.

The finder runs independent lookups, strongest signal first, and collects
every customer they produce without duplicates. It never writes.
"""

from datetime import date, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.config.settings import MatchingConfig
from brokerdesk.core.logging import get_logger
from brokerdesk.db.models.customer import Customer
from brokerdesk.db.repositories.customer import CustomerRepository
from brokerdesk.db.repositories.record import PlateEvidenceRepository

from .identifiers import names_conflict, normalize_plate
from .types import Confidence, MatchCandidate, MatchSignal, Signals

logger = get_logger(__name__)


def plate_cutoff(config: MatchingConfig, today: date | None = None) -> date:
    """Oldest policy start date still accepted as plate evidence."""
    return (today or date.today()) - timedelta(days=config.plate_lookback_days)


def name_confidence(match_count: int) -> Confidence:
    """Confidence of a name match: MEDIUM when unique, LOW otherwise."""
    return Confidence.MEDIUM if match_count == 1 else Confidence.LOW


class _CandidateList:
    """Ordered candidates, deduplicated by customer."""

    def __init__(self) -> None:
        self.items: list[MatchCandidate] = []
        self._seen: set[UUID] = set()

    def add(self, customer: Customer, confidence: Confidence, matched_by: MatchSignal) -> bool:
        if customer.customer_id in self._seen:
            return False
        self._seen.add(customer.customer_id)
        self.items.append(MatchCandidate.from_customer(customer, confidence, matched_by))
        return True


class CandidateFinder:
    """Finds customers of one tenant that may match a set of signals.

    Lookups run in this order and each appends what it finds:

    1. national ID equality -> EXACT
    2. tax ID equality -> HIGH
    3. plate seen on a recent confirmed record -> MEDIUM
    4. name substring -> MEDIUM for a single hit, LOW for several
    """

    def __init__(self, session: AsyncSession, config: MatchingConfig | None = None):
        """Initialize the candidate finder.

        Args:
            session: Database session for queries
            config: Matching configuration (defaults apply when omitted)
        """
        self._session = session
        self._config = config or MatchingConfig()

    async def find_candidates(
        self,
        tenant_id: UUID,
        signals: Signals,
        limit: int | None = None,
    ) -> list[MatchCandidate]:
        """Find candidate customers for a set of signals.

        Args:
            tenant_id: Tenant to search in
            signals: Raw identity signals
            limit: Cap on name-match candidates (default from config)

        Returns:
            Candidates in lookup order; empty when no signal was supplied
        """
        if signals.is_empty:
            return []

        limit = limit or self._config.candidate_limit
        customers = CustomerRepository(self._session, tenant_id)
        candidates = _CandidateList()

        if signals.national_id:
            customer = await customers.get_by_national_id(signals.national_id)
            if customer is not None:
                candidates.add(customer, Confidence.EXACT, MatchSignal.NATIONAL_ID)

        if signals.tax_id:
            customer = await customers.get_by_tax_id(signals.tax_id)
            if customer is not None:
                candidates.add(customer, Confidence.HIGH, MatchSignal.TAX_ID)

        if signals.plate:
            customer = await self._match_plate(tenant_id, customers, signals)
            if customer is not None:
                candidates.add(customer, Confidence.MEDIUM, MatchSignal.PLATE)

        if signals.name:
            matches = await customers.search_by_name(signals.name, limit=limit)
            confidence = name_confidence(len(matches))
            for customer in matches:
                candidates.add(customer, confidence, MatchSignal.NAME)

        logger.debug(
            "candidates_found",
            tenant_id=str(tenant_id),
            candidate_count=len(candidates.items),
        )
        return candidates.items

    async def _match_plate(
        self,
        tenant_id: UUID,
        customers: CustomerRepository,
        signals: Signals,
    ) -> Customer | None:
        """Resolve a plate to the customer on its most recent confirmed record.

        Returns None when the insured name on that record differs from the
        supplied name: the vehicle has most likely changed hands.
        """
        plate_key = normalize_plate(signals.plate)
        evidence = PlateEvidenceRepository(self._session, tenant_id)
        record = await evidence.latest_for_plate(plate_key, since=plate_cutoff(self._config))
        if record is None:
            return None

        if names_conflict(signals.name, record.insured_name):
            logger.debug(
                "plate_owner_changed",
                tenant_id=str(tenant_id),
                record_id=str(record.record_id),
            )
            return None

        return await customers.get(record.customer_id)
