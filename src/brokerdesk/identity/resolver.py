"""Match resolution: choosing one customer from candidates.

The resolver never creates customers. Callers that are allowed to create
(bulk import) do so themselves when no candidate is selectable.
"""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.config.settings import MatchingConfig
from brokerdesk.core.logging import get_logger

from .finder import CandidateFinder
from .identifiers import is_blank
from .types import Confidence, MatchCandidate, MatchResult, Signals

logger = get_logger(__name__)


def rank_candidates(candidates: Sequence[MatchCandidate]) -> list[MatchCandidate]:
    """Order candidates by confidence, then signal priority, then finder order."""
    indexed = list(enumerate(candidates))
    indexed.sort(key=lambda pair: (-pair[1].confidence.rank, -pair[1].matched_by.priority, pair[0]))
    return [candidate for _, candidate in indexed]


def contradicts_identifiers(candidate: MatchCandidate, signals: Signals) -> bool:
    """Whether a candidate's stored identifiers rule it out.

    A customer whose national ID (or tax ID) is recorded and differs from the
    one supplied is a different party, whatever its name or plate says.
    """
    if signals.national_id and not is_blank(candidate.national_id):
        if candidate.national_id.strip() != signals.national_id:
            return True
    if signals.tax_id and not is_blank(candidate.tax_id):
        if candidate.tax_id.strip() != signals.tax_id:
            return True
    return False


def select_best(candidates: Sequence[MatchCandidate], signals: Signals) -> MatchCandidate | None:
    """Pick the candidate a set of signals resolves to.

    Args:
        candidates: Candidates already in ranked order
        signals: Signals the candidates were found for

    Returns:
        The first selectable candidate, or None
    """
    for candidate in candidates:
        if candidate.confidence == Confidence.NONE:
            continue
        if candidate.matched_by.is_weak and contradicts_identifiers(candidate, signals):
            continue
        return candidate
    return None


def build_result(candidates: Sequence[MatchCandidate], signals: Signals) -> MatchResult:
    """Rank candidates and wrap the selection in a MatchResult."""
    ranked = rank_candidates(candidates)
    best = select_best(ranked, signals)
    if best is None:
        return MatchResult(candidates=ranked)
    return MatchResult(
        customer_id=best.customer_id,
        confidence=best.confidence,
        matched_by=best.matched_by,
        candidates=ranked,
    )


class MatchResolver:
    """Resolves signals to at most one existing customer.

    Example:
        resolver = MatchResolver(session)
        result = await resolver.resolve(tenant_id, Signals(national_id="12345678901"))
        if result.is_resolved:
            ...
    """

    def __init__(
        self,
        session: AsyncSession,
        config: MatchingConfig | None = None,
        finder: CandidateFinder | None = None,
    ):
        """Initialize the resolver.

        Args:
            session: Database session for queries
            config: Matching configuration
            finder: Candidate finder to use (built from session when omitted)
        """
        self._finder = finder or CandidateFinder(session, config)

    async def resolve(self, tenant_id: UUID, signals: Signals) -> MatchResult:
        """Resolve signals to the best existing customer.

        Args:
            tenant_id: Tenant to resolve in
            signals: Raw identity signals

        Returns:
            MatchResult with ``customer_id`` None when nothing qualifies
        """
        candidates = await self._finder.find_candidates(tenant_id, signals)
        result = build_result(candidates, signals)

        logger.debug(
            "signals_resolved",
            tenant_id=str(tenant_id),
            customer_id=str(result.customer_id) if result.customer_id else None,
            confidence=result.confidence.value,
            matched_by=result.matched_by.value,
        )
        return result
