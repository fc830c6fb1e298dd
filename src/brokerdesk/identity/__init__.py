"""Customer identity resolution and deduplication.

This package decides which customer a raw insurance record belongs to,
cascades that decision to sibling records, and merges customers later found
to be the same party.

Main components:
    - CandidateFinder: Ranked customer candidates for raw signals
    - MatchResolver: Single best match, never creating customers
    - BatchMatcher: Snapshot-based matching for imports, may create customers
    - IdentityAssignmentService: Assignment with cascade, single and batch
    - CustomerMergeService: Reference-migrating customer merge
"""

from .assignment import IdentityAssignmentService
from .batch import BatchMatcher, TenantSnapshot, backfill_updates
from .finder import CandidateFinder
from .identifiers import (
    is_valid_national_id,
    is_valid_tax_id,
    normalize_name,
    normalize_plate,
    split_full_name,
)
from .merge import MERGEABLE_FIELDS, CustomerMergeService, merge_fields
from .resolver import MatchResolver, rank_candidates, select_best
from .types import (
    BatchAssignmentResult,
    BatchMatchRow,
    Confidence,
    IdentityAssignmentItem,
    IdentityAssignmentResult,
    MatchCandidate,
    MatchResult,
    MatchSignal,
    MergeResult,
    Signals,
)

__all__ = [
    # Types
    "BatchAssignmentResult",
    "BatchMatchRow",
    "Confidence",
    "IdentityAssignmentItem",
    "IdentityAssignmentResult",
    "MatchCandidate",
    "MatchResult",
    "MatchSignal",
    "MergeResult",
    "Signals",
    # Identifiers
    "is_valid_national_id",
    "is_valid_tax_id",
    "normalize_name",
    "normalize_plate",
    "split_full_name",
    # Finder / resolver
    "CandidateFinder",
    "MatchResolver",
    "rank_candidates",
    "select_best",
    # Batch
    "BatchMatcher",
    "TenantSnapshot",
    "backfill_updates",
    # Assignment
    "IdentityAssignmentService",
    # Merge
    "CustomerMergeService",
    "MERGEABLE_FIELDS",
    "merge_fields",
]
