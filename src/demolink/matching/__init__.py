"""Module de matching et linkage."""

from demolink.matching.comparators import calculate_advanced_date_similarity, compare_field
from demolink.matching.linker import Linker, find_matches_for_record
from demolink.matching.schema import (
    MatchCandidateResult,
    MatchResult,
    MatchSearch,
    MatchStatus,
    SearchStatus,
)
from demolink.matching.thresholds import ConfidenceBand, classify

__all__ = [
    "ConfidenceBand",
    "Linker",
    "MatchCandidateResult",
    "MatchResult",
    "MatchSearch",
    "MatchStatus",
    "SearchStatus",
    "calculate_advanced_date_similarity",
    "classify",
    "compare_field",
    "find_matches_for_record",
]
