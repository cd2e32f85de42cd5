"""
Candidate filtering.

Search filter construction and the ranked candidate pool that every
stage after retrieval narrows.
"""

from inkforge.filtering.candidate_pool import (
    CandidatePool,
    ColorChoice,
    ColorTagView,
    RankedCard,
)
from inkforge.filtering.search_filter import (
    SearchFilters,
    build_search_filter,
    evaluate_filter,
)

__all__ = [
    # Candidate pool
    "CandidatePool",
    "ColorChoice",
    "ColorTagView",
    "RankedCard",
    # Search filter
    "SearchFilters",
    "build_search_filter",
    "evaluate_filter",
]
