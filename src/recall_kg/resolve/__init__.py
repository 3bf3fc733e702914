"""Entity resolution: find, suggest and merge duplicate entities.

Heuristic match scoring (string similarity, nicknames, acronyms, shared
email), pairwise duplicate scans, and a merge service that auto-applies
confident suggestions and queues the rest for review.
"""

from recall_kg.resolve.finder import find_potential_duplicates, get_suggested_merges
from recall_kg.resolve.merge import (
    AUTO_APPLY_THRESHOLD,
    MergeExecutionError,
    MergeService,
    SuggestionRollbackError,
)
from recall_kg.resolve.models import Entity, EntityMatch, EntityRef, MergeSuggestion
from recall_kg.resolve.scorer import calculate_match_score
from recall_kg.resolve.variants import NicknameTable

__all__ = [
    "AUTO_APPLY_THRESHOLD",
    "Entity",
    "EntityMatch",
    "EntityRef",
    "MergeExecutionError",
    "MergeService",
    "MergeSuggestion",
    "NicknameTable",
    "SuggestionRollbackError",
    "calculate_match_score",
    "find_potential_duplicates",
    "get_suggested_merges",
]
