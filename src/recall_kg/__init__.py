"""recall-kg: Entity resolution and relationship scoring for personal knowledge graphs.

Finds duplicate people, companies and projects extracted from a user's
email and calendar, turns them into merge suggestions (auto-applying the
confident ones), and ranks the user's relationships by strength.
"""

__version__ = "0.1.0"

from recall_kg.config import RecallConfig
from recall_kg.pipeline import (
    run_find_duplicates,
    run_list_suggestions,
    run_merge_stats,
    run_review,
    run_score_stats,
    run_suggest_merges,
    run_top_relationships,
)
from recall_kg.relationships import RelationshipScorer, ScoringConfig
from recall_kg.resolve import MergeService, calculate_match_score, find_potential_duplicates
from recall_kg.store.io import Snapshot, read_snapshot, write_snapshot

__all__ = [
    "__version__",
    "MergeService",
    "RecallConfig",
    "RelationshipScorer",
    "ScoringConfig",
    "Snapshot",
    "calculate_match_score",
    "find_potential_duplicates",
    "read_snapshot",
    "run_find_duplicates",
    "run_list_suggestions",
    "run_merge_stats",
    "run_review",
    "run_score_stats",
    "run_suggest_merges",
    "run_top_relationships",
    "write_snapshot",
]
