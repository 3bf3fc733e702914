"""Library-usable pipeline functions.

Each function corresponds to a CLI command but takes explicit parameters
instead of reading from config/CLI args. They run the async engine over an
in-memory Snapshot, so they work from scripts, notebooks and tests without
a real entity store.

Functions that change data return a new Snapshot; the input is left as is.
"""

import asyncio
import logging
from collections.abc import Sequence

from recall_kg.relationships.models import RelationshipScore, RelationshipScoreStats, ScoringConfig
from recall_kg.relationships.scoring import RelationshipScorer
from recall_kg.resolve.finder import DEFAULT_SCAN_LIMIT, find_potential_duplicates
from recall_kg.resolve.merge import AUTO_APPLY_THRESHOLD, MergeService, ReviewDecision
from recall_kg.resolve.models import DEFAULT_ENTITY_TYPES, EntityMatch, MergeStats, MergeSuggestion
from recall_kg.resolve.variants import NicknameTable
from recall_kg.store.io import Snapshot

logger = logging.getLogger(__name__)


def run_find_duplicates(
    snapshot: Snapshot,
    user_id: str,
    entity_type: str | None = None,
    min_confidence: float = 0.0,
    entity_types: Sequence[str] = DEFAULT_ENTITY_TYPES,
    limit: int = DEFAULT_SCAN_LIMIT,
    use_blocking: bool = False,
    nicknames: NicknameTable | None = None,
) -> list[EntityMatch]:
    """Find likely duplicate entities for a user.

    Args:
        snapshot: Data to scan
        user_id: Owner of the entities
        entity_type: Only scan this type
        min_confidence: Drop matches below this confidence
        entity_types: Types scanned when entity_type is not given
        limit: Max entities per type
        use_blocking: Score only pairs sharing a blocking key
        nicknames: Nickname table (default: bundled)

    Returns:
        Matches, highest confidence first
    """
    entity_store, _, _ = snapshot.to_stores()
    matches = asyncio.run(find_potential_duplicates(
        entity_store,
        user_id,
        entity_type,
        entity_types=entity_types,
        limit=limit,
        use_blocking=use_blocking,
        nicknames=nicknames,
    ))
    return [m for m in matches if m.confidence >= min_confidence]


def run_suggest_merges(
    snapshot: Snapshot,
    user_id: str,
    min_confidence: float = 0.7,
    auto_apply_threshold: float = AUTO_APPLY_THRESHOLD,
    entity_types: Sequence[str] = DEFAULT_ENTITY_TYPES,
    limit: int = DEFAULT_SCAN_LIMIT,
    use_blocking: bool = False,
    nicknames: NicknameTable | None = None,
) -> tuple[Snapshot, list[MergeSuggestion]]:
    """Scan for duplicates and record a merge suggestion for each.

    Suggestions at or above auto_apply_threshold are merged immediately.

    Returns:
        Tuple of (updated Snapshot, suggestions created)
    """
    entity_store, relationship_store, suggestion_store = snapshot.to_stores()
    service = MergeService(entity_store, suggestion_store, auto_apply_threshold)

    async def _suggest() -> list[MergeSuggestion]:
        matches = await find_potential_duplicates(
            entity_store,
            user_id,
            entity_types=entity_types,
            limit=limit,
            use_blocking=use_blocking,
            nicknames=nicknames,
        )
        confident = [m for m in matches if m.confidence >= min_confidence]
        return await service.create_suggestions_from_matches(user_id, confident)

    suggestions = asyncio.run(_suggest())
    auto_applied = sum(1 for s in suggestions if s.status == "auto_applied")
    logger.info(
        f"Created {len(suggestions)} merge suggestions for {user_id} "
        f"({auto_applied} auto-applied)"
    )
    return Snapshot.from_stores(entity_store, relationship_store, suggestion_store), suggestions


def run_review(
    snapshot: Snapshot,
    user_id: str,
    decisions: dict[str, ReviewDecision],
    reviewer: str | None = None,
) -> tuple[Snapshot, dict[str, int]]:
    """Apply review decisions (suggestion id -> accepted/rejected).

    A decision that fails (merge error, suggestion no longer pending) is
    logged and counted as failed; the others still apply.

    Returns:
        Tuple of (updated Snapshot, counts of accepted, rejected, failed)
    """
    entity_store, relationship_store, suggestion_store = snapshot.to_stores()
    service = MergeService(entity_store, suggestion_store)
    stats = {"accepted": 0, "rejected": 0, "failed": 0}

    async def _review() -> None:
        for suggestion_id, decision in decisions.items():
            try:
                await service.review_suggestion(user_id, suggestion_id, decision, reviewer)
            except (KeyError, ValueError, RuntimeError) as e:
                logger.warning(f"Could not apply review of {suggestion_id}: {e}")
                stats["failed"] += 1
                continue
            stats[decision] += 1

    asyncio.run(_review())
    return Snapshot.from_stores(entity_store, relationship_store, suggestion_store), stats


def run_list_suggestions(
    snapshot: Snapshot,
    user_id: str,
    status: str = "pending",
    limit: int = 50,
    offset: int = 0,
) -> list[MergeSuggestion]:
    """A user's merge suggestions, most confident first."""
    entity_store, _, suggestion_store = snapshot.to_stores()
    service = MergeService(entity_store, suggestion_store)
    return asyncio.run(service.list_suggestions(user_id, status, limit, offset))  # type: ignore[arg-type]


def run_merge_stats(snapshot: Snapshot, user_id: str) -> MergeStats:
    """Counts of a user's merge suggestions by status."""
    entity_store, _, suggestion_store = snapshot.to_stores()
    return asyncio.run(MergeService(entity_store, suggestion_store).get_merge_stats(user_id))


def run_top_relationships(
    snapshot: Snapshot,
    user_id: str,
    limit: int = 10,
    entity_type: str | None = None,
    config: ScoringConfig | None = None,
) -> list[RelationshipScore]:
    """A user's strongest relationships."""
    _, relationship_store, _ = snapshot.to_stores()
    scorer = RelationshipScorer(relationship_store, config)
    return asyncio.run(scorer.get_top_relationships(user_id, limit, entity_type))


def run_score_stats(
    snapshot: Snapshot,
    user_id: str,
    config: ScoringConfig | None = None,
) -> RelationshipScoreStats:
    """Distribution of a user's relationship strengths."""
    _, relationship_store, _ = snapshot.to_stores()
    scorer = RelationshipScorer(relationship_store, config)
    return asyncio.run(scorer.get_relationship_score_stats(user_id))
