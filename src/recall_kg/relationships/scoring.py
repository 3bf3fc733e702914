"""Relationship strength scoring.

Turns a user's interaction history with an entity into a single strength
in [0, 1] from four weighted factors:

- email frequency (per month, normalized against a ceiling)
- calendar frequency (per month, normalized against a ceiling)
- recency (exponential half-life decay since the last interaction)
- sentiment (mean relationship confidence, standing in for real sentiment)
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, Literal

from recall_kg.relationships.base import RelationshipStore
from recall_kg.relationships.models import (
    EPOCH,
    InferredRelationship,
    RelationshipFactors,
    RelationshipScore,
    RelationshipScoreStats,
    ScoringConfig,
    _as_utc,
)
from recall_kg.resolve.models import EntityRef

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 60 * 60 * 24
DAYS_PER_MONTH = 30

STRONG_THRESHOLD = 0.7
WEAK_THRESHOLD = 0.3

SourceType = Literal["email", "calendar"]


def calculate_recency_score(days_since_last_interaction: float, half_life_days: float) -> float:
    """Half-life decay: 1.0 today, 0.5 after ``half_life_days``, 0.25 after two."""
    return 0.5 ** (days_since_last_interaction / half_life_days)


def normalize_frequency(frequency: float, max_frequency: float) -> float:
    """Scale a frequency into [0, 1] against a ceiling."""
    return min(frequency / max_frequency, 1.0)


def get_source_type(source_id: str) -> SourceType:
    """Guess the originating interaction from the shape of its source id.

    Calendar event ids carry "@" or "_"; mail message ids are plain
    alphanumerics.
    """
    if "@" in source_id or "_" in source_id:
        return "calendar"
    return "email"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RelationshipScorer:
    """Scores entities in a user's relationship graph."""

    def __init__(
        self,
        store: RelationshipStore,
        config: ScoringConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.config = config or ScoringConfig()
        self._clock = clock

    def _resolve_config(self, overrides: ScoringConfig | dict[str, Any] | None) -> ScoringConfig:
        if overrides is None:
            return self.config
        if isinstance(overrides, ScoringConfig):
            return overrides
        return ScoringConfig.model_validate({**self.config.model_dump(), **overrides})

    async def calculate_relationship_strength(
        self,
        user_id: str,
        entity: EntityRef | str,
        config: ScoringConfig | dict[str, Any] | None = None,
    ) -> RelationshipScore | None:
        """Score one entity from every relationship it takes part in.

        Args:
            user_id: Owner of the relationship graph
            entity: EntityRef or "type:value" id
            config: Full config, or a dict of fields overriding this scorer's

        Returns:
            RelationshipScore (zero strength if the entity has no
            relationships), or None if the entity id is malformed.
        """
        cfg = self._resolve_config(config)

        if isinstance(entity, str):
            ref = EntityRef.parse(entity) if ":" in entity else None
        else:
            ref = entity
        if ref is None:
            logger.error(f"Invalid entity ID format: {entity!r}")
            return None

        relationships = await self.store.get_entity_relationships(
            ref.entity_type, ref.value, user_id
        )

        if not relationships:
            logger.debug(f"No relationships found for {ref.key}")
            return RelationshipScore(
                entity_id=ref.key,
                entity_type=ref.entity_type,
                entity_value=ref.value,
                strength=0.0,
                last_interaction=EPOCH,
                interaction_count=0,
                factors=RelationshipFactors(),
            )

        return self._score(ref, relationships, cfg)

    def _score(
        self,
        ref: EntityRef,
        relationships: list[InferredRelationship],
        cfg: ScoringConfig,
    ) -> RelationshipScore:
        email_count = 0
        calendar_count = 0
        total_confidence = 0.0
        for rel in relationships:
            if get_source_type(rel.source_id) == "email":
                email_count += 1
            else:
                calendar_count += 1
            total_confidence += rel.confidence

        newest = max(rel.inferred_at for rel in relationships)
        oldest = min(rel.inferred_at for rel in relationships)

        days_since_last = max(0.0, (_as_utc(self._clock()) - newest).total_seconds() / SECONDS_PER_DAY)
        span_months = max(
            1.0, (newest - oldest).total_seconds() / (SECONDS_PER_DAY * DAYS_PER_MONTH)
        )

        email_frequency = email_count / span_months
        calendar_frequency = calendar_count / span_months

        email_score = normalize_frequency(email_frequency, cfg.max_email_frequency)
        calendar_score = normalize_frequency(calendar_frequency, cfg.max_calendar_frequency)
        recency_score = calculate_recency_score(days_since_last, cfg.recency_half_life_days)
        sentiment_score = total_confidence / len(relationships)

        strength = (
            email_score * cfg.email_weight
            + calendar_score * cfg.calendar_weight
            + recency_score * cfg.recency_weight
            + sentiment_score * cfg.sentiment_weight
        )
        strength = max(0.0, min(1.0, strength))

        logger.debug(
            f"Strength for {ref.key}: {strength:.3f} "
            f"(email: {email_score:.2f}, calendar: {calendar_score:.2f}, "
            f"recency: {recency_score:.2f}, sentiment: {sentiment_score:.2f})"
        )

        return RelationshipScore(
            entity_id=ref.key,
            entity_type=ref.entity_type,
            entity_value=ref.value,
            strength=strength,
            last_interaction=newest,
            interaction_count=len(relationships),
            factors=RelationshipFactors(
                email_frequency=email_frequency,
                calendar_frequency=calendar_frequency,
                recency=days_since_last,
                sentiment=sentiment_score,
            ),
        )

    async def _score_all(
        self,
        user_id: str,
        entity_refs: list[EntityRef],
        cfg: ScoringConfig,
    ) -> list[RelationshipScore]:
        """Score each entity, skipping the ones whose lookup fails."""
        scores = []
        for ref in entity_refs:
            try:
                score = await self.calculate_relationship_strength(user_id, ref, cfg)
            except Exception as e:
                logger.warning(f"Could not score {ref.key}: {e}")
                continue
            if score is not None:
                scores.append(score)
        scores.sort(key=lambda s: s.strength, reverse=True)
        return scores

    async def get_top_relationships(
        self,
        user_id: str,
        limit: int = 10,
        entity_type: str | None = None,
        config: ScoringConfig | dict[str, Any] | None = None,
    ) -> list[RelationshipScore]:
        """Strongest relationships, optionally for one entity type.

        Entities with zero strength are left out.
        """
        cfg = self._resolve_config(config)
        relationships = await self.store.get_all_relationships(
            user_id, cfg.top_relationships_fetch_limit
        )
        if not relationships:
            logger.info(f"No relationships found for user {user_id}")
            return []

        refs = _distinct_entities(relationships, entity_type)
        logger.info(
            f"Scoring {len(refs)} entities for top {limit}"
            + (f" {entity_type}" if entity_type else "")
            + " relationships"
        )

        scores = await self._score_all(user_id, refs, cfg)
        return [s for s in scores if s.strength > 0][:limit]

    async def update_relationship_scores(
        self,
        user_id: str,
        config: ScoringConfig | dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Recompute the score of every entity in the relationship graph.

        Returns:
            Dict with ``updated`` (count) and ``scores`` (strongest first)
        """
        cfg = self._resolve_config(config)
        relationships = await self.store.get_all_relationships(user_id, cfg.batch_fetch_limit)
        if not relationships:
            logger.info(f"No relationships to score for user {user_id}")
            return {"updated": 0, "scores": []}

        refs = _distinct_entities(relationships)
        scores = await self._score_all(user_id, refs, cfg)

        logger.info(f"Updated {len(scores)} relationship scores for user {user_id}")
        return {"updated": len(scores), "scores": scores}

    async def get_relationship_score_stats(
        self,
        user_id: str,
        config: ScoringConfig | dict[str, Any] | None = None,
    ) -> RelationshipScoreStats:
        """Bucket every entity's strength into strong, medium and weak."""
        result = await self.update_relationship_scores(user_id, config)
        return summarize_scores(result["scores"])


def summarize_scores(scores: list[RelationshipScore]) -> RelationshipScoreStats:
    """Aggregate strength buckets, per-type counts and the mean strength."""
    stats = RelationshipScoreStats(total_entities=len(scores))
    if not scores:
        return stats

    total_strength = 0.0
    for score in scores:
        total_strength += score.strength
        if score.strength > STRONG_THRESHOLD:
            stats.strong_relationships += 1
        elif score.strength >= WEAK_THRESHOLD:
            stats.medium_relationships += 1
        else:
            stats.weak_relationships += 1
        stats.top_entity_types[score.entity_type] = stats.top_entity_types.get(score.entity_type, 0) + 1

    stats.avg_strength = total_strength / len(scores)
    return stats


def _distinct_entities(
    relationships: list[InferredRelationship], entity_type: str | None = None
) -> list[EntityRef]:
    """Entities on either side of any relationship, in first-seen order."""
    seen: dict[str, EntityRef] = {}
    for rel in relationships:
        sides = (
            (rel.from_entity_type, rel.from_entity_value),
            (rel.to_entity_type, rel.to_entity_value),
        )
        for side_type, side_value in sides:
            if entity_type and side_type != entity_type:
                continue
            ref = EntityRef(entity_type=side_type, value=side_value)
            seen.setdefault(ref.key, ref)
    return list(seen.values())
