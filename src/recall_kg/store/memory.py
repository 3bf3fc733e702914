"""Dict-backed implementations of the store contracts.

Used by the pipeline functions, the CLI (loaded from a snapshot file)
and the tests. Everything is partitioned by user id.
"""

import logging
import uuid
from collections import defaultdict
from datetime import datetime

from recall_kg.relationships.models import InferredRelationship
from recall_kg.resolve.models import Entity, MergeSuggestion, SuggestionStatus
from recall_kg.resolve.normalize import match_key

logger = logging.getLogger(__name__)


class InMemoryEntityStore:
    """Entities per user, in insertion order."""

    def __init__(self) -> None:
        self._entities: dict[str, list[Entity]] = defaultdict(list)

    def add(self, user_id: str, *entities: Entity) -> None:
        self._entities[user_id].extend(entities)

    def all_entities(self, user_id: str) -> list[Entity]:
        return list(self._entities.get(user_id, []))

    @property
    def user_ids(self) -> list[str]:
        return list(self._entities)

    async def list_entities_by_type(
        self, user_id: str, entity_type: str, limit: int
    ) -> list[Entity]:
        matching = [e for e in self._entities.get(user_id, []) if e.entity_type == entity_type]
        return matching[:limit]

    async def delete_entities_matching(
        self, user_id: str, entity_type: str, normalized_value: str
    ) -> int:
        target = match_key(normalized_value)
        kept: list[Entity] = []
        deleted = 0
        for entity in self._entities.get(user_id, []):
            if entity.entity_type == entity_type and (
                match_key(entity.normalized) == target or match_key(entity.value) == target
            ):
                deleted += 1
                continue
            kept.append(entity)
        self._entities[user_id] = kept
        if deleted:
            logger.debug(f"Deleted {deleted} {entity_type} records matching {normalized_value!r}")
        return deleted


class InMemoryRelationshipStore:
    """Relationships per user."""

    def __init__(self) -> None:
        self._relationships: dict[str, list[InferredRelationship]] = defaultdict(list)

    def add(self, user_id: str, *relationships: InferredRelationship) -> None:
        self._relationships[user_id].extend(relationships)

    def all_relationships(self, user_id: str) -> list[InferredRelationship]:
        return list(self._relationships.get(user_id, []))

    @property
    def user_ids(self) -> list[str]:
        return list(self._relationships)

    async def get_entity_relationships(
        self, entity_type: str, entity_value: str, user_id: str
    ) -> list[InferredRelationship]:
        return [
            rel for rel in self._relationships.get(user_id, [])
            if (rel.from_entity_type == entity_type and rel.from_entity_value == entity_value)
            or (rel.to_entity_type == entity_type and rel.to_entity_value == entity_value)
        ]

    async def get_all_relationships(
        self, user_id: str, limit: int
    ) -> list[InferredRelationship]:
        return self._relationships.get(user_id, [])[:limit]


class InMemorySuggestionStore:
    """Merge suggestions keyed by a generated id."""

    def __init__(self) -> None:
        self._suggestions: dict[str, MergeSuggestion] = {}

    def load(self, *suggestions: MergeSuggestion) -> None:
        """Restore previously stored suggestions, keeping their ids."""
        for suggestion in suggestions:
            suggestion_id = suggestion.id or uuid.uuid4().hex
            self._suggestions[suggestion_id] = suggestion.model_copy(update={"id": suggestion_id})

    def all_suggestions(self) -> list[MergeSuggestion]:
        return list(self._suggestions.values())

    async def insert(self, suggestion: MergeSuggestion) -> MergeSuggestion:
        stored = suggestion.model_copy(update={"id": uuid.uuid4().hex})
        self._suggestions[stored.id] = stored
        return stored

    async def update_status(
        self,
        suggestion_id: str,
        status: SuggestionStatus,
        applied_at: datetime | None,
        applied_by: str | None,
    ) -> MergeSuggestion:
        if suggestion_id not in self._suggestions:
            raise KeyError(suggestion_id)
        updated = self._suggestions[suggestion_id].model_copy(
            update={"status": status, "applied_at": applied_at, "applied_by": applied_by}
        )
        self._suggestions[suggestion_id] = updated
        return updated

    async def get(self, suggestion_id: str) -> MergeSuggestion | None:
        return self._suggestions.get(suggestion_id)

    async def list_for_user(
        self, user_id: str, status: SuggestionStatus | None = None
    ) -> list[MergeSuggestion]:
        return [
            s for s in self._suggestions.values()
            if s.user_id == user_id and (status is None or s.status == status)
        ]
