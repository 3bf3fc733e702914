"""Store contracts for entity resolution.

The engine owns no storage. It works against two async stores, each
scoped by the owning user's identifier:

- EntityStore: extracted entities (listed per type, deleted on merge)
- SuggestionStore: merge suggestions and their status
"""

from datetime import datetime
from typing import Protocol

from recall_kg.resolve.models import Entity, MergeSuggestion, SuggestionStatus


class EntityStore(Protocol):
    """Entities extracted for a user, partitioned by type."""

    async def list_entities_by_type(
        self, user_id: str, entity_type: str, limit: int
    ) -> list[Entity]: ...

    async def delete_entities_matching(
        self, user_id: str, entity_type: str, normalized_value: str
    ) -> int:
        """Delete every record whose normalized (or raw) value matches.

        Returns the number of records deleted.
        """
        ...


class SuggestionStore(Protocol):
    """Persistence for merge suggestions, keyed by suggestion id."""

    async def insert(self, suggestion: MergeSuggestion) -> MergeSuggestion:
        """Store a new suggestion and return it with its id assigned."""
        ...

    async def update_status(
        self,
        suggestion_id: str,
        status: SuggestionStatus,
        applied_at: datetime | None,
        applied_by: str | None,
    ) -> MergeSuggestion: ...

    async def get(self, suggestion_id: str) -> MergeSuggestion | None: ...

    async def list_for_user(
        self, user_id: str, status: SuggestionStatus | None = None
    ) -> list[MergeSuggestion]: ...
