"""Store contract for relationship scoring."""

from typing import Protocol

from recall_kg.relationships.models import InferredRelationship


class RelationshipStore(Protocol):
    """Relationships inferred between a user's entities (read-only here)."""

    async def get_entity_relationships(
        self, entity_type: str, entity_value: str, user_id: str
    ) -> list[InferredRelationship]:
        """Relationships with the entity on either side."""
        ...

    async def get_all_relationships(
        self, user_id: str, limit: int
    ) -> list[InferredRelationship]: ...
