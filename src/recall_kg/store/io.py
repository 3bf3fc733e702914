"""Read and write YAML snapshots of users' entities, relationships and suggestions.

Snapshot layout::

    users:
      <user_id>:
        entities: [...]
        relationships: [...]
        suggestions: [...]
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from recall_kg.relationships.models import InferredRelationship
from recall_kg.resolve.models import Entity, MergeSuggestion
from recall_kg.store.memory import (
    InMemoryEntityStore,
    InMemoryRelationshipStore,
    InMemorySuggestionStore,
)

logger = logging.getLogger(__name__)


class UserData(BaseModel):
    """Everything stored for one user."""

    entities: list[Entity] = Field(default_factory=list)
    relationships: list[InferredRelationship] = Field(default_factory=list)
    suggestions: list[MergeSuggestion] = Field(default_factory=list)


class Snapshot(BaseModel):
    """Top-level model for a snapshot file."""

    users: dict[str, UserData] = Field(default_factory=dict)

    def to_stores(
        self,
    ) -> tuple[InMemoryEntityStore, InMemoryRelationshipStore, InMemorySuggestionStore]:
        """Load the snapshot into fresh in-memory stores."""
        entities = InMemoryEntityStore()
        relationships = InMemoryRelationshipStore()
        suggestions = InMemorySuggestionStore()
        for user_id, data in self.users.items():
            entities.add(user_id, *data.entities)
            relationships.add(user_id, *data.relationships)
            suggestions.load(*(s.model_copy(update={"user_id": user_id}) for s in data.suggestions))
        return entities, relationships, suggestions

    @classmethod
    def from_stores(
        cls,
        entities: InMemoryEntityStore,
        relationships: InMemoryRelationshipStore,
        suggestions: InMemorySuggestionStore,
    ) -> "Snapshot":
        """Capture the current contents of in-memory stores."""
        users: dict[str, UserData] = {}
        for user_id in entities.user_ids:
            users.setdefault(user_id, UserData()).entities = entities.all_entities(user_id)
        for user_id in relationships.user_ids:
            users.setdefault(user_id, UserData()).relationships = relationships.all_relationships(user_id)
        for suggestion in suggestions.all_suggestions():
            users.setdefault(suggestion.user_id, UserData()).suggestions.append(suggestion)
        return cls(users=users)


def write_snapshot(snapshot: Snapshot, path: Path) -> None:
    """Write a snapshot to YAML."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = snapshot.model_dump(mode="json", exclude_none=True)
    with open(path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
    logger.info(f"Wrote snapshot for {len(snapshot.users)} users to {path}")


def read_snapshot(path: Path) -> Snapshot:
    """Read a snapshot from YAML; a missing or empty file is an empty snapshot."""
    if not path.exists():
        return Snapshot()
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return Snapshot()
    return Snapshot.model_validate(data)
