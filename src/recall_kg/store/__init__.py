"""In-memory stores and YAML snapshots of a user's entity graph."""

from recall_kg.store.io import Snapshot, read_snapshot, write_snapshot
from recall_kg.store.memory import (
    InMemoryEntityStore,
    InMemoryRelationshipStore,
    InMemorySuggestionStore,
)

__all__ = [
    "InMemoryEntityStore",
    "InMemoryRelationshipStore",
    "InMemorySuggestionStore",
    "Snapshot",
    "read_snapshot",
    "write_snapshot",
]
