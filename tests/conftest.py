"""Shared test fixtures for recall-kg."""

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from recall_kg.relationships.models import InferredRelationship
from recall_kg.resolve.merge import MergeService
from recall_kg.resolve.models import Entity
from recall_kg.store.memory import (
    InMemoryEntityStore,
    InMemoryRelationshipStore,
    InMemorySuggestionStore,
)

USER = "user-1"
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_relationship(
    to_value: str,
    days_ago: float,
    source_id: str,
    confidence: float = 0.8,
    to_type: str = "person",
) -> InferredRelationship:
    """Relationship from the user's own node to another entity."""
    return InferredRelationship(
        from_entity_type="user",
        from_entity_value="me",
        to_entity_type=to_type,
        to_entity_value=to_value,
        relationship_type="COMMUNICATES_WITH",
        confidence=confidence,
        source_id=source_id,
        inferred_at=NOW - timedelta(days=days_ago),
    )


@pytest.fixture
def sample_entities() -> list[Entity]:
    """Two duplicate pairs (a person, a company) and some noise."""
    return [
        Entity(
            entity_type="person",
            value="Robert Matsuoka",
            context="Robert Matsuoka <bob@matsuoka.com>",
            source="email",
            source_id="msg001",
        ),
        Entity(
            entity_type="person",
            value="Bob Matsuoka",
            context="From: Bob Matsuoka <bob@matsuoka.com>",
            source="email",
            source_id="msg002",
        ),
        Entity(entity_type="person", value="Alice Smith", source="calendar", source_id="evt_001"),
        Entity(entity_type="company", value="IBM", source="email", source_id="msg003"),
        Entity(
            entity_type="company",
            value="International Business Machines",
            source="email",
            source_id="msg004",
        ),
        Entity(entity_type="project", value="Phoenix", source="email", source_id="msg005"),
    ]


@pytest.fixture
def entity_store(sample_entities) -> InMemoryEntityStore:
    store = InMemoryEntityStore()
    store.add(USER, *sample_entities)
    return store


@pytest.fixture
def suggestion_store() -> InMemorySuggestionStore:
    return InMemorySuggestionStore()


@pytest.fixture
def merge_service(entity_store, suggestion_store) -> MergeService:
    return MergeService(entity_store, suggestion_store)


@pytest.fixture
def sample_relationships() -> list[InferredRelationship]:
    """Ten emails with Alice over 60 days, two old calendar events with Carol."""
    alice = [
        make_relationship("Alice Smith", days, f"msg{i:03d}")
        for i, days in enumerate([0, 5, 10, 15, 20, 25, 30, 40, 50, 60])
    ]
    carol = [
        make_relationship("Carol Jones", 100, "evt_1@google.com", confidence=0.5),
        make_relationship("Carol Jones", 130, "evt_2@google.com", confidence=0.5),
    ]
    return alice + carol


@pytest.fixture
def relationship_store(sample_relationships) -> InMemoryRelationshipStore:
    store = InMemoryRelationshipStore()
    store.add(USER, *sample_relationships)
    return store


@pytest.fixture
def tmp_dir():
    """Temporary directory that cleans up after test."""
    with tempfile.TemporaryDirectory() as d:
        yield Path(d)
