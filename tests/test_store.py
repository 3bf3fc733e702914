"""Tests for recall_kg.store (in-memory stores and snapshot io)."""

import asyncio

import pytest
import yaml
from conftest import USER

from recall_kg.resolve.models import Entity, MergeSuggestion
from recall_kg.store.io import Snapshot, UserData, read_snapshot, write_snapshot
from recall_kg.store.memory import InMemoryEntityStore, InMemorySuggestionStore


def _suggestion(**overrides) -> MergeSuggestion:
    fields = dict(
        user_id=USER,
        entity1_type="company",
        entity1_value="IBM",
        entity2_type="company",
        entity2_value="International Business Machines",
        confidence=0.7,
        match_reason="abbreviation match",
    )
    fields.update(overrides)
    return MergeSuggestion(**fields)


class TestEntityStore:
    """Test the in-memory entity store."""

    def test_list_by_type_with_limit(self, entity_store):
        people = asyncio.run(entity_store.list_entities_by_type(USER, "person", 2))
        assert [e.value for e in people] == ["Robert Matsuoka", "Bob Matsuoka"]

    def test_delete_matches_normalized_field(self):
        store = InMemoryEntityStore()
        store.add(
            USER,
            Entity(entity_type="person", value="Bob M.", normalized="bob_matsuoka"),
            Entity(entity_type="person", value="Bob Matsuoka"),
            Entity(entity_type="company", value="Bob Matsuoka"),
        )
        deleted = asyncio.run(store.delete_entities_matching(USER, "person", "bob matsuoka"))
        assert deleted == 2
        assert [e.entity_type for e in store.all_entities(USER)] == ["company"]


class TestSuggestionStore:
    """Test the in-memory suggestion store."""

    def test_insert_assigns_id(self):
        store = InMemorySuggestionStore()
        stored = asyncio.run(store.insert(_suggestion()))
        assert stored.id
        assert asyncio.run(store.get(stored.id)) == stored

    def test_update_unknown_raises(self):
        store = InMemorySuggestionStore()
        with pytest.raises(KeyError):
            asyncio.run(store.update_status("missing", "rejected", None, None))

    def test_load_keeps_ids(self):
        store = InMemorySuggestionStore()
        store.load(_suggestion(id="fixed"), _suggestion())
        ids = [s.id for s in store.all_suggestions()]
        assert "fixed" in ids
        assert all(ids)


class TestSnapshotIO:
    """Test YAML snapshots."""

    def test_round_trip(self, tmp_dir, sample_entities, sample_relationships):
        snapshot = Snapshot(users={
            USER: UserData(
                entities=sample_entities,
                relationships=sample_relationships,
                suggestions=[_suggestion(id="s1", status="rejected")],
            )
        })
        path = tmp_dir / "data" / "recall.yaml"
        write_snapshot(snapshot, path)

        loaded = read_snapshot(path)
        assert loaded == snapshot

    def test_written_yaml_is_readable(self, tmp_dir, sample_entities):
        path = tmp_dir / "recall.yaml"
        write_snapshot(Snapshot(users={USER: UserData(entities=sample_entities)}), path)
        raw = yaml.safe_load(path.read_text())
        assert raw["users"][USER]["entities"][0]["value"] == "Robert Matsuoka"
        assert "context" not in raw["users"][USER]["entities"][2]

    def test_missing_file_is_empty(self, tmp_dir):
        assert read_snapshot(tmp_dir / "missing.yaml").users == {}

    def test_empty_file_is_empty(self, tmp_dir):
        path = tmp_dir / "empty.yaml"
        path.write_text("")
        assert read_snapshot(path).users == {}

    def test_stores_round_trip(self, sample_entities, sample_relationships):
        snapshot = Snapshot(users={
            USER: UserData(entities=sample_entities, relationships=sample_relationships),
            "user-2": UserData(suggestions=[_suggestion(id="s2", user_id="ignored")]),
        })
        entities, relationships, suggestions = snapshot.to_stores()

        assert entities.all_entities(USER) == sample_entities
        assert relationships.all_relationships(USER) == sample_relationships
        # The owning user comes from the snapshot key
        assert asyncio.run(suggestions.get("s2")).user_id == "user-2"

        restored = Snapshot.from_stores(entities, relationships, suggestions)
        assert restored.users[USER].entities == sample_entities
        assert [s.id for s in restored.users["user-2"].suggestions] == ["s2"]
