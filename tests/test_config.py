"""Tests for recall_kg.config."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from recall_kg.config import RecallConfig, _ProjectYamlSource
from recall_kg.relationships.models import ScoringConfig


@pytest.fixture
def in_tmp_dir(tmp_dir, monkeypatch):
    """Run from an empty directory so no recall.yaml is picked up."""
    monkeypatch.chdir(tmp_dir)
    return tmp_dir


class TestRecallConfig:
    """Test configuration loading and validation."""

    def test_default_config_loads(self, in_tmp_dir):
        """Config loads with defaults when no env vars set."""
        with patch.dict(os.environ, {}, clear=True):
            config = RecallConfig(_env_file=None)
        assert config.data_path == Path("recall_data.yaml")
        assert config.auto_apply_threshold == 0.95
        assert config.min_suggestion_confidence == 0.7
        assert config.entity_types == ["person", "company", "project", "topic", "location"]
        assert config.use_blocking is False

    def test_threshold_from_env(self, in_tmp_dir):
        with patch.dict(os.environ, {"RECALL_AUTO_APPLY_THRESHOLD": "0.9"}):
            config = RecallConfig(_env_file=None)
        assert config.auto_apply_threshold == 0.9

    def test_entity_types_from_env(self, in_tmp_dir):
        with patch.dict(os.environ, {"RECALL_ENTITY_TYPES": '["person", "company"]'}):
            config = RecallConfig(_env_file=None)
        assert config.entity_types == ["person", "company"]

    def test_threshold_out_of_range(self, in_tmp_dir):
        with pytest.raises(Exception, match="between 0 and 1"):
            RecallConfig(auto_apply_threshold=1.5, _env_file=None)

    def test_entity_types_comma_string(self, in_tmp_dir):
        config = RecallConfig(entity_types="person, company", _env_file=None)
        assert config.entity_types == ["person", "company"]

    def test_scoring_config(self, in_tmp_dir):
        config = RecallConfig(recency_half_life_days=14, _env_file=None)
        scoring = config.scoring_config()
        assert scoring.recency_half_life_days == 14
        assert scoring.email_weight == 0.3

    def test_scoring_weights_validated(self, in_tmp_dir):
        config = RecallConfig(email_weight=0.9, _env_file=None)
        with pytest.raises(ValueError, match="sum to 1.0"):
            config.scoring_config()

    def test_bundled_nickname_table(self, in_tmp_dir):
        config = RecallConfig(_env_file=None)
        assert config.nickname_table().are_variants("Bob", "Robert")

    def test_custom_nickname_table(self, in_tmp_dir):
        path = in_tmp_dir / "nicknames.yaml"
        path.write_text("nicknames:\n  zebulon: [zeb]\n")
        config = RecallConfig(nicknames_path=path, _env_file=None)
        assert config.nickname_table().are_variants("Zeb", "Zebulon")

    def test_missing_nickname_table(self, in_tmp_dir):
        config = RecallConfig(nicknames_path=in_tmp_dir / "missing.yaml", _env_file=None)
        with pytest.raises(ValueError, match="not found"):
            config.nickname_table()


class TestProjectYaml:
    """Test recall.yaml project config."""

    def test_recall_yaml_keys(self, in_tmp_dir):
        (in_tmp_dir / "recall.yaml").write_text(
            "data: graph.yaml\n"
            "auto_apply_threshold: 0.99\n"
            "min_confidence: 0.8\n"
            "blocking: true\n"
            "entity_types: person, company\n"
            "scoring:\n"
            "  recency_half_life_days: 14\n"
            "  bogus: 1\n"
        )
        data = _ProjectYamlSource(RecallConfig)()
        assert data["data_path"] == "graph.yaml"
        assert data["auto_apply_threshold"] == 0.99
        assert data["min_suggestion_confidence"] == 0.8
        assert data["use_blocking"] is True
        assert data["recency_half_life_days"] == 14
        assert "bogus" not in data

    def test_recall_yaml_fetch_limits(self, in_tmp_dir):
        """Every scoring key, fetch limits included, reaches ScoringConfig."""
        (in_tmp_dir / "recall.yaml").write_text(
            "scoring:\n"
            "  top_relationships_fetch_limit: 25\n"
            "  batch_fetch_limit: 50\n"
        )
        with patch.dict(os.environ, {}, clear=True):
            scoring = RecallConfig(_env_file=None).scoring_config()
        assert scoring.top_relationships_fetch_limit == 25
        assert scoring.batch_fetch_limit == 50

    def test_scoring_fields_all_mirrored(self):
        assert set(ScoringConfig.model_fields) <= set(RecallConfig.model_fields)

    def test_recall_yaml_applied(self, in_tmp_dir):
        (in_tmp_dir / "recall.yaml").write_text("min_confidence: 0.8\nentity_types: person, company\n")
        with patch.dict(os.environ, {}, clear=True):
            config = RecallConfig(_env_file=None)
        assert config.min_suggestion_confidence == 0.8
        assert config.entity_types == ["person", "company"]

    def test_env_beats_recall_yaml(self, in_tmp_dir):
        (in_tmp_dir / "recall.yaml").write_text("min_confidence: 0.8\n")
        with patch.dict(os.environ, {"RECALL_MIN_SUGGESTION_CONFIDENCE": "0.6"}):
            config = RecallConfig(_env_file=None)
        assert config.min_suggestion_confidence == 0.6

    def test_no_recall_yaml(self, in_tmp_dir):
        assert _ProjectYamlSource(RecallConfig)() == {}
