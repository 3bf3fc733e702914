"""Tests for recall_kg.cli."""

from unittest.mock import patch

import pytest
from conftest import USER
from typer.testing import CliRunner

from recall_kg.cli import app
from recall_kg.store.io import Snapshot, UserData, read_snapshot, write_snapshot

runner = CliRunner()


@pytest.fixture
def data_file(tmp_dir, monkeypatch, sample_entities, sample_relationships):
    """Snapshot on disk, run from its directory with no recall.yaml."""
    monkeypatch.chdir(tmp_dir)
    for name in ("RECALL_AUTO_APPLY_THRESHOLD", "RECALL_MIN_SUGGESTION_CONFIDENCE", "RECALL_DATA_PATH"):
        monkeypatch.delenv(name, raising=False)
    path = tmp_dir / "recall_data.yaml"
    write_snapshot(
        Snapshot(users={USER: UserData(entities=sample_entities, relationships=sample_relationships)}),
        path,
    )
    return path


def _values(path) -> list[str]:
    return [e.value for e in read_snapshot(path).users[USER].entities]


class TestResolveCommands:
    """Test duplicates, suggest, review and stats."""

    def test_duplicates_is_read_only(self, data_file):
        before = data_file.read_text()
        result = runner.invoke(app, ["duplicates", USER, "--data", str(data_file)])
        assert result.exit_code == 0
        assert "recall suggest" in result.output
        assert data_file.read_text() == before

    def test_missing_snapshot(self, data_file, tmp_dir):
        result = runner.invoke(app, ["duplicates", USER, "--data", str(tmp_dir / "nope.yaml")])
        assert result.exit_code == 1
        assert "Snapshot not found" in result.output

    def test_suggest_writes_snapshot(self, data_file):
        result = runner.invoke(app, ["suggest", USER, "--data", str(data_file)])
        assert result.exit_code == 0
        assert "Recorded 2 merge suggestions" in result.output
        assert "Bob Matsuoka" not in _values(data_file)
        statuses = [s.status for s in read_snapshot(data_file).users[USER].suggestions]
        assert sorted(statuses) == ["auto_applied", "pending"]

    def test_suggest_invalid_threshold(self, data_file):
        result = runner.invoke(app, ["suggest", USER, "--data", str(data_file), "--auto-apply", "2"])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_review_accepts(self, data_file):
        runner.invoke(app, ["suggest", USER, "--data", str(data_file)])
        with patch("builtins.input", side_effect=["a"]):
            result = runner.invoke(app, ["review", USER, "--data", str(data_file)])
        assert result.exit_code == 0
        assert "International Business Machines" not in _values(data_file)

    def test_review_nothing_pending(self, data_file):
        result = runner.invoke(app, ["review", USER, "--data", str(data_file)])
        assert result.exit_code == 0
        assert "Nothing to review" in result.output

    def test_stats(self, data_file):
        runner.invoke(app, ["suggest", USER, "--data", str(data_file)])
        result = runner.invoke(app, ["stats", USER, "--data", str(data_file)])
        assert result.exit_code == 0
        assert "Auto-apply rate" in result.output


class TestRelationshipCommands:
    """Test scores and info."""

    def test_scores(self, data_file):
        result = runner.invoke(app, ["scores", USER, "--data", str(data_file), "--type", "person"])
        assert result.exit_code == 0
        assert "Alice" in result.output

    def test_scores_summary(self, data_file):
        result = runner.invoke(app, ["scores", USER, "--data", str(data_file), "--summary"])
        assert result.exit_code == 0
        assert "Average strength" in result.output

    def test_info(self, data_file):
        result = runner.invoke(app, ["info", "--data", str(data_file)])
        assert result.exit_code == 0
        assert "Threshold" in result.output
