"""Tests for recall_kg.resolve.reviewer (interactive suggestion review)."""

from unittest.mock import patch

import pytest
from conftest import USER

from recall_kg.resolve.models import MergeSuggestion
from recall_kg.resolve.reviewer import review_suggestions


@pytest.fixture
def pending_suggestions() -> list[MergeSuggestion]:
    return [
        MergeSuggestion(
            id=f"s{i}", user_id=USER,
            entity1_type="person", entity1_value=keep,
            entity2_type="person", entity2_value=merge,
            confidence=confidence, match_reason="nickname match",
        )
        for i, (keep, merge, confidence) in enumerate([
            ("Robert Matsuoka", "Bob Matsuoka", 0.9),
            ("William Chen", "Bill Chen", 0.8),
            ("Katherine Ross", "Kate Ross", 0.7),
        ])
    ]


class TestReviewSuggestions:
    """Test the interactive review loop."""

    @patch("builtins.input", side_effect=["a", "a", "a"])
    def test_accept_all(self, mock_input, pending_suggestions):
        decisions, stats = review_suggestions(pending_suggestions)
        assert decisions == {"s0": "accepted", "s1": "accepted", "s2": "accepted"}
        assert stats == {"accepted": 3, "rejected": 0, "skipped": 0}

    @patch("builtins.input", side_effect=["a", "r", "s"])
    def test_mixed_decisions(self, mock_input, pending_suggestions):
        decisions, stats = review_suggestions(pending_suggestions)
        assert decisions == {"s0": "accepted", "s1": "rejected"}
        assert stats["skipped"] == 1

    @patch("builtins.input", side_effect=["r", "q"])
    def test_quit_skips_remaining(self, mock_input, pending_suggestions):
        decisions, stats = review_suggestions(pending_suggestions)
        assert decisions == {"s0": "rejected"}
        assert stats == {"accepted": 0, "rejected": 1, "skipped": 2}

    @patch("builtins.input", side_effect=["x", "yes please", "a", "r", "r"])
    def test_invalid_keys_reprompt(self, mock_input, pending_suggestions):
        decisions, _ = review_suggestions(pending_suggestions)
        assert decisions == {"s0": "accepted", "s1": "rejected", "s2": "rejected"}

    @patch("builtins.input", side_effect=EOFError)
    def test_eof_quits(self, mock_input, pending_suggestions):
        decisions, stats = review_suggestions(pending_suggestions)
        assert decisions == {}
        assert stats["skipped"] == 3

    def test_only_pending_shown(self, pending_suggestions):
        done = [s.model_copy(update={"status": "auto_applied"}) for s in pending_suggestions]
        with patch("builtins.input") as mock_input:
            decisions, stats = review_suggestions(done)
        mock_input.assert_not_called()
        assert decisions == {}
        assert stats == {"accepted": 0, "rejected": 0, "skipped": 0}
