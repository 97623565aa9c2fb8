"""
Unit tests for the content fingerprint and the heuristic confidence score.
"""

import pytest

from app.services.confidence import explain_confidence, score_confidence
from app.services.hashing import content_hash
from tests.fakes import HIGH_CONFIDENCE_ANSWER, HIGH_CONFIDENCE_SCORE, LOW_CONFIDENCE_ANSWER, LOW_CONFIDENCE_SCORE


class TestContentHash:
    """Tests for content_hash()."""

    def test_deterministic(self) -> None:
        assert content_hash("What treats Type 2 Diabetes?") == content_hash("What treats Type 2 Diabetes?")

    def test_fixed_length_hex(self) -> None:
        digest = content_hash("hello")
        assert len(digest) == 64
        assert digest == "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"

    def test_case_and_whitespace_sensitive(self) -> None:
        base = content_hash("what treats diabetes?")
        assert content_hash("What treats diabetes?") != base
        assert content_hash("what treats diabetes? ") != base
        assert content_hash(" what treats diabetes?") != base


class TestScoreConfidence:
    """Tests for score_confidence()."""

    def test_plain_short_answer_is_base_score(self) -> None:
        assert score_confidence("Metformin is commonly prescribed.") == 0.5

    def test_all_positive_signals(self) -> None:
        assert score_confidence(HIGH_CONFIDENCE_ANSWER) == HIGH_CONFIDENCE_SCORE

    def test_hedging_penalty(self) -> None:
        assert score_confidence(LOW_CONFIDENCE_ANSWER) == LOW_CONFIDENCE_SCORE

    def test_length_bonus_only_above_200_chars(self) -> None:
        assert score_confidence("x" * 200) == 0.5
        assert score_confidence("x" * 201) == 0.65

    @pytest.mark.parametrize("text", ["Founded in 1998.", "Yield rose 12%.", "It costs $40."])
    def test_specifics_bonus(self, text: str) -> None:
        assert score_confidence(text) == 0.65

    @pytest.mark.parametrize("text", ["According to the survey, yes.", "Based on trials, yes.", "A study shows it works."])
    def test_attribution_bonus(self, text: str) -> None:
        assert score_confidence(text) == 0.6

    def test_hedging_is_case_insensitive(self) -> None:
        assert score_confidence("POSSIBLY yes.") == 0.3

    def test_mixed_signals_sum_exactly(self) -> None:
        # 0.5 + 0.15 (specifics) + 0.15 (length) - 0.2 (hedging) lands exactly on the gate
        text = "In 2020 the outcome might have changed. " + "y" * 200
        assert score_confidence(text) == 0.6

    def test_empty_text(self) -> None:
        assert score_confidence("") == 0.5

    @pytest.mark.parametrize(
        "text",
        ["", "maybe", HIGH_CONFIDENCE_ANSWER * 5, "uncertain unclear might may possibly", "$1 2% 1999 " * 40],
    )
    def test_bounded(self, text: str) -> None:
        assert 0.0 <= score_confidence(text) <= 1.0

    def test_explain_lists_each_signal(self) -> None:
        signals = explain_confidence(LOW_CONFIDENCE_ANSWER)
        assert signals == {"length": 0.0, "specifics": 0.0, "attribution": 0.0, "hedging": -0.2}
