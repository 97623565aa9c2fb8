"""
Heuristic confidence score for generated answers.

Responsibility: Cheap, explainable proxy for answer quality (not factual correctness).
Base 0.5, independent adjustments summed, then clamped to [0, 1].
"""

import logging
import re

logger = logging.getLogger(__name__)

BASE_SCORE = 0.5
LONG_ANSWER_CHARS = 200

LENGTH_BONUS = 0.15
SPECIFICS_BONUS = 0.15
ATTRIBUTION_BONUS = 0.10
HEDGING_PENALTY = -0.20

# Year-like digit run, percentage, or dollar amount
_SPECIFICS_RE = re.compile(r"\d{4}|\d+%|\$\d+")
_ATTRIBUTION_RE = re.compile(r"according to|based on|study shows", re.IGNORECASE)
# Substring match, so "may" also fires inside longer words
_HEDGING_RE = re.compile(r"may|might|possibly|unclear|uncertain", re.IGNORECASE)


def explain_confidence(text: str) -> dict[str, float]:
    """Return the adjustment contributed by each signal (0.0 when the signal is absent)."""
    text = text or ""
    return {
        "length": LENGTH_BONUS if len(text) > LONG_ANSWER_CHARS else 0.0,
        "specifics": SPECIFICS_BONUS if _SPECIFICS_RE.search(text) else 0.0,
        "attribution": ATTRIBUTION_BONUS if _ATTRIBUTION_RE.search(text) else 0.0,
        "hedging": HEDGING_PENALTY if _HEDGING_RE.search(text) else 0.0,
    }


def score_confidence(text: str) -> float:
    """Score an answer in [0.0, 1.0]. Pure function of text."""
    signals = explain_confidence(text)
    score = BASE_SCORE + sum(signals.values())
    # Rounded so sums like 0.5 + 0.15 + 0.15 - 0.2 compare exactly against the 0.6 gate
    score = round(max(0.0, min(1.0, score)), 4)
    logger.debug("[confidence:score] len=%d signals=%s score=%.4f", len(text or ""), signals, score)
    return score
