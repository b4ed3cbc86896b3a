"""
Status & Confidence Classifier

Reads the full text of a transcript line (not just the matched phrase)
and decides whether a finding is current, resolved, or historical, and
how far to move its confidence away from the category's base value.
"""

from __future__ import annotations

from sdohclear.catalog import (
    HEDGING_CUES,
    HEDGING_PENALTY,
    HISTORICAL_CUES,
    RESOLVED_CUES,
    URGENCY_BOOST,
    URGENT_CUES,
)

MIN_CONFIDENCE = 0.40
MAX_CONFIDENCE = 0.98


def _any_cue(cues, text: str) -> bool:
    return any(cue.search(text) for cue in cues)


def determine_status(text: str) -> str:
    """Resolution cues win over past-reference cues; otherwise current."""
    if _any_cue(RESOLVED_CUES, text):
        return "resolved"
    if _any_cue(HISTORICAL_CUES, text):
        return "historical"
    return "current"


def adjust_confidence(base: float, text: str) -> float:
    """
    Shift a base confidence by tone cues in the line.

    Urgency cues add URGENCY_BOOST, hedging cues subtract HEDGING_PENALTY.
    Both may apply. The result is rounded to 2 decimals and clamped to
    [MIN_CONFIDENCE, MAX_CONFIDENCE].
    """
    confidence = base
    if _any_cue(URGENT_CUES, text):
        confidence += URGENCY_BOOST
    if _any_cue(HEDGING_CUES, text):
        confidence -= HEDGING_PENALTY
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, round(confidence, 2)))


def classify(text: str, base_confidence: float) -> tuple[str, float]:
    """Return (status, adjusted_confidence) for one line."""
    return determine_status(text), adjust_confidence(base_confidence, text)
