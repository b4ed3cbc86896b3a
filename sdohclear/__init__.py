"""
SDOHClear — Social Determinants of Health Detection Engine

Turns multi-speaker, multi-language transcripts into deduplicated,
confidence-scored Z-code findings plus documentation, revenue and
compliance views.

Public API:
  - detect_conversation: Full detection run (model path with rule-based fallback)
  - detect_rule_based:   Deterministic Matcher -> Classifier -> Merger fold
  - suggest_zcodes:      Intake-form suggestions (note + questionnaire)
  - match_line:          Scan a single transcript line against the catalog
  - merge_findings:      Fold per-line findings into one finding per code
  - PATTERNS:            The immutable SDOH pattern catalog
  - CallSessionStore:    Caller-owned transcript buffers for live calls
  - LLMProvider:         Abstract inference interface for provider swapping

Usage:
    from sdohclear import detect_conversation, TranscriptLine
    result = await detect_conversation([TranscriptLine("member", "...")])
"""

__version__ = "1.0.0"

from sdohclear.catalog import PATTERNS, PatternDefinition, get_patterns
from sdohclear.models import (
    DetectionContext,
    Evidence,
    Finding,
    TranscriptLine,
)
from sdohclear.matcher import match_line, normalize_language
from sdohclear.classifier import classify
from sdohclear.merger import merge_findings
from sdohclear.detector import (
    detect_conversation,
    detect_rule_based,
    suggest_zcodes,
    ModelFindings,
    Unavailable,
    Malformed,
)
from sdohclear.sessions import CallSessionStore
from sdohclear.llm import LLMProvider
from sdohclear.llm.factory import get_provider

__all__ = [
    "PATTERNS",
    "PatternDefinition",
    "get_patterns",
    "DetectionContext",
    "Evidence",
    "Finding",
    "TranscriptLine",
    "match_line",
    "normalize_language",
    "classify",
    "merge_findings",
    "detect_conversation",
    "detect_rule_based",
    "suggest_zcodes",
    "ModelFindings",
    "Unavailable",
    "Malformed",
    "CallSessionStore",
    "LLMProvider",
    "get_provider",
]
