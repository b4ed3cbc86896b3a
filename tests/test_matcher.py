"""
Tests for the pattern catalog, the matcher, and the status/confidence
classifier — the deterministic half of the engine.
"""

import re

import pytest

from sdohclear.catalog import PATTERNS, get_patterns
from sdohclear.classifier import adjust_confidence, classify, determine_status
from sdohclear.matcher import (
    infer_language,
    line_language,
    match_line,
    normalize_language,
)
from sdohclear.models import TranscriptLine


def codes(findings):
    return {f.code for f in findings}


# ============================================================
# CATALOG
# ============================================================

class TestCatalog:
    """The catalog is a fixed, well-formed registry."""

    def test_codes_are_unique(self):
        all_codes = [p.code for p in PATTERNS]
        assert len(all_codes) == len(set(all_codes))

    def test_codes_are_z59(self):
        for p in PATTERNS:
            assert re.fullmatch(r"Z59\.\d{1,2}", p.code)

    def test_enumerated_fields(self):
        for p in PATTERNS:
            assert p.severity in ("low", "moderate", "high")
            assert p.urgency in ("low", "medium", "high")
            assert 0.0 <= p.base_confidence <= 1.0
            assert p.estimated_value > 0

    def test_definitions_are_frozen(self):
        with pytest.raises(AttributeError):
            PATTERNS[0].severity = "low"

    def test_matcher_pool_adds_language(self):
        food = next(p for p in PATTERNS if p.code == "Z59.41")
        assert len(food.matcher_pool("es")) > len(food.matcher_pool(None))
        assert food.matcher_pool("de") == food.matcher_pool(None)

    def test_get_patterns_serializable(self):
        listing = get_patterns()
        assert len(listing) == len(PATTERNS)
        food = next(p for p in listing if p["code"] == "Z59.41")
        assert food["languages"] == ["es", "fr"]


# ============================================================
# LANGUAGE NORMALIZATION
# ============================================================

class TestLanguage:

    @pytest.mark.parametrize("tag,expected", [
        ("es", "es"),
        ("spa", "es"),
        ("Español", "es"),
        ("ENG", "en"),
        ("français", "fr"),
        ("de-DE", "de"),
        ("pt_BR", "pt"),
    ])
    def test_normalize(self, tag, expected):
        assert normalize_language(tag) == expected

    def test_missing_tag(self):
        assert normalize_language(None) is None
        assert normalize_language("   ") is None
        assert normalize_language(1) is None

    def test_infer_spanish_from_diacritics(self):
        assert infer_language("¿Dónde está la clínica?") == "es"

    def test_infer_defaults_to_english(self):
        assert infer_language("Where is the clinic?") == "en"

    def test_explicit_tag_wins_over_inference(self):
        line = TranscriptLine(speaker="member", text="Está bien", language="en")
        assert line_language(line) == "en"


# ============================================================
# MATCHER
# ============================================================

class TestMatcher:

    def test_utilities_shutoff(self):
        findings = match_line(TranscriptLine(
            speaker="member",
            text="My electricity got shut off on Tuesday.",
            language="en",
        ))
        assert codes(findings) == {"Z59.1"}

    def test_literal_matcher_is_case_insensitive(self):
        findings = match_line(TranscriptLine(
            speaker="member", text="I NEED HELP GETTING TO APPOINTMENTS.",
        ))
        assert codes(findings) == {"Z59.82"}

    def test_line_can_raise_several_categories(self):
        findings = match_line(TranscriptLine(
            speaker="member",
            text="I'm behind on rent and I can't afford my meds this month.",
        ))
        assert codes(findings) == {"Z59.81", "Z59.86"}

    def test_spanish_pool_only_for_spanish_lines(self):
        text = "Fui al banco de alimentos"
        assert match_line(TranscriptLine("member", text, language="en")) == []
        spanish = match_line(TranscriptLine("member", text, language="spa"))
        assert codes(spanish) == {"Z59.41"}

    def test_spanish_inferred_when_untagged(self):
        findings = match_line(TranscriptLine("member", "Mi nevera está vacía casi siempre"))
        assert codes(findings) == {"Z59.41"}
        assert findings[0].evidence[0].language == "es"

    def test_french_pool(self):
        findings = match_line(TranscriptLine(
            "member", "Je vais à la banque alimentaire", language="fr",
        ))
        assert codes(findings) == {"Z59.41"}

    def test_unknown_language_falls_back_to_base_pool(self):
        findings = match_line(TranscriptLine(
            "member", "We went to the food bank", language="klingon",
        ))
        assert codes(findings) == {"Z59.41"}
        assert findings[0].evidence[0].language == "kl"

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_blank_text_yields_nothing(self, text):
        assert match_line(TranscriptLine("member", text)) == []

    def test_no_match(self):
        assert match_line(TranscriptLine("member", "The weather is nice today.")) == []

    def test_single_evidence_entry(self):
        line = TranscriptLine(
            speaker="member", text="  We used the food bank.  ",
            language="en", timestamp="2026-10-17T10:00:00Z",
        )
        [finding] = match_line(line)
        assert len(finding.evidence) == 1
        ev = finding.evidence[0]
        assert ev.quote == "We used the food bank."
        assert ev.speaker == "member"
        assert ev.timestamp == "2026-10-17T10:00:00Z"
        assert ev.language == "en"

    def test_confidence_starts_from_base(self):
        [finding] = match_line(TranscriptLine("member", "We went to the food bank."))
        assert finding.confidence == 0.80
        assert finding.status == "current"
        assert "food insecurity" in finding.rationale


# ============================================================
# CLASSIFIER
# ============================================================

class TestStatus:

    @pytest.mark.parametrize("text", [
        "That is no longer an issue",
        "The case worker handled it",
        "the shutoff was resolved last week",
        "It's been taken care of",
    ])
    def test_resolved(self, text):
        assert determine_status(text) == "resolved"

    @pytest.mark.parametrize("text", [
        "We used to go to the food bank",
        "That happened last year",
        "I was previously evicted",
    ])
    def test_historical(self, text):
        assert determine_status(text) == "historical"

    def test_resolved_beats_historical(self):
        assert determine_status("It used to be bad but it's resolved") == "resolved"

    def test_current_by_default(self):
        assert determine_status("We have no groceries") == "current"


class TestConfidence:

    def test_urgency_boost(self):
        assert adjust_confidence(0.70, "I need help right now") == 0.78

    def test_hedging_penalty(self):
        assert adjust_confidence(0.78, "it might take a week") == 0.66

    def test_cues_stack(self):
        assert adjust_confidence(0.78, "This is urgent, maybe tonight") == 0.74

    def test_clamped_low(self):
        assert adjust_confidence(0.45, "not sure, possibly") == 0.40

    def test_clamped_high(self):
        assert adjust_confidence(0.95, "emergency") == 0.98

    def test_classify_returns_both(self):
        assert classify("We used to miss meals, maybe", 0.80) == ("historical", 0.68)
