"""
Matcher — scans one transcript line against the pattern catalog.

Each matching category yields one unmerged Finding carrying exactly one
evidence entry (the line itself). Categories are evaluated independently,
so a single line can raise several findings.
"""

from __future__ import annotations

from typing import Optional

from sdohclear.catalog import (
    LANGUAGE_ALIASES,
    PATTERNS,
    SPANISH_MARKERS,
    Matcher,
    PatternDefinition,
)
from sdohclear.classifier import classify
from sdohclear.models import Evidence, Finding, TranscriptLine


def normalize_language(tag: Optional[str]) -> Optional[str]:
    """
    Map a free-form language tag to a 2-letter code.

    Known aliases ("spa", "español", "english", ...) map through the alias
    table; anything else falls back to its first two characters, lower-cased.
    """
    if not isinstance(tag, str) or not tag.strip():
        return None
    key = tag.strip().lower()
    return LANGUAGE_ALIASES.get(key, key[:2])


def infer_language(text: str) -> str:
    """Best guess for an untagged line: Spanish if it carries Spanish marks."""
    return "es" if SPANISH_MARKERS.search(text) else "en"


def line_language(line: TranscriptLine) -> str:
    """The explicit tag when present, otherwise the inferred language."""
    return normalize_language(line.language) or infer_language(line.text)


def _matches(matcher: Matcher, text: str, lower: str) -> bool:
    if isinstance(matcher, str):
        return matcher.lower() in lower
    return matcher.search(text) is not None


def pattern_matches(pattern: PatternDefinition, text: str, language: Optional[str]) -> bool:
    lower = text.lower()
    return any(_matches(m, text, lower) for m in pattern.matcher_pool(language))


def match_line(
    line: TranscriptLine,
    patterns: tuple[PatternDefinition, ...] = PATTERNS,
) -> list[Finding]:
    """Return one Finding per catalog category the line matches."""
    text = line.text
    if not text or not text.strip():
        return []

    language = line_language(line)
    findings: list[Finding] = []

    for pattern in patterns:
        if not pattern_matches(pattern, text, language):
            continue
        status, confidence = classify(text, pattern.base_confidence)
        findings.append(Finding(
            code=pattern.code,
            label=pattern.label,
            domain=pattern.domain,
            severity=pattern.severity,
            urgency=pattern.urgency,
            status=status,
            confidence=confidence,
            evidence=[Evidence(
                quote=text.strip(),
                speaker=line.speaker,
                timestamp=line.timestamp,
                language=language,
            )],
            rationale=(
                f"Detected key phrases associated with "
                f"{pattern.label.lower()} in {language} conversation."
            ),
            estimated_value=pattern.estimated_value,
        ))

    return findings
