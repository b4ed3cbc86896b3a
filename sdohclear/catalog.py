"""
Pattern Catalog — Static SDOH Risk Registry

The catalog defines:
  1. Which SDOH risk categories the rule-based engine knows (Z-codes)
  2. The phrases that indicate each category, per language
  3. The cue vocabularies used to classify status and confidence
  4. The language alias table used to normalize transcript tags

Everything here is loaded once at import time and never mutated.
Adding or changing a category requires a new release.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from re import Pattern
from typing import Union

# A matcher is either a literal phrase (case-insensitive substring)
# or a compiled regex tested against the raw line text.
Matcher = Union[str, Pattern[str]]


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass(frozen=True)
class PatternDefinition:
    """
    A single SDOH risk category.

    `matchers` apply to every line. `translations` adds extra matchers
    for lines whose normalized language tag is a key of the mapping.
    A definition matches a line if ANY matcher in the pool matches.
    """
    code: str
    label: str
    domain: str
    severity: str           # "low", "moderate", "high"
    urgency: str            # "low", "medium", "high"
    base_confidence: float
    estimated_value: float
    matchers: tuple[Matcher, ...]
    translations: dict[str, tuple[Matcher, ...]] = field(default_factory=dict)

    def matcher_pool(self, language: str | None = None) -> list[Matcher]:
        """Base matchers plus the additions for `language`, if any."""
        pool = list(self.matchers)
        if language and language in self.translations:
            pool.extend(self.translations[language])
        return pool


def _rx(pattern: str) -> Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


# ============================================================
# SDOH CATEGORIES
# ============================================================

PATTERNS: tuple[PatternDefinition, ...] = (
    PatternDefinition(
        code="Z59.82",
        label="Transportation insecurity",
        domain="transportation",
        severity="moderate",
        urgency="medium",
        base_confidence=0.72,
        estimated_value=85,
        matchers=(
            _rx(r"\bno (?:ride|car)\b"),
            _rx(r"bus pass.*expired"),
            _rx(r"miss(?:ed)? (?:my |the )?appointments?.*transport"),
            "need help getting to appointments",
        ),
        translations={
            "es": (
                _rx(r"no tengo (?:coche|carro|transporte)"),
                _rx(r"necesito.*transporte"),
            ),
            "fr": (_rx(r"pas de transport"),),
        },
    ),
    PatternDefinition(
        code="Z59.1",
        label="Inadequate housing utilities",
        domain="housing",
        severity="high",
        urgency="high",
        base_confidence=0.78,
        estimated_value=110,
        matchers=(
            _rx(r"utilit(?:y|ies) (?:got |were |was )?(?:shut|turned) off"),
            _rx(r"electricity (?:got )?shut off"),
            _rx(r"\b(?:power |electric |utility |gas |water )?shut-?off\b"),
            _rx(r"without (?:power|electricity|heat)"),
        ),
        translations={
            "es": (_rx(r"sin (?:luz|electricidad)"), _rx(r"me cortaron la luz")),
            "fr": (_rx(r"sans électricité"),),
        },
    ),
    PatternDefinition(
        code="Z59.01",
        label="Sheltered homelessness",
        domain="housing",
        severity="high",
        urgency="high",
        base_confidence=0.83,
        estimated_value=145,
        matchers=(
            _rx(r"sleeping in (?:my|a) car"),
            _rx(r"living in (?:a )?shelter"),
            _rx(r"staying (?:in|at) the shelter"),
        ),
        translations={
            "es": (_rx(r"durmiendo en mi carro"), _rx(r"vivo en un refugio")),
            "fr": (_rx(r"je dors dans ma voiture"),),
        },
    ),
    PatternDefinition(
        code="Z59.86",
        label="Financial insecurity",
        domain="financial",
        severity="moderate",
        urgency="medium",
        base_confidence=0.70,
        estimated_value=92,
        matchers=(
            _rx(r"can(?:'|no)?t afford (?:my )?(?:meds|medications?)"),
            _rx(r"ran out of money.*meds"),
            _rx(r"co-?pays?.*too high"),
        ),
        translations={
            "es": (
                _rx(r"no puedo pagar (?:mis )?medicinas"),
                _rx(r"medicamentos.*muy caros"),
            ),
            "fr": (_rx(r"je ne peux pas payer mes médicaments"),),
        },
    ),
    PatternDefinition(
        code="Z59.41",
        label="Food insecurity",
        domain="nutrition",
        severity="high",
        urgency="high",
        base_confidence=0.80,
        estimated_value=125,
        matchers=(
            _rx(r"food bank"),
            _rx(r"\bmiss(?:ed|ing)? meals?\b"),
            _rx(r"empty fridge"),
            _rx(r"no groceries"),
            "food insecure",
            "snap pending",
            "no money for food",
        ),
        translations={
            "es": (
                _rx(r"banco de alimentos"),
                _rx(r"sin comida"),
                _rx(r"nevera (?:est[aá] )?vac[ií]a"),
            ),
            "fr": (_rx(r"banque alimentaire"),),
        },
    ),
    PatternDefinition(
        code="Z59.81",
        label="Housing instability",
        domain="housing",
        severity="high",
        urgency="medium",
        base_confidence=0.77,
        estimated_value=130,
        matchers=(
            _rx(r"landlord.*evict"),
            _rx(r"facing eviction"),
            _rx(r"notice to vacate"),
            _rx(r"behind on (?:the |my )?rent"),
        ),
        translations={
            "es": (_rx(r"desalojo"), _rx(r"mi casero.*me (?:va|quiere) sacar")),
            "fr": (_rx(r"expulsion"),),
        },
    ),
)

# Not text-matched: raised by the Hunger Vital Sign screen on intake forms.
HUNGER_VITAL_SIGN = PatternDefinition(
    code="Z59.4",
    label="Lack of adequate food and safe drinking water",
    domain="nutrition",
    severity="high",
    urgency="high",
    base_confidence=0.87,
    estimated_value=125,
    matchers=(),
)


# ============================================================
# STATUS & CONFIDENCE CUES
# ============================================================

RESOLVED_CUES: tuple[Pattern[str], ...] = (
    _rx(r"no longer"),
    _rx(r"\bhandled\b"),
    _rx(r"\bresolved\b"),
    _rx(r"taken care of"),
)

HISTORICAL_CUES: tuple[Pattern[str], ...] = (
    _rx(r"last year"),
    _rx(r"used to"),
    _rx(r"previously"),
)

URGENT_CUES: tuple[Pattern[str], ...] = (
    _rx(r"right now"),
    _rx(r"urgent"),
    _rx(r"emergency"),
    _rx(r"tonight"),
)

HEDGING_CUES: tuple[Pattern[str], ...] = (
    _rx(r"maybe|might|not sure|possibly"),
)

URGENCY_BOOST = 0.08
HEDGING_PENALTY = 0.12


# ============================================================
# LANGUAGE ALIASES
# ============================================================

LANGUAGE_ALIASES: dict[str, str] = {
    "es": "es",
    "spa": "es",
    "español": "es",
    "spanish": "es",
    "en": "en",
    "eng": "en",
    "english": "en",
    "fr": "fr",
    "fra": "fr",
    "français": "fr",
    "french": "fr",
}

# Diacritics and inverted punctuation that mark an untagged line as Spanish.
SPANISH_MARKERS = re.compile(r"[áéíóúñ¡¿]", re.IGNORECASE)


def get_patterns() -> list[dict]:
    """
    Return the catalog in serializable form.

    Used by the GET /patterns endpoint to expose the detection surface.
    """
    return [
        {
            "code": p.code,
            "label": p.label,
            "domain": p.domain,
            "severity": p.severity,
            "urgency": p.urgency,
            "base_confidence": p.base_confidence,
            "estimated_value": p.estimated_value,
            "languages": sorted(p.translations),
        }
        for p in PATTERNS
    ]
