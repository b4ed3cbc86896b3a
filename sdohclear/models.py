"""
Core data structures shared by the detection pipeline.

Everything here is a plain dataclass. Transcript lines are frozen;
findings are built fresh per detection run and never persisted here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

SEVERITIES = ("low", "moderate", "high")
URGENCIES = ("low", "medium", "high")
STATUSES = ("current", "resolved", "historical")


@dataclass(frozen=True)
class TranscriptLine:
    """One utterance from a call, SMS thread, or intake form."""
    speaker: str
    text: str
    language: Optional[str] = None
    timestamp: Optional[str] = None


@dataclass
class Evidence:
    """A quoted transcript excerpt supporting a finding."""
    quote: str
    speaker: str
    timestamp: Optional[str] = None
    language: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "quote": self.quote,
            "speaker": self.speaker,
            "timestamp": self.timestamp,
            "language": self.language,
        }


@dataclass
class Finding:
    """A detected SDOH risk category with its supporting evidence."""
    code: str              # e.g., "Z59.41"
    label: str             # e.g., "Food insecurity"
    domain: str            # e.g., "nutrition"
    severity: str          # "low", "moderate", "high"
    urgency: str           # "low", "medium", "high"
    status: str            # "current", "resolved", "historical"
    confidence: float      # 0.0 to 1.0, two decimals
    evidence: list[Evidence] = field(default_factory=list)
    rationale: str = ""
    estimated_value: float = 0.0

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "label": self.label,
            "domain": self.domain,
            "severity": self.severity,
            "urgency": self.urgency,
            "status": self.status,
            "confidence": self.confidence,
            "evidence": [e.to_dict() for e in self.evidence],
            "rationale": self.rationale,
            "estimated_value": self.estimated_value,
        }


@dataclass
class DetectionContext:
    """Encounter context supplied by the caller alongside a transcript."""
    encounter_id: Optional[str] = None
    required_screenings: Optional[int] = None
    completed_screenings: Optional[int] = None
    monthly_goal: Optional[int] = None
    care_team: list[str] = field(default_factory=list)
