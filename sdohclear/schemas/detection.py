"""
API Schemas — Request and Response Models

Pydantic models for the SDOHClear API. Field names are snake_case in
Python and camelCase on the wire; requests accept either spelling.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================
# DETECT
# ============================================================

class DetectionContextIn(CamelModel):
    encounter_id: Optional[str] = None
    required_screenings: Optional[int] = Field(None, ge=0)
    completed_screenings: Optional[int] = Field(None, ge=0)
    monthly_goal: Optional[int] = Field(None, ge=0)
    care_team: list[str] = Field(default_factory=list)


class DetectRequest(CamelModel):
    """POST /detect request body.

    Transcript entries are not validated individually: lines without
    text are dropped by the engine rather than rejected here.
    """
    member_id: Optional[str] = None
    transcript: list[Any] = Field(..., max_length=5_000)
    context: Optional[DetectionContextIn] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={"examples": [{
            "memberId": "M-1001",
            "transcript": [{
                "speaker": "member",
                "text": "My electricity got shut off on Tuesday.",
                "language": "en",
            }],
            "context": {"requiredScreenings": 20, "completedScreenings": 15},
        }]},
    )


class DetectBatchRequest(CamelModel):
    """POST /detect/batch request body."""
    items: list[DetectRequest] = Field(..., min_length=1, max_length=100)


class EvidenceOut(CamelModel):
    quote: str
    speaker: str
    timestamp: Optional[str] = None
    language: Optional[str] = None


class FindingOut(CamelModel):
    code: str
    label: str
    domain: str
    severity: str
    urgency: str
    status: str
    confidence: float
    evidence: list[EvidenceOut]
    rationale: str
    estimated_value: float


class IssueSummary(CamelModel):
    code: str
    label: str
    severity: str
    urgency: str
    status: str
    confidence: float
    evidence_count: int


class StructuredDocumentation(CamelModel):
    member_id: Optional[str] = None
    encounter_id: Optional[str] = None
    detected_at: str
    languages: list[str]
    issues: list[IssueSummary]


class RecommendedCode(CamelModel):
    code: str
    label: str
    confidence: float
    severity: str
    urgency: str


class Documentation(CamelModel):
    structured: StructuredDocumentation
    narrative: str
    recommended_codes: list[RecommendedCode]
    evidence: list[EvidenceOut]


class PrevalenceTrend(CamelModel):
    code: str
    label: str
    percent: float
    delta: float


class RevenueMetrics(CamelModel):
    potential_revenue: float
    z_codes_generated: int
    patients_screened: int
    patients_required: int
    risk_adjustment_impact: float
    prevalence_trends: list[PrevalenceTrend]
    accuracy_estimate: float
    latency_estimate_ms: int


class CmsReportRow(CamelModel):
    month: str
    completed: int
    pending: int
    overdue: int


class ComplianceAlert(CamelModel):
    member_id: Optional[str] = None
    message: str
    severity: str


class ComplianceSummary(CamelModel):
    needs_screening: bool
    next_due_date: str
    completion_rate: float
    cms_report: list[CmsReportRow]
    alerts: list[ComplianceAlert]


class DebugInfo(CamelModel):
    prompt_tokens: Optional[int] = None
    model: Optional[str] = None
    fallback_used: bool
    fallback_reason: Optional[str] = None


class DetectionResponse(CamelModel):
    """POST /detect response body."""
    member_id: Optional[str] = None
    engine: str
    engine_version: str
    languages: list[str]
    findings: list[FindingOut]
    documentation: Documentation
    revenue: RevenueMetrics
    compliance: ComplianceSummary
    debug: DebugInfo


class DetectBatchResponse(CamelModel):
    """POST /detect/batch response body."""
    results: list[DetectionResponse]
    total: int
    detected: int


# ============================================================
# Z-CODE SUGGESTIONS
# ============================================================

class SuggestRequest(CamelModel):
    """POST /zcodes/suggest request body."""
    note: Optional[str] = Field(None, max_length=50_000)
    responses: dict[str, Any] = Field(default_factory=dict)


class SuggestResponse(CamelModel):
    suggestions: list[FindingOut]


# ============================================================
# CALL SESSIONS
# ============================================================

class CallMessagesRequest(CamelModel):
    """POST /calls/{call_id}/messages request body."""
    messages: list[Any] = Field(..., max_length=1_000)


class TranscriptLineOut(CamelModel):
    speaker: str
    text: str
    language: Optional[str] = None
    timestamp: Optional[str] = None


class CallSessionResponse(CamelModel):
    call_id: str
    line_count: int
    transcript: list[TranscriptLineOut]


class CallDetectRequest(CamelModel):
    """POST /calls/{call_id}/detect request body."""
    member_id: Optional[str] = None
    context: Optional[DetectionContextIn] = None
    close: bool = False


# ============================================================
# HEALTH
# ============================================================

class HealthResponse(CamelModel):
    status: str
    version: str
    engine_version: str
    llm_provider: str
    inference_configured: bool
    patterns: int
    active_calls: int
