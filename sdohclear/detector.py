"""
Detector — Inference Fallback Controller

Orchestrates one detection run over a complete transcript:
  - model:      one bounded call to the configured LLM provider
  - rule-based: Matcher -> Classifier -> Merger over every line

The two paths are mutually exclusive per run. The model path is used only
when the provider is available AND returns a non-empty, well-formed issue
list; every other outcome (no credential, timeout, network error, bad JSON,
empty list) falls back to the rule-based path. Inference failures are
logged and never reach the caller.
"""

from __future__ import annotations

import asyncio
import math
import random
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional, Union

from sdohclear.catalog import HUNGER_VITAL_SIGN
from sdohclear.config import settings
from sdohclear.llm import LLMProvider
from sdohclear.logging import get_logger
from sdohclear.matcher import line_language, match_line, normalize_language
from sdohclear.merger import merge_findings
from sdohclear.models import (
    SEVERITIES,
    STATUSES,
    URGENCIES,
    DetectionContext,
    Evidence,
    Finding,
    TranscriptLine,
)
from sdohclear.synthesizer import (
    build_documentation,
    compute_compliance,
    compute_revenue_metrics,
)
from sdohclear.transcript import coerce_transcript

logger = get_logger("detector")


# ============================================================
# LLM PROMPT
# ============================================================

SYSTEM_INSTRUCTION = (
    "You are a clinical documentation specialist extracting Social "
    "Determinants of Health (SDOH) indicators from multi-language transcripts."
)

DETECTION_PROMPT = """Return a JSON object of the form {{"issues": [...]}}.

Each issue object has:
- "code": ICD-10 Z-code (e.g. "Z59.41")
- "label": short description of the code
- "domain": housing | nutrition | financial | transportation | utilities | safety | social
- "severity": "low" | "moderate" | "high"
- "urgency": "low" | "medium" | "high"
- "status": "current" | "resolved" | "historical"
- "confidence": float 0.0 to 1.0
- "rationale": one sentence explaining the determination
- "estimatedValue": estimated reimbursement value in USD (number)
- "evidence": array of {{"quote", "speaker", "language"}} quoting the transcript exactly

Focus on ICD-10 Z-codes related to housing, food, financial, transportation,
utility, safety, and social support needs. Report each code at most once.
Return {{"issues": []}} if no SDOH needs are present.

## Transcript
{transcript}

Return ONLY valid JSON."""


# ============================================================
# INFERENCE OUTCOME
# ============================================================

@dataclass
class ModelFindings:
    """The provider returned a usable, non-empty issue list."""
    findings: list[Finding]


@dataclass
class Unavailable:
    """No call was made, or the call did not complete."""
    reason: str


@dataclass
class Malformed:
    """The call completed but the response cannot be used."""
    reason: str


InferenceOutcome = Union[ModelFindings, Unavailable, Malformed]


def format_transcript(lines: list[TranscriptLine]) -> str:
    return "\n".join(f"{line.speaker}: {line.text}" for line in lines)


def _pick(value: Any, allowed: tuple[str, ...], default: str) -> str:
    if isinstance(value, str) and value.lower() in allowed:
        return value.lower()
    return default


def _as_float(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value.strip() else None


def _reshape_issue(item: Any) -> Optional[Finding]:
    """Reshape one model issue into a Finding. None if it lacks a code."""
    if not isinstance(item, dict):
        return None
    code = item.get("code")
    if not isinstance(code, str) or not code.strip():
        return None

    evidence = []
    raw_evidence = item.get("evidence")
    if isinstance(raw_evidence, list):
        for ev in raw_evidence:
            if not isinstance(ev, dict) or not isinstance(ev.get("quote"), str):
                continue
            evidence.append(Evidence(
                quote=ev["quote"],
                speaker=_as_str(ev.get("speaker")) or "member",
                timestamp=_as_str(ev.get("timestamp")),
                language=normalize_language(_as_str(ev.get("language"))),
            ))

    confidence = max(0.0, min(1.0, _as_float(item.get("confidence"), 0.7)))
    return Finding(
        code=code.strip(),
        label=str(item.get("label") or code.strip()),
        domain=str(item.get("domain") or "sdoh"),
        severity=_pick(item.get("severity"), SEVERITIES, "moderate"),
        urgency=_pick(item.get("urgency"), URGENCIES, "medium"),
        status=_pick(item.get("status"), STATUSES, "current"),
        confidence=round(confidence, 2),
        evidence=evidence,
        rationale=str(item.get("rationale") or "Model-generated rationale."),
        estimated_value=round(
            _as_float(item.get("estimatedValue", item.get("estimated_value")), 100.0), 2,
        ),
    )


def parse_model_response(payload: Any) -> InferenceOutcome:
    """Validate a provider payload of the form {"issues": [...]}."""
    if not isinstance(payload, dict):
        return Malformed(f"expected a JSON object, got {type(payload).__name__}")
    issues = payload.get("issues")
    if not isinstance(issues, list):
        return Malformed("response has no 'issues' list")
    if not issues:
        return Malformed("model returned no issues")

    findings: list[Finding] = []
    for item in issues:
        finding = _reshape_issue(item)
        if finding is not None:
            # Duplicate codes are folded without the recency bonus
            findings = merge_findings(findings, [finding], recency=False)

    if not findings:
        return Malformed("no issue carried a code")
    return ModelFindings(findings)


async def request_model_findings(
    lines: list[TranscriptLine],
    llm: Optional[LLMProvider],
    timeout: Optional[float] = None,
) -> InferenceOutcome:
    """Make at most one provider call and classify the result."""
    if llm is None or not llm.available:
        return Unavailable("no inference provider configured")
    if not lines:
        return Unavailable("empty transcript")

    prompt = DETECTION_PROMPT.format(transcript=format_transcript(lines))
    timeout = settings.INFERENCE_TIMEOUT_SECONDS if timeout is None else timeout

    try:
        payload = await asyncio.wait_for(
            llm.generate_json(
                prompt,
                system_instruction=SYSTEM_INSTRUCTION,
                temperature=0.2,
                max_retries=1,
            ),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.warning(
            "Inference call timed out after %.1fs", timeout,
            extra={"model": llm.model_name, "error_type": "TimeoutError"},
        )
        return Unavailable("inference timed out")
    except ValueError as e:
        logger.warning(
            "Inference returned unusable JSON: %s", e,
            extra={"model": llm.model_name, "error_type": type(e).__name__},
        )
        return Malformed(str(e))
    except Exception as e:
        logger.warning(
            "Inference call failed: %s", e,
            extra={"model": llm.model_name, "error_type": type(e).__name__},
        )
        return Unavailable(str(e))

    try:
        return parse_model_response(payload)
    except Exception as e:
        logger.warning(
            "Inference response could not be reshaped: %s", e,
            extra={"model": llm.model_name, "error_type": type(e).__name__},
        )
        return Malformed(f"unusable issue list: {e}")


# ============================================================
# RULE-BASED PATH
# ============================================================

def detect_rule_based(
    lines: Iterable[TranscriptLine],
    status_policy: str = "incoming",
) -> list[Finding]:
    """Fold every line's matches into one finding per code."""
    findings: list[Finding] = []
    for line in lines:
        findings = merge_findings(
            findings, match_line(line), status_policy=status_policy,
        )
    return findings


def summarize_languages(lines: list[TranscriptLine]) -> list[str]:
    """Distinct normalized languages in encounter order; ["en"] if none."""
    languages: list[str] = []
    for line in lines:
        lang = line_language(line)
        if lang not in languages:
            languages.append(lang)
    return languages or ["en"]


def sort_findings(findings: list[Finding]) -> list[Finding]:
    """Confidence descending; ties keep insertion order."""
    return sorted(findings, key=lambda f: f.confidence, reverse=True)


# ============================================================
# DETECTION ENTRY POINT
# ============================================================

async def detect_conversation(
    transcript: Optional[Iterable[Any]],
    context: Optional[DetectionContext] = None,
    member_id: Optional[str] = None,
    llm: Optional[LLMProvider] = None,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
    status_policy: str = "incoming",
) -> dict:
    """
    Detect SDOH risks in a transcript and synthesize the derived views.

    Args:
        transcript: TranscriptLines or dicts; entries without text are dropped.
        context: Encounter context (screening counts, encounter id).
        member_id: Echoed into documentation and alerts.
        llm: Inference provider. None, or one that is not available,
            selects the rule-based path without a call.
        rng: Random source for illustrative prevalence trends.
        now: Clock override for timestamps and due dates.
        status_policy: Merge policy for non-current statuses.

    Returns:
        Detection result dict with engine, findings, languages,
        documentation, revenue, compliance and debug sections.
    """
    start = time.time()
    lines = coerce_transcript(transcript)
    context = context or DetectionContext()
    languages = summarize_languages(lines)

    called = llm is not None and llm.available and bool(lines)
    outcome = await request_model_findings(lines, llm)

    if isinstance(outcome, ModelFindings):
        engine = "model"
        findings = outcome.findings
        fallback_reason = None
    elif isinstance(outcome, (Unavailable, Malformed)):
        engine = "rule-based"
        findings = detect_rule_based(lines, status_policy=status_policy)
        fallback_reason = outcome.reason
    else:
        raise TypeError(f"Unhandled inference outcome: {outcome!r}")

    findings = sort_findings(findings)

    result = {
        "member_id": member_id,
        "engine": engine,
        "engine_version": settings.ENGINE_VERSION,
        "languages": languages,
        "findings": [f.to_dict() for f in findings],
        "documentation": build_documentation(
            findings, languages, member_id=member_id, context=context, now=now,
        ),
        "revenue": compute_revenue_metrics(findings, context=context, rng=rng),
        "compliance": compute_compliance(
            findings, context=context, member_id=member_id, now=now,
        ),
        "debug": {
            "prompt_tokens": (
                sum(len(line.text.split()) for line in lines)
                if engine == "model" else None
            ),
            "model": llm.model_name if called else None,
            "fallback_used": engine == "rule-based",
            "fallback_reason": fallback_reason,
        },
    }

    logger.info(
        f"Detection complete: engine={engine} findings={len(findings)}",
        extra={
            "engine": engine,
            "findings_count": len(findings),
            "member_id": member_id,
            "encounter_id": context.encounter_id,
            "line_count": len(lines),
            "languages": languages,
            "fallback_reason": fallback_reason,
            "duration_ms": int((time.time() - start) * 1000),
        },
    )
    return result


# ============================================================
# SCREENING-FORM SUGGESTIONS
# ============================================================

_POSITIVE_ANSWERS = ("often true", "sometimes true", "yes", "true")


def _hunger_vital_sign_positive(responses: dict) -> bool:
    answers = [str(responses.get(q) or "").strip().lower() for q in ("q1", "q2")]
    return any(a in _POSITIVE_ANSWERS for a in answers)


def suggest_zcodes(
    note: Optional[str] = None,
    responses: Optional[dict] = None,
) -> list[Finding]:
    """
    Suggest Z-codes for an intake form (free-text note + questionnaire).

    The note is attributed to the care team, each truthy response to the
    member (or the clinician, for clinician-keyed questions). Lines run
    through the rule-based pipeline; a positive Hunger Vital Sign screen
    (q1 or q2) adds Z59.4. No inference call is made.
    """
    responses = responses or {}
    lines: list[TranscriptLine] = []
    if note:
        lines.append(TranscriptLine(speaker="care_team", text=note))
    for key, value in responses.items():
        if not value:
            continue
        speaker = "clinician" if "clinician" in key else "member"
        lines.append(TranscriptLine(speaker=speaker, text=str(value)))

    findings = detect_rule_based(lines)

    if _hunger_vital_sign_positive(responses) and not any(
        f.code == HUNGER_VITAL_SIGN.code for f in findings
    ):
        hvs = HUNGER_VITAL_SIGN
        findings.append(Finding(
            code=hvs.code,
            label=hvs.label,
            domain=hvs.domain,
            severity=hvs.severity,
            urgency=hvs.urgency,
            status="current",
            confidence=hvs.base_confidence,
            evidence=[Evidence(quote="Hunger Vital Sign Q1/Q2 positive", speaker="member")],
            rationale="Hunger Vital Sign screen positive.",
            estimated_value=hvs.estimated_value,
        ))

    return sort_findings(findings)
