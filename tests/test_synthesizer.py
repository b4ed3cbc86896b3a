"""
Tests for the Synthesizer — documentation, revenue and compliance views.
"""

import random
from datetime import datetime, timedelta, timezone

import pytest

from sdohclear.models import DetectionContext, Evidence, Finding
from sdohclear.synthesizer import (
    CLOSING_RECOMMENDATION,
    NO_RISK_NARRATIVE,
    build_documentation,
    compute_compliance,
    compute_revenue_metrics,
    generate_narrative,
)

NOW = datetime(2026, 10, 17, 9, 30, tzinfo=timezone.utc)


def finding(code, label, urgency="high", severity="high", status="current",
            confidence=0.82, value=125, quotes=("quote",)):
    return Finding(
        code=code,
        label=label,
        domain="sdoh",
        severity=severity,
        urgency=urgency,
        status=status,
        confidence=confidence,
        evidence=[Evidence(quote=q, speaker="member", language="en") for q in quotes],
        rationale="",
        estimated_value=value,
    )


FOOD = finding("Z59.41", "Food insecurity", value=125, quotes=("a", "b"))
UTILITIES = finding("Z59.1", "Inadequate housing utilities", value=110, status="resolved")
TRANSPORT = finding("Z59.82", "Transportation insecurity", urgency="medium",
                    severity="moderate", value=85)


# ============================================================
# DOCUMENTATION
# ============================================================

class TestNarrative:

    def test_no_findings(self):
        assert generate_narrative("M-1", [], ["en"]) == NO_RISK_NARRATIVE.format(member="M-1")

    def test_member_placeholder(self):
        assert "for member did not surface" in generate_narrative(None, [], ["en"])

    def test_one_sentence_per_finding(self):
        text = generate_narrative("M-1", [FOOD, UTILITIES], ["en", "es"])
        assert text.startswith(
            "Multi-language transcript review (en, es) for M-1 identified 2 actionable SDOH concern(s)."
        )
        assert "Food insecurity (Z59.41) remains active." in text
        assert "Inadequate housing utilities (Z59.1) remains resolved." in text
        assert "Severity assessed as high, urgency high." in text
        assert text.endswith(CLOSING_RECOMMENDATION)


class TestDocumentation:

    def test_structure(self):
        doc = build_documentation(
            [FOOD, TRANSPORT], ["en"], member_id="M-1",
            context=DetectionContext(encounter_id="E-1"), now=NOW,
        )
        structured = doc["structured"]
        assert structured["encounter_id"] == "E-1"
        assert structured["languages"] == ["en"]
        assert [i["evidence_count"] for i in structured["issues"]] == [2, 1]
        assert [c["code"] for c in doc["recommended_codes"]] == ["Z59.41", "Z59.82"]
        assert set(doc["recommended_codes"][0]) == {"code", "label", "confidence", "severity", "urgency"}

    def test_evidence_flattened(self):
        doc = build_documentation([FOOD, TRANSPORT], ["en"], now=NOW)
        assert [e["quote"] for e in doc["evidence"]] == ["a", "b", "quote"]


# ============================================================
# REVENUE
# ============================================================

class TestRevenue:

    def test_with_findings_and_defaults(self):
        revenue = compute_revenue_metrics([FOOD, UTILITIES], rng=random.Random(1))
        assert revenue["potential_revenue"] == 235.0
        assert revenue["z_codes_generated"] == 2
        assert revenue["patients_screened"] == 16
        assert revenue["patients_required"] == 20
        assert revenue["risk_adjustment_impact"] == 430
        assert revenue["accuracy_estimate"] == 0.87
        assert revenue["latency_estimate_ms"] == 1800

    def test_without_findings(self):
        revenue = compute_revenue_metrics(
            [], DetectionContext(required_screenings=30, completed_screenings=12),
        )
        assert revenue["potential_revenue"] == 0
        assert revenue["patients_screened"] == 12
        assert revenue["patients_required"] == 30
        assert revenue["prevalence_trends"] == []
        assert revenue["accuracy_estimate"] == 0.91
        assert revenue["latency_estimate_ms"] == 900

    def test_prevalence_trends_ranges(self):
        trends = compute_revenue_metrics(
            [FOOD, UTILITIES, TRANSPORT], rng=random.Random(3),
        )["prevalence_trends"]
        assert [t["code"] for t in trends] == ["Z59.41", "Z59.1", "Z59.82"]
        for t in trends:
            assert 5.0 <= t["percent"] <= 20.0
            assert -2.0 <= t["delta"] <= 2.0

    def test_prevalence_trends_reproducible(self):
        a = compute_revenue_metrics([FOOD], rng=random.Random(11))
        b = compute_revenue_metrics([FOOD], rng=random.Random(11))
        assert a["prevalence_trends"] == b["prevalence_trends"]


# ============================================================
# COMPLIANCE
# ============================================================

class TestCompliance:

    def test_high_urgency_alerts(self):
        compliance = compute_compliance(
            [FOOD, UTILITIES, TRANSPORT], member_id="M-1", now=NOW,
        )
        assert compliance["needs_screening"] is False
        assert [a["severity"] for a in compliance["alerts"]] == ["critical", "critical"]
        assert compliance["alerts"][0]["message"] == (
            "Food insecurity requires follow-up within 48 hours to maintain CMS compliance."
        )
        assert compliance["alerts"][0]["member_id"] == "M-1"
        assert compliance["cms_report"][0]["overdue"] == 3
        assert compliance["next_due_date"] == (NOW + timedelta(days=30)).isoformat()

    def test_findings_without_high_urgency(self):
        compliance = compute_compliance([TRANSPORT], now=NOW)
        assert compliance["alerts"] == []
        assert compliance["cms_report"][0]["overdue"] == 1

    def test_needs_screening_warning(self):
        compliance = compute_compliance([], now=NOW)
        assert compliance["needs_screening"] is True
        assert compliance["alerts"] == [{
            "member_id": None,
            "message": "Member due for annual SDOH screening per CMS guidance.",
            "severity": "warning",
        }]
        assert compliance["next_due_date"] == (NOW + timedelta(days=7)).isoformat()

    def test_cms_report_bucket(self):
        compliance = compute_compliance(
            [], DetectionContext(required_screenings=20, completed_screenings=15), now=NOW,
        )
        assert compliance["completion_rate"] == 75.0
        assert compliance["cms_report"] == [{
            "month": "Oct 2026", "completed": 15, "pending": 5, "overdue": 1,
        }]

    @pytest.mark.parametrize("required,completed,rate", [
        (20, 20, 100.0),
        (20, 25, 100.0),
        (3, 1, 33.3),
        (0, 4, 100.0),
    ])
    def test_completion_rate(self, required, completed, rate):
        compliance = compute_compliance(
            [], DetectionContext(required_screenings=required, completed_screenings=completed),
            now=NOW,
        )
        assert compliance["completion_rate"] == rate

    def test_pending_never_negative(self):
        compliance = compute_compliance(
            [], DetectionContext(required_screenings=10, completed_screenings=14), now=NOW,
        )
        assert compliance["cms_report"][0]["pending"] == 0
