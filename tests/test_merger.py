"""
Tests for the Merger — cross-line evidence folding and conflict resolution.
"""

import pytest

from sdohclear.detector import sort_findings
from sdohclear.merger import merge_findings, recency_bonus
from sdohclear.models import Evidence, Finding


def make_finding(
    code="Z59.41",
    confidence=0.80,
    severity="high",
    urgency="high",
    status="current",
    quotes=("We went to the food bank",),
    rationale="line rationale",
    estimated_value=125,
):
    return Finding(
        code=code,
        label="Food insecurity",
        domain="nutrition",
        severity=severity,
        urgency=urgency,
        status=status,
        confidence=confidence,
        evidence=[Evidence(quote=q, speaker="member") for q in quotes],
        rationale=rationale,
        estimated_value=estimated_value,
    )


def only(findings, code):
    matches = [f for f in findings if f.code == code]
    assert len(matches) == 1
    return matches[0]


class TestIdempotentMerge:
    """Merging a finding the accumulator already holds never loses ground."""

    def test_confidence_does_not_drop(self):
        f = make_finding()
        first = merge_findings([], [f])
        second = merge_findings(first, [f])
        assert only(second, "Z59.41").confidence >= only(first, "Z59.41").confidence

    def test_code_set_unchanged(self):
        f = make_finding()
        first = merge_findings([], [f])
        second = merge_findings(first, [f])
        assert {x.code for x in second} == {x.code for x in first}


class TestEscalation:

    @pytest.mark.parametrize("existing,incoming", [
        ("moderate", "high"),
        ("high", "low"),
        ("high", "high"),
    ])
    def test_severity_escalates_to_high(self, existing, incoming):
        merged = merge_findings(
            [make_finding(severity=existing)], [make_finding(severity=incoming)],
        )
        assert only(merged, "Z59.41").severity == "high"

    def test_severity_keeps_existing_when_neither_high(self):
        merged = merge_findings(
            [make_finding(severity="low")], [make_finding(severity="moderate")],
        )
        assert only(merged, "Z59.41").severity == "low"

    def test_urgency_escalates_to_high(self):
        merged = merge_findings(
            [make_finding(urgency="medium")], [make_finding(urgency="high")],
        )
        assert only(merged, "Z59.41").urgency == "high"

    def test_urgency_keeps_existing_when_neither_high(self):
        merged = merge_findings(
            [make_finding(urgency="medium")], [make_finding(urgency="low")],
        )
        assert only(merged, "Z59.41").urgency == "medium"


class TestStatusMerge:

    @pytest.mark.parametrize("existing,incoming", [
        ("current", "resolved"),
        ("historical", "current"),
        ("current", "current"),
    ])
    def test_current_dominates(self, existing, incoming):
        merged = merge_findings(
            [make_finding(status=existing)], [make_finding(status=incoming)],
        )
        assert only(merged, "Z59.41").status == "current"

    def test_incoming_wins_when_neither_current(self):
        merged = merge_findings(
            [make_finding(status="resolved")], [make_finding(status="historical")],
        )
        assert only(merged, "Z59.41").status == "historical"

    def test_precedence_policy_prefers_resolved(self):
        merged = merge_findings(
            [make_finding(status="resolved")],
            [make_finding(status="historical")],
            status_policy="precedence",
        )
        assert only(merged, "Z59.41").status == "resolved"

    def test_unknown_policy_rejected(self):
        with pytest.raises(ValueError):
            merge_findings([], [make_finding()], status_policy="latest")


class TestEvidenceAndFields:

    def test_evidence_concatenated_in_order(self):
        merged = merge_findings(
            [make_finding(quotes=("first",))],
            [make_finding(quotes=("second", "third"))],
        )
        quotes = [e.quote for e in only(merged, "Z59.41").evidence]
        assert quotes == ["first", "second", "third"]

    def test_evidence_not_deduplicated(self):
        merged = merge_findings(
            [make_finding(quotes=("same",))], [make_finding(quotes=("same",))],
        )
        assert len(only(merged, "Z59.41").evidence) == 2

    def test_incoming_rationale_wins(self):
        merged = merge_findings(
            [make_finding(rationale="old")], [make_finding(rationale="new")],
        )
        assert only(merged, "Z59.41").rationale == "new"

    def test_max_estimated_value(self):
        merged = merge_findings(
            [make_finding(estimated_value=140)], [make_finding(estimated_value=110)],
        )
        assert only(merged, "Z59.41").estimated_value == 140

    def test_new_code_inserted(self):
        merged = merge_findings(
            [make_finding(code="Z59.41")], [make_finding(code="Z59.1")],
        )
        assert [f.code for f in merged] == ["Z59.41", "Z59.1"]

    def test_inputs_not_mutated(self):
        existing = [make_finding(confidence=0.70)]
        incoming = [make_finding(confidence=0.75, quotes=("other",))]
        merge_findings(existing, incoming)
        assert existing[0].confidence == 0.70
        assert len(existing[0].evidence) == 1
        assert len(incoming[0].evidence) == 1


class TestRecencyBonus:

    def test_bonus_scale(self):
        assert recency_bonus(1) == 0.02
        assert recency_bonus(3) == pytest.approx(0.06)
        assert recency_bonus(5) == pytest.approx(0.10)
        assert recency_bonus(12) == 0.10

    def test_single_fold(self):
        merged = merge_findings([], [make_finding(confidence=0.50)])
        assert only(merged, "Z59.41").confidence == 0.52

    def test_bonus_capped_per_fold(self):
        f = make_finding(confidence=0.50, quotes=tuple(f"q{i}" for i in range(8)))
        merged = merge_findings([], [f])
        assert only(merged, "Z59.41").confidence == 0.60

    def test_bonus_applies_to_untouched_codes(self):
        acc = merge_findings([], [make_finding(code="Z59.41", confidence=0.50)])
        acc = merge_findings(acc, [make_finding(code="Z59.1", confidence=0.70)])
        assert only(acc, "Z59.41").confidence == 0.54
        assert only(acc, "Z59.1").confidence == 0.72

    def test_merged_confidence_capped(self):
        acc = []
        for _ in range(10):
            acc = merge_findings(acc, [make_finding(confidence=0.98)])
        assert only(acc, "Z59.41").confidence == 0.99

    def test_bonus_can_be_disabled(self):
        merged = merge_findings(
            [make_finding(confidence=0.60)],
            [make_finding(confidence=0.65)],
            recency=False,
        )
        assert only(merged, "Z59.41").confidence == 0.65


class TestSorting:

    def test_confidence_descending_with_stable_ties(self):
        findings = [
            make_finding(code="A", confidence=0.70),
            make_finding(code="B", confidence=0.90),
            make_finding(code="C", confidence=0.70),
        ]
        assert [f.code for f in sort_findings(findings)] == ["B", "A", "C"]
