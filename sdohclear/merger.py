"""
Merger — folds per-line findings into one finding per Z-code.

Called once per transcript line with the running accumulator and that
line's Matcher output. Conflicts are resolved as follows:

  confidence       max of both sides, then recency bonus (see below)
  severity/urgency escalate to "high" if either side is high, else keep existing
  status           "current" if either side is current, else per status_policy
  evidence         existing ++ incoming, in encounter order, never deduplicated
  rationale        incoming side
  estimated_value  max of both sides

After every fold, each code in the accumulator receives a recency bonus of
min(len(evidence) * 0.02, 0.10), capped at 0.99.
"""

from __future__ import annotations

from dataclasses import replace

from sdohclear.models import Finding

RECENCY_STEP = 0.02
RECENCY_CAP = 0.10
MERGED_MAX_CONFIDENCE = 0.99

STATUS_POLICIES = ("incoming", "precedence")
_STATUS_PRECEDENCE = {"current": 3, "resolved": 2, "historical": 1}


def _escalate(existing: str, incoming: str) -> str:
    return "high" if "high" in (existing, incoming) else existing


def _merge_status(existing: str, incoming: str, policy: str) -> str:
    if "current" in (existing, incoming):
        return "current"
    if policy == "precedence":
        return max(
            (existing, incoming), key=lambda s: _STATUS_PRECEDENCE.get(s, 0),
        )
    return incoming


def recency_bonus(evidence_count: int) -> float:
    return min(evidence_count * RECENCY_STEP, RECENCY_CAP)


def merge_pair(existing: Finding, incoming: Finding, status_policy: str = "incoming") -> Finding:
    """Combine two findings that share a code (no recency bonus)."""
    return replace(
        existing,
        confidence=max(existing.confidence, incoming.confidence),
        severity=_escalate(existing.severity, incoming.severity),
        urgency=_escalate(existing.urgency, incoming.urgency),
        status=_merge_status(existing.status, incoming.status, status_policy),
        evidence=[*existing.evidence, *incoming.evidence],
        rationale=incoming.rationale,
        estimated_value=max(existing.estimated_value, incoming.estimated_value),
    )


def merge_findings(
    existing: list[Finding],
    incoming: list[Finding],
    recency: bool = True,
    status_policy: str = "incoming",
) -> list[Finding]:
    """
    Fold `incoming` into `existing`, keyed by code.

    Returns a new list; neither input is mutated. Insertion order of codes
    is preserved so that later stable sorting keeps ties in encounter order.

    Args:
        existing: The accumulator from previous folds.
        incoming: Findings raised by the current line.
        recency: Apply the recency bonus to every code after folding.
            The model path folds duplicates with this disabled.
        status_policy: "incoming" (most recent non-current status wins) or
            "precedence" (resolved outranks historical).
    """
    if status_policy not in STATUS_POLICIES:
        raise ValueError(f"Unknown status policy: {status_policy}")

    by_code: dict[str, Finding] = {f.code: replace(f) for f in existing}

    for finding in incoming:
        current = by_code.get(finding.code)
        if current is None:
            by_code[finding.code] = replace(finding)
        else:
            by_code[finding.code] = merge_pair(current, finding, status_policy)

    merged = list(by_code.values())
    if not recency:
        return merged

    return [
        replace(
            f,
            confidence=round(
                min(f.confidence + recency_bonus(len(f.evidence)), MERGED_MAX_CONFIDENCE),
                2,
            ),
        )
        for f in merged
    ]
