"""
Transcript normalization.

Turns loosely-shaped transcript payloads into TranscriptLine objects
before they reach the engine. Entries without usable text are dropped
silently; they are not an error for the caller.
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Any, Iterable, Optional

from sdohclear.models import TranscriptLine

_MEMBER_ROLES = {
    "customer", "client", "member", "patient", "user",
    "caller", "callee", "participant",
}
_NAVIGATOR_ROLES = {
    "agent", "navigator", "coach", "caremanager", "care_manager",
    "staff", "assistant", "operator",
}
_SYSTEM_ROLES = {"system", "twilio"}
_BOT_ROLES = {"bot", "ai", "automation"}


def normalize_speaker(value: Optional[str], fallback: str = "participant") -> str:
    """Fold the many speaker labels telephony and SMS vendors use into roles."""
    if not value:
        return fallback
    key = value.lower()
    if key in _MEMBER_ROLES:
        return "member"
    if key in _NAVIGATOR_ROLES:
        return "navigator"
    if key in _SYSTEM_ROLES:
        return "system"
    if key in _BOT_ROLES:
        return "assistant"
    return re.sub(r"[^a-z0-9_-]+", "-", key)


def _coerce_one(item: Any) -> Optional[TranscriptLine]:
    if isinstance(item, TranscriptLine):
        return item if isinstance(item.text, str) and item.text.strip() else None
    if not isinstance(item, dict):
        return None

    text = item.get("text")
    if not isinstance(text, str) or not text.strip():
        return None

    speaker = item.get("speaker")
    language = item.get("language")
    timestamp = item.get("timestamp")
    return TranscriptLine(
        speaker=speaker if isinstance(speaker, str) and speaker else "participant",
        text=text,
        language=language if isinstance(language, str) else None,
        timestamp=timestamp if isinstance(timestamp, str) else None,
    )


def coerce_transcript(items: Optional[Iterable[Any]]) -> list[TranscriptLine]:
    """Accept TranscriptLines or dicts; keep only entries with non-blank text."""
    if not items:
        return []
    lines = []
    for item in items:
        line = _coerce_one(item)
        if line is not None:
            lines.append(line)
    return lines


def _line_key(line: TranscriptLine) -> str:
    return f"{line.speaker}::{line.text}::{line.timestamp or ''}"


def merge_transcripts(
    existing: list[TranscriptLine],
    incoming: Iterable[Any],
) -> list[TranscriptLine]:
    """
    Append new lines to a buffered transcript, skipping exact repeats.

    Telephony webhooks often redeliver segments; a line is a repeat when
    speaker, text and timestamp all match. Incoming speakers are normalized.
    Untimed lines stay untimed so a redelivered untimed segment keys the
    same as the original.
    """
    seen = {_line_key(line) for line in existing}
    ordered = list(existing)

    for line in coerce_transcript(incoming):
        normalized = replace(line, speaker=normalize_speaker(line.speaker))
        key = _line_key(normalized)
        if key in seen:
            continue
        seen.add(key)
        ordered.append(normalized)

    return ordered
