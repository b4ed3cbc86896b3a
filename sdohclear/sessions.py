"""
Call Session Store

In-memory, TTL-bounded transcript buffers keyed by call id.
Live calls deliver transcript fragments over many webhook requests;
the store accumulates them until the caller asks for a detection.

The store belongs to the caller (the API layer). The engine never
reads it: callers pass a complete transcript into detect_conversation.

Usage:
    from sdohclear.sessions import CallSessionStore
    store = CallSessionStore()
    await store.append("CA123", [{"speaker": "caller", "text": "..."}])
    lines = await store.get("CA123")
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Iterable, Optional

from sdohclear.models import TranscriptLine
from sdohclear.transcript import merge_transcripts


class CallSessionStore:
    """Async-safe transcript buffers with TTL eviction."""

    def __init__(self, ttl_seconds: int = 3600, max_calls: int = 500):
        self._sessions: dict[str, tuple[float, list[TranscriptLine]]] = {}
        self._ttl = ttl_seconds
        self._max_calls = max_calls
        self._lock = asyncio.Lock()
        self._evictions = 0

    def _expired(self, touched_at: float) -> bool:
        return time.monotonic() - touched_at > self._ttl

    async def append(self, call_id: str, messages: Iterable[Any]) -> list[TranscriptLine]:
        """Merge messages into the call's buffer and return the full transcript."""
        async with self._lock:
            entry = self._sessions.get(call_id)
            existing: list[TranscriptLine] = []
            if entry is not None and not self._expired(entry[0]):
                existing = entry[1]

            # Evict the least recently touched call if at capacity
            if entry is None and len(self._sessions) >= self._max_calls:
                oldest = min(self._sessions, key=lambda k: self._sessions[k][0])
                del self._sessions[oldest]
                self._evictions += 1

            merged = merge_transcripts(existing, messages)
            self._sessions[call_id] = (time.monotonic(), merged)
            return list(merged)

    async def get(self, call_id: str) -> Optional[list[TranscriptLine]]:
        """Return the buffered transcript, or None if unknown or expired."""
        async with self._lock:
            entry = self._sessions.get(call_id)
            if entry is None:
                return None
            if self._expired(entry[0]):
                del self._sessions[call_id]
                return None
            return list(entry[1])

    async def close(self, call_id: str) -> Optional[list[TranscriptLine]]:
        """Drop the call's buffer, returning whatever it held."""
        async with self._lock:
            entry = self._sessions.pop(call_id, None)
            return list(entry[1]) if entry is not None else None

    @property
    def stats(self) -> dict:
        return {
            "calls": len(self._sessions),
            "evictions": self._evictions,
        }
