"""
Structured Logging — JSON lines for production, key=value text for dev.

Every entry carries timestamp, level, logger and message plus the
whitelisted detection context fields below. Member identifiers are PHI
adjacent and are masked before they are written.

Usage:
    from sdohclear.logging import get_logger
    logger = get_logger("detector")
    logger.info("Detection complete", extra={"engine": "rule-based", "findings_count": 2})
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Optional


LOG_LEVEL = os.getenv("SDOH_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("SDOH_LOG_FORMAT", "json")  # "json" or "text"

_EXTRA_FIELDS = (
    "engine", "findings_count", "member_id", "encounter_id", "call_id",
    "fallback_reason", "line_count", "languages", "model", "error",
    "error_type", "duration_ms", "status_code", "method", "path",
)
_MASKED_FIELDS = {"member_id"}


def mask_identifier(value: Any) -> Any:
    """Keep the last 4 characters of an identifier: 'M-100234' -> '****0234'."""
    if not isinstance(value, str) or not value:
        return value
    if len(value) <= 4:
        return "*" * len(value)
    return "*" * (len(value) - 4) + value[-4:]


def _context_fields(record: logging.LogRecord) -> dict:
    fields = {}
    for key in _EXTRA_FIELDS:
        val = getattr(record, key, None)
        if val is None:
            continue
        fields[key] = mask_identifier(val) if key in _MASKED_FIELDS else val
    return fields


class JSONFormatter(logging.Formatter):
    """Formats log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context_fields(record),
        }
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable format for development; context fields trail as key=value."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = _context_fields(record)
        if fields:
            line += " | " + " ".join(f"{k}={v}" for k, v in fields.items())
        return line


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> logging.Logger:
    """Configure the sdohclear logger. Safe to call more than once."""
    root = logging.getLogger("sdohclear")
    level = (level or LOG_LEVEL).upper()
    root.setLevel(getattr(logging, level, logging.INFO))

    root.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if (fmt or LOG_FORMAT) == "json" else TextFormatter())
    root.addHandler(handler)

    # Third-party chatter
    for noisy in ("uvicorn.access", "httpcore", "httpx", "google_genai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return root


def get_logger(name: str) -> logging.Logger:
    """Get a named logger under the sdohclear namespace."""
    return logging.getLogger(f"sdohclear.{name}")
