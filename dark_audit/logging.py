"""
Logging setup for dark-audit.

Everything logs under the ``dark_audit`` namespace via
``logging.getLogger(__name__)``; the CLI calls setup_logging() once to
attach a single stderr handler in text or JSON-lines form.

Usage:
    from dark_audit.logging import setup_logging
    setup_logging("INFO", "json")
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from .config import settings


class JSONFormatter(logging.Formatter):
    """Formats log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable format for terminals."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )


def setup_logging(level: str | None = None, fmt: str | None = None) -> logging.Logger:
    """Configure the package logger. Call once at startup."""
    root = logging.getLogger("dark_audit")
    level_name = (level or settings.LOG_LEVEL).upper()
    root.setLevel(getattr(logging, level_name, logging.WARNING))

    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    if (fmt or settings.LOG_FORMAT) == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter())
    root.addHandler(handler)
    root.propagate = False

    return root
