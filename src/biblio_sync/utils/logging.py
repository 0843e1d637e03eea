"""Structured logging configuration.

Every module logger is a child of the ``biblio_sync`` logger, which owns
the single stderr handler. Records are rendered as JSON (one object per
line, ``extra=`` fields included) or as plain text, per ``log_format``.
"""

import logging
import json
import sys
from typing import Any, Dict, Optional

from ..config.settings import settings

PACKAGE_LOGGER = "biblio_sync"

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Attributes present on every LogRecord; anything else came in through ``extra=``
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Format logs as JSON, carrying ``extra=`` fields as top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


_handler: Optional[logging.Handler] = None


def _package_logger() -> logging.Logger:
    global _handler
    root = logging.getLogger(PACKAGE_LOGGER)
    # Other handlers (e.g. a test harness's capture handler) may already be attached
    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        if settings.log_format == "json":
            _handler.setFormatter(JSONFormatter())
        else:
            _handler.setFormatter(logging.Formatter(TEXT_FORMAT))
        root.addHandler(_handler)
        root.setLevel(_level(settings.log_level))
        root.propagate = False
    return root


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for ``name``; the package handler is set up on first use."""
    _package_logger()
    return logging.getLogger(name)


def set_log_level(level: str, fmt: Optional[str] = None) -> None:
    """Change the level (and optionally the format) of every package logger."""
    root = _package_logger()
    root.setLevel(_level(level))
    if fmt is not None and _handler is not None:
        _handler.setFormatter(JSONFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT))
