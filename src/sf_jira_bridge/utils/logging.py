"""Logging setup and secret-masking helpers."""

from __future__ import annotations

import logging
import os
import sys
from typing import TextIO

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Attributes attached by get_sync_logger and the correlation middleware.
CONTEXT_FIELDS: tuple[str, ...] = ("issue_key", "record_id", "flow", "correlation_id")


class ContextFormatter(logging.Formatter):
    """Append ``key=value`` for each context field present on the record."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = " ".join(
            f"{field}={getattr(record, field)}"
            for field in CONTEXT_FIELDS
            if getattr(record, field, None) is not None
        )
        return f"{line} {context}" if context else line


def setup_logging(level: int | str | None = None, stream: TextIO = sys.stderr) -> logging.Logger:
    """Configure the ``sf-jira-bridge`` logger hierarchy.

    Args:
        level: Explicit level; falls back to ``BRIDGE_LOG_LEVEL`` then ``INFO``.
        stream: Output stream for the handler.

    Returns:
        The package root logger.
    """
    if level is None:
        level = os.getenv("BRIDGE_LOG_LEVEL", "INFO").upper()
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    handler = logging.StreamHandler(stream)
    handler.setFormatter(ContextFormatter(_FORMAT))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    logger = logging.getLogger("sf-jira-bridge")
    logger.setLevel(level)
    return logger


def mask_sensitive(value: str | None, keep_chars: int = 4) -> str:
    """Mask all but the first *keep_chars* characters of a secret."""
    if not value:
        return ""
    if len(value) <= keep_chars * 2:
        return "*" * len(value)
    return value[:keep_chars] + "*" * (len(value) - keep_chars)
