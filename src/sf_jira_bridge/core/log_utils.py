"""Structured logging helpers for sync components.

This module purposefully restricts **which** contextual attributes are attached
to log records in order to avoid accidentally leaking secrets.  All helpers
ONLY inject the following *non-sensitive* fields:

- ``issue_key``      – Jira issue key being synchronised
- ``record_id``      – Salesforce record id (first 8 chars kept)
- ``flow``           – ``forward`` or ``reverse``
- ``correlation_id`` – Per-request id set by the HTTP layer

Usage
-----
>>> from sf_jira_bridge.core.log_utils import get_sync_logger
>>> log = get_sync_logger(issue_key="SH-12", flow="reverse")
>>> log.info("Updated Salesforce")
2024-05-01 12:00:00,000 INFO sf-jira-bridge.sync Updated Salesforce issue_key=SH-12 flow=reverse

The adapter is a thin wrapper around :class:`logging.LoggerAdapter`; the
trailing ``key=value`` pairs are rendered by
:class:`sf_jira_bridge.utils.logging.ContextFormatter`, which
:func:`~sf_jira_bridge.utils.logging.setup_logging` installs.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, MutableMapping


class _SyncLoggerAdapter(logging.LoggerAdapter):
    """Inject whitelisted sync context into log records."""

    extra_keys = ("issue_key", "record_id", "flow", "correlation_id")

    def __init__(self, logger: logging.Logger, extra: Mapping[str, Any] | None = None):
        extra_clean: MutableMapping[str, Any] = {}
        for k in self.extra_keys:
            if not extra or extra.get(k) is None:
                continue
            if k == "record_id":
                extra_clean[k] = str(extra[k])[:8]
            else:
                extra_clean[k] = extra[k]
        super().__init__(logger, extra_clean)

    def process(self, msg: str, kwargs: MutableMapping[str, Any]):
        if "extra" not in kwargs or kwargs["extra"] is None:
            kwargs["extra"] = {}
        # merge but do not overwrite call-site provided extras
        for k, v in self.extra.items():
            kwargs["extra"].setdefault(k, v)
        return msg, kwargs


def get_sync_logger(
    *,
    base_logger_name: str = "sf-jira-bridge.sync",
    issue_key: str | None = None,
    record_id: str | None = None,
    flow: str | None = None,
    correlation_id: str | None = None,
) -> logging.LoggerAdapter:
    """Return a LoggerAdapter pre-filled with sync context."""
    logger = logging.getLogger(base_logger_name)
    return _SyncLoggerAdapter(
        logger,
        {
            "issue_key": issue_key,
            "record_id": record_id,
            "flow": flow,
            "correlation_id": correlation_id,
        },
    )
