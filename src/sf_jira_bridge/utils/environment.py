"""Utility functions related to environment checking."""

import logging
import os
from dataclasses import dataclass
from typing import Final, Literal, Tuple

logger = logging.getLogger("sf-jira-bridge.utils.environment")

_TRUTHY: Final[Tuple[str, ...]] = ("true", "1", "yes", "y", "on")

DEFAULT_CONNECT_TIMEOUT: Final[float] = 5.0
DEFAULT_READ_TIMEOUT: Final[float] = 20.0


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUTHY


@dataclass(frozen=True)
class JiraAuth:
    """Server-side credentials used for outbound Jira calls."""

    mode: Literal["pat", "basic"]
    username: str | None = None
    secret: str = ""


def get_jira_auth() -> JiraAuth | None:
    """
    Resolve Jira credentials from environment variables.

    Precedence (highest → lowest):
      1. ``JIRA_PERSONAL_TOKEN`` – Server/Data Center bearer token
      2. ``JIRA_USERNAME`` + ``JIRA_API_TOKEN`` – Cloud basic auth
    """
    personal_token = os.getenv("JIRA_PERSONAL_TOKEN")
    if personal_token:
        logger.info("Using Jira Server/Data Center authentication (PAT)")
        return JiraAuth(mode="pat", secret=personal_token)

    username = os.getenv("JIRA_USERNAME")
    api_token = os.getenv("JIRA_API_TOKEN")
    if username and api_token:
        logger.info("Using Jira Cloud Basic Authentication (API Token)")
        return JiraAuth(mode="basic", username=username, secret=api_token)

    logger.info("Jira is not configured or required environment variables are missing.")
    return None


def get_default_jira_url() -> str:
    """Return ``JIRA_URL`` without its trailing slash (empty when unset)."""
    url = (os.getenv("JIRA_URL") or "").strip()
    return url[:-1] if url.endswith("/") else url


def get_http_timeout() -> tuple[float, float]:
    """Return the ``(connect, read)`` timeout pair for outbound calls."""
    raw = os.getenv("BRIDGE_HTTP_TIMEOUT")
    if not raw:
        return DEFAULT_CONNECT_TIMEOUT, DEFAULT_READ_TIMEOUT
    try:
        return DEFAULT_CONNECT_TIMEOUT, float(raw)
    except ValueError:
        logger.warning("Ignoring invalid BRIDGE_HTTP_TIMEOUT=%r", raw)
        return DEFAULT_CONNECT_TIMEOUT, DEFAULT_READ_TIMEOUT


def is_debug_mode() -> bool:
    """Return True if ``BRIDGE_DEBUG`` is set to a truthy value."""
    return _truthy(os.getenv("BRIDGE_DEBUG"))


def get_admin_token() -> str | None:
    """Return ``BRIDGE_ADMIN_TOKEN``, the bearer token for ``/config`` and ``/salesforce``."""
    return os.getenv("BRIDGE_ADMIN_TOKEN") or None


def get_webhook_secret() -> str | None:
    """Return ``BRIDGE_WEBHOOK_SECRET``, the HMAC key Jira signs webhooks with."""
    return os.getenv("BRIDGE_WEBHOOK_SECRET") or None
