"""Typed, immutable records used by the bridge core."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Final, Mapping

from sf_jira_bridge.core.clock import Clock, default_clock
from sf_jira_bridge.core.errors import System

# Tokens are refreshed this many seconds before they actually expire.
REFRESH_BUFFER_SECONDS: Final[int] = 5 * 60

DEFAULT_PROJECT_KEY: Final[str] = "SH"
DEFAULT_ISSUE_TYPE: Final[str] = "Task"


def strip_trailing_slash(url: str) -> str:
    """Remove exactly one trailing ``/`` from *url*."""
    return url[:-1] if url.endswith("/") else url


@dataclass(frozen=True, slots=True)
class Configuration:
    """The single active connection record."""

    instance_url: str
    client_id: str
    client_secret: str
    issue_tracker_project_key: str = DEFAULT_PROJECT_KEY
    issue_tracker_base_url: str = ""

    @property
    def is_complete(self) -> bool:
        """*True* when every credential needed for Salesforce calls is set."""
        return bool(self.instance_url and self.client_id and self.client_secret)

    def missing_fields(self) -> list[str]:
        return [
            name
            for name in ("instance_url", "client_id", "client_secret")
            if not getattr(self, name)
        ]

    def issue_url(self, issue_key: str) -> str:
        return f"{self.issue_tracker_base_url}/browse/{issue_key}"


@dataclass(frozen=True, slots=True)
class CachedToken:
    """Snapshot of a client-credentials access token."""

    access_token: str
    expires_at: int
    obtained_at: int = 0

    def is_usable(self, *, clock: Clock = default_clock) -> bool:
        """Return *True* while the token is outside the refresh buffer."""
        return clock() < self.expires_at - REFRESH_BUFFER_SECONDS

    @property
    def ttl(self) -> int:
        """Seconds between *obtained_at* and *expires_at*."""
        return self.expires_at - self.obtained_at


class SyncStatus(str, Enum):
    SYNCHRONIZED = "Synchronized"
    FAILED = "Failed"


@dataclass(frozen=True, slots=True)
class SyncEvent:
    """One inbound change, alive only for the duration of a sync attempt."""

    source_system: System
    external_key: str
    fields: Mapping[str, Any] = field(default_factory=dict)
    occurred_at: float | None = None


@dataclass(frozen=True, slots=True)
class SyncOutcome:
    """Terminal result of a sync attempt, rendered onto the CRM record."""

    status: SyncStatus
    last_attempt_at: float
    last_error: str | None = None
