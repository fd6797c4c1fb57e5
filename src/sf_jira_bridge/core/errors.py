"""Exception types raised by the bridge core.

Only lightweight, **data-carrying** exceptions live here so that the HTTP
layer can transform them into structured responses.  ``to_payload`` never
includes secrets (tokens, client secrets).
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class System(str, Enum):
    """Remote systems the bridge talks to."""

    CRM = "CRM"
    ISSUE_TRACKER = "IssueTracker"


class BridgeError(RuntimeError):
    """Base class for all bridge failures."""

    code: str = "bridge_error"

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-serialisable payload **without secrets**."""
        return {"error": self.code, "message": str(self)}


class ConfigurationError(BridgeError):
    """Raised when the bridge is not (fully) configured. Never retried."""

    code = "configuration_error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "Bridge configuration missing or incomplete.")


class ValidationError(ConfigurationError):
    """Raised when caller-supplied input is invalid."""

    code = "validation_error"


class AuthError(BridgeError):
    """Raised when the OAuth token endpoint rejects or garbles a request."""

    code = "auth_error"

    def __init__(
        self,
        *,
        status: int | None,
        body: str = "",
        message: str | None = None,
    ) -> None:
        super().__init__(
            message or f"OAuth token request failed: {status} - {body[:200]}"
        )
        self.status: int | None = status
        self.body: str = body

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["status"] = self.status
        return payload


class UpstreamError(BridgeError):
    """Raised when Jira or Salesforce rejects a call.

    ``status`` is ``None`` when the request never produced a response
    (connection error, timeout).
    """

    code = "upstream_error"

    def __init__(
        self,
        *,
        system: System,
        status: int | None,
        body: str = "",
        message: str | None = None,
    ) -> None:
        super().__init__(message or f"{system.value} API error: {status}")
        self.system: System = system
        self.status: int | None = status
        self.body: str = body

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload.update({"system": self.system.value, "status": self.status})
        return payload


class LinkageError(BridgeError):
    """Raised when an issue was created but the CRM link could not be written.

    The issue is **not** rolled back; ``issue_key`` lets operators repair the
    link by hand.
    """

    code = "linkage_error"

    def __init__(self, *, issue_key: str, record_id: str, message: str | None = None) -> None:
        super().__init__(
            message
            or f"Issue {issue_key} created but linking Salesforce record {record_id} failed"
        )
        self.issue_key: str = issue_key
        self.record_id: str = record_id

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload.update({"issue_key": self.issue_key, "record_id": self.record_id})
        return payload


class DecodeError(BridgeError):
    """Raised when a request or response body does not match its schema."""

    code = "decode_error"

    def __init__(self, *, source: str, reason: str) -> None:
        super().__init__(f"Malformed {source}: {reason}")
        self.source: str = source
        self.reason: str = reason


class StoreLockError(BridgeError):
    """Raised when a store write cannot take its file lock in time.

    Retried like an upstream failure; a stale lock is reclaimed by age, so a
    later attempt can succeed.
    """

    code = "store_locked"

    def __init__(self, *, key: str) -> None:
        super().__init__(f"Store key '{key}' is locked by another writer")
        self.key: str = key
