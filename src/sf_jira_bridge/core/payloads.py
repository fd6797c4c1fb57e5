"""Typed request/response records for every endpoint the bridge touches.

Each upstream response is decoded with a strict ``from_json`` classmethod so a
malformed body surfaces as :class:`~sf_jira_bridge.core.errors.DecodeError`
instead of a ``None`` somewhere deep inside the sync logic.  Outbound bodies
are built with ``to_json`` and keep the upstream (Jira / Salesforce) field
names.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final, Mapping

from sf_jira_bridge.core.clock import isoformat_utc
from sf_jira_bridge.core.errors import DecodeError, System, ValidationError
from sf_jira_bridge.core.models import (
    DEFAULT_ISSUE_TYPE,
    SyncEvent,
    SyncOutcome,
    SyncStatus,
)

# Salesforce custom object and fields
SYNC_OBJECT: Final[str] = "Jira_Sync__c"
EXTERNAL_KEY_FIELD: Final[str] = "External_Issue_Key__c"
RECORD_ID_FIELD: Final[str] = "Salesforce_Record_Id__c"
ISSUE_URL_FIELD: Final[str] = "Issue_URL__c"
STATUS_FIELD: Final[str] = "Status__c"
ASSIGNEE_FIELD: Final[str] = "Assignee__c"
SYNC_STATUS_FIELD: Final[str] = "Sync_Status__c"
LAST_SYNC_DATE_FIELD: Final[str] = "Last_Sync_Date__c"
LAST_SYNC_ERROR_FIELD: Final[str] = "Last_Sync_Error__c"


def _require_mapping(data: Any, source: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise DecodeError(source=source, reason=f"expected object, got {type(data).__name__}")
    return data


def _require_str(data: Mapping[str, Any], key: str, source: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise DecodeError(source=source, reason=f"missing or empty '{key}'")
    return value


def _optional_str(data: Mapping[str, Any], key: str, source: str) -> str | None:
    value = data.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise DecodeError(source=source, reason=f"'{key}' must be a string")
    return value


# --------------------------------------------------------------------------- #
# OAuth token endpoint                                                        #
# --------------------------------------------------------------------------- #
@dataclass(frozen=True, slots=True)
class TokenResponse:
    """Body of a successful ``/services/oauth2/token`` call."""

    access_token: str
    expires_in: int

    @classmethod
    def from_json(cls, data: Any) -> TokenResponse:
        source = "token response"
        body = _require_mapping(data, source)
        access_token = _require_str(body, "access_token", source)
        raw = body.get("expires_in")
        if isinstance(raw, str) and raw.isdigit():
            raw = int(raw)
        if isinstance(raw, bool) or not isinstance(raw, int) or raw <= 0:
            raise DecodeError(source=source, reason="missing or invalid 'expires_in'")
        return cls(access_token=access_token, expires_in=raw)


# --------------------------------------------------------------------------- #
# Forward flow: CRM request -> Jira issue                                     #
# --------------------------------------------------------------------------- #
@dataclass(frozen=True, slots=True)
class CreateIssueRequest:
    """A CRM-originated request to open a linked Jira issue."""

    summary: str
    description: str
    issue_type: str = DEFAULT_ISSUE_TYPE
    record_id: str | None = None

    def __post_init__(self) -> None:
        if not self.summary or not self.summary.strip():
            raise ValidationError("summary is required")
        if not self.description or not self.description.strip():
            raise ValidationError("description is required")

    @classmethod
    def from_json(cls, data: Any) -> CreateIssueRequest:
        source = "create issue request"
        body = _require_mapping(data, source)
        summary = _optional_str(body, "summary", source)
        description = _optional_str(body, "description", source)
        return cls(
            summary=summary or "",
            description=description or "",
            issue_type=_optional_str(body, "issueType", source) or DEFAULT_ISSUE_TYPE,
            record_id=_optional_str(body, "recordId", source),
        )


@dataclass(frozen=True, slots=True)
class JiraIssuePayload:
    """Body for ``POST /rest/api/3/issue``."""

    project_key: str
    summary: str
    description: str
    issue_type: str

    @classmethod
    def from_request(cls, request: CreateIssueRequest, *, project_key: str) -> JiraIssuePayload:
        text = request.description
        if request.record_id:
            text += f"\n\nSalesforce: {request.record_id}"
        return cls(
            project_key=project_key,
            summary=request.summary,
            description=text,
            issue_type=request.issue_type,
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "fields": {
                "project": {"key": self.project_key},
                "summary": self.summary,
                # Atlassian Document Format, single paragraph
                "description": {
                    "type": "doc",
                    "version": 1,
                    "content": [
                        {
                            "type": "paragraph",
                            "content": [{"type": "text", "text": self.description}],
                        }
                    ],
                },
                "issuetype": {"name": self.issue_type},
            }
        }


@dataclass(frozen=True, slots=True)
class JiraCreatedIssue:
    """Body returned by Jira after an issue was created."""

    key: str
    id: str | None = None
    self_url: str | None = None

    @classmethod
    def from_json(cls, data: Any) -> JiraCreatedIssue:
        source = "Jira create-issue response"
        body = _require_mapping(data, source)
        return cls(
            key=_require_str(body, "key", source),
            id=_optional_str(body, "id", source),
            self_url=_optional_str(body, "self", source),
        )


@dataclass(frozen=True, slots=True)
class CreateIssueResult:
    issue_key: str
    issue_url: str

    def to_json(self) -> dict[str, Any]:
        return {"success": True, "issueKey": self.issue_key, "issueUrl": self.issue_url}


@dataclass(frozen=True, slots=True)
class LinkageRecord:
    """Body for creating a ``Jira_Sync__c`` row that links issue and record."""

    issue_key: str
    record_id: str
    issue_url: str

    def to_json(self) -> dict[str, Any]:
        return {
            EXTERNAL_KEY_FIELD: self.issue_key,
            RECORD_ID_FIELD: self.record_id,
            STATUS_FIELD: "Open",
            SYNC_STATUS_FIELD: SyncStatus.SYNCHRONIZED.value,
            ISSUE_URL_FIELD: self.issue_url,
        }


@dataclass(frozen=True, slots=True)
class SalesforceSaveResult:
    """Body returned by the sObject create / upsert endpoints."""

    id: str
    success: bool
    created: bool | None = None

    @classmethod
    def from_json(cls, data: Any) -> SalesforceSaveResult:
        source = "Salesforce save result"
        body = _require_mapping(data, source)
        success = body.get("success")
        if not isinstance(success, bool):
            raise DecodeError(source=source, reason="missing 'success'")
        created = body.get("created")
        return cls(
            id=_require_str(body, "id", source),
            success=success,
            created=created if isinstance(created, bool) else None,
        )


# --------------------------------------------------------------------------- #
# Reverse flow: Jira event -> CRM record                                      #
# --------------------------------------------------------------------------- #
@dataclass(frozen=True, slots=True)
class IssueChangedEvent:
    """A status change on one Jira issue."""

    issue_key: str
    status: str
    assignee: str | None = None
    occurred_at: float | None = None

    @classmethod
    def from_webhook(cls, data: Any) -> IssueChangedEvent:
        """Decode a Jira ``jira:issue_updated`` webhook body."""
        source = "Jira webhook"
        body = _require_mapping(data, source)
        issue = _require_mapping(body.get("issue"), f"{source} issue")
        fields = _require_mapping(issue.get("fields"), f"{source} issue fields")
        status = _require_mapping(fields.get("status"), f"{source} status")
        assignee = fields.get("assignee")
        assignee_name = None
        if assignee is not None:
            assignee_name = _optional_str(
                _require_mapping(assignee, f"{source} assignee"), "displayName", source
            )
        timestamp = body.get("timestamp")
        occurred_at = None
        if isinstance(timestamp, (int, float)) and not isinstance(timestamp, bool):
            # Jira sends epoch milliseconds
            occurred_at = timestamp / 1000
        return cls(
            issue_key=_require_str(issue, "key", source),
            status=_require_str(status, "name", source),
            assignee=assignee_name,
            occurred_at=occurred_at,
        )

    def to_sync_event(self) -> SyncEvent:
        # Unassigned issues clear the CRM field instead of leaving it stale.
        return SyncEvent(
            source_system=System.ISSUE_TRACKER,
            external_key=self.issue_key,
            fields={STATUS_FIELD: self.status, ASSIGNEE_FIELD: self.assignee},
            occurred_at=self.occurred_at,
        )


def render_outcome(outcome: SyncOutcome) -> dict[str, Any]:
    """Return the CRM sync-status fields describing *outcome*."""
    fields: dict[str, Any] = {
        SYNC_STATUS_FIELD: outcome.status.value,
        LAST_SYNC_DATE_FIELD: isoformat_utc(outcome.last_attempt_at),
    }
    if outcome.status is SyncStatus.FAILED:
        fields[LAST_SYNC_ERROR_FIELD] = outcome.last_error or ""
    return fields


def record_update(event: SyncEvent, outcome: SyncOutcome) -> dict[str, Any]:
    """Full-field upsert body: the event snapshot plus its sync outcome."""
    return {**event.fields, **render_outcome(outcome)}
