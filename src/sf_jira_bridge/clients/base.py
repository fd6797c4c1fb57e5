"""Client contracts and shared HTTP plumbing for the REST collaborators.

The sync engine depends only on the :class:`IssueClient` and
:class:`RecordClient` protocols; the concrete ``requests`` implementations live
in :mod:`sf_jira_bridge.clients.jira` and :mod:`sf_jira_bridge.clients.salesforce`.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol, runtime_checkable

import requests

from sf_jira_bridge.core.errors import DecodeError, System, UpstreamError
from sf_jira_bridge.core.models import Configuration
from sf_jira_bridge.core.payloads import (
    JiraCreatedIssue,
    JiraIssuePayload,
    LinkageRecord,
    SalesforceSaveResult,
)

_LOG = logging.getLogger("sf-jira-bridge.clients")


@runtime_checkable
class IssueClient(Protocol):
    """Issue-tracker operations used by the forward flow."""

    def create_issue(
        self, config: Configuration, payload: JiraIssuePayload
    ) -> JiraCreatedIssue: ...


@runtime_checkable
class RecordClient(Protocol):
    """CRM operations used by both flows."""

    def create_linkage(
        self, config: Configuration, token: str, record: LinkageRecord
    ) -> SalesforceSaveResult: ...

    def upsert_by_external_key(
        self, config: Configuration, token: str, issue_key: str, fields: Mapping[str, Any]
    ) -> SalesforceSaveResult | None: ...


def send(
    session: requests.Session,
    method: str,
    url: str,
    *,
    system: System,
    timeout: tuple[float, float],
    **kwargs: Any,
) -> requests.Response:
    """Issue one HTTP call and map any failure to :class:`UpstreamError`."""
    try:
        resp = session.request(method, url, timeout=timeout, **kwargs)
    except requests.RequestException as exc:
        raise UpstreamError(
            system=system,
            status=None,
            message=f"{system.value} request failed: {exc}",
        ) from exc

    if not resp.ok:
        _LOG.debug("%s %s -> %s", method, url, resp.status_code)
        raise UpstreamError(system=system, status=resp.status_code, body=resp.text[:500])
    return resp


def json_body(resp: requests.Response, *, source: str) -> Any:
    """Return the decoded JSON body or raise :class:`DecodeError`."""
    try:
        return resp.json()
    except ValueError as exc:
        raise DecodeError(source=source, reason="body is not valid JSON") from exc
