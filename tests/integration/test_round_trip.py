"""Integration test: forward create followed by reverse sync lands on one record.

Real TokenManager, JiraIssueClient and SalesforceRecordClient run against a
stub session that emulates the token endpoint, Jira and the Salesforce
sObject API in memory.
"""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any
from urllib.parse import unquote

import pytest

from sf_jira_bridge.clients.jira import JiraIssueClient
from sf_jira_bridge.clients.salesforce import SalesforceRecordClient
from sf_jira_bridge.core.config_service import ConfigService
from sf_jira_bridge.core.payloads import CreateIssueRequest, IssueChangedEvent
from sf_jira_bridge.core.sync_engine import SyncEngine
from sf_jira_bridge.core.token_manager import TokenManager
from sf_jira_bridge.utils.environment import JiraAuth

SF = "https://acme.my.salesforce.com"
JIRA = "https://acme.atlassian.net"
UPSERT_PREFIX = f"{SF}/services/data/v64.0/sobjects/Jira_Sync__c/External_Issue_Key__c/"


def _resp(status: int, body: Any = None) -> SimpleNamespace:
    content = b"" if body is None else json.dumps(body).encode()
    return SimpleNamespace(
        ok=200 <= status < 300,
        status_code=status,
        text=content.decode(),
        content=content,
        json=lambda: body,
    )


class _Backends:
    """One session object standing in for all three remote services."""

    def __init__(self) -> None:
        self.token_requests = 0
        self.issues: list[dict[str, Any]] = []
        self.sync_rows: dict[str, dict[str, Any]] = {}

    # TokenManager uses ``post``
    def post(self, url: str, **kwargs: Any) -> SimpleNamespace:
        assert url == f"{SF}/services/oauth2/token"
        assert kwargs["data"]["grant_type"] == "client_credentials"
        self.token_requests += 1
        return _resp(200, {"access_token": "sf-tk", "expires_in": 7200})

    # REST clients use ``request``
    def request(self, method: str, url: str, **kwargs: Any) -> SimpleNamespace:
        if method == "POST" and url == f"{JIRA}/rest/api/3/issue":
            self.issues.append(kwargs["json"])
            return _resp(201, {"id": "10100", "key": f"SH-{100 + len(self.issues)}"})

        assert kwargs["headers"]["Authorization"] == "Bearer sf-tk"
        if method == "POST" and url == f"{SF}/services/data/v64.0/sobjects/Jira_Sync__c":
            row = dict(kwargs["json"])
            self.sync_rows[row["External_Issue_Key__c"]] = row
            return _resp(201, {"id": "a0X0001", "success": True, "errors": []})
        if method == "PATCH" and url.startswith(UPSERT_PREFIX):
            key = unquote(url[len(UPSERT_PREFIX):])
            created = key not in self.sync_rows
            self.sync_rows.setdefault(key, {"External_Issue_Key__c": key}).update(kwargs["json"])
            if created:
                return _resp(201, {"id": "a0X0002", "success": True, "created": True})
            return _resp(204)
        return _resp(404, [{"errorCode": "NOT_FOUND"}])


@pytest.mark.integration
@pytest.mark.ci_safe
def test_forward_create_then_reverse_sync(store, clock) -> None:
    ConfigService(store).write(
        {
            "instanceUrl": f"{SF}/",
            "clientId": "cid",
            "clientSecret": "csecret",
            "jiraProjectKey": "SH",
            "jiraInstanceUrl": JIRA,
        }
    )
    backends = _Backends()
    engine = SyncEngine(
        store,
        TokenManager(store, session=backends, clock=clock),  # type: ignore[arg-type]
        JiraIssueClient(JiraAuth(mode="pat", secret="jira-pat"), session=backends),  # type: ignore[arg-type]
        SalesforceRecordClient(session=backends),  # type: ignore[arg-type]
        clock=clock,
        sleep=clock.sleep,
    )

    result = engine.forward_create(
        CreateIssueRequest(summary="S", description="D", record_id="r1")
    )
    assert result.issue_key == "SH-101"
    assert result.issue_url == f"{JIRA}/browse/SH-101"

    engine.reverse_sync(IssueChangedEvent(issue_key=result.issue_key, status="Done"))

    row = backends.sync_rows["SH-101"]
    assert row["Status__c"] == "Done"
    assert row["Sync_Status__c"] == "Synchronized"
    assert row["Salesforce_Record_Id__c"] == "r1"
    # one token served both flows
    assert backends.token_requests == 1
    assert clock.sleeps == []


@pytest.mark.integration
@pytest.mark.ci_safe
def test_reverse_sync_for_unknown_key_still_upserts(store, clock) -> None:
    ConfigService(store).write(
        {"instanceUrl": SF, "clientId": "cid", "clientSecret": "csecret", "jiraInstanceUrl": JIRA}
    )
    backends = _Backends()
    engine = SyncEngine(
        store,
        TokenManager(store, session=backends, clock=clock),  # type: ignore[arg-type]
        JiraIssueClient(None, session=backends),  # type: ignore[arg-type]
        SalesforceRecordClient(session=backends),  # type: ignore[arg-type]
        clock=clock,
        sleep=clock.sleep,
    )

    engine.reverse_sync(IssueChangedEvent(issue_key="SH-999", status="In Review"))

    assert backends.sync_rows["SH-999"]["Status__c"] == "In Review"
