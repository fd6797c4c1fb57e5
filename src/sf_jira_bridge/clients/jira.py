"""Jira REST API v3 client for issue creation."""

from __future__ import annotations

import logging

import requests

from sf_jira_bridge.clients.base import IssueClient, json_body, send
from sf_jira_bridge.core.errors import ConfigurationError, System
from sf_jira_bridge.core.models import Configuration
from sf_jira_bridge.core.payloads import JiraCreatedIssue, JiraIssuePayload
from sf_jira_bridge.utils.environment import JiraAuth, get_http_timeout, get_jira_auth

logger = logging.getLogger("sf-jira-bridge.clients.jira")

ISSUE_PATH = "/rest/api/3/issue"


class JiraIssueClient(IssueClient):
    """Thin ``requests`` wrapper around ``POST /rest/api/3/issue``."""

    def __init__(
        self,
        auth: JiraAuth | None,
        *,
        session: requests.Session | None = None,
        timeout: tuple[float, float] | None = None,
    ) -> None:
        self.auth = auth
        self.session = session or requests.Session()
        self.timeout = timeout or get_http_timeout()

    @classmethod
    def from_env(cls) -> JiraIssueClient:
        return cls(get_jira_auth())

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.auth and self.auth.mode == "pat":
            headers["Authorization"] = f"Bearer {self.auth.secret}"
        return headers

    def create_issue(self, config: Configuration, payload: JiraIssuePayload) -> JiraCreatedIssue:
        if not config.issue_tracker_base_url:
            raise ConfigurationError("Jira base URL is not configured")
        if self.auth is None:
            raise ConfigurationError(
                "Jira credentials missing: set JIRA_PERSONAL_TOKEN or JIRA_USERNAME/JIRA_API_TOKEN"
            )

        basic = (
            (self.auth.username or "", self.auth.secret) if self.auth.mode == "basic" else None
        )
        resp = send(
            self.session,
            "POST",
            f"{config.issue_tracker_base_url}{ISSUE_PATH}",
            system=System.ISSUE_TRACKER,
            timeout=self.timeout,
            headers=self._headers(),
            json=payload.to_json(),
            auth=basic,
        )
        issue = JiraCreatedIssue.from_json(json_body(resp, source="Jira create-issue response"))
        logger.info("Created Jira issue %s in project %s", issue.key, payload.project_key)
        return issue
