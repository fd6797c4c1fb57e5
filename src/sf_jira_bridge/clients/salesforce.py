"""Salesforce REST client for the ``Jira_Sync__c`` custom object."""

from __future__ import annotations

import logging
from typing import Any, Final, Mapping
from urllib.parse import quote

import requests

from sf_jira_bridge.clients.base import RecordClient, json_body, send
from sf_jira_bridge.core.errors import System
from sf_jira_bridge.core.models import Configuration
from sf_jira_bridge.core.payloads import (
    EXTERNAL_KEY_FIELD,
    SYNC_OBJECT,
    LinkageRecord,
    SalesforceSaveResult,
)
from sf_jira_bridge.utils.environment import get_http_timeout

logger = logging.getLogger("sf-jira-bridge.clients.salesforce")

API_VERSION: Final[str] = "v64.0"


class SalesforceRecordClient(RecordClient):
    """Create and upsert-by-external-id calls against the sObject API."""

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        timeout: tuple[float, float] | None = None,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout or get_http_timeout()

    @staticmethod
    def _sobject_url(config: Configuration) -> str:
        return f"{config.instance_url}/services/data/{API_VERSION}/sobjects/{SYNC_OBJECT}"

    @staticmethod
    def _headers(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}

    def create_linkage(
        self, config: Configuration, token: str, record: LinkageRecord
    ) -> SalesforceSaveResult:
        resp = send(
            self.session,
            "POST",
            self._sobject_url(config),
            system=System.CRM,
            timeout=self.timeout,
            headers=self._headers(token),
            json=record.to_json(),
        )
        result = SalesforceSaveResult.from_json(
            json_body(resp, source="Salesforce save result")
        )
        logger.info("Linked %s to Salesforce record %s", record.issue_key, result.id)
        return result

    def upsert_by_external_key(
        self,
        config: Configuration,
        token: str,
        issue_key: str,
        fields: Mapping[str, Any],
    ) -> SalesforceSaveResult | None:
        """PATCH the record whose ``External_Issue_Key__c`` equals *issue_key*.

        Salesforce answers ``201`` with a save result when the upsert created a
        row and ``200``/``204`` when it updated one; ``None`` is returned for an
        empty body.
        """
        url = f"{self._sobject_url(config)}/{EXTERNAL_KEY_FIELD}/{quote(issue_key, safe='')}"
        resp = send(
            self.session,
            "PATCH",
            url,
            system=System.CRM,
            timeout=self.timeout,
            headers=self._headers(token),
            json=dict(fields),
        )
        if resp.status_code == 204 or not resp.content:
            return None
        return SalesforceSaveResult.from_json(json_body(resp, source="Salesforce save result"))
