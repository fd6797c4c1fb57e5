"""Shared fixtures and fakes for the bridge test-suite."""

from __future__ import annotations

from typing import Any, Mapping

import pytest
from cryptography.fernet import Fernet

from sf_jira_bridge.core.errors import System, UpstreamError
from sf_jira_bridge.core.models import CachedToken, Configuration
from sf_jira_bridge.core.payloads import (
    JiraCreatedIssue,
    JiraIssuePayload,
    LinkageRecord,
    SalesforceSaveResult,
)
from sf_jira_bridge.core.store import DiskConfigStore, save_cached_token, save_configuration

NOW = 1_700_000_000.0


# --------------------------------------------------------------------------- #
# pytest options                                                              #
# --------------------------------------------------------------------------- #
def pytest_configure(config):
    """Add integration marker."""
    config.addinivalue_line(
        "markers", "integration: mark test as requiring integration with real services"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless explicitly requested.

    Tests marked with 'ci_safe' are always run (even inside the integration
    directory) because they stub all external calls and are safe for CI.
    """
    if not config.getoption("--integration", default=False):
        skip_integration = pytest.mark.skip(reason="Need --integration option to run")
        for item in items:
            if "integration" in item.keywords and "ci_safe" not in item.keywords:
                item.add_marker(skip_integration)


def pytest_addoption(parser):
    """Add integration option to pytest."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests",
    )


# --------------------------------------------------------------------------- #
# Fakes                                                                       #
# --------------------------------------------------------------------------- #
class FakeClock:
    """Deterministic clock; ``sleep`` advances it and records the duration."""

    def __init__(self, now: float = NOW) -> None:
        self.now = now
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeIssueClient:
    def __init__(self, key: str = "SH-1", error: Exception | None = None) -> None:
        self.key = key
        self.error = error
        self.payloads: list[JiraIssuePayload] = []

    def create_issue(self, config: Configuration, payload: JiraIssuePayload) -> JiraCreatedIssue:
        self.payloads.append(payload)
        if self.error:
            raise self.error
        return JiraCreatedIssue(key=self.key, id="10001")


class FakeRecordClient:
    """In-memory ``Jira_Sync__c`` table keyed by ``External_Issue_Key__c``.

    The first ``failures`` upserts fail with a 503, every upsert fails when
    ``always_fail`` is set, and ``fail_markers`` rejects writes of the ``Failed`` marker.
    """

    def __init__(
        self,
        *,
        failures: int = 0,
        always_fail: bool = False,
        fail_linkage: bool = False,
        fail_markers: bool = False,
    ) -> None:
        self.failures = failures
        self.always_fail = always_fail
        self.fail_linkage = fail_linkage
        self.fail_markers = fail_markers
        self.records: dict[str, dict[str, Any]] = {}
        self.linkages: list[LinkageRecord] = []
        self.upserts: list[tuple[str, dict[str, Any]]] = []
        self.tokens: list[str] = []

    @property
    def sync_upserts(self) -> list[dict[str, Any]]:
        return [f for _, f in self.upserts if f.get("Sync_Status__c") == "Synchronized"]

    @property
    def failed_markers(self) -> list[dict[str, Any]]:
        return [f for _, f in self.upserts if f.get("Sync_Status__c") == "Failed"]

    def create_linkage(
        self, config: Configuration, token: str, record: LinkageRecord
    ) -> SalesforceSaveResult:
        self.tokens.append(token)
        if self.fail_linkage:
            raise UpstreamError(system=System.CRM, status=400, body="INVALID_FIELD")
        self.linkages.append(record)
        self.records[record.issue_key] = dict(record.to_json())
        return SalesforceSaveResult(id="a0X000000000001", success=True)

    def upsert_by_external_key(
        self, config: Configuration, token: str, issue_key: str, fields: Mapping[str, Any]
    ) -> SalesforceSaveResult | None:
        self.tokens.append(token)
        self.upserts.append((issue_key, dict(fields)))
        is_marker = fields.get("Sync_Status__c") == "Failed"
        if is_marker and self.fail_markers:
            raise UpstreamError(system=System.CRM, status=503, body="unavailable")
        if not is_marker and (self.always_fail or self.failures > 0):
            self.failures -= 1
            raise UpstreamError(system=System.CRM, status=503, body="unavailable")
        self.records.setdefault(issue_key, {}).update(fields)
        return None


# --------------------------------------------------------------------------- #
# Fixtures                                                                    #
# --------------------------------------------------------------------------- #
@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(tmp_path) -> DiskConfigStore:
    """Return an encrypted store rooted at *tmp_path*."""
    return DiskConfigStore(base_dir=tmp_path, encryption_key=Fernet.generate_key())


@pytest.fixture()
def config() -> Configuration:
    return Configuration(
        instance_url="https://acme.my.salesforce.com",
        client_id="3MVG9-client-id",
        client_secret="s3cr3t",
        issue_tracker_project_key="SH",
        issue_tracker_base_url="https://acme.atlassian.net",
    )


@pytest.fixture()
def configured_store(store: DiskConfigStore, config: Configuration) -> DiskConfigStore:
    """Store holding *config* and a token valid for one hour past ``NOW``."""
    save_configuration(store, config)
    save_cached_token(
        store,
        CachedToken(access_token="cached-tk", expires_at=int(NOW) + 3_600, obtained_at=int(NOW)),
    )
    return store


@pytest.fixture()
def make_record_client():
    return FakeRecordClient


@pytest.fixture()
def make_issue_client():
    return FakeIssueClient


@pytest.fixture
def anyio_backend() -> str:
    """Run anyio-marked tests on asyncio (trio is not a declared dependency)."""
    return "asyncio"
