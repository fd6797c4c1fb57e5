"""Tests for environment-derived settings and logging helpers."""

from __future__ import annotations

import io
import logging

import pytest

from sf_jira_bridge.utils.environment import (
    JiraAuth,
    get_default_jira_url,
    get_http_timeout,
    get_jira_auth,
    is_debug_mode,
)
from sf_jira_bridge.utils.logging import mask_sensitive, setup_logging


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in (
        "JIRA_PERSONAL_TOKEN",
        "JIRA_USERNAME",
        "JIRA_API_TOKEN",
        "JIRA_URL",
        "BRIDGE_HTTP_TIMEOUT",
        "BRIDGE_DEBUG",
        "BRIDGE_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)


def test_jira_auth_absent() -> None:
    assert get_jira_auth() is None


def test_jira_auth_basic_requires_both_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JIRA_USERNAME", "bot@acme.com")
    assert get_jira_auth() is None
    monkeypatch.setenv("JIRA_API_TOKEN", "api-tk")
    assert get_jira_auth() == JiraAuth(mode="basic", username="bot@acme.com", secret="api-tk")


def test_personal_token_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JIRA_USERNAME", "bot@acme.com")
    monkeypatch.setenv("JIRA_API_TOKEN", "api-tk")
    monkeypatch.setenv("JIRA_PERSONAL_TOKEN", "pat")
    assert get_jira_auth() == JiraAuth(mode="pat", secret="pat")


def test_default_jira_url_strips_slash(monkeypatch: pytest.MonkeyPatch) -> None:
    assert get_default_jira_url() == ""
    monkeypatch.setenv("JIRA_URL", " https://acme.atlassian.net/ ")
    assert get_default_jira_url() == "https://acme.atlassian.net"


@pytest.mark.parametrize(
    "raw, expected",
    [(None, (5.0, 20.0)), ("7.5", (5.0, 7.5)), ("soon", (5.0, 20.0))],
)
def test_http_timeout(monkeypatch: pytest.MonkeyPatch, raw, expected) -> None:
    if raw is not None:
        monkeypatch.setenv("BRIDGE_HTTP_TIMEOUT", raw)
    assert get_http_timeout() == expected


def test_debug_mode(monkeypatch: pytest.MonkeyPatch) -> None:
    assert is_debug_mode() is False
    monkeypatch.setenv("BRIDGE_DEBUG", "Yes")
    assert is_debug_mode() is True


def test_mask_sensitive() -> None:
    assert mask_sensitive(None) == ""
    assert mask_sensitive("short") == "*****"
    assert mask_sensitive("3MVG9-client-id") == "3MVG" + "*" * 11


def test_setup_logging_reads_level_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BRIDGE_LOG_LEVEL", "warning")
    stream = io.StringIO()
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        logger = setup_logging(stream=stream)
        assert logger.level == logging.WARNING
        logging.getLogger("sf-jira-bridge.test").warning("hello")
        assert "hello" in stream.getvalue()
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
        logging.getLogger("sf-jira-bridge").setLevel(logging.NOTSET)


def test_context_fields_are_rendered() -> None:
    from sf_jira_bridge.core.log_utils import get_sync_logger

    stream = io.StringIO()
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging("INFO", stream=stream)
        get_sync_logger(issue_key="SH-12", flow="reverse").info("Updated Salesforce")
        logging.getLogger("sf-jira-bridge.plain").info("no context")
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
        logging.getLogger("sf-jira-bridge").setLevel(logging.NOTSET)

    first, second = stream.getvalue().splitlines()
    assert first.endswith("INFO sf-jira-bridge.sync Updated Salesforce issue_key=SH-12 flow=reverse")
    assert second.endswith("INFO sf-jira-bridge.plain no context")


def test_admin_and_webhook_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    from sf_jira_bridge.utils.environment import get_admin_token, get_webhook_secret

    monkeypatch.delenv("BRIDGE_ADMIN_TOKEN", raising=False)
    monkeypatch.setenv("BRIDGE_WEBHOOK_SECRET", "")
    assert get_admin_token() is None
    assert get_webhook_secret() is None
    monkeypatch.setenv("BRIDGE_ADMIN_TOKEN", "admin-tk")
    monkeypatch.setenv("BRIDGE_WEBHOOK_SECRET", "hook")
    assert get_admin_token() == "admin-tk"
    assert get_webhook_secret() == "hook"
