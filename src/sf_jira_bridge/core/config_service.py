"""Admin-facing read/write of the single configuration record."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from sf_jira_bridge.core.errors import ValidationError
from sf_jira_bridge.core.models import (
    DEFAULT_PROJECT_KEY,
    Configuration,
    strip_trailing_slash,
)
from sf_jira_bridge.core.store import (
    ConfigStore,
    clear_cached_token,
    load_configuration,
    save_configuration,
)
from sf_jira_bridge.utils.environment import get_default_jira_url

_LOG = logging.getLogger("sf-jira-bridge.core.config")


class ConfigService:
    """Validate, normalise and persist connection settings."""

    def __init__(self, store: ConfigStore) -> None:
        self.store = store

    def read_public(self) -> dict[str, Any]:
        """Return the non-secret settings plus a ``configured`` flag."""
        config = load_configuration(self.store)
        if config is None:
            return {
                "instanceUrl": "",
                "clientId": "",
                "jiraProjectKey": DEFAULT_PROJECT_KEY,
                "jiraInstanceUrl": get_default_jira_url(),
                "configured": False,
            }
        return {
            "instanceUrl": config.instance_url,
            "clientId": config.client_id,
            "jiraProjectKey": config.issue_tracker_project_key,
            "jiraInstanceUrl": config.issue_tracker_base_url,
            "configured": config.is_complete,
        }

    def write(self, payload: Mapping[str, Any]) -> Configuration:
        """Replace the stored configuration with *payload*.

        The cached access token is dropped because it may belong to a
        different org or connected app.
        """
        instance_url = _str_field(payload, "instanceUrl")
        client_id = _str_field(payload, "clientId")
        client_secret = _str_field(payload, "clientSecret")
        if not instance_url or not client_id or not client_secret:
            raise ValidationError("instanceUrl, clientId, and clientSecret are required")

        config = Configuration(
            instance_url=strip_trailing_slash(instance_url),
            client_id=client_id,
            client_secret=client_secret,
            issue_tracker_project_key=_str_field(payload, "jiraProjectKey")
            or DEFAULT_PROJECT_KEY,
            issue_tracker_base_url=strip_trailing_slash(
                _str_field(payload, "jiraInstanceUrl") or get_default_jira_url()
            ),
        )
        save_configuration(self.store, config)
        clear_cached_token(self.store)
        _LOG.info("Stored configuration for %s", config.instance_url)
        return config


def _str_field(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value.strip()
