from __future__ import annotations

from dataclasses import dataclass

from sf_jira_bridge.core.clock import Clock, default_clock
from sf_jira_bridge.core.config_service import ConfigService
from sf_jira_bridge.core.sync_engine import SyncEngine


@dataclass(frozen=True)
class BridgeAppContext:
    """
    Services shared by every request handler, wired once at startup.
    ``request_deadline_seconds`` bounds how long a webhook delivery may spend
    in reverse-sync retries before the sender gives up on it.  ``admin_token``
    and ``webhook_secret`` are the credentials checked by the auth middleware.
    """

    engine: SyncEngine
    config_service: ConfigService
    request_deadline_seconds: float | None = None
    clock: Clock = default_clock
    admin_token: str | None = None
    webhook_secret: str | None = None
