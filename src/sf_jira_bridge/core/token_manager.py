"""Client-credentials access-token lifecycle for Salesforce.

:class:`TokenManager` hands out a bearer token that is guaranteed to be
outside the refresh buffer (see
:data:`~sf_jira_bridge.core.models.REFRESH_BUFFER_SECONDS`).  A stale or
missing token is replaced by a fresh ``grant_type=client_credentials``
request; the cached record is overwritten wholesale, never merged.

Refresh is single-flight per configuration key: concurrent callers that all
observe an expired token queue on one lock, and every caller after the first
finds the refreshed token on its re-read and returns it without a network
call.

Secrets (client secret, access token) are **never** logged.
"""

from __future__ import annotations

import logging
import threading
from typing import Final

import requests

from sf_jira_bridge.core.clock import Clock, default_clock
from sf_jira_bridge.core.errors import AuthError, ConfigurationError, DecodeError
from sf_jira_bridge.core.models import CachedToken, Configuration
from sf_jira_bridge.core.payloads import TokenResponse
from sf_jira_bridge.core.store import (
    ConfigStore,
    clear_cached_token,
    load_cached_token,
    save_cached_token,
)
from sf_jira_bridge.utils.environment import get_http_timeout
from sf_jira_bridge.utils.logging import mask_sensitive

_LOG = logging.getLogger("sf-jira-bridge.core.token")

TOKEN_PATH: Final[str] = "/services/oauth2/token"


class TokenManager:
    """Owns the cached Salesforce access token."""

    def __init__(
        self,
        store: ConfigStore,
        *,
        session: requests.Session | None = None,
        clock: Clock = default_clock,
        timeout: tuple[float, float] | None = None,
    ) -> None:
        self.store = store
        self.session = session or requests.Session()
        self.clock = clock
        self.timeout = timeout or get_http_timeout()
        self._locks: dict[tuple[str, str], threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, config: Configuration) -> threading.Lock:
        key = (config.instance_url, config.client_id)
        with self._locks_guard:
            return self._locks.setdefault(key, threading.Lock())

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #
    def get_valid_token(self, config: Configuration) -> str:
        """Return a usable access token, refreshing on demand.

        Raises
        ------
        ConfigurationError
            If ``instance_url``, ``client_id`` or ``client_secret`` is empty.
            Raised before any network call.
        AuthError
            If the token endpoint fails or returns an unusable body.
        StoreLockError
            If the refreshed token cannot be cached because the store is locked.
        """
        missing = config.missing_fields()
        if missing:
            raise ConfigurationError(
                f"Missing required Salesforce configuration: {', '.join(missing)}"
            )

        cached = load_cached_token(self.store)
        if cached and cached.is_usable(clock=self.clock):
            return cached.access_token

        with self._lock_for(config):
            # Another thread may have refreshed while we waited.
            latest = load_cached_token(self.store)
            if latest and latest.is_usable(clock=self.clock):
                return latest.access_token
            return self._refresh(config).access_token

    def invalidate(self) -> None:
        """Drop the cached token so the next caller refreshes."""
        clear_cached_token(self.store)
        _LOG.debug("Cached Salesforce token invalidated")

    # ---------------- internal helpers --------------------------------- #
    def _refresh(self, config: Configuration) -> CachedToken:
        _LOG.info(
            "Refreshing Salesforce token for client_id=%s",
            mask_sensitive(config.client_id, 6),
        )
        try:
            resp = self.session.post(
                f"{config.instance_url}{TOKEN_PATH}",
                data={
                    "grant_type": "client_credentials",
                    "client_id": config.client_id,
                    "client_secret": config.client_secret,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise AuthError(status=None, message=f"OAuth token request failed: {exc}") from exc

        if not resp.ok:
            raise AuthError(status=resp.status_code, body=resp.text)

        try:
            body = TokenResponse.from_json(resp.json())
        except (ValueError, DecodeError) as exc:
            raise AuthError(
                status=resp.status_code,
                message="Invalid token response from Salesforce",
            ) from exc

        now = int(self.clock())
        token = CachedToken(
            access_token=body.access_token,
            expires_at=now + body.expires_in,
            obtained_at=now,
        )
        save_cached_token(self.store, token)
        _LOG.info("Salesforce token refreshed (expires in %ss)", token.ttl)
        return token
