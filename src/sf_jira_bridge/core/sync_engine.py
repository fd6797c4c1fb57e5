"""SyncEngine – the two cross-system flows.

forward_create
    A CRM-originated request creates one Jira issue and links it back onto a
    ``Jira_Sync__c`` record.  Single attempt: retrying could open duplicate
    issues, so the caller owns any retry decision.

reverse_sync
    A Jira status change is upserted onto the linked CRM record.  The retry
    loop is an explicit state machine::

        Attempting(0) -> Attempting(1) -> ... -> Attempting(MAX_RETRIES - 1)
              |                |                          |
              +--> Succeeded   +--> Succeeded             +--> ExhaustedFailure

    Backoff after a failed ``Attempting(n)`` is ``2 ** (n + 1)`` seconds.
    Entering ``ExhaustedFailure`` writes one best-effort ``Failed`` marker and
    re-raises the original error so the event sender can redeliver.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, Union

from sf_jira_bridge.core.clock import Clock, Sleeper, default_clock, default_sleep
from sf_jira_bridge.core.errors import (
    AuthError,
    BridgeError,
    ConfigurationError,
    LinkageError,
    StoreLockError,
    System,
    UpstreamError,
)
from sf_jira_bridge.core.log_utils import get_sync_logger
from sf_jira_bridge.core.models import (
    DEFAULT_PROJECT_KEY,
    Configuration,
    SyncEvent,
    SyncOutcome,
    SyncStatus,
)
from sf_jira_bridge.core.payloads import (
    CreateIssueRequest,
    CreateIssueResult,
    IssueChangedEvent,
    JiraIssuePayload,
    LinkageRecord,
    record_update,
    render_outcome,
)
from sf_jira_bridge.core.store import ConfigStore, load_configuration
from sf_jira_bridge.core.token_manager import TokenManager

if TYPE_CHECKING:  # pragma: no cover
    from sf_jira_bridge.clients.base import IssueClient, RecordClient

MAX_RETRIES: Final[int] = 3


# --------------------------------------------------------------------------- #
# Reverse-sync states                                                         #
# --------------------------------------------------------------------------- #
@dataclass(frozen=True, slots=True)
class Attempting:
    n: int


@dataclass(frozen=True, slots=True)
class Succeeded:
    attempts: int


@dataclass(frozen=True, slots=True)
class ExhaustedFailure:
    error: BridgeError
    attempts: int


SyncState = Union[Attempting, Succeeded, ExhaustedFailure]


def backoff_seconds(n: int) -> int:
    """Sleep after the failed attempt with index *n*."""
    return 2 ** (n + 1)


class SyncEngine:
    """Orchestrates forward creation and reverse status propagation."""

    def __init__(
        self,
        store: ConfigStore,
        token_manager: TokenManager,
        issue_client: IssueClient,
        record_client: RecordClient,
        *,
        clock: Clock = default_clock,
        sleep: Sleeper = default_sleep,
        max_retries: int = MAX_RETRIES,
    ) -> None:
        self.store = store
        self.token_manager = token_manager
        self.issue_client = issue_client
        self.record_client = record_client
        self.clock = clock
        self.sleep = sleep
        self.max_retries = max_retries

    def _load_config(self) -> Configuration:
        config = load_configuration(self.store)
        if config is None:
            raise ConfigurationError("Configuration not found")
        return config

    # ------------------------------------------------------------------ #
    # Forward flow                                                       #
    # ------------------------------------------------------------------ #
    def forward_create(
        self, request: CreateIssueRequest, *, correlation_id: str | None = None
    ) -> CreateIssueResult:
        """Create a Jira issue for *request* and link it to the CRM record.

        Raises
        ------
        ConfigurationError
            No configuration stored.
        UpstreamError
            Jira rejected the issue.
        LinkageError
            The issue exists but the CRM link could not be written.
        """
        log = get_sync_logger(
            flow="forward", record_id=request.record_id, correlation_id=correlation_id
        )
        config = self._load_config()
        payload = JiraIssuePayload.from_request(
            request, project_key=config.issue_tracker_project_key or DEFAULT_PROJECT_KEY
        )
        issue = self.issue_client.create_issue(config, payload)
        result = CreateIssueResult(issue_key=issue.key, issue_url=config.issue_url(issue.key))

        if request.record_id:
            try:
                token = self.token_manager.get_valid_token(config)
                self.record_client.create_linkage(
                    config,
                    token,
                    LinkageRecord(
                        issue_key=issue.key,
                        record_id=request.record_id,
                        issue_url=result.issue_url,
                    ),
                )
            except BridgeError as exc:
                log.error("Issue %s created but linkage failed: %s", issue.key, exc)
                raise LinkageError(issue_key=issue.key, record_id=request.record_id) from exc

        log.info("Created issue %s", issue.key)
        return result

    # ------------------------------------------------------------------ #
    # Reverse flow                                                       #
    # ------------------------------------------------------------------ #
    def reverse_sync(
        self,
        event: IssueChangedEvent,
        *,
        deadline: float | None = None,
        correlation_id: str | None = None,
    ) -> None:
        """Upsert *event* onto the CRM record keyed by its issue key.

        ``deadline`` (epoch seconds) is the caller's request deadline; a
        backoff that would end at or after it skips the remaining retries.

        Raises
        ------
        ConfigurationError, AuthError
            Immediately; these are never retried.
        BridgeError
            The last attempt's error once retries are exhausted.
        """
        log = get_sync_logger(
            flow="reverse", issue_key=event.issue_key, correlation_id=correlation_id
        )
        config = self._load_config()
        sync_event = event.to_sync_event()

        state: SyncState = Attempting(0)
        while True:
            if isinstance(state, Attempting):
                state = self._attempt(config, sync_event, state, deadline, log)
            elif isinstance(state, Succeeded):
                log.info(
                    "Updated Salesforce for %s after %d attempt(s)",
                    event.issue_key,
                    state.attempts,
                )
                return
            elif isinstance(state, ExhaustedFailure):
                self._record_failure(config, sync_event, state.error, log)
                raise state.error
            else:  # pragma: no cover
                raise TypeError(f"unknown sync state {state!r}")

    def _attempt(
        self,
        config: Configuration,
        sync_event: SyncEvent,
        state: Attempting,
        deadline: float | None,
        log: logging.LoggerAdapter,
    ) -> SyncState:
        attempt = state.n + 1
        try:
            token = self.token_manager.get_valid_token(config)
            outcome = SyncOutcome(status=SyncStatus.SYNCHRONIZED, last_attempt_at=self.clock())
            self.record_client.upsert_by_external_key(
                config, token, sync_event.external_key, record_update(sync_event, outcome)
            )
        except (ConfigurationError, AuthError):
            raise
        except BridgeError as exc:
            log.warning("Sync failed (attempt %d/%d): %s", attempt, self.max_retries, exc)
            if isinstance(exc, UpstreamError) and exc.system is System.CRM and exc.status == 401:
                try:
                    self.token_manager.invalidate()
                except StoreLockError as lock_exc:
                    log.warning("Could not drop cached token: %s", lock_exc)
            if attempt >= self.max_retries:
                return ExhaustedFailure(error=exc, attempts=attempt)
            delay = backoff_seconds(state.n)
            if deadline is not None and self.clock() + delay >= deadline:
                log.warning("Backoff of %ss would pass the request deadline", delay)
                return ExhaustedFailure(error=exc, attempts=attempt)
            self.sleep(delay)
            return Attempting(attempt)
        return Succeeded(attempts=attempt)

    def _record_failure(
        self,
        config: Configuration,
        sync_event: SyncEvent,
        error: BridgeError,
        log: logging.LoggerAdapter,
    ) -> None:
        """Single, unretried write of the ``Failed`` marker."""
        outcome = SyncOutcome(
            status=SyncStatus.FAILED, last_attempt_at=self.clock(), last_error=str(error)
        )
        try:
            token = self.token_manager.get_valid_token(config)
            self.record_client.upsert_by_external_key(
                config, token, sync_event.external_key, render_outcome(outcome)
            )
        except Exception as exc:  # broad: must not mask the original failure
            log.error("Failed to update sync status: %s", exc)
