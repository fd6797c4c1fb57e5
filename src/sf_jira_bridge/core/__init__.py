"""Bridge core package.

This namespace hosts the **HTTP-agnostic** building blocks of the bridge.

Sub-modules
-----------
clock
    Test-friendly time and sleep abstractions.
errors
    Exception taxonomy used by every layer.
models
    Immutable dataclasses for configuration, cached tokens and sync state.
payloads
    Typed request/response records with strict decoders.
store
    Encrypted key-value persistence.
token_manager
    Client-credentials token cache with single-flight refresh.
sync_engine
    Forward creation and reverse status propagation.
config_service
    Admin read/write of the configuration record.
log_utils
    Structured logging helpers (thin wrapper around :pymod:`logging`).

All public objects are re-exported here for convenience.
"""

from __future__ import annotations

from .clock import Clock, Sleeper, default_clock, default_sleep  # noqa: F401
from .errors import (  # noqa: F401
    AuthError,
    BridgeError,
    ConfigurationError,
    DecodeError,
    LinkageError,
    StoreLockError,
    System,
    UpstreamError,
    ValidationError,
)
from .models import CachedToken, Configuration, SyncEvent, SyncOutcome, SyncStatus  # noqa: F401
from .payloads import CreateIssueRequest, CreateIssueResult, IssueChangedEvent  # noqa: F401
from .store import ConfigStore, DiskConfigStore, default_store  # noqa: F401
from .token_manager import TokenManager  # noqa: F401
from .sync_engine import MAX_RETRIES, SyncEngine  # noqa: F401
from .config_service import ConfigService  # noqa: F401
from .log_utils import get_sync_logger  # noqa: F401

__all__ = [
    # clock
    "Clock",
    "Sleeper",
    "default_clock",
    "default_sleep",
    # errors
    "AuthError",
    "BridgeError",
    "ConfigurationError",
    "DecodeError",
    "LinkageError",
    "StoreLockError",
    "System",
    "UpstreamError",
    "ValidationError",
    # models
    "CachedToken",
    "Configuration",
    "SyncEvent",
    "SyncOutcome",
    "SyncStatus",
    # payloads
    "CreateIssueRequest",
    "CreateIssueResult",
    "IssueChangedEvent",
    # services
    "ConfigStore",
    "DiskConfigStore",
    "default_store",
    "TokenManager",
    "MAX_RETRIES",
    "SyncEngine",
    "ConfigService",
    # logging helpers
    "get_sync_logger",
]
