"""Clock and sleep abstractions for testable time handling in the bridge core.

All time-based decisions inside :mod:`sf_jira_bridge.core` (token freshness,
sync timestamps, retry backoff) MUST depend on an injected ``Clock`` and
``Sleeper`` rather than calling ``time.time()`` or ``time.sleep()`` directly.

Example
-------
>>> from sf_jira_bridge.core.clock import default_clock, isoformat_utc
>>> isinstance(default_clock(), float)
True
>>> isoformat_utc(0)
'1970-01-01T00:00:00.000Z'
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Callable protocol returning *seconds* since the UNIX epoch."""

    def __call__(self) -> float: ...


@runtime_checkable
class Sleeper(Protocol):
    """Callable protocol blocking the caller for *seconds*."""

    def __call__(self, seconds: float) -> None: ...


def default_clock() -> float:
    """Default implementation that delegates to ``time.time()``."""
    return time.time()


def default_sleep(seconds: float) -> None:
    """Default implementation that delegates to ``time.sleep()``."""
    time.sleep(seconds)


def isoformat_utc(timestamp: float) -> str:
    """Render *timestamp* as ISO-8601 UTC with millisecond precision.

    Salesforce ``DateTime`` fields accept this form directly.
    """
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
