"""Encrypted, concurrency-safe key-value storage for bridge settings.

This module introduces a *narrow* persistence interface
(:class:`ConfigStore`) and an encrypted JSON-file implementation
(:class:`DiskConfigStore`).  The design follows these goals:

* **Atomicity** – writes use *temp-file + os.replace*.
* **Confidentiality** – every value is Fernet-encrypted at rest; the
  client secret and cached access token never touch disk in clear text.
* **Filename safety** – keys are slugified before hitting the filesystem.

Two fixed keys are used: ``default`` holds the single active
:class:`~sf_jira_bridge.core.models.Configuration` and ``access_token`` holds
the :class:`~sf_jira_bridge.core.models.CachedToken`.

Environment variables
---------------------
BRIDGE_STORAGE_DIR
    Base directory for all persisted data.
    Defaults to ``~/.sf-jira-bridge/store`` when unset.
BRIDGE_ENCRYPT_KEY
    URL-safe base64 Fernet key.  Generate one with
    ``sf-jira-bridge --generate-key``.
"""

from __future__ import annotations

import json
import logging
import os
import re
import time
from contextlib import contextmanager
from dataclasses import asdict
from pathlib import Path
from typing import Any, Final, Protocol, runtime_checkable

from cryptography.fernet import Fernet, InvalidToken

from sf_jira_bridge.core.errors import ConfigurationError, StoreLockError
from sf_jira_bridge.core.models import CachedToken, Configuration

_LOG = logging.getLogger("sf-jira-bridge.core.store")

CONFIG_KEY: Final[str] = "default"
TOKEN_KEY: Final[str] = "access_token"
STALE_LOCK_SECONDS: Final[float] = 30.0

# --------------------------------------------------------------------------- #
# helpers                                                                     #
# --------------------------------------------------------------------------- #


def _slug(text: str, max_len: int = 80) -> str:
    text = (text or "").strip().lower()
    text = re.sub(r"[^a-z0-9._-]+", "-", text)
    text = re.sub(r"-{2,}", "-", text).strip("-")
    return text[:max_len] or "unknown"


def _reclaim_stale(lock_path: Path, stale_after: float) -> bool:
    try:
        age = time.time() - lock_path.stat().st_mtime
    except FileNotFoundError:
        # released between our open and stat
        return True
    if age < stale_after:
        return False
    _LOG.warning("Removing stale lock %s (age %.0fs)", lock_path.name, age)
    lock_path.unlink(missing_ok=True)
    return True


def _atomic_write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("wb") as fh:
        fh.write(data)
    os.replace(tmp, path)  # atomic on POSIX


@contextmanager
def _file_lock(
    lock_path: Path,
    retries: int = 25,
    delay: float = 0.2,
    stale_after: float = STALE_LOCK_SECONDS,
):  # noqa: D401
    """Advisory file lock using ``os.O_EXCL`` temp-file creation.

    A lock file older than *stale_after* seconds is treated as left behind by
    a crashed writer and removed.  Raises :class:`StoreLockError` when the
    lock is still held after *retries*.
    """
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    waited = 0
    while True:
        try:
            fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_RDWR)
            os.close(fd)
            break  # acquired!
        except FileExistsError:
            if _reclaim_stale(lock_path, stale_after):
                continue
            if waited >= retries:
                raise StoreLockError(key=lock_path.stem) from None
            waited += 1
            time.sleep(delay)
    try:
        yield
    finally:
        lock_path.unlink(missing_ok=True)


# --------------------------------------------------------------------------- #
# public interface                                                            #
# --------------------------------------------------------------------------- #


@runtime_checkable
class ConfigStore(Protocol):
    """Minimal persistence contract: JSON-compatible values by key."""

    def get(self, key: str) -> dict[str, Any] | None: ...
    def set(self, key: str, value: dict[str, Any]) -> None: ...
    def delete(self, key: str) -> None: ...


class DiskConfigStore(ConfigStore):
    """Fernet-encrypted JSON-file implementation of :class:`ConfigStore`."""

    _KEY_ENV: Final[str] = "BRIDGE_ENCRYPT_KEY"

    def __init__(
        self,
        base_dir: str | os.PathLike | None = None,
        *,
        encryption_key: str | bytes | None = None,
        lock_retries: int = 25,
        lock_delay: float = 0.2,
    ) -> None:
        self._lock_opts = {"retries": lock_retries, "delay": lock_delay}
        self.base_dir = Path(
            base_dir
            or os.getenv("BRIDGE_STORAGE_DIR")
            or Path.home() / ".sf-jira-bridge" / "store"
        ).expanduser()
        self.base_dir.mkdir(parents=True, exist_ok=True)

        key = encryption_key or os.getenv(self._KEY_ENV)
        if not key:
            key = Fernet.generate_key()
            _LOG.warning(
                "Environment variable %s not set – generated transient key. "
                "Stored configuration will be unreadable after process restart.",
                self._KEY_ENV,
            )
        try:
            self._fernet = Fernet(key.encode() if isinstance(key, str) else key)
        except (ValueError, TypeError) as exc:
            raise ConfigurationError(f"{self._KEY_ENV} is not a valid Fernet key") from exc

    def _path(self, key: str) -> Path:
        return self.base_dir / f"{_slug(key)}.enc"

    def _lock(self, key: str) -> Path:
        return self._path(key).with_suffix(".lock")

    def get(self, key: str) -> dict[str, Any] | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            plain = self._fernet.decrypt(path.read_bytes())
        except InvalidToken:
            raise ConfigurationError(
                f"Stored value '{key}' cannot be decrypted; check {self._KEY_ENV}"
            ) from None
        return json.loads(plain.decode("utf-8"))

    def set(self, key: str, value: dict[str, Any]) -> None:
        plain = json.dumps(value, separators=(",", ":"), sort_keys=True)
        with _file_lock(self._lock(key), **self._lock_opts):
            _atomic_write(self._path(key), self._fernet.encrypt(plain.encode("utf-8")))

    def delete(self, key: str) -> None:
        with _file_lock(self._lock(key), **self._lock_opts):
            self._path(key).unlink(missing_ok=True)


# --------------------------------------------------------------------------- #
# typed accessors                                                             #
# --------------------------------------------------------------------------- #


def load_configuration(store: ConfigStore) -> Configuration | None:
    data = store.get(CONFIG_KEY)
    if not data:
        return None
    return Configuration(**data)


def save_configuration(store: ConfigStore, config: Configuration) -> None:
    store.set(CONFIG_KEY, asdict(config))


def load_cached_token(store: ConfigStore) -> CachedToken | None:
    data = store.get(TOKEN_KEY)
    if not data:
        return None
    return CachedToken(**data)


def save_cached_token(store: ConfigStore, token: CachedToken) -> None:
    store.set(TOKEN_KEY, asdict(token))


def clear_cached_token(store: ConfigStore) -> None:
    store.delete(TOKEN_KEY)


# --------------------------------------------------------------------------- #
# Convenience – default singleton                                            #
# --------------------------------------------------------------------------- #

_default_store: DiskConfigStore | None = None


def default_store() -> DiskConfigStore:
    """Return a process-wide singleton :class:`DiskConfigStore`."""
    global _default_store  # noqa: PLW0603
    if _default_store is None:
        _default_store = DiskConfigStore()
    return _default_store
