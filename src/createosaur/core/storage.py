"""
Client-local persisted state.

LocalStore is a small JSON-backed key/value store standing in for the
browser's local storage: provider credentials, the preferred provider
and the cached trial record all live here. SessionStore holds the
per-session identifier, which is never persisted.
"""

from __future__ import annotations

import json
import logging
import secrets
import string
import time
from pathlib import Path
from typing import Any


logger = logging.getLogger(__name__)


DEFAULT_STATE_PATH = Path.home() / ".config" / "createosaur" / "state.json"

# Fixed key names
DEFAULT_PROVIDER_KEY = "createosaur-default-provider"
TRIAL_KEY = "createosaur_trial"
SESSION_KEY = "createosaur_session"


class LocalStore:
    """
    JSON file key/value store.

    Values are strings (mirroring browser storage semantics); structured
    values are stored JSON-encoded by the caller. With ``path=None`` the
    store is purely in-memory, which is what tests use.
    """

    def __init__(self, path: Path | None = None, initial: dict[str, str] | None = None):
        self._path = Path(path) if path is not None else None
        self._data: dict[str, str] = {}
        self._load()
        if initial:
            self._data.update(initial)

    @classmethod
    def default(cls) -> LocalStore:
        return cls(DEFAULT_STATE_PATH)

    @property
    def path(self) -> Path | None:
        return self._path

    def _load(self) -> None:
        if self._path is None or not self._path.exists():
            return

        try:
            with open(self._path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to load local state from %s: %s", self._path, e)
            return

        if isinstance(data, dict):
            self._data = {str(k): str(v) for k, v in data.items() if v is not None}

    def _save(self) -> None:
        if self._path is None:
            return

        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w") as f:
            json.dump(self._data, f, indent=2)

    def reload(self) -> None:
        """Re-read the backing file, discarding in-memory state."""
        if self._path is not None:
            self._data = {}
            self._load()

    def get(self, key: str) -> str | None:
        value = self._data.get(key)
        return value if value else None

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._save()

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._save()

    def get_json(self, key: str) -> Any | None:
        """Decode a JSON value; raises json.JSONDecodeError on corrupt data."""
        raw = self.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set_json(self, key: str, value: Any) -> None:
        self.set(key, json.dumps(value))

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


def new_session_id(now_ms: int | None = None) -> str:
    """Build a session identifier: ``session_<ms>_<9 base36 chars>``."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    alphabet = string.digits + string.ascii_lowercase
    suffix = "".join(secrets.choice(alphabet) for _ in range(9))
    return f"session_{now_ms}_{suffix}"


class SessionStore:
    """In-memory session storage; a new instance is a new session."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get_or_create_session_id(self) -> str:
        session_id = self._data.get(SESSION_KEY)
        if not session_id:
            session_id = new_session_id()
            self._data[SESSION_KEY] = session_id
        return session_id

    def clear(self) -> None:
        self._data.clear()
