"""Persistent key-value stores for session credentials.

``JsonCredentialStore`` keeps every key in one JSON document on disk, the
same way local user preferences are persisted. ``MemoryCredentialStore`` is
the in-process variant used by tests and headless runs.
"""

from __future__ import annotations

import json
import os
import threading
from typing import Any, Dict, Iterable, Optional

from resident.domain.ports import CredentialStore
from resident.domain.routing import CredentialScope


class MemoryCredentialStore(CredentialStore):
    """Dictionary-backed credential store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove_many(self, keys: Iterable[str]) -> None:
        with self._lock:
            for key in keys:
                self._data.pop(key, None)


class JsonCredentialStore(CredentialStore):
    """Credential store persisted to a single JSON file."""

    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._load().get(key)
        return value if isinstance(value, str) and value else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._dump(data)

    def remove_many(self, keys: Iterable[str]) -> None:
        with self._lock:
            data = self._load()
            changed = False
            for key in keys:
                if key in data:
                    del data[key]
                    changed = True
            if changed:
                self._dump(data)

    def _load(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}

    def _dump(self, data: Dict[str, Any]) -> None:
        folder = os.path.dirname(self.path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)


def save_session(
    store: CredentialStore,
    scope: CredentialScope,
    token: str,
    user: Optional[Dict[str, Any]] = None,
) -> None:
    """Persist the bearer token (and cached profile) for one scope."""
    store.set(scope.token_key, token)
    if user is not None:
        store.set(scope.profile_key, json.dumps(user, ensure_ascii=False))


def clear_session(store: CredentialStore, scope: CredentialScope) -> None:
    """Drop token and cached profile for one scope; absent keys are ignored."""
    store.remove_many(scope.session_keys)


__all__ = [
    "JsonCredentialStore",
    "MemoryCredentialStore",
    "clear_session",
    "save_session",
]
