from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from threading import RLock
from typing import Any, Dict, List, Optional
from urllib.parse import quote, unquote

TASKS_KEY = "tasks"
PROFILE_KEY_PREFIX = "profile:"


def profile_key(uid: str) -> str:
    return f"{PROFILE_KEY_PREFIX}{uid}"


# PUBLIC_INTERFACE
class LocalStorage(ABC):
    """
    Device-local key/value blob store backing the local fallback.

    Each logical collection is one string blob that callers read, parse and
    rewrite wholesale; there is no partial-write API.
    """

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the blob stored under key, or None."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Replace the blob stored under key."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove key; no-op if missing."""

    @abstractmethod
    def keys(self) -> List[str]:
        """Return every stored key."""

    def read_json(self, key: str, default: Any) -> Any:
        raw = self.get_item(key)
        if raw is None:
            return default
        return json.loads(raw)

    def write_json(self, key: str, value: Any) -> None:
        self.set_item(key, json.dumps(value, ensure_ascii=False))


class InMemoryStorage(LocalStorage):
    """
    Thread-safe in-memory blob store suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._items)


class FileStorage(LocalStorage):
    """
    One JSON file per key inside a directory.

    Writes go to a temp file first and are then renamed over the target, so
    a reader never sees a half-written blob.
    """

    _SUFFIX = ".json"

    def __init__(self, directory: str) -> None:
        os.makedirs(directory, exist_ok=True)
        self._dir = directory
        self._lock = RLock()

    def _path(self, key: str) -> str:
        return os.path.join(self._dir, quote(key, safe="") + self._SUFFIX)

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        with self._lock:
            if not os.path.exists(path):
                return None
            with open(path, "r", encoding="utf-8") as f:
                return f.read()

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path + ".tmp"
        with self._lock:
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp, path)

    def remove_item(self, key: str) -> None:
        with self._lock:
            try:
                os.remove(self._path(key))
            except FileNotFoundError:
                pass

    def keys(self) -> List[str]:
        with self._lock:
            names = sorted(os.listdir(self._dir))
        return [unquote(n[: -len(self._SUFFIX)]) for n in names if n.endswith(self._SUFFIX)]
