from __future__ import annotations

import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Generator, List, Optional

from .errors import RemoteStoreFailure
from .models import ProfileEntity, TaskEntity
from .remote import TASKS_COLLECTION, USERS_COLLECTION, RemoteClient
from .settings import Settings
from .storage import (
    PROFILE_KEY_PREFIX,
    TASKS_KEY,
    FileStorage,
    InMemoryStorage,
    LocalStorage,
    profile_key,
)

logger = logging.getLogger(__name__)


@contextmanager
def _remote_call(operation: str) -> Generator[None, None, None]:
    """Translate any remote client error into RemoteStoreFailure."""
    try:
        yield
    except RemoteStoreFailure:
        raise
    except Exception as exc:
        logger.exception("Remote store %s failed", operation)
        raise RemoteStoreFailure(operation, exc) from exc


# PUBLIC_INTERFACE
class TaskRepository(ABC):
    """Storage contract shared by the local and the remote task stores."""

    # Whether the free-tier history window applies to reads from this store.
    applies_retention: bool = False

    @abstractmethod
    def insert(self, entity: TaskEntity) -> str:
        """Persist a new task and return its id."""

    @abstractmethod
    def list_for_user(self, user_id: str) -> List[TaskEntity]:
        """Return the user's tasks in storage order."""

    @abstractmethod
    def update(self, task_id: str, fields: Dict[str, Any]) -> bool:
        """Merge fields into a task. Return False if it does not exist."""

    @abstractmethod
    def delete(self, task_id: str) -> bool:
        """Delete a task. Return False if it did not exist."""

    @abstractmethod
    def delete_for_user(self, user_id: str) -> int:
        """Delete every task owned by user_id; return how many were removed."""


class LocalTaskRepository(TaskRepository):
    """
    Task store over the local blob under key "tasks".

    The whole JSON array is read and rewritten on every mutation.
    """

    applies_retention = True

    def __init__(self, storage: LocalStorage) -> None:
        self._storage = storage

    def _load(self) -> List[TaskEntity]:
        return self._storage.read_json(TASKS_KEY, [])

    def _save(self, items: List[TaskEntity]) -> None:
        self._storage.write_json(TASKS_KEY, items)

    def insert(self, entity: TaskEntity) -> str:
        items = self._load()
        items.append(entity)
        self._save(items)
        return entity["id"]

    def list_for_user(self, user_id: str) -> List[TaskEntity]:
        return [t for t in self._load() if t["user_id"] == user_id]

    def update(self, task_id: str, fields: Dict[str, Any]) -> bool:
        items = self._load()
        for i, item in enumerate(items):
            if item["id"] == task_id:
                items[i] = {**item, **fields}  # type: ignore[misc]
                self._save(items)
                return True
        return False

    def delete(self, task_id: str) -> bool:
        items = self._load()
        kept = [t for t in items if t["id"] != task_id]
        if len(kept) == len(items):
            return False
        self._save(kept)
        return True

    def delete_for_user(self, user_id: str) -> int:
        items = self._load()
        kept = [t for t in items if t["user_id"] != user_id]
        removed = len(items) - len(kept)
        if removed:
            self._save(kept)
        return removed


class RemoteTaskRepository(TaskRepository):
    """Task store over the remote client's "tasks" collection. Unlimited retention."""

    applies_retention = False

    def __init__(self, client: RemoteClient) -> None:
        self._client = client

    def insert(self, entity: TaskEntity) -> str:
        with _remote_call("insert"):
            return self._client.insert(TASKS_COLLECTION, dict(entity))

    def list_for_user(self, user_id: str) -> List[TaskEntity]:
        with _remote_call("query"):
            return self._client.query(TASKS_COLLECTION, where=("user_id", user_id))  # type: ignore[return-value]

    def update(self, task_id: str, fields: Dict[str, Any]) -> bool:
        with _remote_call("update"):
            return self._client.update(TASKS_COLLECTION, task_id, fields)

    def delete(self, task_id: str) -> bool:
        with _remote_call("delete"):
            return self._client.delete(TASKS_COLLECTION, task_id)

    def delete_for_user(self, user_id: str) -> int:
        with _remote_call("batch_delete"):
            docs = self._client.query(TASKS_COLLECTION, where=("user_id", user_id))
            return self._client.batch_delete(TASKS_COLLECTION, [d["id"] for d in docs])


# PUBLIC_INTERFACE
class ProfileRepository(ABC):
    """Storage contract for user profiles."""

    @abstractmethod
    def get(self, uid: str) -> Optional[ProfileEntity]:
        """Return the profile for uid, or None."""

    @abstractmethod
    def create(self, profile: ProfileEntity) -> None:
        """Persist a new profile."""

    @abstractmethod
    def update(self, uid: str, fields: Dict[str, Any]) -> bool:
        """Merge fields into a profile. Return False if it does not exist."""

    @abstractmethod
    def delete(self, uid: str) -> bool:
        """Delete a profile. Return False if it did not exist."""

    @abstractmethod
    def top_by_xp(self, limit: int) -> List[ProfileEntity]:
        """Return up to limit profiles by xp descending, ties in store order."""


class LocalProfileRepository(ProfileRepository):
    """Profiles stored as one local blob per user under "profile:<uid>"."""

    def __init__(self, storage: LocalStorage) -> None:
        self._storage = storage

    def get(self, uid: str) -> Optional[ProfileEntity]:
        return self._storage.read_json(profile_key(uid), None)

    def create(self, profile: ProfileEntity) -> None:
        self._storage.write_json(profile_key(profile["uid"]), profile)

    def update(self, uid: str, fields: Dict[str, Any]) -> bool:
        current = self.get(uid)
        if current is None:
            return False
        self._storage.write_json(profile_key(uid), {**current, **fields, "uid": uid})
        return True

    def delete(self, uid: str) -> bool:
        key = profile_key(uid)
        if self._storage.get_item(key) is None:
            return False
        self._storage.remove_item(key)
        return True

    def top_by_xp(self, limit: int) -> List[ProfileEntity]:
        profiles = [
            self._storage.read_json(key, None)
            for key in self._storage.keys()
            if key.startswith(PROFILE_KEY_PREFIX)
        ]
        ranked = sorted((p for p in profiles if p), key=lambda p: p.get("xp", 0), reverse=True)
        return ranked[: max(limit, 0)]


class RemoteProfileRepository(ProfileRepository):
    """Profiles in the remote client's "users" collection, keyed by uid."""

    def __init__(self, client: RemoteClient) -> None:
        self._client = client

    def get(self, uid: str) -> Optional[ProfileEntity]:
        with _remote_call("get"):
            doc = self._client.get(USERS_COLLECTION, uid)
        if doc is not None:
            doc.pop("id", None)
        return doc  # type: ignore[return-value]

    def create(self, profile: ProfileEntity) -> None:
        with _remote_call("insert"):
            self._client.insert(USERS_COLLECTION, {**profile, "id": profile["uid"]})

    def update(self, uid: str, fields: Dict[str, Any]) -> bool:
        with _remote_call("update"):
            return self._client.update(USERS_COLLECTION, uid, fields)

    def delete(self, uid: str) -> bool:
        with _remote_call("delete"):
            return self._client.delete(USERS_COLLECTION, uid)

    def top_by_xp(self, limit: int) -> List[ProfileEntity]:
        with _remote_call("query"):
            docs = self._client.query(USERS_COLLECTION, order_by="xp", descending=True, limit=limit)
        for d in docs:
            d.pop("id", None)
        return docs  # type: ignore[return-value]


# PUBLIC_INTERFACE
@dataclass
class StorageConfig:
    """
    Everything the core needs to reach its stores, injected at composition time.

    - remote_available: resolved once at startup; remote must be set when True
    - remote: durable remote client, or None
    - local: local fallback blob store
    - clock: returns "now" (naive local time) for stamps and day arithmetic
    """

    local: LocalStorage
    remote: Optional[RemoteClient] = None
    remote_available: bool = False
    clock: Callable[[], datetime] = field(default=datetime.now)

    def __post_init__(self) -> None:
        if self.remote_available and self.remote is None:
            raise ValueError("remote_available requires a remote client")


# PUBLIC_INTERFACE
def uses_remote(config: StorageConfig, is_premium: bool) -> bool:
    """Tasks live in the remote store only for premium users with the remote reachable."""
    return is_premium and config.remote_available


# PUBLIC_INTERFACE
def select_task_repository(config: StorageConfig, is_premium: bool) -> TaskRepository:
    """Return the task repository for this call's tier and backend availability."""
    if uses_remote(config, is_premium):
        return RemoteTaskRepository(config.remote)  # type: ignore[arg-type]
    return LocalTaskRepository(config.local)


# PUBLIC_INTERFACE
def select_profile_repository(config: StorageConfig) -> ProfileRepository:
    """Profiles follow backend availability only; the plan is stored inside them."""
    if config.remote_available:
        return RemoteProfileRepository(config.remote)  # type: ignore[arg-type]
    return LocalProfileRepository(config.local)


# PUBLIC_INTERFACE
def build_storage_config(settings: Settings) -> StorageConfig:
    """
    Build the storage configuration from settings.

    - local: FileStorage when PLANNER_LOCAL_BACKEND=file, else InMemoryStorage
    - remote: SQLiteRemoteClient when PLANNER_REMOTE_ENABLED=true and it opens;
      a failure to open leaves the remote store unavailable for the process
    """
    if settings.local_backend == "file":
        local: LocalStorage = FileStorage(settings.local_dir)
    else:
        local = InMemoryStorage()

    remote: Optional[RemoteClient] = None
    if settings.remote_enabled:
        from .db import SQLiteRemoteClient

        try:
            remote = SQLiteRemoteClient(settings.remote_db_path)
        except (sqlite3.Error, OSError) as exc:
            logger.warning(
                "Remote store unavailable (%s); falling back to local storage", exc
            )
            remote = None

    config = StorageConfig(local=local, remote=remote, remote_available=remote is not None)
    logger.info(
        "Storage ready local=%s remote_available=%s",
        settings.local_backend,
        config.remote_available,
    )
    return config
