import os
from datetime import datetime, timedelta

import pytest

# Keep module-level app construction away from the filesystem.
os.environ.setdefault("PLANNER_LOCAL_BACKEND", "memory")
os.environ.setdefault("PLANNER_REMOTE_ENABLED", "false")

from planner.db import SQLiteRemoteClient  # noqa: E402
from planner.remote import RemoteClient  # noqa: E402
from planner.repositories import StorageConfig  # noqa: E402
from planner.storage import InMemoryStorage  # noqa: E402


class FixedClock:
    """Settable clock; tests move it forward explicitly."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FailingRemoteClient(RemoteClient):
    """Remote client whose backend is always down."""

    def _fail(self, *args, **kwargs):
        raise ConnectionError("backend unreachable")

    insert = get = query = update = delete = batch_delete = _fail


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 3, 3, 10, 0, 0))


@pytest.fixture
def local_storage():
    return InMemoryStorage()


@pytest.fixture
def remote_client(tmp_path):
    return SQLiteRemoteClient(str(tmp_path / "remote.db"))


@pytest.fixture
def local_config(local_storage, clock):
    """Remote store unavailable: everything lands in local storage."""
    return StorageConfig(local=local_storage, clock=clock)


@pytest.fixture
def remote_config(local_storage, remote_client, clock):
    """Remote store reachable."""
    return StorageConfig(local=local_storage, remote=remote_client, remote_available=True, clock=clock)


@pytest.fixture
def failing_config(local_storage, clock):
    return StorageConfig(
        local=local_storage, remote=FailingRemoteClient(), remote_available=True, clock=clock
    )
