from __future__ import annotations

from fastapi import Request

from .progression import ProgressionLedger
from .repositories import StorageConfig
from .task_store import TaskStore


def get_storage_config(request: Request) -> StorageConfig:
    return request.app.state.storage


def get_task_store(request: Request) -> TaskStore:
    return request.app.state.task_store


def get_ledger(request: Request) -> ProgressionLedger:
    """The ledger is shared per app so its lock covers every request."""
    return request.app.state.ledger
