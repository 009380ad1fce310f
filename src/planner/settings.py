from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable, List


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PLANNER_REMOTE_ENABLED: 'true' to use the durable remote store for premium users (default: false)
    - PLANNER_REMOTE_DB_PATH: path to the remote sqlite db file. Default './data/planner.db'
    - PLANNER_LOCAL_BACKEND: 'memory' (default) or 'file'
    - PLANNER_LOCAL_DIR: directory holding local blobs when PLANNER_LOCAL_BACKEND=file. Default './data/local'
    - PLANNER_LOG_LEVEL: log level name for the planner loggers (default: INFO)
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    """

    remote_enabled: bool
    remote_db_path: str
    local_backend: str
    local_dir: str
    log_level: str
    cors_allow_origins: List[str]


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env(name: str, default: str) -> str:
    """Stripped value of an env var; unset or blank means default."""
    value = (os.environ.get(name) or "").strip()
    return value or default


def _env_flag(name: str, default: bool) -> bool:
    value = _env(name, "").lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    return default


def _env_choice(name: str, default: str, choices: Iterable[str]) -> str:
    """Env value normalised to one of choices (case-insensitive), else default."""
    value = _env(name, default)
    for choice in choices:
        if value.lower() == choice.lower():
            return choice
    return default


def _env_origins(name: str) -> List[str]:
    """Allowed CORS origins. '*', blank or an empty list all mean any origin."""
    origins = [o.strip() for o in _env(name, "*").split(",") if o.strip()]
    if not origins or "*" in origins:
        return ["*"]
    return origins


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    return Settings(
        remote_enabled=_env_flag("PLANNER_REMOTE_ENABLED", False),
        remote_db_path=_env("PLANNER_REMOTE_DB_PATH", "./data/planner.db"),
        local_backend=_env_choice("PLANNER_LOCAL_BACKEND", "memory", ("memory", "file")),
        local_dir=_env("PLANNER_LOCAL_DIR", "./data/local"),
        log_level=_env_choice("PLANNER_LOG_LEVEL", "INFO", _LOG_LEVELS),
        cors_allow_origins=_env_origins("CORS_ALLOW_ORIGINS"),
    )
