"""Settings read from ``TASKDECK_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from taskdeck.logging_setup import setup_logging
from taskdeck.storage import TaskStorage
from taskdeck.store import TaskStore

ENV_PREFIX = "TASKDECK"
DEFAULT_DB_PATH = Path(".data/tasks.json")
ADD_DELAY = 0.5


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value >= 0 else default


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip()


@dataclass(frozen=True, slots=True)
class Settings:
    db_path: Path = DEFAULT_DB_PATH
    add_delay: float = ADD_DELAY
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            db_path=_env_path(_k("DB"), DEFAULT_DB_PATH),
            add_delay=_env_float(_k("ADD_DELAY"), ADD_DELAY),
            log_level=_env_str(_k("LOG_LEVEL"), "INFO").upper(),
        )


def build_store(settings: Settings | None = None, *, configure_logging: bool = False) -> TaskStore:
    """Create the store over the configured snapshot file and load it.

    With ``configure_logging`` the root logger is set up at
    ``settings.log_level`` first.
    """
    settings = settings or Settings.from_env()
    if configure_logging:
        setup_logging(settings.log_level)
    store = TaskStore(TaskStorage(settings.db_path))
    store.load()
    return store
