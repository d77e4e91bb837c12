# src/ducktodo/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root": it takes the settings, makes sure the
local data directory exists and wires the DuckDB store into AppState.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..config import get_settings
from ..core.state import AppState
from ..errors import StorageError
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings, db_path: Path) -> None:
    for directory in (Path(settings.data_dir), db_path.parent):
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create directory {directory}: {exc}") from exc


def create_initial_state(*, settings=None, db_path: str | Path | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    `db_path` (the --db-path option) overrides settings.db_path.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    path = Path(db_path).expanduser() if db_path else Path(settings.db_path)
    _ensure_local_dirs(settings, path)
    logger.debug("Opening task store at %s", path)

    return AppState(
        settings=settings,
        task_store=TaskStore(path, default_priority=settings.default_priority),
    )
