# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from ducktodo.core.state import AppState
from ducktodo.tasks.task_store import TaskStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState, bootstrap and the CLI.

    We intentionally use a SimpleNamespace rather than the real config,
    to keep unit tests isolated from the user's environment.
    """
    data_dir = tmp_path / "data"
    return SimpleNamespace(
        app_name="ducktodo-test",
        log_level="WARNING",
        log_to_file=False,
        data_dir=data_dir,
        db_path=data_dir / "todo.duckdb",
        default_priority=3,
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskStore:
    return TaskStore(settings.db_path, default_priority=settings.default_priority)


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore) -> AppState:
    """
    AppState wired with a real DuckDB store on a temp file.

    The store's SQL is part of what we want to test, so no fake here.
    """
    return AppState(settings=settings, task_store=store)
