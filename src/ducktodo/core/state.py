# src/ducktodo/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from .ports import TaskRepo


@dataclass
class AppState:
    # Settings stay on the state so command handlers can read defaults.
    settings: object
    task_store: TaskRepo
