# src/ducktodo/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object per process.
- Every path is user-local and overridable for tests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from .tasks.task_models import DEFAULT_PRIORITY, MAX_PRIORITY, MIN_PRIORITY

ENV_PREFIX = "DUCKTODO"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    log_to_file: bool

    # ---- Local data paths ----
    data_dir: Path
    db_path: Path

    # ---- Task defaults ----
    default_priority: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "ducktodo").strip() or "ducktodo"
        # The CLI prints its own results; the console log only shows problems by default.
        log_level = _env(_k("LOG_LEVEL"), "WARNING").strip().upper() or "WARNING"
        log_to_file = _env_bool(_k("LOG_TO_FILE"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path.home() / ".ducktodo")
        db_path = _env_path(_k("DB_PATH"), data_dir / "todo.duckdb")

        default_priority = _env_int(_k("DEFAULT_PRIORITY"), DEFAULT_PRIORITY)
        default_priority = max(MIN_PRIORITY, min(MAX_PRIORITY, default_priority))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            log_to_file=log_to_file,
            data_dir=data_dir,
            db_path=db_path,
            default_priority=default_priority,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Process settings, read once (after loading a local .env if present)."""
    global _SETTINGS
    if _SETTINGS is None:
        load_dotenv(find_dotenv(usecwd=True), override=False)
        _SETTINGS = Settings.from_env()
    return _SETTINGS


def reset_settings() -> None:
    """Forget cached settings (tests change the environment between runs)."""
    global _SETTINGS
    _SETTINGS = None
