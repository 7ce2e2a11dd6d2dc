# src/taskpulse/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

- One Settings object for the whole app.
- Every variable is optional; defaults give a working local setup.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "TASKPULSE"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float, *, minimum: float | None = None) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    if minimum is not None and value < minimum:
        return default
    return value


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

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path

    # ---- Sync ----
    sync_interval_seconds: float
    start_offline: bool

    # ---- Reminders ----
    reminder_poll_seconds: float
    toast_duration_seconds: float
    sound_enabled: bool
    sound_path: Path | None
    sound_volume: float
    desktop_notifications: bool

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskpulse") or "taskpulse"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskpulse"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "tasks.sqlite3")

        sync_interval_seconds = _env_float(_k("SYNC_INTERVAL_SECONDS"), 30.0, minimum=1.0)
        start_offline = _env_bool(_k("START_OFFLINE"), False)

        reminder_poll_seconds = _env_float(_k("REMINDER_POLL_SECONDS"), 30.0, minimum=1.0)
        toast_duration_seconds = _env_float(_k("TOAST_DURATION_SECONDS"), 10.0, minimum=0.0)

        sound_enabled = _env_bool(_k("SOUND_ENABLED"), True)
        raw_sound = _env(_k("SOUND_PATH"), "").strip()
        sound_path = Path(raw_sound).expanduser() if raw_sound else None
        # clamp to [0, 1]
        sound_volume = min(1.0, _env_float(_k("SOUND_VOLUME"), 0.5, minimum=0.0))

        desktop_notifications = _env_bool(_k("DESKTOP_NOTIFICATIONS"), True)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            sync_interval_seconds=sync_interval_seconds,
            start_offline=start_offline,
            reminder_poll_seconds=reminder_poll_seconds,
            toast_duration_seconds=toast_duration_seconds,
            sound_enabled=sound_enabled,
            sound_path=sound_path,
            sound_volume=sound_volume,
            desktop_notifications=desktop_notifications,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
