# src/taskpulse/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the SQLite adapters, stores, notifiers and the reminder scheduler into AppState.
"""

from __future__ import annotations

import logging

from ..backend.local_client import SqliteReminderClient, SqliteTagClient, SqliteTaskClient
from ..backend.sqlite_store import SqliteDatabase
from ..config import get_settings
from ..core.events import EventBus
from ..core.state import AppState
from ..notify.console import ConsoleToaster
from ..notify.desktop import CommandDesktopNotifier
from ..notify.sound import ChimePlayer
from ..reminders.presenter import ReminderPresenter
from ..reminders.scheduler import ReminderScheduler
from ..stores.reminder_store import ReminderStore
from ..stores.tag_store import TagStore
from ..stores.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    db = SqliteDatabase(settings.db_path)
    online = not settings.start_offline
    interval = settings.sync_interval_seconds

    task_store = TaskStore(SqliteTaskClient(db), online=online, sync_interval_seconds=interval)
    reminder_store = ReminderStore(SqliteReminderClient(db), online=online, sync_interval_seconds=interval)
    tag_store = TagStore(SqliteTagClient(db), online=online, sync_interval_seconds=interval)

    presenter = ReminderPresenter(
        sound=ChimePlayer(settings.sound_enabled, sound_path=settings.sound_path, volume=settings.sound_volume),
        toaster=ConsoleToaster(),
        notifier=CommandDesktopNotifier(settings.desktop_notifications),
        toast_duration_seconds=settings.toast_duration_seconds,
    )

    events = EventBus()
    scheduler = ReminderScheduler(
        reminder_store,
        presenter,
        events,
        interval_seconds=settings.reminder_poll_seconds,
    )

    logger.debug("State created db=%s online=%s", settings.db_path, online)
    return AppState(
        settings=settings,
        task_store=task_store,
        reminder_store=reminder_store,
        tag_store=tag_store,
        events=events,
        scheduler=scheduler,
    )
