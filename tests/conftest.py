# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskpulse.backend.sqlite_store import SqliteDatabase
from taskpulse.core.events import EventBus
from taskpulse.core.state import AppState
from taskpulse.reminders.presenter import ReminderPresenter
from taskpulse.reminders.scheduler import ReminderScheduler
from taskpulse.stores.reminder_store import ReminderStore
from taskpulse.stores.tag_store import TagStore
from taskpulse.stores.task_store import TaskStore

from .fakes import FakeNotifier, FakeReminderClient, FakeSound, FakeTagClient, FakeTaskClient, FakeToaster


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskpulse-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        db_path=tmp_path / "tasks.sqlite3",
        sync_interval_seconds=30.0,
        start_offline=False,
        reminder_poll_seconds=30.0,
        toast_duration_seconds=10.0,
        sound_enabled=False,
        sound_path=None,
        sound_volume=0.5,
        desktop_notifications=False,
    )


@pytest.fixture()
def db(settings: SimpleNamespace) -> SqliteDatabase:
    return SqliteDatabase(settings.db_path)


@pytest.fixture()
def task_client() -> FakeTaskClient:
    return FakeTaskClient()


@pytest.fixture()
def reminder_client() -> FakeReminderClient:
    return FakeReminderClient()


@pytest.fixture()
def presenter_parts() -> SimpleNamespace:
    return SimpleNamespace(sound=FakeSound(), toaster=FakeToaster(), notifier=FakeNotifier())


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    task_client: FakeTaskClient,
    reminder_client: FakeReminderClient,
    presenter_parts: SimpleNamespace,
) -> AppState:
    """AppState wired with in-memory fakes instead of SQLite."""
    reminder_store = ReminderStore(reminder_client)
    presenter = ReminderPresenter(
        sound=presenter_parts.sound,
        toaster=presenter_parts.toaster,
        notifier=presenter_parts.notifier,
    )
    events = EventBus()
    return AppState(
        settings=settings,
        task_store=TaskStore(task_client),
        reminder_store=reminder_store,
        tag_store=TagStore(FakeTagClient()),
        events=events,
        scheduler=ReminderScheduler(reminder_store, presenter, events),
    )
