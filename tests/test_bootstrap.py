# tests/test_bootstrap.py

from __future__ import annotations

from datetime import timedelta

import pytest

from taskpulse.cli.bootstrap import create_initial_state
from taskpulse.config import Settings
from taskpulse.domain.models import ReminderCreate, TaskCreate, utcnow


@pytest.mark.asyncio
async def test_state_round_trips_through_sqlite(settings) -> None:
    state = create_initial_state(settings=settings)
    assert settings.db_path.exists()

    task = await state.task_store.create(TaskCreate(title="Pay rent"))
    assert task is not None and not task.id.startswith("temp-")

    reminder = await state.reminder_store.create(
        ReminderCreate(title="Rent due", remind_at=utcnow() + timedelta(hours=1), task_id=task.id)
    )
    assert reminder is not None

    assert await state.task_store.delete(task.id)
    # the cascade happened in SQLite; a refresh shows it
    assert await state.reminder_store.refresh()
    assert state.reminder_store.items == ()


@pytest.mark.asyncio
async def test_start_offline_queues_until_online(settings) -> None:
    settings.start_offline = True
    state = create_initial_state(settings=settings)
    assert not state.is_online

    await state.task_store.create(TaskCreate(title="later"))
    assert len(state.task_store.pending_operations) == 1

    outcome = await state.task_store.set_online_status(True)
    assert outcome.ok
    assert [t.title for t in state.task_store.items] == ["later"]


def test_settings_from_env(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("TASKPULSE_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("TASKPULSE_SYNC_INTERVAL_SECONDS", "5")
    monkeypatch.setenv("TASKPULSE_SOUND_VOLUME", "3")
    monkeypatch.setenv("TASKPULSE_START_OFFLINE", "yes")
    monkeypatch.setenv("TASKPULSE_REMINDER_POLL_SECONDS", "not-a-number")

    s = Settings.from_env()
    assert s.db_path == tmp_path / "tasks.sqlite3"
    assert s.sync_interval_seconds == 5.0
    assert s.sound_volume == 1.0
    assert s.start_offline is True
    assert s.reminder_poll_seconds == 30.0
