# tests/test_reminder_scheduler.py

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from taskpulse.core.events import REMINDER_TRIGGERED, EventBus
from taskpulse.domain.models import Reminder
from taskpulse.domain.repeat import RepeatPolicy
from taskpulse.reminders.presenter import NATIVE_TITLE, TOAST_TITLE, ReminderPresenter
from taskpulse.reminders.scheduler import ReminderScheduler, ReminderState, classify
from taskpulse.stores.reminder_store import ReminderStore

from .fakes import T0, FakeNotifier, FakeReminderClient, FakeSound, FakeToaster, make_reminder

NOW = T0 + timedelta(minutes=5)


def _wire(reminders: list[Reminder], **presenter_kw):
    client = FakeReminderClient(reminders)
    store = ReminderStore(client)
    parts = dict(sound=FakeSound(), toaster=FakeToaster(), notifier=FakeNotifier())
    parts.update(presenter_kw)
    presenter = ReminderPresenter(**parts)
    presenter.request_permission()
    events = EventBus()
    scheduler = ReminderScheduler(store, presenter, events, clock=lambda: NOW)
    return client, store, parts, events, scheduler


def _updates(client: FakeReminderClient) -> list[dict]:
    return [args[1] for op, args in client.calls if op == "update"]


def test_classify_states() -> None:
    assert classify(make_reminder()) == ReminderState.ARMED
    assert classify(make_reminder(last_triggered_at=T0)) == ReminderState.FIRED_PENDING_DEACTIVATION
    assert classify(make_reminder(repeat_interval=RepeatPolicy.every(1, "days"))) == ReminderState.REPEATING
    assert classify(make_reminder(is_active=False)) == ReminderState.INACTIVE


@pytest.mark.asyncio
async def test_one_shot_trigger_deactivates_exactly_once() -> None:
    r = make_reminder("r1", "Stand up", description="stretch")
    client, store, parts, _, scheduler = _wire([r])
    client.due = [r]

    handled = await scheduler.poll_once()
    assert [h.id for h in handled] == ["r1"]

    updates = _updates(client)
    assert len(updates) == 1
    assert updates[0]["is_active"] is False
    assert store.get("r1").is_active is False

    assert parts["sound"].played == 1
    assert parts["toaster"].shown == [(TOAST_TITLE, "Stand up - stretch", 10.0)]
    assert parts["notifier"].sent == [(NATIVE_TITLE, "Stand up")]


@pytest.mark.asyncio
async def test_repeating_trigger_never_deactivates() -> None:
    r = make_reminder("r1", repeat_interval=RepeatPolicy.every(1, "days"))
    client, store, parts, _, scheduler = _wire([r])
    client.due = [r]

    await scheduler.poll_once()

    updates = _updates(client)
    assert len(updates) == 1
    assert updates[0]["is_active"] is True
    assert updates[0]["last_triggered_at"] is not None
    assert store.get("r1").remind_at == r.remind_at
    assert parts["toaster"].shown


@pytest.mark.asyncio
async def test_fired_but_still_active_is_deactivated_without_second_presentation() -> None:
    r = make_reminder("r1", last_triggered_at=T0)
    client, _, parts, _, scheduler = _wire([r])
    client.due = [r]

    await scheduler.poll_once()

    assert parts["sound"].played == 0
    assert parts["toaster"].shown == []
    assert _updates(client)[0]["is_active"] is False


@pytest.mark.asyncio
async def test_duplicate_due_entries_are_handled_once() -> None:
    r = make_reminder("r1")
    client, _, parts, _, scheduler = _wire([r])
    client.due = [r, r]

    handled = await scheduler.poll_once()
    assert len(handled) == 1
    assert parts["sound"].played == 1


@pytest.mark.asyncio
async def test_due_reminder_missing_locally_is_ingested() -> None:
    r = make_reminder("r1")
    client, store, _, _, scheduler = _wire([r])
    client.due = [r]
    assert store.items == ()

    await scheduler.poll_once()
    assert store.get("r1") is not None
    assert store.get("r1").is_active is False


@pytest.mark.asyncio
async def test_presenter_failures_are_isolated() -> None:
    r = make_reminder("r1")
    client, _, parts, _, scheduler = _wire([r], sound=FakeSound(fail=True), toaster=FakeToaster(fail=True))
    client.due = [r]

    await scheduler.poll_once()
    assert parts["notifier"].sent == [(NATIVE_TITLE, r.title)]
    assert _updates(client)[0]["is_active"] is False


@pytest.mark.asyncio
async def test_no_native_notification_without_permission() -> None:
    r = make_reminder("r1")
    client, _, parts, _, scheduler = _wire([r], notifier=FakeNotifier(granted=False))
    client.due = [r]

    await scheduler.poll_once()
    assert parts["notifier"].sent == []
    assert parts["toaster"].shown


@pytest.mark.asyncio
async def test_event_trigger_and_subscription_guard() -> None:
    r = make_reminder("r1")
    client, store, parts, events, scheduler = _wire([r])
    await store.fetch_all()

    assert scheduler.subscribe() is True
    assert scheduler.subscribe() is False
    assert events.handler_count(REMINDER_TRIGGERED) == 1

    # the same reminder twice in one tick is presented once
    events.emit(REMINDER_TRIGGERED, r)
    events.emit(REMINDER_TRIGGERED, r)
    await asyncio.sleep(0)
    await scheduler.stop()

    assert parts["sound"].played == 1
    assert len(_updates(client)) == 1
    assert events.handler_count(REMINDER_TRIGGERED) == 0


@pytest.mark.asyncio
async def test_start_polls_and_stop_cancels() -> None:
    r = make_reminder("r1")
    client = FakeReminderClient([r])
    client.due = [r]
    store = ReminderStore(client)
    notifier = FakeNotifier()
    presenter = ReminderPresenter(sound=FakeSound(), toaster=FakeToaster(), notifier=notifier)
    scheduler = ReminderScheduler(store, presenter, EventBus(), interval_seconds=0.01)

    scheduler.start()
    scheduler.start()
    assert notifier.permission_requests == 1
    await asyncio.sleep(0.05)
    await scheduler.stop()

    assert not scheduler.is_running
    assert "list_due_reminders" in client.ops()


@pytest.mark.asyncio
async def test_offline_polls_present_one_shot_once() -> None:
    r = make_reminder("r1")
    client, store, parts, _, scheduler = _wire([r])
    store.set_online_status(False)
    client.due = [r]

    for _ in range(3):
        await scheduler.poll_once()

    assert parts["sound"].played == 1
    assert len(parts["toaster"].shown) == 1
    assert len(store.pending_operations) == 1
    assert _updates(client) == []


@pytest.mark.asyncio
async def test_offline_polls_wait_for_next_repeating_slot() -> None:
    r = make_reminder("r1", repeat_interval=RepeatPolicy.every(1, "days"))
    client, store, parts, _, scheduler = _wire([r])
    store.set_online_status(False)
    client.due = [r]

    await scheduler.poll_once()
    handled = await scheduler.poll_once()

    assert handled == []
    assert parts["sound"].played == 1
    assert store.get("r1").last_triggered_at == NOW
