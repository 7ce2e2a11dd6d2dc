# src/taskpulse/reminders/scheduler.py

from __future__ import annotations

"""
Reminder scheduler (client side).

The authoritative store decides what is due. This module:
- polls for due reminders on its own timer,
- listens for "reminder-triggered" events from an external emitter,
- presents each fired reminder and advances its state through the ReminderStore.

Per-reminder states:
    ARMED                       one-shot (none/after), active, never fired
    FIRED_PENDING_DEACTIVATION  one-shot that fired but is still active
    REPEATING                   every_*, active
    INACTIVE                    is_active = False (terminal until edited)

Trigger transitions:
    ARMED       -> present, then update(is_active=False, last_triggered_at=now)
    FIRED_...   -> update(is_active=False) again, no second presentation
    REPEATING   -> present, then update(last_triggered_at=now); remind_at is untouched,
                   the next slot follows from the repeat policy
    INACTIVE    -> ignored
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from enum import StrEnum

from ..core.events import REMINDER_TRIGGERED
from ..core.ports import EventSource, Unsubscribe
from ..domain.models import Reminder, utcnow
from ..stores.reminder_store import ReminderStore
from ..sync.periodic import PeriodicJob
from .presenter import ReminderPresenter

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 30.0


class ReminderState(StrEnum):
    ARMED = "armed"
    FIRED_PENDING_DEACTIVATION = "fired_pending_deactivation"
    REPEATING = "repeating"
    INACTIVE = "inactive"


def classify(reminder: Reminder) -> ReminderState:
    if not reminder.is_active:
        return ReminderState.INACTIVE
    if reminder.repeat_interval.is_repeating:
        return ReminderState.REPEATING
    if reminder.last_triggered_at is not None:
        return ReminderState.FIRED_PENDING_DEACTIVATION
    return ReminderState.ARMED


def unique_by_id(reminders: list[Reminder]) -> list[Reminder]:
    seen: set[str] = set()
    out: list[Reminder] = []
    for r in reminders:
        if r.id in seen:
            continue
        seen.add(r.id)
        out.append(r)
    return out


class ReminderScheduler:
    def __init__(
        self,
        store: ReminderStore,
        presenter: ReminderPresenter,
        events: EventSource | None = None,
        *,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._presenter = presenter
        self._events = events
        self._clock = clock
        self._job = PeriodicJob("reminder-poll", self._poll_tick, interval_seconds=interval_seconds)

        self._unsubscribe: Unsubscribe | None = None
        self._seen_this_tick: set[str] = set()
        self._inflight: set[asyncio.Task[Reminder | None]] = set()

    @property
    def is_running(self) -> bool:
        return self._job.is_running

    @property
    def is_subscribed(self) -> bool:
        return self._unsubscribe is not None

    # ---- lifecycle ----

    def subscribe(self) -> bool:
        """Subscribe to trigger events once; later calls are no-ops. Returns True if subscribed now."""
        if self._events is None or self._unsubscribe is not None:
            return False
        self._unsubscribe = self._events.subscribe(REMINDER_TRIGGERED, self._on_event)
        return True

    def start(self) -> asyncio.Task[None]:
        if not self._job.is_running:
            self._presenter.request_permission()
        self.subscribe()
        return self._job.start()

    async def stop(self) -> None:
        await self._job.stop_and_wait()
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)

    # ---- due polling ----

    async def _poll_tick(self) -> None:
        await self.poll_once()

    async def poll_once(self) -> list[Reminder]:
        """Fetch due reminders and handle each one once. Returns the handled reminders."""
        due = unique_by_id(await self._store.fetch_due_reminders())
        if not due:
            return []

        logger.info("Found %d due reminder(s)", len(due))
        now = self._clock()
        handled: list[Reminder] = []
        for reminder in due:
            current = self._local_view(reminder)
            if current is not reminder and not current.is_due(now):
                # already handled locally; the store has not seen the update yet
                logger.debug("Due reminder already handled locally id=%s", reminder.id)
                continue
            try:
                await self.handle_triggered(current)
            except Exception:
                logger.exception("Failed to handle due reminder id=%s", reminder.id)
                continue
            handled.append(current)
        return handled

    def _local_view(self, reminder: Reminder) -> Reminder:
        """The local copy when it records a newer trigger (or deactivation) than `reminder`."""
        local = self._store.get(reminder.id)
        if local is None or local is reminder:
            return reminder
        if not local.is_active:
            return local
        if local.last_triggered_at is None:
            return reminder
        if reminder.last_triggered_at is None or local.last_triggered_at > reminder.last_triggered_at:
            return local
        return reminder

    # ---- events ----

    def _on_event(self, payload: object) -> None:
        if not isinstance(payload, Reminder):
            logger.warning("Ignoring %s payload of type %s", REMINDER_TRIGGERED, type(payload).__name__)
            return

        if payload.id in self._seen_this_tick:
            logger.debug("Duplicate trigger ignored id=%s", payload.id)
            return

        loop = asyncio.get_running_loop()
        if not self._seen_this_tick:
            loop.call_soon(self._seen_this_tick.clear)
        self._seen_this_tick.add(payload.id)

        task = loop.create_task(self._handle_event(payload))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _handle_event(self, reminder: Reminder) -> Reminder | None:
        try:
            return await self.handle_triggered(reminder)
        except Exception:
            logger.exception("Failed to handle trigger event id=%s", reminder.id)
            return None

    # ---- transitions ----

    async def handle_triggered(self, reminder: Reminder) -> Reminder | None:
        state = classify(reminder)
        if state == ReminderState.INACTIVE:
            logger.debug("Trigger for inactive reminder ignored id=%s", reminder.id)
            return None

        if state != ReminderState.FIRED_PENDING_DEACTIVATION:
            self._presenter.present(reminder)

        return await self._store.mark_triggered(reminder, self._clock())
