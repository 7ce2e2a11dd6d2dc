# src/taskpulse/stores/reminder_store.py

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any

from ..core.errors import RemoteCallFailure
from ..core.ports import ReminderClient
from ..domain.models import Reminder, ReminderCreate, format_instant
from ..domain.repeat import encode
from .entity_store import EntityStore

logger = logging.getLogger(__name__)


class ReminderStore(EntityStore[Reminder]):
    """
    Reminders.

    Deleting a task cascades to its reminders in the authoritative store only; this
    collection keeps them until the next fetch.
    """

    name = "reminders"
    label = "reminder"

    _client: ReminderClient

    def _synthesize(self, fields: ReminderCreate, temp_id: str, now: datetime) -> Reminder:
        return Reminder(
            id=temp_id,
            title=fields.title.strip(),
            remind_at=fields.remind_at,
            created_at=now,
            updated_at=now,
            task_id=fields.task_id,
            description=fields.description,
            repeat_interval=fields.repeat_interval,
            is_active=True,
        )

    def _update_payload(self, entity: Reminder) -> dict[str, Any]:
        return {
            "task_id": entity.task_id,
            "title": entity.title,
            "description": entity.description,
            "remind_at": format_instant(entity.remind_at),
            "repeat_interval": encode(entity.repeat_interval),
            "is_active": entity.is_active,
            "last_triggered_at": format_instant(entity.last_triggered_at),
        }

    async def fetch_for_task(self, task_id: str) -> bool:
        return await self.fetch_all({"task_id": task_id})

    async def fetch_due_reminders(self) -> list[Reminder]:
        """Reminders the store considers due now; [] when the call fails."""
        try:
            return list(await self._client.list_due_reminders())
        except RemoteCallFailure as e:
            logger.warning("Failed to fetch due reminders: %s", e.message)
            return []

    async def mark_triggered(self, reminder: Reminder, now: datetime) -> Reminder | None:
        """
        Record that `reminder` fired at `now`.

        One-shot reminders are deactivated; a first fire also stamps last_triggered_at.
        Repeating reminders only get last_triggered_at; remind_at stays the series anchor.
        Reminders not loaded yet (e.g. from a due poll) are ingested first.
        """
        if not reminder.is_active:
            return None

        if reminder.repeat_interval.is_repeating:
            updated = replace(reminder, last_triggered_at=now, updated_at=now)
        else:
            updated = replace(
                reminder,
                is_active=False,
                last_triggered_at=reminder.last_triggered_at or now,
                updated_at=now,
            )

        if self.get(reminder.id) is None:
            self.ingest(reminder)
        return await self.update(updated)
