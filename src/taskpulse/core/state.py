# src/taskpulse/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..reminders.scheduler import ReminderScheduler
from ..stores.entity_store import EntityStore
from ..stores.reminder_store import ReminderStore
from ..stores.tag_store import TagStore
from ..stores.task_store import TaskStore
from .events import EventBus


@dataclass(slots=True)
class AppState:
    """Everything the console and background loops share."""

    settings: Any

    task_store: TaskStore
    reminder_store: ReminderStore
    tag_store: TagStore
    events: EventBus
    scheduler: ReminderScheduler

    @property
    def stores(self) -> tuple[EntityStore[Any], ...]:
        return (self.task_store, self.reminder_store, self.tag_store)

    @property
    def is_online(self) -> bool:
        return all(s.is_online for s in self.stores)
