# src/taskpulse/stores/task_store.py

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any

from ..domain.models import Task, TaskCreate, TaskStatus, format_instant
from .entity_store import EntityStore

logger = logging.getLogger(__name__)


class TaskStore(EntityStore[Task]):
    """Tasks, most recent first."""

    name = "tasks"
    label = "task"

    def _synthesize(self, fields: TaskCreate, temp_id: str, now: datetime) -> Task:
        return Task(
            id=temp_id,
            title=fields.title.strip(),
            status=TaskStatus.PENDING,
            priority=fields.priority,
            created_at=now,
            updated_at=now,
            description=fields.description,
            due_date=fields.due_date,
            notes=fields.notes,
            estimated_minutes=fields.estimated_minutes,
        )

    def _update_payload(self, entity: Task) -> dict[str, Any]:
        return {
            "title": entity.title,
            "description": entity.description,
            "status": entity.status.value,
            "priority": entity.priority.value,
            "due_date": format_instant(entity.due_date),
            "notes": entity.notes,
            "estimated_minutes": entity.estimated_minutes,
            "actual_minutes": entity.actual_minutes,
            "tag_ids": [t.id for t in entity.tags],
        }

    async def mark_task_complete(self, task_id: str) -> Task | None:
        task = self.get(task_id)
        if task is None:
            logger.debug("mark_task_complete: %s not loaded", task_id)
            return None

        now = self._clock()
        done = replace(task, status=TaskStatus.COMPLETED, completed_at=now, updated_at=now)
        return await self.update(done)
