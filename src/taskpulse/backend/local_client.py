# src/taskpulse/backend/local_client.py

from __future__ import annotations

"""
Async ResourceClient adapters over SqliteDatabase.

Calls go straight to SQLite on the event loop, the same way the scheduler loop talks to its
task store (short statements, one connection per call). Any exception is re-raised as RemoteCallFailure, so stores only ever see that one type.
"""

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from ..core.errors import RemoteCallFailure
from ..core.ports import Filters
from ..domain.models import Page, Pagination, Reminder, ReminderCreate, Tag, TagCreate, Task, TaskCreate
from .sqlite_store import SqliteDatabase

logger = logging.getLogger(__name__)

R = TypeVar("R")


class _SqliteClient:
    def __init__(self, db: SqliteDatabase) -> None:
        self._db = db

    async def _call(self, operation: str, fn: Callable[..., R], *args: Any) -> R:
        try:
            return fn(*args)
        except Exception as e:
            logger.debug("%s failed: %r", operation, e)
            raise RemoteCallFailure.wrap(operation, e) from e


class SqliteTaskClient(_SqliteClient):
    async def list(self, filters: Filters | None = None, pagination: Pagination | None = None) -> Page:
        page = pagination.page if pagination else 1
        size = pagination.page_size if pagination else None

        def run() -> tuple[list[Task], int]:
            return self._db.list_tasks(filters, page=page, page_size=size)

        items, total = await self._call("load tasks", run)
        return Page(items=items, total=total, page=page, page_size=size or total)

    async def get(self, entity_id: str) -> Task:
        return await self._call("load task", self._db.get_task, entity_id)

    async def create(self, payload: TaskCreate) -> Task:
        return await self._call("create task", self._db.create_task, payload)

    async def update(self, entity_id: str, payload: dict[str, Any]) -> Task:
        return await self._call("update task", self._db.update_task, entity_id, payload)

    async def delete(self, entity_id: str) -> None:
        await self._call("delete task", self._db.delete_task, entity_id)


class SqliteReminderClient(_SqliteClient):
    async def list(self, filters: Filters | None = None, pagination: Pagination | None = None) -> Page:
        task_id = (filters or {}).get("task_id")
        items = await self._call("load reminders", self._db.list_reminders, task_id)
        if pagination:
            start = (max(1, pagination.page) - 1) * pagination.page_size
            return Page(
                items=items[start : start + pagination.page_size],
                total=len(items),
                page=pagination.page,
                page_size=pagination.page_size,
            )
        return Page(items=items, total=len(items), page=1, page_size=len(items))

    async def get(self, entity_id: str) -> Reminder:
        return await self._call("load reminder", self._db.get_reminder, entity_id)

    async def create(self, payload: ReminderCreate) -> Reminder:
        return await self._call("create reminder", self._db.create_reminder, payload)

    async def update(self, entity_id: str, payload: dict[str, Any]) -> Reminder:
        return await self._call("update reminder", self._db.update_reminder, entity_id, payload)

    async def delete(self, entity_id: str) -> None:
        await self._call("delete reminder", self._db.delete_reminder, entity_id)

    async def list_due_reminders(self) -> list[Reminder]:
        return await self._call("load due reminders", self._db.list_due_reminders)


class SqliteTagClient(_SqliteClient):
    async def list(self, filters: Filters | None = None, pagination: Pagination | None = None) -> Page:
        items = await self._call("load tags", self._db.list_tags)
        return Page(items=items, total=len(items), page=1, page_size=len(items))

    async def get(self, entity_id: str) -> Tag:
        return await self._call("load tag", self._db.get_tag, entity_id)

    async def create(self, payload: TagCreate) -> Tag:
        return await self._call("create tag", self._db.create_tag, payload)

    async def update(self, entity_id: str, payload: dict[str, Any]) -> Tag:
        return await self._call("update tag", self._db.update_tag, entity_id, payload)

    async def delete(self, entity_id: str) -> None:
        await self._call("delete tag", self._db.delete_tag, entity_id)
