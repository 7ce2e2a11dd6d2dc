# tests/fakes.py

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

from taskpulse.core.errors import RemoteCallFailure
from taskpulse.domain.models import (
    Page,
    Reminder,
    ReminderCreate,
    Tag,
    TagCreate,
    Task,
    TaskCreate,
    TaskPriority,
    TaskStatus,
)
from taskpulse.domain.repeat import decode

T0 = datetime(2026, 1, 1, 9, 0, tzinfo=UTC)


def make_task(task_id: str = "t1", title: str = "Task", **kw: Any) -> Task:
    base = dict(
        id=task_id,
        title=title,
        status=TaskStatus.PENDING,
        priority=TaskPriority.MEDIUM,
        created_at=T0,
        updated_at=T0,
    )
    base.update(kw)
    return Task(**base)


def make_reminder(reminder_id: str = "r1", title: str = "Reminder", **kw: Any) -> Reminder:
    base = dict(id=reminder_id, title=title, remind_at=T0, created_at=T0, updated_at=T0)
    base.update(kw)
    return Reminder(**base)


class FakeClient:
    """
    In-memory ResourceClient.

    - `fail_on` holds operation names ("list", "create", ...) that raise RemoteCallFailure
    - `gate`, when set, makes every call wait for it (to hold a request in flight)
    - `calls` records (operation, args) for assertions
    """

    def __init__(self, items: list[Any] | None = None) -> None:
        self.items: dict[str, Any] = {i.id: i for i in (items or [])}
        self.fail_on: set[str] = set()
        self.fail_message = "connection refused"
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self._ids = itertools.count(1)

    async def _enter(self, op: str, *args: Any) -> None:
        self.calls.append((op, args))
        if self.gate is not None:
            await self.gate.wait()
        if op in self.fail_on:
            raise RemoteCallFailure(op, self.fail_message)

    def ops(self) -> list[str]:
        return [op for op, _ in self.calls]

    def _new_id(self) -> str:
        return f"srv-{next(self._ids)}"

    def _build(self, payload: Any, new_id: str) -> Any:
        raise NotImplementedError

    def _apply(self, current: Any, payload: dict[str, Any]) -> Any:
        known = {k: v for k, v in payload.items() if hasattr(current, k) and k != "tags"}
        return replace(current, **known)

    async def list(self, filters=None, pagination=None) -> Page:
        await self._enter("list", filters)
        items = list(self.items.values())
        return Page(items=items, total=len(items), page=1, page_size=len(items))

    async def get(self, entity_id: str) -> Any:
        await self._enter("get", entity_id)
        if entity_id not in self.items:
            raise RemoteCallFailure("get", f"not found: {entity_id}")
        return self.items[entity_id]

    async def create(self, payload: Any) -> Any:
        await self._enter("create", payload)
        entity = self._build(payload, self._new_id())
        self.items[entity.id] = entity
        return entity

    async def update(self, entity_id: str, payload: dict[str, Any]) -> Any:
        await self._enter("update", entity_id, payload)
        if entity_id not in self.items:
            raise RemoteCallFailure("update", f"not found: {entity_id}")
        entity = self._apply(self.items[entity_id], payload)
        self.items[entity_id] = entity
        return entity

    async def delete(self, entity_id: str) -> None:
        await self._enter("delete", entity_id)
        if self.items.pop(entity_id, None) is None:
            raise RemoteCallFailure("delete", f"not found: {entity_id}")


class FakeTaskClient(FakeClient):
    def _build(self, payload: TaskCreate, new_id: str) -> Task:
        return make_task(new_id, payload.title, priority=payload.priority, description=payload.description)

    def _apply(self, current: Task, payload: dict[str, Any]) -> Task:
        plain = {k: v for k, v in payload.items() if k not in ("status", "priority", "due_date")}
        out = super()._apply(current, plain)
        if payload.get("status"):
            out = replace(out, status=TaskStatus(payload["status"]))
        if payload.get("priority"):
            out = replace(out, priority=TaskPriority(payload["priority"]))
        return out


class FakeReminderClient(FakeClient):
    def __init__(self, items: list[Reminder] | None = None) -> None:
        super().__init__(items)
        self.due: list[Reminder] = []

    def _build(self, payload: ReminderCreate, new_id: str) -> Reminder:
        return make_reminder(
            new_id,
            payload.title,
            remind_at=payload.remind_at,
            task_id=payload.task_id,
            repeat_interval=payload.repeat_interval,
        )

    def _apply(self, current: Reminder, payload: dict[str, Any]) -> Reminder:
        out = replace(
            current,
            title=payload.get("title", current.title),
            is_active=bool(payload.get("is_active", current.is_active)),
        )
        if "repeat_interval" in payload:
            out = replace(out, repeat_interval=decode(payload["repeat_interval"]))
        if payload.get("last_triggered_at"):
            out = replace(out, last_triggered_at=datetime.fromisoformat(payload["last_triggered_at"]))
        return out

    async def list_due_reminders(self) -> list[Reminder]:
        await self._enter("list_due_reminders")
        return list(self.due)


@dataclass(slots=True)
class FakeSound:
    played: int = 0
    fail: bool = False

    def play(self) -> None:
        self.played += 1
        if self.fail:
            raise RuntimeError("no audio device")


@dataclass(slots=True)
class FakeToaster:
    shown: list[tuple[str, str, float]] = field(default_factory=list)
    fail: bool = False

    def show(self, title: str, body: str, duration_seconds: float) -> None:
        if self.fail:
            raise RuntimeError("toast failed")
        self.shown.append((title, body, duration_seconds))


@dataclass(slots=True)
class FakeNotifier:
    granted: bool = True
    sent: list[tuple[str, str]] = field(default_factory=list)
    permission_requests: int = 0

    def request_permission(self) -> bool:
        self.permission_requests += 1
        return self.granted

    def notify(self, title: str, body: str) -> None:
        self.sent.append((title, body))


class FakeTagClient(FakeClient):
    def _build(self, payload: TagCreate, new_id: str) -> Tag:
        return Tag(id=new_id, name=payload.name, color=payload.color, created_at=T0, updated_at=T0)
