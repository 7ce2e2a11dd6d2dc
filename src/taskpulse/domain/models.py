# src/taskpulse/domain/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from .repeat import NO_REPEAT, RepeatPolicy, next_fire_after

DEFAULT_TAG_COLOR = "#3b82f6"


def utcnow() -> datetime:
    return datetime.now(UTC)


def parse_instant(raw: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not raw:
        return None
    dt = datetime.fromisoformat(raw)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def format_instant(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    # Fixed width so stored values compare correctly as text.
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


class TaskStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskPriority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM


@dataclass(slots=True, frozen=True)
class Tag:
    id: str
    name: str
    color: str
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True, frozen=True)
class Task:
    id: str
    title: str
    status: TaskStatus
    priority: TaskPriority
    created_at: datetime
    updated_at: datetime

    description: str | None = None
    due_date: datetime | None = None
    completed_at: datetime | None = None
    notes: str | None = None
    estimated_minutes: int | None = None
    actual_minutes: int | None = None
    tags: tuple[Tag, ...] = ()


@dataclass(slots=True, frozen=True)
class Reminder:
    id: str
    title: str
    remind_at: datetime
    created_at: datetime
    updated_at: datetime

    task_id: str | None = None
    description: str | None = None
    repeat_interval: RepeatPolicy = NO_REPEAT
    is_active: bool = True
    last_triggered_at: datetime | None = None

    def is_due(self, now: datetime) -> bool:
        """
        Whether the reminder should fire at `now`.

        Every policy first fires at remind_at. One-shot policies (none, after) fire once,
        until last_triggered_at is set. Repeating policies fire again once the next slot
        after the last trigger has arrived.
        """
        if not self.is_active:
            return False

        if self.remind_at > now:
            return False

        if self.last_triggered_at is None:
            return True
        if not self.repeat_interval.is_repeating:
            return False

        upcoming = next_fire_after(self.repeat_interval, self.remind_at, self.last_triggered_at)
        return upcoming is not None and upcoming <= now


# ---- create inputs (what callers hand to stores / clients) ----


@dataclass(slots=True, frozen=True)
class TaskCreate:
    title: str
    priority: TaskPriority = TaskPriority.MEDIUM
    description: str | None = None
    due_date: datetime | None = None
    notes: str | None = None
    estimated_minutes: int | None = None
    tag_ids: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class ReminderCreate:
    title: str
    remind_at: datetime
    task_id: str | None = None
    description: str | None = None
    repeat_interval: RepeatPolicy = NO_REPEAT


@dataclass(slots=True, frozen=True)
class TagCreate:
    name: str
    color: str = DEFAULT_TAG_COLOR


@dataclass(slots=True, frozen=True)
class Page:
    """One page of a list() response."""

    items: list[Any] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 0


@dataclass(slots=True, frozen=True)
class Pagination:
    page: int = 1
    page_size: int = 50
