# src/taskpulse/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the stores and the reminder scheduler.

Stores depend on Protocols instead of concrete implementations, so tests can plug in
in-memory fakes and the SQLite adapters stay swappable.

Every remote operation is async and raises RemoteCallFailure on rejection.
"""

from collections.abc import Callable, Mapping
from typing import Any, Protocol, TypeVar

from ..domain.models import Page, Pagination, Reminder

T = TypeVar("T")

Filters = Mapping[str, Any]


class ResourceClient(Protocol[T]):
    """Request/response CRUD against the authoritative store."""

    async def list(self, filters: Filters | None = None, pagination: Pagination | None = None) -> Page: ...
    async def get(self, entity_id: str) -> T: ...
    async def create(self, payload: Any) -> T: ...
    async def update(self, entity_id: str, payload: dict[str, Any]) -> T: ...
    async def delete(self, entity_id: str) -> None: ...


class ReminderClient(ResourceClient[Reminder], Protocol):
    async def list_due_reminders(self) -> list[Reminder]: ...


class SoundPlayer(Protocol):
    """Audible cue. Fire-and-forget; implementations may raise, callers swallow."""

    def play(self) -> None: ...


class Toaster(Protocol):
    """Transient in-app message."""

    def show(self, title: str, body: str, duration_seconds: float) -> None: ...


class DesktopNotifier(Protocol):
    """Platform-native notifications."""

    def request_permission(self) -> bool: ...
    def notify(self, title: str, body: str) -> None: ...


Unsubscribe = Callable[[], None]


class EventSource(Protocol):
    def subscribe(self, channel: str, handler: Callable[[Any], None]) -> Unsubscribe: ...
