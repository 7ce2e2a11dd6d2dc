# src/taskpulse/cli/commands.py

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Any

from ..core.events import REMINDER_TRIGGERED
from ..core.state import AppState
from ..domain.models import (
    DEFAULT_TAG_COLOR,
    ReminderCreate,
    TagCreate,
    TaskCreate,
    TaskPriority,
    TaskStatus,
    utcnow,
)
from ..domain.repeat import NO_REPEAT, decode, describe
from ..stores.entity_store import EntityStore

CommandHandler = Callable[[AppState, list[str]], Awaitable[str]]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return await handler(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _fmt_local(dt: datetime | None) -> str:
    if dt is None:
        return "-"
    return dt.astimezone().strftime("%Y-%m-%d %H:%M")


def _resolve(store: EntityStore[Any], ref: str) -> Any | None:
    """Accept a 1-based position in the current listing or an id."""
    if ref.isdigit():
        idx = int(ref) - 1
        items = store.items
        if 0 <= idx < len(items):
            return items[idx]
        return None
    return store.get(ref)


_DELAY_RE = re.compile(r"^(\d+)([smhd]?)$")
_DELAY_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400, "": 60}


def parse_when(raw: str, now: datetime) -> datetime | None:
    """
    "10" / "10m" / "2h" / "1d" / "30s" -> now + delay (bare numbers are minutes);
    anything else is tried as an ISO-8601 timestamp (naive means local time).
    """
    m = _DELAY_RE.match(raw.strip().lower())
    if m:
        return now + timedelta(seconds=int(m.group(1)) * _DELAY_UNITS[m.group(2)])
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return dt


def _error_or(store: EntityStore[Any], fallback: str) -> str:
    return store.last_error or fallback


# ---- commands ----


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_status(state: AppState, args: list[str]) -> str:
    lines = ["Status:"]
    for store in state.stores:
        flags = "online" if store.is_online else "offline"
        if store.is_syncing:
            flags += ", syncing"
        lines.append(
            f"  {store.name}: {len(store.items)} loaded, {flags}, "
            f"pending={len(store.pending_operations)}, last sync {_fmt_local(store.last_sync_at)}"
        )
        if store.last_error:
            lines.append(f"    last error: {store.last_error}")
    lines.append(f"  Reminder polling: {'ON' if state.scheduler.is_running else 'OFF'}")
    return "\n".join(lines)


async def cmd_tasks(state: AppState, args: list[str]) -> str:
    """
    /tasks            -> list loaded tasks
    /tasks completed  -> only tasks with that status
    """
    store = state.task_store
    status: TaskStatus | None = None
    if args:
        try:
            status = TaskStatus(args[0].lower())
        except ValueError:
            return f"Unknown status {args[0]!r}. Use one of: {', '.join(s.value for s in TaskStatus)}."

    if not store.items:
        return "No tasks."

    lines = ["Tasks:"]
    for i, t in enumerate(store.items, start=1):
        if status is not None and t.status != status:
            continue
        due = f" due {_fmt_local(t.due_date)}" if t.due_date else ""
        tags = f" #{' #'.join(tag.name for tag in t.tags)}" if t.tags else ""
        lines.append(f"  {i}. [{t.status.value}] {t.title} ({t.priority.value}){due}{tags}  id={t.id}")
    return "\n".join(lines)


async def cmd_add(state: AppState, args: list[str]) -> str:
    """/add <title...> [!low|!medium|!high|!urgent] [#tag ...]"""
    priority = TaskPriority.MEDIUM
    tag_ids: list[str] = []
    words: list[str] = []

    for a in args:
        if a.startswith("!") and len(a) > 1:
            try:
                priority = TaskPriority(a[1:].lower())
            except ValueError:
                return f"Unknown priority {a[1:]!r}."
            continue
        if a.startswith("#") and len(a) > 1:
            tag = next((t for t in state.tag_store.items if t.name.casefold() == a[1:].casefold()), None)
            if tag is None:
                return f"Unknown tag {a[1:]!r}. Create it with /tag {a[1:]}."
            tag_ids.append(tag.id)
            continue
        words.append(a)

    title = " ".join(words).strip()
    if not title:
        return "Usage: /add <title> [!priority] [#tag]"

    task = await state.task_store.create(TaskCreate(title=title, priority=priority, tag_ids=tuple(tag_ids)))
    if task is None:
        return _error_or(state.task_store, "Failed to create task.")
    return f"Task added: {task.title} (id={task.id})"


async def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <n|id>"
    task = _resolve(state.task_store, args[0])
    if task is None:
        return f"No task {args[0]!r}."
    done = await state.task_store.mark_task_complete(task.id)
    if done is None:
        return _error_or(state.task_store, "Failed to update task.")
    return f"Completed: {done.title}"


async def cmd_rm(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <n|id>"
    task = _resolve(state.task_store, args[0])
    if task is None:
        return f"No task {args[0]!r}."
    if not await state.task_store.delete(task.id):
        return _error_or(state.task_store, "Failed to delete task.")
    return f"Deleted: {task.title}"


async def cmd_reminders(state: AppState, args: list[str]) -> str:
    store = state.reminder_store
    if not store.items:
        return "No reminders."
    lines = ["Reminders:"]
    for i, r in enumerate(store.items, start=1):
        flag = "" if r.is_active else " (inactive)"
        lines.append(f"  {i}. {_fmt_local(r.remind_at)} {r.title} [{describe(r.repeat_interval)}]{flag}  id={r.id}")
    return "\n".join(lines)


async def cmd_remind(state: AppState, args: list[str]) -> str:
    """
    /remind <when> <title...> [@every_1_days] [task=<n|id>]

    <when>: 10 | 10m | 2h | 1d | 30s | 2026-03-01T09:00
    """
    if len(args) < 2:
        return "Usage: /remind <when> <title> [@every_1_days] [task=<n|id>]"

    remind_at = parse_when(args[0], utcnow())
    if remind_at is None:
        return f"Cannot parse time {args[0]!r}."

    policy = NO_REPEAT
    task_id: str | None = None
    words: list[str] = []
    for a in args[1:]:
        if a.startswith("@") and len(a) > 1:
            policy = decode(a[1:])
            if policy == NO_REPEAT and a[1:].lower() != "none":
                return f"Invalid repeat {a[1:]!r}. Examples: @every_1_days, @after_30_minutes."
            continue
        if a.startswith("task="):
            task = _resolve(state.task_store, a[len("task=") :])
            if task is None:
                return f"No task {a[len('task=') :]!r}."
            task_id = task.id
            continue
        words.append(a)

    title = " ".join(words).strip()
    if not title:
        return "Reminder title is empty."

    reminder = await state.reminder_store.create(
        ReminderCreate(title=title, remind_at=remind_at, task_id=task_id, repeat_interval=policy)
    )
    if reminder is None:
        return _error_or(state.reminder_store, "Failed to create reminder.")
    return f"Reminder set for {_fmt_local(reminder.remind_at)}: {reminder.title} [{describe(policy)}]"


async def cmd_trigger(state: AppState, args: list[str]) -> str:
    """Emit a reminder-triggered event by hand, as an external emitter would."""
    if not args:
        return "Usage: /trigger <n|id>"
    reminder = _resolve(state.reminder_store, args[0])
    if reminder is None:
        return f"No reminder {args[0]!r}."
    delivered = state.events.emit(REMINDER_TRIGGERED, reminder)
    if not delivered:
        return "Nobody is listening for reminder triggers."
    return f"Triggered: {reminder.title}"


async def cmd_tags(state: AppState, args: list[str]) -> str:
    if not state.tag_store.items:
        return "No tags."
    return "Tags:\n" + "\n".join(f"  {t.name} {t.color}  id={t.id}" for t in state.tag_store.items)


async def cmd_tag(state: AppState, args: list[str]) -> str:
    """/tag <name> [#rrggbb]"""
    if not args:
        return "Usage: /tag <name> [#rrggbb]"
    color = args[1] if len(args) > 1 else DEFAULT_TAG_COLOR
    tag = await state.tag_store.create(TagCreate(name=args[0], color=color))
    if tag is None:
        return _error_or(state.tag_store, "Failed to create tag.")
    return f"Tag added: {tag.name}"


async def cmd_offline(state: AppState, args: list[str]) -> str:
    for store in state.stores:
        store.set_online_status(False)
    return "Offline. Changes will be queued until /online."


async def cmd_online(state: AppState, args: list[str]) -> str:
    drains = {store.name: store.set_online_status(True) for store in state.stores}
    started = {name: task for name, task in drains.items() if task is not None}
    if not started:
        return "Already online."

    outcomes = dict(zip(started, await asyncio.gather(*started.values())))
    replayed = sum(o.replayed for o in outcomes.values())
    failed = [name for name, o in outcomes.items() if not o.ok]
    if failed:
        return f"Online. Replayed {replayed} change(s); sync failed for: {', '.join(failed)}."
    return f"Online. Replayed {replayed} change(s)."


async def cmd_sync(state: AppState, args: list[str]) -> str:
    lines: list[str] = []
    for store in state.stores:
        outcome = await store.sync_pending_operations()
        if outcome.skipped:
            lines.append(f"{store.name}: skipped ({'offline' if not store.is_online else 'sync running'})")
            continue
        if not outcome.ok:
            lines.append(f"{store.name}: {store.last_error}")
            continue
        # drain already refetched when it replayed something
        if not outcome.replayed:
            await store.refresh()
        lines.append(f"{store.name}: replayed {outcome.replayed}, {len(store.items)} loaded")
    return "\n".join(lines)


async def cmd_pending(state: AppState, args: list[str]) -> str:
    lines: list[str] = []
    for store in state.stores:
        for op in store.pending_operations:
            lines.append(f"  {store.name}: {op.kind.value} {op.entity_id} (queued {_fmt_local(op.enqueued_at)})")
    if not lines:
        return "No pending changes."
    return "Pending changes:\n" + "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show connectivity, pending changes and errors.")
registry.register("tasks", cmd_tasks, help_text="List tasks: /tasks [status].", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add a task: /add <title> [!priority] [#tag].")
registry.register("done", cmd_done, help_text="Complete a task: /done <n|id>.")
registry.register("rm", cmd_rm, help_text="Delete a task (and its reminders): /rm <n|id>.")
registry.register("reminders", cmd_reminders, help_text="List reminders.")
registry.register(
    "remind",
    cmd_remind,
    help_text="Add a reminder: /remind <when> <title> [@every_1_days] [task=<n|id>].",
)
registry.register("trigger", cmd_trigger, help_text="Fire a reminder now: /trigger <n|id>.")
registry.register("tags", cmd_tags, help_text="List tags.")
registry.register("tag", cmd_tag, help_text="Add a tag: /tag <name> [#rrggbb].")
registry.register("offline", cmd_offline, help_text="Go offline (queue changes).")
registry.register("online", cmd_online, help_text="Go online and replay queued changes.")
registry.register("sync", cmd_sync, help_text="Replay queued changes and refresh everything.")
registry.register("pending", cmd_pending, help_text="Show queued offline changes.")
