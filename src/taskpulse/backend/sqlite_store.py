# src/taskpulse/backend/sqlite_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import uuid
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

from ..domain.models import (
    DEFAULT_TAG_COLOR,
    Reminder,
    ReminderCreate,
    Tag,
    TagCreate,
    Task,
    TaskCreate,
    TaskPriority,
    TaskStatus,
    format_instant,
    parse_instant,
    utcnow,
)
from ..domain.repeat import decode, encode

logger = logging.getLogger(__name__)

TITLE_MAX = 200
TASK_DESCRIPTION_MAX = 2000
REMINDER_DESCRIPTION_MAX = 1000


class ValidationError(ValueError):
    def __init__(self, message: str) -> None:
        super().__init__(f"Validation error: {message}")


class RecordNotFound(LookupError):
    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} not found: {record_id}")


def _new_id() -> str:
    return str(uuid.uuid4())


def _check_title(title: str | None) -> str:
    t = (title or "").strip()
    if not t:
        raise ValidationError("Title cannot be empty")
    if len(t) > TITLE_MAX:
        raise ValidationError(f"Title cannot exceed {TITLE_MAX} characters")
    return t


def _check_description(desc: str | None, limit: int) -> None:
    if desc is not None and len(desc) > limit:
        raise ValidationError(f"Description cannot exceed {limit} characters")


class SqliteDatabase:
    """
    SQLite authoritative store for tasks, reminders and tags.

    The schema is migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection, so calls may run in worker threads
    """

    def __init__(self, db_path: str | Path = "taskpulse.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("Database ready db=%s tasks=%s", self._db_path, total)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        conn.execute("PRAGMA foreign_keys=ON")
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.executescript(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT,
                    status TEXT NOT NULL DEFAULT 'pending',
                    priority TEXT NOT NULL DEFAULT 'medium',
                    due_date TEXT,
                    completed_at TEXT,
                    notes TEXT,
                    estimated_minutes INTEGER,
                    actual_minutes INTEGER,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS reminders (
                    id TEXT PRIMARY KEY NOT NULL,
                    task_id TEXT,
                    title TEXT NOT NULL,
                    description TEXT,
                    remind_at TEXT NOT NULL,
                    repeat_interval TEXT NOT NULL DEFAULT 'none',
                    is_active INTEGER NOT NULL DEFAULT 1,
                    last_triggered_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (task_id) REFERENCES tasks(id) ON DELETE CASCADE
                );

                CREATE TABLE IF NOT EXISTS tags (
                    id TEXT PRIMARY KEY NOT NULL,
                    name TEXT NOT NULL UNIQUE,
                    color TEXT NOT NULL DEFAULT '#3b82f6',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS task_tags (
                    task_id TEXT NOT NULL,
                    tag_id TEXT NOT NULL,
                    PRIMARY KEY (task_id, tag_id),
                    FOREIGN KEY (task_id) REFERENCES tasks(id) ON DELETE CASCADE,
                    FOREIGN KEY (tag_id) REFERENCES tags(id) ON DELETE CASCADE
                );
                """
            )

            cur.execute("PRAGMA table_info(reminders)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE reminders ADD COLUMN {name} {decl}")
                logger.info("Database migration: added reminders.%s", name)

            # Older databases predate these columns.
            add_col("repeat_interval", "TEXT NOT NULL DEFAULT 'none'")
            add_col("last_triggered_at", "TEXT")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_created_at ON tasks(created_at)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_reminders_task_id ON reminders(task_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_reminders_active_remind_at ON reminders(is_active, remind_at)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_task_tags_tag_id ON task_tags(tag_id)")

            conn.commit()
        finally:
            conn.close()

    # ---- row mapping ----

    @staticmethod
    def _row_to_tag(row: sqlite3.Row) -> Tag:
        return Tag(
            id=row["id"],
            name=row["name"],
            color=row["color"] or DEFAULT_TAG_COLOR,
            created_at=parse_instant(row["created_at"]) or utcnow(),
            updated_at=parse_instant(row["updated_at"]) or utcnow(),
        )

    def _tags_for(self, conn: sqlite3.Connection, task_id: str) -> tuple[Tag, ...]:
        cur = conn.execute(
            """
            SELECT t.*
            FROM tags t
            JOIN task_tags tt ON tt.tag_id = t.id
            WHERE tt.task_id = ?
            ORDER BY t.name
            """,
            (task_id,),
        )
        return tuple(self._row_to_tag(r) for r in cur.fetchall())

    def _row_to_task(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Task:
        return Task(
            id=row["id"],
            title=row["title"],
            status=TaskStatus.from_db(row["status"]),
            priority=TaskPriority.from_db(row["priority"]),
            created_at=parse_instant(row["created_at"]) or utcnow(),
            updated_at=parse_instant(row["updated_at"]) or utcnow(),
            description=row["description"],
            due_date=parse_instant(row["due_date"]),
            completed_at=parse_instant(row["completed_at"]),
            notes=row["notes"],
            estimated_minutes=row["estimated_minutes"],
            actual_minutes=row["actual_minutes"],
            tags=self._tags_for(conn, row["id"]),
        )

    @staticmethod
    def _row_to_reminder(row: sqlite3.Row) -> Reminder:
        return Reminder(
            id=row["id"],
            title=row["title"],
            remind_at=parse_instant(row["remind_at"]) or utcnow(),
            created_at=parse_instant(row["created_at"]) or utcnow(),
            updated_at=parse_instant(row["updated_at"]) or utcnow(),
            task_id=row["task_id"],
            description=row["description"],
            repeat_interval=decode(row["repeat_interval"]),
            is_active=bool(row["is_active"]),
            last_triggered_at=parse_instant(row["last_triggered_at"]),
        )

    @staticmethod
    def _set_task_tags(conn: sqlite3.Connection, task_id: str, tag_ids: list[str] | tuple[str, ...]) -> None:
        conn.execute("DELETE FROM task_tags WHERE task_id = ?", (task_id,))
        for tag_id in dict.fromkeys(tag_ids):
            conn.execute("INSERT INTO task_tags(task_id, tag_id) VALUES (?, ?)", (task_id, tag_id))

    # ---- tasks ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def list_tasks(
        self,
        filters: Mapping[str, Any] | None = None,
        *,
        page: int = 1,
        page_size: int | None = None,
    ) -> tuple[list[Task], int]:
        """
        Tasks, newest first. Supported filters: status, priority, tag_id, search.
        Returns (items, total matching rows).
        """
        conditions: list[str] = []
        params: list[Any] = []
        f = dict(filters or {})

        if f.get("status"):
            conditions.append("status = ?")
            params.append(str(f["status"]))
        if f.get("priority"):
            conditions.append("priority = ?")
            params.append(str(f["priority"]))
        if f.get("tag_id"):
            conditions.append("id IN (SELECT task_id FROM task_tags WHERE tag_id = ?)")
            params.append(str(f["tag_id"]))
        if f.get("search"):
            conditions.append("(title LIKE ? OR description LIKE ?)")
            pattern = f"%{f['search']}%"
            params.extend([pattern, pattern])

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        conn = self._get_conn()
        try:
            (total,) = conn.execute(f"SELECT COUNT(*) FROM tasks {where}", params).fetchone()

            sql = f"SELECT * FROM tasks {where} ORDER BY created_at DESC"
            query_params = list(params)
            if page_size:
                sql += " LIMIT ? OFFSET ?"
                query_params.extend([int(page_size), (max(1, int(page)) - 1) * int(page_size)])

            rows = conn.execute(sql, query_params).fetchall()
            return [self._row_to_task(conn, r) for r in rows], int(total)
        finally:
            conn.close()

    def get_task(self, task_id: str) -> Task:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            if row is None:
                raise RecordNotFound("Task", task_id)
            return self._row_to_task(conn, row)
        finally:
            conn.close()

    def create_task(self, data: TaskCreate) -> Task:
        title = _check_title(data.title)
        _check_description(data.description, TASK_DESCRIPTION_MAX)
        if data.estimated_minutes is not None and data.estimated_minutes < 0:
            raise ValidationError("Estimated minutes cannot be negative")

        task_id = _new_id()
        now = format_instant(utcnow())

        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO tasks(
                    id, title, description, status, priority, due_date,
                    notes, estimated_minutes, created_at, updated_at
                )
                VALUES (?, ?, ?, 'pending', ?, ?, ?, ?, ?, ?)
                """,
                (
                    task_id,
                    title,
                    data.description,
                    TaskPriority(data.priority).value,
                    format_instant(data.due_date),
                    data.notes,
                    data.estimated_minutes,
                    now,
                    now,
                ),
            )
            self._set_task_tags(conn, task_id, data.tag_ids)
            conn.commit()
            logger.debug("Task created id=%s", task_id)
        finally:
            conn.close()
        return self.get_task(task_id)

    def update_task(self, task_id: str, fields: Mapping[str, Any]) -> Task:
        current = self.get_task(task_id)

        sets: list[str] = []
        params: list[Any] = []

        if "title" in fields:
            sets.append("title = ?")
            params.append(_check_title(fields["title"]))
        if "description" in fields:
            _check_description(fields["description"], TASK_DESCRIPTION_MAX)
            sets.append("description = ?")
            params.append(fields["description"])
        if "priority" in fields and fields["priority"] is not None:
            sets.append("priority = ?")
            params.append(TaskPriority.from_db(str(fields["priority"])).value)
        if "status" in fields and fields["status"] is not None:
            status = TaskStatus.from_db(str(fields["status"]))
            sets.append("status = ?")
            params.append(status.value)
            # completed_at follows status transitions
            if status == TaskStatus.COMPLETED and current.status != TaskStatus.COMPLETED:
                sets.append("completed_at = ?")
                params.append(format_instant(utcnow()))
            elif status != TaskStatus.COMPLETED and current.status == TaskStatus.COMPLETED:
                sets.append("completed_at = NULL")
        for name in ("due_date",):
            if name in fields:
                sets.append(f"{name} = ?")
                raw = fields[name]
                params.append(format_instant(raw) if isinstance(raw, datetime) else raw)
        for name in ("notes", "estimated_minutes", "actual_minutes"):
            if name in fields:
                sets.append(f"{name} = ?")
                params.append(fields[name])

        conn = self._get_conn()
        try:
            if sets:
                sets.append("updated_at = ?")
                params.append(format_instant(utcnow()))
                conn.execute(f"UPDATE tasks SET {', '.join(sets)} WHERE id = ?", (*params, task_id))
            if "tag_ids" in fields and fields["tag_ids"] is not None:
                self._set_task_tags(conn, task_id, list(fields["tag_ids"]))
            conn.commit()
        finally:
            conn.close()
        return self.get_task(task_id)

    def delete_task(self, task_id: str) -> None:
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            conn.commit()
            if cur.rowcount == 0:
                raise RecordNotFound("Task", task_id)
            logger.debug("Task deleted id=%s (reminders cascade)", task_id)
        finally:
            conn.close()

    # ---- reminders ----

    def list_reminders(self, task_id: str | None = None) -> list[Reminder]:
        conn = self._get_conn()
        try:
            if task_id:
                rows = conn.execute(
                    "SELECT * FROM reminders WHERE task_id = ? ORDER BY remind_at ASC", (task_id,)
                ).fetchall()
            else:
                rows = conn.execute("SELECT * FROM reminders ORDER BY remind_at ASC").fetchall()
            return [self._row_to_reminder(r) for r in rows]
        finally:
            conn.close()

    def get_reminder(self, reminder_id: str) -> Reminder:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM reminders WHERE id = ?", (reminder_id,)).fetchone()
            if row is None:
                raise RecordNotFound("Reminder", reminder_id)
            return self._row_to_reminder(row)
        finally:
            conn.close()

    def create_reminder(self, data: ReminderCreate, *, now: datetime | None = None) -> Reminder:
        title = _check_title(data.title)
        _check_description(data.description, REMINDER_DESCRIPTION_MAX)
        now_dt = now or utcnow()
        if data.remind_at <= now_dt:
            raise ValidationError("Reminder time must be in the future")

        reminder_id = _new_id()
        ts = format_instant(now_dt)
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO reminders(
                    id, task_id, title, description, remind_at,
                    repeat_interval, is_active, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, 1, ?, ?)
                """,
                (
                    reminder_id,
                    data.task_id,
                    title,
                    data.description,
                    format_instant(data.remind_at),
                    encode(data.repeat_interval),
                    ts,
                    ts,
                ),
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            raise ValidationError(f"Unknown task_id {data.task_id!r}") from e
        finally:
            conn.close()
        return self.get_reminder(reminder_id)

    def update_reminder(self, reminder_id: str, fields: Mapping[str, Any], *, now: datetime | None = None) -> Reminder:
        current = self.get_reminder(reminder_id)
        now_dt = now or utcnow()

        sets: list[str] = []
        params: list[Any] = []

        if "title" in fields:
            sets.append("title = ?")
            params.append(_check_title(fields["title"]))
        if "description" in fields:
            _check_description(fields["description"], REMINDER_DESCRIPTION_MAX)
            sets.append("description = ?")
            params.append(fields["description"])
        if "task_id" in fields:
            sets.append("task_id = ?")
            params.append(fields["task_id"])
        if "remind_at" in fields and fields["remind_at"] is not None:
            raw = fields["remind_at"]
            remind_at = raw if isinstance(raw, datetime) else parse_instant(str(raw))
            # Only a new time must lie in the future; echoing the stored one is fine.
            if remind_at is not None and remind_at != current.remind_at:
                if remind_at <= now_dt:
                    raise ValidationError("Reminder time must be in the future")
                sets.append("remind_at = ?")
                params.append(format_instant(remind_at))
        if "repeat_interval" in fields and fields["repeat_interval"] is not None:
            sets.append("repeat_interval = ?")
            params.append(encode(decode(str(fields["repeat_interval"]))))
        if "is_active" in fields and fields["is_active"] is not None:
            sets.append("is_active = ?")
            params.append(1 if fields["is_active"] else 0)
        if "last_triggered_at" in fields:
            raw = fields["last_triggered_at"]
            sets.append("last_triggered_at = ?")
            params.append(format_instant(raw) if isinstance(raw, datetime) else raw)

        if sets:
            sets.append("updated_at = ?")
            params.append(format_instant(now_dt))
            conn = self._get_conn()
            try:
                conn.execute(f"UPDATE reminders SET {', '.join(sets)} WHERE id = ?", (*params, reminder_id))
                conn.commit()
            except sqlite3.IntegrityError as e:
                raise ValidationError(f"Unknown task_id {fields.get('task_id')!r}") from e
            finally:
                conn.close()
        return self.get_reminder(reminder_id)

    def delete_reminder(self, reminder_id: str) -> None:
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM reminders WHERE id = ?", (reminder_id,))
            conn.commit()
            if cur.rowcount == 0:
                raise RecordNotFound("Reminder", reminder_id)
        finally:
            conn.close()

    def list_due_reminders(self, now: datetime | None = None) -> list[Reminder]:
        """
        Active reminders whose next fire time has arrived.

        SQL narrows by remind_at; the repeat policy decides the rest.
        """
        now_dt = now or utcnow()
        conn = self._get_conn()
        try:
            rows = conn.execute(
                """
                SELECT *
                FROM reminders
                WHERE is_active = 1
                  AND remind_at <= ?
                ORDER BY remind_at ASC
                """,
                (format_instant(now_dt),),
            ).fetchall()
        finally:
            conn.close()
        return [r for r in (self._row_to_reminder(row) for row in rows) if r.is_due(now_dt)]

    # ---- tags ----

    def list_tags(self) -> list[Tag]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM tags ORDER BY name COLLATE NOCASE").fetchall()
            return [self._row_to_tag(r) for r in rows]
        finally:
            conn.close()

    def get_tag(self, tag_id: str) -> Tag:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM tags WHERE id = ?", (tag_id,)).fetchone()
            if row is None:
                raise RecordNotFound("Tag", tag_id)
            return self._row_to_tag(row)
        finally:
            conn.close()

    def create_tag(self, data: TagCreate) -> Tag:
        name = (data.name or "").strip()
        if not name:
            raise ValidationError("Tag name cannot be empty")
        tag_id = _new_id()
        ts = format_instant(utcnow())
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO tags(id, name, color, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
                (tag_id, name, data.color or DEFAULT_TAG_COLOR, ts, ts),
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            raise ValidationError(f"Tag {name!r} already exists") from e
        finally:
            conn.close()
        return self.get_tag(tag_id)

    def update_tag(self, tag_id: str, fields: Mapping[str, Any]) -> Tag:
        self.get_tag(tag_id)
        sets: list[str] = []
        params: list[Any] = []
        if fields.get("name") is not None:
            name = str(fields["name"]).strip()
            if not name:
                raise ValidationError("Tag name cannot be empty")
            sets.append("name = ?")
            params.append(name)
        if fields.get("color") is not None:
            sets.append("color = ?")
            params.append(str(fields["color"]))
        if sets:
            sets.append("updated_at = ?")
            params.append(format_instant(utcnow()))
            conn = self._get_conn()
            try:
                conn.execute(f"UPDATE tags SET {', '.join(sets)} WHERE id = ?", (*params, tag_id))
                conn.commit()
            except sqlite3.IntegrityError as e:
                raise ValidationError(f"Tag {fields.get('name')!r} already exists") from e
            finally:
                conn.close()
        return self.get_tag(tag_id)

    def delete_tag(self, tag_id: str) -> None:
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM tags WHERE id = ?", (tag_id,))
            conn.commit()
            if cur.rowcount == 0:
                raise RecordNotFound("Tag", tag_id)
        finally:
            conn.close()
