"""SQLite-backed store for tasks and labels."""

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

from controltime.core.labels import (
    Label,
    LabelNotFoundError,
    normalize_color,
    sort_labels,
    validate_label_name,
)
from controltime.core.tasks import (
    Task,
    TaskNotFoundError,
    apply_changes,
    due_date_for_start,
    order_positions,
    parse_priority,
    to_local_naive,
)

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT,
    name TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT,
    status TEXT NOT NULL DEFAULT 'TODO',
    priority TEXT NOT NULL DEFAULT 'MEDIUM',
    start_time TEXT,
    end_time TEXT,
    due_date TEXT,
    is_recurring INTEGER NOT NULL DEFAULT 0,
    recurrence TEXT,
    sort_order INTEGER,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_tasks_user ON tasks (user_id, status);

CREATE TABLE IF NOT EXISTS labels (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    color TEXT NOT NULL,
    created_at TEXT NOT NULL
);
"""

_TASK_COLUMNS = (
    "title, description, status, priority, start_time, end_time, due_date, "
    "is_recurring, recurrence, sort_order, updated_at"
)


def _encode(value: datetime | None) -> str | None:
    value = to_local_naive(value)
    return value.isoformat() if value is not None else None


def _decode(value: str | None) -> datetime | None:
    return to_local_naive(datetime.fromisoformat(value)) if value else None


def _new_id() -> str:
    return uuid.uuid4().hex


def _task_from_row(row: sqlite3.Row) -> Task:
    return Task(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        status=row["status"],
        priority=row["priority"],
        start_time=_decode(row["start_time"]),
        end_time=_decode(row["end_time"]),
        due_date=_decode(row["due_date"]),
        is_recurring=bool(row["is_recurring"]),
        recurrence=row["recurrence"],
        order=row["sort_order"],
        created_at=_decode(row["created_at"]),
        updated_at=_decode(row["updated_at"]),
    )


class SqliteStore:
    """
    SQLite storage adapter.

    Implements TaskRepository and LabelRepository protocols. Every query is
    scoped to a user id. No business logic beyond persistence.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(SCHEMA)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Connection wrapped in a transaction (commit on success, rollback on error)."""
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    # ============== Users ==============

    def ensure_user(self, user_id: str, email: str = "", name: str = "") -> None:
        """Record a signed-in user, updating profile details."""
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO users (id, email, name, created_at) VALUES (?, ?, ?, ?)
                   ON CONFLICT(id) DO UPDATE SET email = excluded.email, name = excluded.name""",
                (user_id, email, name, datetime.now().isoformat()),
            )

    def user_created_at(self, user_id: str) -> datetime | None:
        with self._connect() as conn:
            row = conn.execute("SELECT created_at FROM users WHERE id = ?", (user_id,)).fetchone()
        return _decode(row["created_at"]) if row else None

    # ============== Tasks ==============

    def list_tasks(self, user_id: str) -> list[Task]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM tasks WHERE user_id = ? ORDER BY created_at DESC", (user_id,)
            ).fetchall()
        return [_task_from_row(r) for r in rows]

    def calendar_tasks(self, user_id: str) -> list[Task]:
        with self._connect() as conn:
            rows = conn.execute(
                """SELECT * FROM tasks
                   WHERE user_id = ? AND (start_time IS NOT NULL OR due_date IS NOT NULL)
                   ORDER BY start_time ASC""",
                (user_id,),
            ).fetchall()
        return [_task_from_row(r) for r in rows]

    def get_task(self, user_id: str, task_id: str) -> Task:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM tasks WHERE id = ? AND user_id = ?", (task_id, user_id)
            ).fetchone()
        if row is None:
            raise TaskNotFoundError(f"Task not found: {task_id}")
        return _task_from_row(row)

    def create_task(
        self,
        user_id: str,
        title: str,
        description: str | None = None,
        start_time: datetime | None = None,
        priority: str = "MEDIUM",
    ) -> Task:
        title = (title or "").strip()
        if not title:
            raise ValueError("Task title cannot be empty")

        start_time = to_local_naive(start_time)
        now = datetime.now()
        task = Task(
            id=_new_id(),
            title=title,
            description=description or None,
            priority=parse_priority(priority or "MEDIUM"),
            start_time=start_time,
            due_date=due_date_for_start(start_time) if start_time else None,
            created_at=now,
            updated_at=now,
        )
        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO tasks (id, user_id, {_TASK_COLUMNS}, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (task.id, user_id, *self._task_values(task), _encode(task.created_at)),
            )
        logger.debug(f"Created task {task.id} for user {user_id}")
        return task

    def update_task(self, user_id: str, task_id: str, changes: dict) -> Task:
        task = apply_changes(self.get_task(user_id, task_id), changes)
        assignments = ", ".join(f"{col.strip()} = ?" for col in _TASK_COLUMNS.split(","))
        with self._connect() as conn:
            conn.execute(
                f"UPDATE tasks SET {assignments} WHERE id = ? AND user_id = ?",
                (*self._task_values(task), task_id, user_id),
            )
        return task

    def delete_task(self, user_id: str, task_id: str) -> None:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM tasks WHERE id = ? AND user_id = ?", (task_id, user_id)
            )
        if cursor.rowcount == 0:
            raise TaskNotFoundError(f"Task not found: {task_id}")

    def reorder(self, user_id: str, task_ids: list[str]) -> None:
        positions = order_positions(task_ids)
        with self._connect() as conn:
            for task_id, position in positions.items():
                cursor = conn.execute(
                    "UPDATE tasks SET sort_order = ? WHERE id = ? AND user_id = ?",
                    (position, task_id, user_id),
                )
                if cursor.rowcount == 0:
                    # Raising inside the transaction rolls back earlier updates
                    raise TaskNotFoundError(f"Task not found: {task_id}")

    @staticmethod
    def _task_values(task: Task) -> tuple:
        return (
            task.title,
            task.description,
            task.status,
            task.priority,
            _encode(task.start_time),
            _encode(task.end_time),
            _encode(task.due_date),
            int(task.is_recurring),
            task.recurrence,
            task.order,
            _encode(task.updated_at),
        )

    # ============== Labels ==============

    def list_labels(self, user_id: str) -> list[Label]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id, name, color FROM labels WHERE user_id = ?", (user_id,)
            ).fetchall()
        return sort_labels([Label(id=r["id"], name=r["name"], color=r["color"]) for r in rows])

    def _get_label(self, conn: sqlite3.Connection, user_id: str, label_id: str) -> Label:
        row = conn.execute(
            "SELECT id, name, color FROM labels WHERE id = ? AND user_id = ?", (label_id, user_id)
        ).fetchone()
        if row is None:
            raise LabelNotFoundError(f"Label not found: {label_id}")
        return Label(id=row["id"], name=row["name"], color=row["color"])

    def create_label(self, user_id: str, name: str, color: str | None = None) -> Label:
        label = Label(id=_new_id(), name=validate_label_name(name), color=normalize_color(color))
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO labels (id, user_id, name, color, created_at) VALUES (?, ?, ?, ?, ?)",
                (label.id, user_id, label.name, label.color, datetime.now().isoformat()),
            )
        return label

    def update_label(self, user_id: str, label_id: str, changes: dict) -> Label:
        unknown = sorted(set(changes) - {"name", "color"})
        if unknown:
            raise ValueError(f"Unknown label field(s): {', '.join(unknown)}")
        with self._connect() as conn:
            label = self._get_label(conn, user_id, label_id)
            if "name" in changes:
                label.name = validate_label_name(changes["name"])
            if "color" in changes:
                label.color = normalize_color(changes["color"])
            conn.execute(
                "UPDATE labels SET name = ?, color = ? WHERE id = ? AND user_id = ?",
                (label.name, label.color, label_id, user_id),
            )
        return label

    def delete_label(self, user_id: str, label_id: str) -> None:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM labels WHERE id = ? AND user_id = ?", (label_id, user_id)
            )
        if cursor.rowcount == 0:
            raise LabelNotFoundError(f"Label not found: {label_id}")
