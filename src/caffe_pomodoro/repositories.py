from __future__ import annotations

"""Repository helper functions for CRUD operations."""

from datetime import date, datetime, timedelta, timezone, tzinfo
import json
import sqlite3
from typing import Iterable, Optional

from .database_manager import DatabaseManager
from .models import (
    DailyStats,
    SessionKind,
    SessionRecord,
    Task,
    TaskPriority,
    WeeklyStats,
    to_utc_iso,
    utc_now_iso,
)


# --- Generic helpers -------------------------------------------------------

def _last_row_id(cur: sqlite3.Cursor) -> int:
    return int(cur.lastrowid)  # type: ignore[arg-type]


def _utc_day_bounds(day: str, tz: tzinfo | None = None) -> tuple[str, str]:
    """UTC timestamps bounding calendar ``day`` in ``tz`` (the machine's local zone by default)."""
    start = datetime.strptime(day, "%Y-%m-%d")
    end = start + timedelta(days=1)
    if tz is None:
        start, end = start.astimezone(), end.astimezone()
    else:
        start, end = start.replace(tzinfo=tz), end.replace(tzinfo=tz)
    return to_utc_iso(start), to_utc_iso(end)


def _row_to_task(row: sqlite3.Row) -> Task:
    return Task(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        is_completed=bool(row["is_completed"]),
        estimated_pomodoros=row["estimated_pomodoros"],
        completed_pomodoros=row["completed_pomodoros"],
        priority=TaskPriority(row["priority"]),
        display_order=row["display_order"],
        tags=json.loads(row["tags"] or "[]"),
        created_at=row["created_at"],
        completed_at=row["completed_at"],
    )


def _row_to_session(row: sqlite3.Row) -> SessionRecord:
    return SessionRecord(
        id=row["id"],
        kind=SessionKind(row["kind"]),
        task_id=row["task_id"],
        planned_duration_seconds=row["planned_duration_seconds"],
        started_at=row["started_at"],
        completed_at=row["completed_at"],
        was_completed=bool(row["was_completed"]),
    )


# --- Tasks ------------------------------------------------------------------

def create_task(db: DatabaseManager, task: Task) -> Task:
    # New tasks go to the bottom of the list
    row = db.query_one("SELECT COALESCE(MAX(display_order), -1) + 1 AS next_order FROM tasks")
    task.display_order = int(row["next_order"]) if row else 0
    cur = db.execute(
        """
        INSERT INTO tasks (title, description, estimated_pomodoros, priority, display_order, tags)
        VALUES (?,?,?,?,?,?)
        """,
        (
            task.title,
            task.description,
            task.estimated_pomodoros,
            int(task.priority),
            task.display_order,
            json.dumps(task.tags, ensure_ascii=False),
        ),
    )
    task.id = _last_row_id(cur)
    created = get_task(db, task.id)
    if created:
        task.created_at = created.created_at
    return task


def get_task(db: DatabaseManager, task_id: int) -> Task | None:
    row = db.query_one("SELECT * FROM tasks WHERE id=?", (task_id,))
    if not row:
        return None
    return _row_to_task(row)


def list_tasks(db: DatabaseManager) -> list[Task]:
    rows = db.query_all("SELECT * FROM tasks ORDER BY display_order, id")
    return [_row_to_task(r) for r in rows]


def update_task(db: DatabaseManager, task: Task) -> None:
    assert task.id is not None, "Task must have id to update"
    db.execute(
        """
        UPDATE tasks
        SET title=?, description=?, estimated_pomodoros=?, priority=?, tags=?, updated_at=?
        WHERE id=?
        """,
        (
            task.title,
            task.description,
            task.estimated_pomodoros,
            int(task.priority),
            json.dumps(task.tags, ensure_ascii=False),
            utc_now_iso(),
            task.id,
        ),
    )


def set_task_completed(db: DatabaseManager, task_id: int, completed: bool) -> Task | None:
    completed_at = utc_now_iso() if completed else None
    db.execute(
        "UPDATE tasks SET is_completed=?, completed_at=?, updated_at=? WHERE id=?",
        (1 if completed else 0, completed_at, utc_now_iso(), task_id),
    )
    return get_task(db, task_id)


def delete_task(db: DatabaseManager, task_id: int) -> None:
    db.execute("DELETE FROM tasks WHERE id=?", (task_id,))


def increment_task_pomodoro(db: DatabaseManager, task_id: int) -> Task | None:
    cur = db.execute(
        "UPDATE tasks SET completed_pomodoros = completed_pomodoros + 1, updated_at=? WHERE id=?",
        (utc_now_iso(), task_id),
    )
    if cur.rowcount == 0:
        return None
    return get_task(db, task_id)


def reorder_tasks(db: DatabaseManager, task_ids: Iterable[int]) -> list[Task]:
    db.executemany(
        "UPDATE tasks SET display_order=? WHERE id=?",
        [(order, task_id) for order, task_id in enumerate(task_ids)],
    )
    return list_tasks(db)


# --- Pomodoro sessions -------------------------------------------------------

def create_session(
    db: DatabaseManager,
    kind: SessionKind,
    task_id: Optional[int],
    planned_duration_seconds: int,
    started_at: str | None = None,
) -> SessionRecord:
    record = SessionRecord(
        id=None,
        kind=kind,
        task_id=task_id,
        planned_duration_seconds=planned_duration_seconds,
        started_at=started_at or utc_now_iso(),
    )
    cur = db.execute(
        """
        INSERT INTO pomodoro_sessions (task_id, kind, planned_duration_seconds, started_at, was_completed)
        VALUES (?,?,?,?,0)
        """,
        (record.task_id, int(record.kind), record.planned_duration_seconds, record.started_at),
    )
    record.id = _last_row_id(cur)
    return record


def close_session(
    db: DatabaseManager,
    session_id: int,
    was_completed: bool,
    completed_at: str | None = None,
) -> SessionRecord | None:
    db.execute(
        "UPDATE pomodoro_sessions SET completed_at=?, was_completed=? WHERE id=?",
        (completed_at or utc_now_iso(), 1 if was_completed else 0, session_id),
    )
    return get_session(db, session_id)


def get_session(db: DatabaseManager, session_id: int) -> SessionRecord | None:
    row = db.query_one("SELECT * FROM pomodoro_sessions WHERE id=?", (session_id,))
    if not row:
        return None
    return _row_to_session(row)


def get_current_session(db: DatabaseManager) -> SessionRecord | None:
    row = db.query_one(
        """
        SELECT * FROM pomodoro_sessions
        WHERE completed_at IS NULL
        ORDER BY started_at DESC, id DESC
        LIMIT 1
        """
    )
    if not row:
        return None
    return _row_to_session(row)


def list_session_history(db: DatabaseManager, days: int = 7, *, now: datetime | None = None) -> list[SessionRecord]:
    since = to_utc_iso((now or datetime.now(timezone.utc)) - timedelta(days=days))
    rows = db.query_all(
        "SELECT * FROM pomodoro_sessions WHERE started_at >= ? ORDER BY started_at DESC, id DESC",
        (since,),
    )
    return [_row_to_session(r) for r in rows]


def list_sessions_for_day(db: DatabaseManager, day: str, *, tz: tzinfo | None = None) -> list[SessionRecord]:
    start, end = _utc_day_bounds(day, tz)
    rows = db.query_all(
        "SELECT * FROM pomodoro_sessions WHERE started_at >= ? AND started_at < ? ORDER BY started_at, id",
        (start, end),
    )
    return [_row_to_session(r) for r in rows]


def close_open_sessions(db: DatabaseManager) -> int:
    """Mark sessions left open by a previous run as abandoned."""
    cur = db.execute(
        "UPDATE pomodoro_sessions SET completed_at=?, was_completed=0 WHERE completed_at IS NULL",
        (utc_now_iso(),),
    )
    return cur.rowcount


# --- Statistics -------------------------------------------------------------

def get_daily_stats(db: DatabaseManager, day: str, *, tz: tzinfo | None = None) -> DailyStats:
    start, end = _utc_day_bounds(day, tz)
    row = db.query_one(
        """
        SELECT COUNT(*) AS total,
               COALESCE(SUM(was_completed), 0) AS completed,
               COALESCE(SUM(CASE WHEN was_completed = 1 THEN planned_duration_seconds ELSE 0 END), 0) AS seconds
        FROM pomodoro_sessions
        WHERE kind = ? AND started_at >= ? AND started_at < ?
        """,
        (int(SessionKind.WORK), start, end),
    )
    tasks_row = db.query_one(
        "SELECT COUNT(*) AS c FROM tasks WHERE is_completed = 1 AND completed_at >= ? AND completed_at < ?",
        (start, end),
    )
    return DailyStats(
        date=day,
        total_sessions=int(row["total"]) if row else 0,
        completed_sessions=int(row["completed"]) if row else 0,
        total_minutes=int(row["seconds"]) // 60 if row else 0,
        tasks_completed=int(tasks_row["c"]) if tasks_row else 0,
    )


def get_weekly_stats(db: DatabaseManager, anchor_day: str, *, tz: tzinfo | None = None) -> WeeklyStats:
    anchor = datetime.strptime(anchor_day, "%Y-%m-%d").date()
    # Weeks start on Sunday
    start = anchor - timedelta(days=(anchor.weekday() + 1) % 7)
    days: list[date] = [start + timedelta(days=i) for i in range(7)]
    breakdown = [get_daily_stats(db, d.isoformat(), tz=tz) for d in days]
    return WeeklyStats(
        start_date=days[0].isoformat(),
        end_date=days[-1].isoformat(),
        total_sessions=sum(d.total_sessions for d in breakdown),
        completed_sessions=sum(d.completed_sessions for d in breakdown),
        total_minutes=sum(d.total_minutes for d in breakdown),
        tasks_completed=sum(d.tasks_completed for d in breakdown),
        daily_breakdown=breakdown,
    )


__all__ = [
    # Tasks
    "create_task",
    "get_task",
    "list_tasks",
    "update_task",
    "set_task_completed",
    "delete_task",
    "increment_task_pomodoro",
    "reorder_tasks",
    # Sessions
    "create_session",
    "close_session",
    "get_session",
    "get_current_session",
    "list_session_history",
    "list_sessions_for_day",
    "close_open_sessions",
    # Stats
    "get_daily_stats",
    "get_weekly_stats",
]

# --- Settings ---------------------------------------------------------------

def get_setting(db: DatabaseManager, key: str) -> str | None:
    row = db.query_one("SELECT value FROM settings WHERE key=?", (key,))
    return row["value"] if row else None


def set_setting(db: DatabaseManager, key: str, value: str) -> None:
    db.execute(
        "INSERT INTO settings(key, value) VALUES(?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
        (key, value),
    )

__all__ += ["get_setting", "set_setting"]
