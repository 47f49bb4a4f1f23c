from __future__ import annotations

"""Database management and migrations for Caffe Pomodoro.

This module provides a minimal SQLite migration system. Each new schema
change is represented as a function inside the MIGRATIONS list. The
applied versions are tracked in the ``schema_migrations`` table.

Idempotency: ``init_db`` can be safely called multiple times.

Threading: the session recorder writes from its own worker thread, so the
connection is opened with ``check_same_thread=False`` and every statement
runs under a re-entrant lock.
"""

from dataclasses import dataclass
from pathlib import Path
import sqlite3
import threading
from typing import Callable, Iterable


@dataclass(slots=True)
class DBConfig:
    path: Path
    pragmas: tuple[tuple[str, str | int], ...] = (
        ("journal_mode", "WAL"),
        ("foreign_keys", 1),
        ("synchronous", "NORMAL"),
    )


class DatabaseManager:
    def __init__(self, config: DBConfig):
        self.config = config
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    # --- Low level helpers -------------------------------------------------
    def connect(self) -> sqlite3.Connection:
        with self._lock:
            if self._conn is None:
                self.config.path.parent.mkdir(parents=True, exist_ok=True)
                self._conn = sqlite3.connect(self.config.path, check_same_thread=False)
                self._conn.row_factory = sqlite3.Row
                self._apply_pragmas(self._conn)
            return self._conn

    def _apply_pragmas(self, conn: sqlite3.Connection) -> None:
        cur = conn.cursor()
        for key, value in self.config.pragmas:
            cur.execute(f"PRAGMA {key}={value}")
        cur.close()

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    # --- Migration system --------------------------------------------------
    def init_db(self) -> None:
        conn = self.connect()
        with self._lock, conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_migrations (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ','now'))
                )
                """
            )

        applied_versions = self._get_applied_versions()
        for version, migration_fn in enumerate(MIGRATIONS, start=1):
            if version in applied_versions:
                continue
            with self._lock, conn:
                migration_fn(conn)
                conn.execute(
                    "INSERT INTO schema_migrations (version) VALUES (?)", (version,)
                )

    def _get_applied_versions(self) -> set[int]:
        rows = self.query_all("SELECT version FROM schema_migrations")
        return {row[0] for row in rows}

    # --- Convenience -------------------------------------------------------
    def execute(self, sql: str, params: Iterable | None = None) -> sqlite3.Cursor:
        conn = self.connect()
        with self._lock:
            cur = conn.cursor()
            cur.execute(sql, params or [])
            conn.commit()
            return cur

    def executemany(self, sql: str, seq_of_params: Iterable[Iterable]) -> None:
        conn = self.connect()
        with self._lock, conn:
            conn.executemany(sql, seq_of_params)

    def query_all(self, sql: str, params: Iterable | None = None) -> list[sqlite3.Row]:
        conn = self.connect()
        with self._lock:
            return conn.execute(sql, params or []).fetchall()

    def query_one(self, sql: str, params: Iterable | None = None) -> sqlite3.Row | None:
        conn = self.connect()
        with self._lock:
            return conn.execute(sql, params or []).fetchone()


# --- Migration definitions --------------------------------------------------

def migration_001_create_core_tables(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE tasks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            description TEXT,
            is_completed INTEGER NOT NULL DEFAULT 0,
            estimated_pomodoros INTEGER NOT NULL DEFAULT 1,
            completed_pomodoros INTEGER NOT NULL DEFAULT 0,
            priority INTEGER NOT NULL DEFAULT 0,
            display_order INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ','now')),
            updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ','now')),
            completed_at TEXT
        );

        CREATE TABLE pomodoro_sessions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            task_id INTEGER REFERENCES tasks(id) ON DELETE SET NULL,
            kind INTEGER NOT NULL,
            planned_duration_seconds INTEGER NOT NULL,
            started_at TEXT NOT NULL,
            completed_at TEXT,
            was_completed INTEGER NOT NULL DEFAULT 0
        );

        CREATE INDEX idx_tasks_display_order ON tasks(display_order);
        CREATE INDEX idx_sessions_started_at ON pomodoro_sessions(started_at);
        CREATE INDEX idx_sessions_task ON pomodoro_sessions(task_id);
        """
    )


def migration_002_add_settings_table(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );
        """
    )


def migration_003_add_task_tags(conn: sqlite3.Connection) -> None:
    # JSON encoded list of tag labels
    conn.execute("ALTER TABLE tasks ADD COLUMN tags TEXT NOT NULL DEFAULT '[]'")


MIGRATIONS: list[Callable[[sqlite3.Connection], None]] = [
    migration_001_create_core_tables,
    migration_002_add_settings_table,
    migration_003_add_task_tags,
]

__all__ = [
    "DBConfig",
    "DatabaseManager",
]
