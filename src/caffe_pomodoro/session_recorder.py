from __future__ import annotations

"""Bridges timer transitions to persisted session history.

Design:
 - ``open`` schedules the ``create_session`` write and returns a handle at once,
   so the timer can show RUNNING without waiting on the database.
 - ``close`` is queued on the same single worker, behind the create. It waits
   for the record id before closing, so create-before-close holds even when
   the user resets a session the instant it starts.
 - Every handle is closed at most once.
 - Persistence failures are logged and swallowed; the on-screen timer never
   waits on or breaks because of storage.
"""

from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
import logging
import threading
from typing import Optional

from .database_manager import DatabaseManager
from .models import SessionKind
from .repositories import close_session, create_session, increment_task_pomodoro

logger = logging.getLogger(__name__)


class SqliteSessionStore:
    """Session persistence and task counter backed by the local database."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    def create_session(self, kind: SessionKind, task_id: Optional[int], planned_duration_seconds: int) -> int:
        record = create_session(self._db, kind, task_id, planned_duration_seconds)
        return record.id  # type: ignore[return-value]

    def close_session(self, record_id: int, was_completed: bool) -> None:
        if close_session(self._db, record_id, was_completed) is None:
            raise LookupError(f"session {record_id} not found")

    def increment_task_pomodoro(self, task_id: int) -> None:
        if increment_task_pomodoro(self._db, task_id) is None:
            raise LookupError(f"task {task_id} not found")


@dataclass(eq=False)
class RecordHandle:
    kind: SessionKind
    task_id: Optional[int]
    planned_duration_seconds: int
    _created: Future = field(repr=False)
    closed: bool = False

    @property
    def record_id(self) -> Optional[int]:
        """Record id once the create call has resolved, else ``None``."""
        if not self._created.done():
            return None
        return self._created.result()


class SessionRecorder:
    def __init__(self, store, executor: Executor | None = None) -> None:
        self._store = store
        self._owns_executor = executor is None
        self._executor: Executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="session-recorder"
        )
        self._lock = threading.Lock()
        self._pending: list[Future] = []

    # --- Public API -----------------------------------------------------
    def open(self, kind: SessionKind, task_id: Optional[int], planned_duration_seconds: int) -> RecordHandle:
        created = self._submit(self._create, kind, task_id, planned_duration_seconds)
        return RecordHandle(kind, task_id, planned_duration_seconds, created)

    def close(self, handle: RecordHandle, was_completed: bool) -> None:
        if handle.closed:
            logger.warning("session record already closed; ignoring second close")
            return
        handle.closed = True
        self._submit(self._close, handle, was_completed)

    def flush(self, timeout: float | None = None) -> None:
        """Block until every queued persistence job has finished."""
        with self._lock:
            pending = list(self._pending)
        for fut in pending:
            try:
                fut.result(timeout=timeout)
            except Exception:  # already logged by the job
                pass

    def shutdown(self) -> None:
        self.flush()
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    # --- Jobs (run on the worker) -----------------------------------------
    def _create(self, kind: SessionKind, task_id: Optional[int], planned: int) -> Optional[int]:
        try:
            record_id = self._store.create_session(kind, task_id, planned)
        except Exception:
            logger.exception("failed to create session record", extra={"_json_kind": kind.name})
            return None
        logger.info("session record opened", extra={"_json_record_id": record_id, "_json_kind": kind.name})
        return record_id

    def _close(self, handle: RecordHandle, was_completed: bool) -> None:
        record_id = handle._created.result()  # create is always queued first
        if record_id is None:
            logger.warning("no session record to close; create had failed")
        else:
            try:
                self._store.close_session(record_id, was_completed)
            except Exception:
                logger.exception("failed to close session record", extra={"_json_record_id": record_id})
            else:
                logger.info(
                    "session record closed",
                    extra={"_json_record_id": record_id, "_json_completed": was_completed},
                )
        if was_completed and handle.kind is SessionKind.WORK and handle.task_id is not None:
            try:
                self._store.increment_task_pomodoro(handle.task_id)
            except Exception:
                logger.exception("failed to increment task pomodoro", extra={"_json_task_id": handle.task_id})

    # --- Internal -------------------------------------------------------
    def _submit(self, fn, *args) -> Future:
        fut = self._executor.submit(fn, *args)
        with self._lock:
            self._pending = [f for f in self._pending if not f.done()]
            self._pending.append(fut)
        return fut


__all__ = ["SessionRecorder", "RecordHandle", "SqliteSessionStore"]
