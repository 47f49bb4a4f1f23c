from __future__ import annotations

"""TaskStore provides a cached task list with change signals."""

from typing import List, Optional
from PyQt6.QtCore import QObject, pyqtSignal

from .repositories import (
    list_tasks,
    create_task,
    update_task,
    delete_task,
    set_task_completed,
    reorder_tasks,
    get_setting,
    set_setting,
)
from .models import Task, TaskPriority


SELECTED_KEY = "selected_task_id"
MAX_ESTIMATE = 20


class TaskStore(QObject):
    changed = pyqtSignal()
    error = pyqtSignal(str)

    def __init__(self, db):
        super().__init__()
        self._db = db
        self._tasks: List[Task] = []
        self._loaded = False

    # --- Loading --------------------------------------------------------
    def load(self) -> None:
        self._tasks = list_tasks(self._db)
        self._loaded = True
        self.changed.emit()

    # --- CRUD -----------------------------------------------------------
    def create(
        self,
        title: str,
        description: str | None = None,
        estimated_pomodoros: int = 1,
        priority: TaskPriority = TaskPriority.NORMAL,
        tags: list[str] | None = None,
    ) -> Optional[Task]:
        if not self._validate(title, estimated_pomodoros):
            return None
        t = create_task(
            self._db,
            Task(
                id=None,
                title=title.strip(),
                description=description,
                estimated_pomodoros=estimated_pomodoros,
                priority=priority,
                tags=list(tags or []),
            ),
        )
        self._tasks.append(t)
        self.changed.emit()
        return t

    def update(
        self,
        task: Task,
        *,
        title: str,
        description: str | None,
        estimated_pomodoros: int,
        priority: TaskPriority,
        tags: list[str] | None = None,
    ) -> bool:
        if task.id is None:
            self.error.emit("Task has no id")
            return False
        if not self._validate(title, estimated_pomodoros):
            return False
        task.title = title.strip()
        task.description = description
        task.estimated_pomodoros = estimated_pomodoros
        task.priority = priority
        if tags is not None:
            task.tags = list(tags)
        update_task(self._db, task)
        self.changed.emit()
        return True

    def toggle_completed(self, task_id: int) -> Optional[Task]:
        current = self.get(task_id)
        if current is None:
            return None
        updated = set_task_completed(self._db, task_id, not current.is_completed)
        self.load()
        return updated

    def delete(self, task_id: int) -> bool:
        idx = next((i for i, t in enumerate(self._tasks) if t.id == task_id), None)
        if idx is None:
            return False
        delete_task(self._db, task_id)
        del self._tasks[idx]
        self.changed.emit()
        if self.get_selected_task_id() == task_id:
            set_setting(self._db, SELECTED_KEY, "")
        return True

    def reorder(self, task_ids: list[int]) -> None:
        self._tasks = reorder_tasks(self._db, task_ids)
        self.changed.emit()

    # --- Access ---------------------------------------------------------
    def tasks(self) -> List[Task]:
        if not self._loaded:
            self.load()
        return list(self._tasks)

    def open_tasks(self) -> List[Task]:
        return [t for t in self.tasks() if not t.is_completed]

    def get(self, task_id: int) -> Optional[Task]:
        return next((t for t in self.tasks() if t.id == task_id), None)

    # --- Selection persistence -----------------------------------------
    def get_selected_task_id(self) -> int | None:
        v = get_setting(self._db, SELECTED_KEY)
        if not v:
            return None
        try:
            return int(v)
        except ValueError:
            return None

    def set_selected_task_id(self, task_id: int | None) -> None:
        set_setting(self._db, SELECTED_KEY, "" if task_id is None else str(task_id))

    # --- Internal -------------------------------------------------------
    def _validate(self, title: str, estimated_pomodoros: int) -> bool:
        if not title.strip():
            self.error.emit("Title required")
            return False
        if not (1 <= estimated_pomodoros <= MAX_ESTIMATE):
            self.error.emit(f"Estimate must be 1-{MAX_ESTIMATE} pomodoros")
            return False
        return True


__all__ = ["TaskStore", "SELECTED_KEY"]
