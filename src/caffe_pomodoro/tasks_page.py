from __future__ import annotations

"""Task list page with AI-assisted tagging."""

from typing import Optional
from PyQt6.QtGui import QKeySequence, QShortcut
from PyQt6.QtWidgets import (
    QWidget,
    QVBoxLayout,
    QHBoxLayout,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QDialog,
    QFormLayout,
    QLineEdit,
    QTextEdit,
    QSpinBox,
    QComboBox,
    QDialogButtonBox,
    QMessageBox,
)

from .gemini_client import TaskSuggester, TaskSuggestion
from .models import Task, TaskPriority
from .task_store import MAX_ESTIMATE, TaskStore
from .toast import show_toast

_PRIORITY_FROM_SUGGESTION = {
    "Low": TaskPriority.NORMAL,
    "Medium": TaskPriority.NORMAL,
    "High": TaskPriority.HIGH,
}


class TaskDialog(QDialog):  # pragma: no cover simple UI
    def __init__(self, parent: QWidget, title: str, suggester: TaskSuggester | None, *, task: Task | None = None):
        super().__init__(parent)
        self.setWindowTitle(title)
        self._suggester = suggester
        self.name_edit = QLineEdit(task.title if task else "")
        self.desc_edit = QTextEdit(task.description if task and task.description else "")
        self.estimate_spin = QSpinBox()
        self.estimate_spin.setRange(1, MAX_ESTIMATE)
        self.estimate_spin.setValue(task.estimated_pomodoros if task else 1)
        self.priority_combo = QComboBox()
        for p in TaskPriority:
            self.priority_combo.addItem(p.name.title(), int(p))
        if task:
            self.priority_combo.setCurrentIndex(self.priority_combo.findData(int(task.priority)))
        self.tags_edit = QLineEdit(", ".join(task.tags) if task else "")
        self.btn_suggest = QPushButton("Suggest tags")
        self.btn_suggest.setEnabled(suggester is not None)

        form = QFormLayout()
        form.addRow("Title", self.name_edit)
        form.addRow("Description", self.desc_edit)
        form.addRow("Pomodoros", self.estimate_spin)
        form.addRow("Priority", self.priority_combo)
        form.addRow("Tags", self.tags_edit)
        form.addRow("", self.btn_suggest)
        buttons = QDialogButtonBox(QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel)
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout = QVBoxLayout(self)
        layout.addLayout(form)
        layout.addWidget(buttons)

        self.btn_suggest.clicked.connect(self._request_suggestion)
        if suggester is not None:
            suggester.suggestion_ready.connect(self._apply_suggestion)
            self.finished.connect(lambda _r: suggester.suggestion_ready.disconnect(self._apply_suggestion))

    def _request_suggestion(self) -> None:
        title = self.name_edit.text().strip()
        if not title or self._suggester is None:
            return
        self.btn_suggest.setEnabled(False)
        self.btn_suggest.setText("Thinking…")
        self._suggester.suggest_async(title)

    def _apply_suggestion(self, title: str, suggestion: TaskSuggestion) -> None:
        if title != self.name_edit.text().strip():
            return  # stale answer for an edited title
        self.tags_edit.setText(", ".join(suggestion.tags))
        self.estimate_spin.setValue(suggestion.estimated_pomodoros)
        priority = _PRIORITY_FROM_SUGGESTION.get(suggestion.priority, TaskPriority.NORMAL)
        self.priority_combo.setCurrentIndex(self.priority_combo.findData(int(priority)))
        self.btn_suggest.setEnabled(True)
        self.btn_suggest.setText("Suggest tags")

    def get_values(self) -> tuple[str, str | None, int, TaskPriority, list[str]]:
        desc = self.desc_edit.toPlainText().strip() or None
        tags = [t.strip() for t in self.tags_edit.text().split(",") if t.strip()]
        return (
            self.name_edit.text(),
            desc,
            self.estimate_spin.value(),
            TaskPriority(self.priority_combo.currentData()),
            tags,
        )


class TasksPage(QWidget):  # pragma: no cover UI heavy
    def __init__(self, store: TaskStore, suggester: TaskSuggester | None = None):
        super().__init__()
        self._store = store
        self._suggester = suggester
        self.table = QTableWidget(0, 6)
        self.table.setHorizontalHeaderLabels(["ID", "Done", "Title", "Pomodoros", "Priority", "Tags"])
        self.table.setSelectionBehavior(self.table.SelectionBehavior.SelectRows)
        self.table.setEditTriggers(self.table.EditTrigger.NoEditTriggers)
        self.table.verticalHeader().setVisible(False)
        self.table.horizontalHeader().setStretchLastSection(True)

        self.btn_add = QPushButton("Add")
        self.btn_edit = QPushButton("Edit")
        self.btn_done = QPushButton("Toggle Done")
        self.btn_up = QPushButton("Move Up")
        self.btn_down = QPushButton("Move Down")
        self.btn_delete = QPushButton("Delete")

        btn_row = QHBoxLayout()
        for b in (self.btn_add, self.btn_edit, self.btn_done, self.btn_up, self.btn_down, self.btn_delete):
            btn_row.addWidget(b)
        btn_row.addStretch(1)

        layout = QVBoxLayout(self)
        layout.addLayout(btn_row)
        layout.addWidget(self.table)

        self.btn_add.clicked.connect(self._add)
        self.btn_edit.clicked.connect(self._edit)
        self.btn_done.clicked.connect(self._toggle_done)
        self.btn_up.clicked.connect(lambda: self._move(-1))
        self.btn_down.clicked.connect(lambda: self._move(1))
        self.btn_delete.clicked.connect(self._delete)
        self._store.changed.connect(self.refresh)
        self._store.error.connect(lambda m: show_toast(self, m))

        QShortcut(QKeySequence("Ctrl+N"), self, activated=self._add)
        QShortcut(QKeySequence("Delete"), self, activated=self._delete)
        QShortcut(QKeySequence("F5"), self, activated=self._store.load)

        self.refresh()

    # --- Helpers --------------------------------------------------------
    def _selected_task(self) -> Optional[Task]:
        items = self.table.selectedItems()
        if not items:
            return None
        id_item = self.table.item(items[0].row(), 0)
        if not id_item:
            return None
        try:
            return self._store.get(int(id_item.text()))
        except ValueError:
            return None

    def refresh(self) -> None:
        tasks = self._store.tasks()
        self.table.setRowCount(len(tasks))
        for r, t in enumerate(tasks):
            self.table.setItem(r, 0, QTableWidgetItem(str(t.id)))
            self.table.setItem(r, 1, QTableWidgetItem("✓" if t.is_completed else ""))
            self.table.setItem(r, 2, QTableWidgetItem(t.title))
            self.table.setItem(r, 3, QTableWidgetItem(f"{t.completed_pomodoros}/{t.estimated_pomodoros}"))
            self.table.setItem(r, 4, QTableWidgetItem(t.priority.name.title()))
            self.table.setItem(r, 5, QTableWidgetItem(", ".join(t.tags)))

    # --- CRUD ops -------------------------------------------------------
    def _add(self) -> None:
        dlg = TaskDialog(self, "New Task", self._suggester)
        if dlg.exec() == QDialog.DialogCode.Accepted:
            title, desc, estimate, priority, tags = dlg.get_values()
            if self._store.create(title, desc, estimate, priority, tags):
                show_toast(self, "Task created")

    def _edit(self) -> None:
        task = self._selected_task()
        if not task:
            show_toast(self, "Select a task to edit")
            return
        dlg = TaskDialog(self, "Edit Task", self._suggester, task=task)
        if dlg.exec() == QDialog.DialogCode.Accepted:
            title, desc, estimate, priority, tags = dlg.get_values()
            if self._store.update(task, title=title, description=desc, estimated_pomodoros=estimate, priority=priority, tags=tags):
                show_toast(self, "Task updated")

    def _toggle_done(self) -> None:
        task = self._selected_task()
        if task and task.id is not None:
            self._store.toggle_completed(task.id)

    def _move(self, delta: int) -> None:
        task = self._selected_task()
        if not task:
            return
        ids = [t.id for t in self._store.tasks() if t.id is not None]
        i = ids.index(task.id)
        j = i + delta
        if not (0 <= j < len(ids)):
            return
        ids[i], ids[j] = ids[j], ids[i]
        self._store.reorder(ids)
        self.table.selectRow(j)

    def _delete(self) -> None:
        task = self._selected_task()
        if not task:
            show_toast(self, "Select a task to delete")
            return
        if QMessageBox.question(self, "Confirm", f"Delete '{task.title}'?") == QMessageBox.StandardButton.Yes:
            if self._store.delete(task.id):  # type: ignore[arg-type]
                show_toast(self, "Deleted")


__all__ = ["TasksPage", "TaskDialog"]
