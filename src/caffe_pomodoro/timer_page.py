from __future__ import annotations

"""Timer UI: countdown display, session kind selector and task selector."""

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import (
    QWidget,
    QVBoxLayout,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QComboBox,
    QProgressBar,
    QButtonGroup,
)

from .models import SessionKind
from .pomodoro import ConfigurationError
from .task_store import TaskStore
from .timer_service import PomodoroTimer, TimerStateError, TimerStatus, format_mmss
from .toast import show_toast


class TimerPage(QWidget):  # pragma: no cover UI heavy
    def __init__(self, timer: PomodoroTimer, task_store: TaskStore):
        super().__init__()
        self._timer = timer
        self._store = task_store

        # Session kind tabs
        kind_row = QHBoxLayout()
        self._kind_group = QButtonGroup(self)
        self._kind_buttons: dict[SessionKind, QPushButton] = {}
        for kind in SessionKind:
            btn = QPushButton(kind.label)
            btn.setCheckable(True)
            self._kind_group.addButton(btn, int(kind))
            self._kind_buttons[kind] = btn
            kind_row.addWidget(btn)
        self._kind_group.setExclusive(True)
        self._kind_buttons[timer.state.kind].setChecked(True)

        self.timer_label = QLabel(timer.formatted_remaining)
        self.timer_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        font = self.timer_label.font()
        font.setPointSize(48)
        self.timer_label.setFont(font)

        self.progress = QProgressBar()
        self.progress.setRange(0, 1000)
        self.progress.setTextVisible(False)

        self.sessions_label = QLabel("")
        self.sessions_label.setAlignment(Qt.AlignmentFlag.AlignCenter)

        self.banner = QLabel("")
        self.banner.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.banner.setStyleSheet("background: #6f4e37; color: #fff; padding: 8px; border-radius: 6px;")
        self.banner.hide()

        self.task_combo = QComboBox()
        self._store.changed.connect(self.refresh_tasks)
        self.task_combo.currentIndexChanged.connect(self._persist_selection)
        self.refresh_tasks()

        self.btn_minus = QPushButton("-1 min")
        self.btn_start = QPushButton("Start")
        self.btn_pause = QPushButton("Pause")
        self.btn_resume = QPushButton("Resume")
        self.btn_reset = QPushButton("Reset")
        self.btn_skip = QPushButton("Skip")
        self.btn_plus = QPushButton("+1 min")

        btn_row = QHBoxLayout()
        for b in (self.btn_minus, self.btn_start, self.btn_pause, self.btn_resume, self.btn_reset, self.btn_skip, self.btn_plus):
            btn_row.addWidget(b)

        layout = QVBoxLayout(self)
        layout.addLayout(kind_row)
        layout.addWidget(self.banner)
        layout.addWidget(self.timer_label)
        layout.addWidget(self.progress)
        layout.addWidget(self.sessions_label)
        layout.addWidget(QLabel("Working on:"))
        layout.addWidget(self.task_combo)
        layout.addLayout(btn_row)
        layout.addStretch(1)

        # Wire signals
        self._kind_group.idClicked.connect(self._on_kind_clicked)
        self.btn_start.clicked.connect(self._on_start)
        self.btn_pause.clicked.connect(lambda: self._guard(self._timer.pause))
        self.btn_resume.clicked.connect(lambda: self._guard(self._timer.resume))
        self.btn_reset.clicked.connect(lambda: self._guard(self._timer.reset))
        self.btn_skip.clicked.connect(lambda: self._guard(self._timer.skip))
        self.btn_plus.clicked.connect(lambda: self._guard(self._timer.add_time))
        self.btn_minus.clicked.connect(lambda: self._guard(self._timer.subtract_time))
        self._timer.tick.connect(self._on_tick)
        self._timer.state_changed.connect(self._on_state_changed)
        self._timer.kind_changed.connect(self._on_kind_changed)
        self._timer.session_completed.connect(self._on_session_completed)
        self._timer.error.connect(lambda m: show_toast(self, m))
        self._on_state_changed(self._timer.status.value)
        self._on_tick(self._timer.state.remaining_seconds)

    # --- Task list ------------------------------------------------------
    def refresh_tasks(self) -> None:
        sel = self._store.get_selected_task_id()
        self.task_combo.blockSignals(True)
        self.task_combo.clear()
        self.task_combo.addItem("No task", -1)
        for t in self._store.open_tasks():
            self.task_combo.addItem(f"{t.title} ({t.completed_pomodoros}/{t.estimated_pomodoros})", t.id)
        if sel is not None:
            idx = self.task_combo.findData(sel)
            if idx >= 0:
                self.task_combo.setCurrentIndex(idx)
        self.task_combo.blockSignals(False)

    def _persist_selection(self) -> None:
        task_id = self.task_combo.currentData()
        self._store.set_selected_task_id(None if task_id in (None, -1) else int(task_id))

    def _selected_task_id(self) -> int | None:
        task_id = self.task_combo.currentData()
        return None if task_id in (None, -1) else int(task_id)

    # --- Button handlers ------------------------------------------------
    def _guard(self, action) -> None:
        try:
            action()
        except TimerStateError as e:
            show_toast(self, str(e))
        except ConfigurationError as e:
            show_toast(self, f"Invalid timer settings: {e}")

    def _on_start(self) -> None:
        self._guard(lambda: self._timer.start(self._selected_task_id()))

    def _on_kind_clicked(self, kind_id: int) -> None:
        try:
            self._timer.set_kind(SessionKind(kind_id))
        except TimerStateError:
            # Kind cannot change mid-session; restore the active tab
            self._kind_buttons[self._timer.state.kind].setChecked(True)
            show_toast(self, "Reset the current session before switching")
        except ConfigurationError as e:
            self._kind_buttons[self._timer.state.kind].setChecked(True)
            show_toast(self, f"Invalid timer settings: {e}")

    # --- Timer callbacks -----------------------------------------------
    def _on_tick(self, remaining: int) -> None:
        self.timer_label.setText(format_mmss(remaining))
        self.progress.setValue(int(self._timer.progress * 1000))
        st = self._timer.state
        self.sessions_label.setText(f"#{st.completed_work_sessions + 1} · {st.kind.label}")
        window = self.window()
        if window is not None:
            window.setWindowTitle(f"{format_mmss(remaining)} - Caffe Pomodoro")

    def _on_kind_changed(self, kind: SessionKind) -> None:
        self._kind_buttons[kind].setChecked(True)

    def _on_session_completed(self, kind: SessionKind) -> None:
        text = "Time for a break!" if kind is SessionKind.WORK else "Time to work!"
        self.banner.setText(text)
        self.banner.show()
        self._store.load()

    def _on_state_changed(self, state: str) -> None:
        status = TimerStatus(state)
        if status is not TimerStatus.COMPLETED:
            self.banner.hide()
        idle = status is TimerStatus.IDLE
        active = status in (TimerStatus.RUNNING, TimerStatus.PAUSED)
        self.btn_start.setEnabled(idle or status is TimerStatus.COMPLETED)
        self.btn_pause.setEnabled(status is TimerStatus.RUNNING)
        self.btn_resume.setEnabled(status is TimerStatus.PAUSED)
        self.btn_reset.setEnabled(active)
        self.btn_plus.setEnabled(idle)
        self.btn_minus.setEnabled(idle)
        self.task_combo.setEnabled(not active)
        for btn in self._kind_buttons.values():
            btn.setEnabled(not active)


__all__ = ["TimerPage"]
