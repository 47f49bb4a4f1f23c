from __future__ import annotations

"""Productivity calendar & history page.

Features:
 - Calendar to inspect the pomodoro sessions of a given day.
 - Session list (start time, kind, planned minutes, completed/abandoned).
 - Daily summary: focus sessions, completed sessions, focused minutes, tasks done.
 - Weekly bar chart of focused minutes for the week containing the selected day.
 - Recent sessions (last 7 days), flagging one still running.

Days are local calendar days; stored UTC timestamps are converted for display.

Aggregation lives in ``repositories.get_daily_stats``/``get_weekly_stats``;
this page only renders.
"""

from datetime import datetime, timezone

from matplotlib.backends.backend_qtagg import FigureCanvasQTAgg as FigureCanvas
from matplotlib.figure import Figure
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QListWidget, QCalendarWidget, QSizePolicy
)

from .database_manager import DatabaseManager
from .models import SessionRecord
from .repositories import (
    get_current_session,
    get_daily_stats,
    get_weekly_stats,
    list_session_history,
    list_sessions_for_day,
)

RECENT_DAYS = 7


def local_time_label(started_at: str, fmt: str = "%H:%M") -> str:
    """Format a stored ``...Z`` timestamp in the local zone."""
    moment = datetime.strptime(started_at, "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=timezone.utc)
    return moment.astimezone().strftime(fmt)


def describe_session(s: SessionRecord, *, with_date: bool = False) -> str:
    if s.completed_at is None:
        outcome = "open"
    else:
        outcome = "done" if s.was_completed else "abandoned"
    when = local_time_label(s.started_at, "%Y-%m-%d %H:%M" if with_date else "%H:%M")
    return f"{when} {s.kind.label} {s.planned_duration_seconds // 60}m ({outcome})"


class StatsPage(QWidget):  # pragma: no cover heavy UI
    def __init__(self, db: DatabaseManager):
        super().__init__()
        self._db = db

        self.calendar = QCalendarWidget()
        self.calendar.setGridVisible(True)
        self.sessions_list = QListWidget()
        self.summary_label = QLabel("")
        self.recent_label = QLabel("")
        self.recent_list = QListWidget()

        fig = Figure(figsize=(5, 2.5))
        self.weekly_canvas = FigureCanvas(fig)
        self.weekly_canvas.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)

        top_row = QHBoxLayout()
        left_col = QVBoxLayout()
        left_col.addWidget(self.calendar)
        left_col.addWidget(self.summary_label)
        top_row.addLayout(left_col, 0)
        top_row.addWidget(self.sessions_list, 1)
        recent_col = QVBoxLayout()
        recent_col.addWidget(self.recent_label)
        recent_col.addWidget(self.recent_list, 1)
        top_row.addLayout(recent_col, 1)

        layout = QVBoxLayout(self)
        layout.addLayout(top_row, 2)
        layout.addWidget(self.weekly_canvas, 1)

        self.calendar.selectionChanged.connect(self.refresh)
        self.refresh()

    # --- Slots --------------------------------------------------------
    def refresh(self) -> None:
        day = self.calendar.selectedDate().toString("yyyy-MM-dd")
        self._load_sessions(day)
        self._render_week(day)
        self._load_recent()

    def _load_sessions(self, day: str) -> None:
        self.sessions_list.clear()
        for s in list_sessions_for_day(self._db, day):
            self.sessions_list.addItem(describe_session(s))
        stats = get_daily_stats(self._db, day)
        self.summary_label.setText(
            f"{stats.completed_sessions}/{stats.total_sessions} focus sessions · "
            f"{stats.total_minutes}m focused · {stats.tasks_completed} tasks done"
        )

    def _load_recent(self) -> None:
        self.recent_list.clear()
        current = get_current_session(self._db)
        if current is None:
            self.recent_label.setText(f"Last {RECENT_DAYS} days")
        else:
            self.recent_label.setText(f"Last {RECENT_DAYS} days · in progress: {current.kind.label}")
        for s in list_session_history(self._db, days=RECENT_DAYS):
            self.recent_list.addItem(describe_session(s, with_date=True))

    def _render_week(self, day: str) -> None:
        week = get_weekly_stats(self._db, day)
        fig: Figure = self.weekly_canvas.figure
        fig.clear()
        ax = fig.add_subplot(111)
        labels = [d.date[5:] for d in week.daily_breakdown]  # MM-DD
        ax.bar(labels, [d.total_minutes for d in week.daily_breakdown], color="#6f4e37")
        ax.set_title(f"Week of {week.start_date}: {week.total_minutes}m focused")
        ax.set_ylabel("Minutes")
        fig.tight_layout()
        self.weekly_canvas.draw()


__all__ = ["StatsPage", "describe_session", "local_time_label"]
