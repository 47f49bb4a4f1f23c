from __future__ import annotations

import sys
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import os

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import (
    QApplication,
    QMainWindow,
    QListWidget,
    QWidget,
    QStackedWidget,
    QHBoxLayout,
)

from . import __version__
from .database_manager import DBConfig, DatabaseManager
from .gemini_client import GeminiClient, GeminiClientConfig, TaskSuggester
from .keys import load_api_key, redact
from .logging_setup import configure_logging
from .notifications import TrayNotifier
from .pomodoro import SettingsProvider
from .repositories import close_open_sessions, get_setting
from .session_recorder import SessionRecorder, SqliteSessionStore
from .settings_page import SettingsPage, THEME_KEY
from .stats_page import StatsPage
from .task_store import TaskStore
from .tasks_page import TasksPage
from .timer_page import TimerPage
from .timer_service import PomodoroTimer


APP_NAME = "Caffe Pomodoro"
DATA_DIR_ENV = "CAFFE_POMODORO_DATA_DIR"


@dataclass(slots=True)
class AppState:
    data_dir: Path
    db: DatabaseManager
    settings_provider: SettingsProvider
    recorder: SessionRecorder
    task_store: TaskStore
    suggester: TaskSuggester
    closed: bool = False

    def close(self) -> None:
        """Drain pending session writes and close the database; safe to call twice."""
        if self.closed:
            return
        self.closed = True
        self.recorder.shutdown()
        self.db.close()


def resolve_data_dir() -> Path:
    override = os.environ.get(DATA_DIR_ENV)
    data_dir = Path(override) if override else Path.cwd() / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def get_app_state() -> AppState:
    data_dir = resolve_data_dir()
    # Logging first
    configure_logging(data_dir)
    log = logging.getLogger(__name__)
    db = DatabaseManager(DBConfig(path=data_dir / "caffe_pomodoro.sqlite"))
    db.init_db()
    stale = close_open_sessions(db)
    if stale:
        log.info("closed sessions left open by a previous run", extra={"_json_count": stale})
    settings_provider = SettingsProvider(db)
    settings_provider.load_or_reset()
    task_store = TaskStore(db); task_store.load()
    gemini_key = load_api_key(data_dir) or ""
    client = GeminiClient(GeminiClientConfig(api_key=gemini_key)) if gemini_key else None
    log.info("app_state_created", extra={"_json_gemini_key": redact(gemini_key), "_json_version": __version__})
    return AppState(
        data_dir=data_dir,
        db=db,
        settings_provider=settings_provider,
        recorder=SessionRecorder(SqliteSessionStore(db)),
        task_store=task_store,
        suggester=TaskSuggester(client),
    )


class Sidebar(QListWidget):
    PAGES = ["Timer", "Tasks", "Calendar", "Settings"]

    def __init__(self) -> None:
        super().__init__()
        self.addItems(self.PAGES)
        self.setFixedWidth(140)
        self.setCurrentRow(0)


class MainWindow(QMainWindow):  # pragma: no cover - UI wiring
    def __init__(self, state: AppState) -> None:
        super().__init__()
        self.state = state
        self.setWindowTitle(APP_NAME)
        self.resize(900, 600)

        self.notifier = TrayNotifier(self, state.db)
        self.timer = PomodoroTimer(state.settings_provider, state.recorder, notifier=self.notifier, parent=self)

        self.sidebar = Sidebar()
        self.pages = QStackedWidget()
        self.stats_page = StatsPage(state.db)
        self.pages.addWidget(TimerPage(self.timer, state.task_store))
        self.pages.addWidget(TasksPage(state.task_store, state.suggester))
        self.pages.addWidget(self.stats_page)
        self.pages.addWidget(
            SettingsPage(state.db, state.settings_provider, self.timer, state.data_dir, self.apply_theme)
        )

        container = QWidget()
        container_layout = QHBoxLayout(container)
        container_layout.addWidget(self.sidebar)
        container_layout.addWidget(self.pages, 1)
        self.setCentralWidget(container)
        self.sidebar.currentRowChanged.connect(self.pages.setCurrentIndex)
        self.sidebar.currentRowChanged.connect(self._on_page_changed)

        # Correct for ticks missed while the app was hidden or the machine slept
        app = QApplication.instance()
        app.applicationStateChanged.connect(self._on_app_state_changed)  # type: ignore[union-attr]
        # Tray Quit ends the event loop without a closeEvent
        app.aboutToQuit.connect(self.shutdown)  # type: ignore[union-attr]

        self.apply_theme(get_setting(state.db, THEME_KEY) or "light")

    def _on_app_state_changed(self, app_state: Qt.ApplicationState) -> None:
        if app_state == Qt.ApplicationState.ApplicationActive:
            self.timer.resync()

    def _on_page_changed(self, index: int) -> None:
        if self.pages.widget(index) is self.stats_page:
            self.stats_page.refresh()

    def shutdown(self) -> None:
        if self.state.closed:
            return
        self.timer.shutdown()
        self.state.close()

    def closeEvent(self, event) -> None:  # noqa: N802
        self.shutdown()
        super().closeEvent(event)

    # --- Theme handling -----------------------------------------------
    def apply_theme(self, theme: str) -> None:
        if theme == "dark":
            self.setStyleSheet(
                """
                QWidget { background-color: #221b17; color: #eee; }
                QLineEdit, QTextEdit, QSpinBox, QComboBox { background: #2e2520; color: #eee; border: 1px solid #4a3b32; }
                QPushButton { background: #4a3b32; color: #eee; border: 1px solid #5c4a3f; padding:4px 8px; }
                QPushButton:checked, QPushButton:hover { background: #6f4e37; }
                QTableWidget { background: #2e2520; }
                """
            )
        else:
            self.setStyleSheet("")


def run(argv: Optional[list[str]] = None) -> int:
    if argv is None:
        argv = sys.argv
    app = QApplication(argv)
    app.setApplicationName(APP_NAME)
    state = get_app_state()
    window = MainWindow(state)
    window.show()
    return app.exec()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(run())
