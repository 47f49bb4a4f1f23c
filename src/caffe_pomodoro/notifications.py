from __future__ import annotations

"""Session-end notifications.

The timer only needs ``notify(title, body)``. Delivery is best effort: a
missing tray, a denied permission or Do Not Disturb must never reach the
timer, so ``safe_notify`` swallows everything.

``TrayNotifier`` shows a tray message and plays the alert sound; Do Not
Disturb silences both. It also owns the tray icon menu (Show/Hide, Do Not
Disturb, Quit).
"""

import logging
from typing import Callable, Optional, Protocol

from PyQt6.QtCore import QObject
from PyQt6.QtGui import QIcon
from PyQt6.QtWidgets import QApplication, QMenu, QSystemTrayIcon, QWidget

from .database_manager import DatabaseManager
from .repositories import get_setting, set_setting

logger = logging.getLogger(__name__)

DND_KEY = "notifications.dnd"


class NotificationSink(Protocol):
    def notify(self, title: str, body: str) -> None: ...


def safe_notify(sink: NotificationSink | None, title: str, body: str) -> None:
    if sink is None:
        return
    try:
        sink.notify(title, body)
    except Exception as e:
        logger.debug("notification dropped: %s", e)


class TrayNotifier(QObject):
    def __init__(self, parent: QWidget, db: DatabaseManager, sound: Optional[Callable[[], None]] = None) -> None:
        super().__init__(parent)
        self._db = db
        self._sound = sound or QApplication.beep
        self._parent_widget = parent

        self._tray = QSystemTrayIcon(parent)
        self._tray.setToolTip("Caffe Pomodoro")
        self._tray.setIcon(QIcon())
        self._tray.setVisible(QSystemTrayIcon.isSystemTrayAvailable())

        self._menu = QMenu()
        self._act_show = self._menu.addAction("Show / Hide")
        self._act_dnd = self._menu.addAction("Do Not Disturb")
        self._act_dnd.setCheckable(True)
        self._act_dnd.setChecked(self.is_dnd())
        self._menu.addSeparator()
        self._act_quit = self._menu.addAction("Quit")
        self._tray.setContextMenu(self._menu)

        self._act_show.triggered.connect(self._toggle_main_visibility)
        self._act_dnd.toggled.connect(self.set_dnd)
        self._act_quit.triggered.connect(QApplication.instance().quit)  # type: ignore[arg-type]

    # --- Public API ----------------------------------------------------
    def notify(self, title: str, body: str) -> None:
        if self.is_dnd():
            return
        if QSystemTrayIcon.supportsMessages():
            self._tray.showMessage(title, body, QSystemTrayIcon.MessageIcon.Information, 5000)
        self._sound()

    def is_dnd(self) -> bool:
        return get_setting(self._db, DND_KEY) == "1"

    def set_dnd(self, enabled: bool) -> None:
        set_setting(self._db, DND_KEY, "1" if enabled else "0")

    # --- UI actions ----------------------------------------------------
    def _toggle_main_visibility(self) -> None:  # pragma: no cover - UI action
        w = self._parent_widget
        if w.isVisible():
            w.hide()
        else:
            w.show()
            w.activateWindow()


__all__ = ["NotificationSink", "TrayNotifier", "safe_notify", "DND_KEY"]
