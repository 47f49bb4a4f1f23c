from __future__ import annotations

"""Transient toast message overlaid on a widget."""

from PyQt6.QtCore import QTimer, Qt
from PyQt6.QtWidgets import QLabel, QWidget

_STYLE = """
background: rgba(60,40,30,0.9);
color: #fff; padding: 6px 12px; border-radius: 6px;
"""


class Toast(QLabel):  # pragma: no cover - UI utility
    def __init__(self, parent: QWidget, message: str, timeout_ms: int = 2500):
        super().__init__(parent)
        self.setText(message)
        self.setStyleSheet(_STYLE)
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents)
        self.adjustSize()
        # Bottom centre, clear of the timer controls at the top
        self.move(int((parent.width() - self.width()) / 2), max(0, parent.height() - self.height() - 24))
        self.raise_()
        self.show()
        QTimer.singleShot(timeout_ms, self.deleteLater)


def show_toast(parent: QWidget, message: str, timeout_ms: int = 2500) -> None:  # pragma: no cover
    Toast(parent, message, timeout_ms)

__all__ = ["show_toast"]
