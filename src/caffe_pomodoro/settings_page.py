from __future__ import annotations

"""Settings page: timer lengths, theme, notifications and AI key."""

import json
from pathlib import Path
from typing import Callable
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QCheckBox, QPushButton, QSpinBox, QFileDialog, QComboBox, QLineEdit
)

from .database_manager import DatabaseManager
from .keys import save_api_key
from .notifications import DND_KEY
from .pomodoro import POMO_CYC, POMO_LB, POMO_SB, POMO_WORK, ConfigurationError, SettingsProvider, TimerSettings
from .repositories import get_setting, set_setting
from .timer_service import PomodoroTimer
from .toast import show_toast


THEME_KEY = "ui.theme"  # light|dark
EXPORT_KEYS = [THEME_KEY, DND_KEY, POMO_WORK, POMO_SB, POMO_LB, POMO_CYC]


def import_settings(db: DatabaseManager, provider: SettingsProvider, data: object) -> TimerSettings:
    """Store an exported settings document.

    Timer values are validated as a whole before anything is written, so a bad
    file leaves the current settings untouched. Raises ``ConfigurationError``.
    """
    if not isinstance(data, dict):
        raise ConfigurationError("settings file must contain a JSON object")
    current = provider.get_settings()

    def number(key: str, default: int) -> int:
        raw = data.get(key)
        if raw is None or raw == "":
            return default
        try:
            return int(raw)
        except (TypeError, ValueError):
            raise ConfigurationError(f"{key} must be a whole number, got {raw!r}") from None

    settings = TimerSettings.from_minutes(
        number(POMO_WORK, current.work_seconds // 60),
        number(POMO_SB, current.short_break_seconds // 60),
        number(POMO_LB, current.long_break_seconds // 60),
        number(POMO_CYC, current.sessions_before_long_break),
    )
    provider.save_settings(settings)
    for key in (THEME_KEY, DND_KEY):
        if key in data:
            set_setting(db, key, str(data[key]))
    return settings


class SettingsPage(QWidget):  # pragma: no cover UI heavy
    def __init__(
        self,
        db: DatabaseManager,
        provider: SettingsProvider,
        timer: PomodoroTimer,
        data_dir: Path,
        apply_theme_cb: Callable[[str], None],
    ):
        super().__init__()
        self._db = db
        self._provider = provider
        self._timer = timer
        self._data_dir = data_dir
        self._apply_theme_cb = apply_theme_cb

        layout = QVBoxLayout(self)
        theme_row = QHBoxLayout(); theme_row.addWidget(QLabel("Theme:"))
        self.theme_combo = QComboBox(); self.theme_combo.addItems(["light", "dark"])
        theme_row.addWidget(self.theme_combo); theme_row.addStretch(1)
        layout.addLayout(theme_row)

        self.dnd_cb = QCheckBox("Do Not Disturb (suppress session notifications)")
        layout.addWidget(self.dnd_cb)

        layout.addWidget(QLabel("Timer (minutes)"))
        pomo_row = QHBoxLayout()
        self.work_spin = QSpinBox(); self.work_spin.setRange(1, 180)
        self.short_spin = QSpinBox(); self.short_spin.setRange(1, 60)
        self.long_spin = QSpinBox(); self.long_spin.setRange(1, 180)
        self.cycles_spin = QSpinBox(); self.cycles_spin.setRange(1, 12)
        for lbl, w in [("Focus", self.work_spin), ("Short Break", self.short_spin), ("Long Break", self.long_spin), ("Sessions/Long", self.cycles_spin)]:
            pomo_row.addWidget(QLabel(lbl)); pomo_row.addWidget(w)
        pomo_row.addStretch(1)
        layout.addLayout(pomo_row)

        key_row = QHBoxLayout()
        self.key_edit = QLineEdit(); self.key_edit.setEchoMode(QLineEdit.EchoMode.Password)
        self.key_edit.setPlaceholderText("Gemini API key (stored in the system keyring)")
        self.btn_key = QPushButton("Save Key")
        key_row.addWidget(self.key_edit, 1); key_row.addWidget(self.btn_key)
        layout.addLayout(key_row)

        btn_row = QHBoxLayout()
        self.btn_save = QPushButton("Save Settings")
        self.btn_export = QPushButton("Export JSON")
        self.btn_import = QPushButton("Import JSON")
        for b in (self.btn_save, self.btn_export, self.btn_import):
            btn_row.addWidget(b)
        btn_row.addStretch(1)
        layout.addLayout(btn_row)
        layout.addStretch(1)

        self._load_settings()

        self.btn_save.clicked.connect(self._save)
        self.btn_export.clicked.connect(self._export)
        self.btn_import.clicked.connect(self._import)
        self.btn_key.clicked.connect(self._save_key)

    # --- Core ---------------------------------------------------------
    def _load_settings(self):
        theme = get_setting(self._db, THEME_KEY) or "light"
        idx = self.theme_combo.findText(theme)
        if idx >= 0:
            self.theme_combo.setCurrentIndex(idx)
        self.dnd_cb.setChecked(get_setting(self._db, DND_KEY) == "1")
        s = self._provider.get_settings()
        self.work_spin.setValue(s.work_seconds // 60)
        self.short_spin.setValue(s.short_break_seconds // 60)
        self.long_spin.setValue(s.long_break_seconds // 60)
        self.cycles_spin.setValue(s.sessions_before_long_break)

    def _save(self):
        theme = self.theme_combo.currentText()
        set_setting(self._db, THEME_KEY, theme)
        set_setting(self._db, DND_KEY, "1" if self.dnd_cb.isChecked() else "0")
        try:
            self._provider.save_settings(
                TimerSettings.from_minutes(
                    self.work_spin.value(),
                    self.short_spin.value(),
                    self.long_spin.value(),
                    self.cycles_spin.value(),
                )
            )
        except ConfigurationError as e:
            show_toast(self, f"Invalid timer settings: {e}")
            return
        self._apply_theme_cb(theme)
        self._timer.apply_settings()
        show_toast(self, "Settings saved")

    def _save_key(self):
        key = self.key_edit.text().strip()
        if not key:
            return
        save_api_key(self._data_dir, key)
        self.key_edit.clear()
        show_toast(self, "API key saved; restart to enable suggestions")

    # --- Export/Import ------------------------------------------------
    def _export(self):
        path, _ = QFileDialog.getSaveFileName(self, "Export Settings", filter="JSON (*.json)")
        if not path:
            return
        data = {k: (get_setting(self._db, k) or "") for k in EXPORT_KEYS}
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        show_toast(self, "Exported")

    def _import(self):
        path, _ = QFileDialog.getOpenFileName(self, "Import Settings", filter="JSON (*.json)")
        if not path:
            return
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            show_toast(self, f"Import failed: {e}")
            return
        try:
            import_settings(self._db, self._provider, data)
        except ConfigurationError as e:
            show_toast(self, f"Import rejected: {e}")
            return
        show_toast(self, "Imported")
        self._load_settings()
        self._apply_theme_cb(get_setting(self._db, THEME_KEY) or "light")
        self._timer.apply_settings()


__all__ = ["SettingsPage", "THEME_KEY", "import_settings"]
