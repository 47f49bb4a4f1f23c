from __future__ import annotations

"""Pomodoro cycle policy.

Pure helpers the timer composes:
 - ``session_duration``: seconds for a session kind under given settings.
 - ``next_session_kind``: which kind follows a finished (or skipped) session.
 - ``SettingsProvider``: reads the user's timer preferences from the settings table.

``TimerSettings`` is passed explicitly at the moment a countdown starts rather
than read ad hoc from a global, so both helpers stay pure.
"""

from dataclasses import dataclass
import logging

from .database_manager import DatabaseManager
from .models import SessionKind
from .repositories import get_setting, set_setting

logger = logging.getLogger(__name__)

POMO_WORK = "pomo.work"
POMO_SB = "pomo.short"
POMO_LB = "pomo.long"
POMO_CYC = "pomo.cycles"


class ConfigurationError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class TimerSettings:
    work_seconds: int = 25 * 60
    short_break_seconds: int = 5 * 60
    long_break_seconds: int = 15 * 60
    sessions_before_long_break: int = 4

    @classmethod
    def from_minutes(cls, work: int, short_break: int, long_break: int, cycles: int) -> "TimerSettings":
        return cls(work * 60, short_break * 60, long_break * 60, cycles)

    def validate(self) -> "TimerSettings":
        for name in ("work_seconds", "short_break_seconds", "long_break_seconds"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive, got {getattr(self, name)}")
        if self.sessions_before_long_break < 1:
            raise ConfigurationError(
                f"sessions_before_long_break must be >= 1, got {self.sessions_before_long_break}"
            )
        return self


def session_duration(kind: SessionKind, settings: TimerSettings) -> int:
    if kind is SessionKind.WORK:
        return settings.work_seconds
    if kind is SessionKind.SHORT_BREAK:
        return settings.short_break_seconds
    if kind is SessionKind.LONG_BREAK:
        return settings.long_break_seconds
    raise ValueError(f"unknown session kind: {kind!r}")


def next_session_kind(kind: SessionKind, completed_work_sessions: int, sessions_before_long_break: int) -> SessionKind:
    """Return the kind that follows ``kind``.

    For a work session ``completed_work_sessions`` must already include the
    session that just finished: with a threshold of 4 the 4th, 8th, 12th...
    work session is followed by a long break.
    """
    if sessions_before_long_break < 1:
        raise ConfigurationError(
            f"sessions_before_long_break must be >= 1, got {sessions_before_long_break}"
        )
    if kind is not SessionKind.WORK:
        return SessionKind.WORK
    if completed_work_sessions > 0 and completed_work_sessions % sessions_before_long_break == 0:
        return SessionKind.LONG_BREAK
    return SessionKind.SHORT_BREAK


class SettingsProvider:
    """Timer preferences persisted as minutes in the ``settings`` table."""

    def __init__(self, db: DatabaseManager, defaults: TimerSettings | None = None) -> None:
        self._db = db
        self._defaults = defaults or TimerSettings()

    def get_settings(self) -> TimerSettings:
        d = self._defaults
        return TimerSettings(
            work_seconds=self._read_minutes(POMO_WORK, d.work_seconds),
            short_break_seconds=self._read_minutes(POMO_SB, d.short_break_seconds),
            long_break_seconds=self._read_minutes(POMO_LB, d.long_break_seconds),
            sessions_before_long_break=self._read_int(POMO_CYC, d.sessions_before_long_break),
        )

    def save_settings(self, settings: TimerSettings) -> None:
        settings.validate()
        set_setting(self._db, POMO_WORK, str(settings.work_seconds // 60))
        set_setting(self._db, POMO_SB, str(settings.short_break_seconds // 60))
        set_setting(self._db, POMO_LB, str(settings.long_break_seconds // 60))
        set_setting(self._db, POMO_CYC, str(settings.sessions_before_long_break))

    def load_or_reset(self) -> TimerSettings:
        """Return valid settings, restoring the defaults when the stored ones are unusable."""
        try:
            return self.get_settings().validate()
        except ConfigurationError as e:
            logger.error("stored timer settings invalid, restoring defaults: %s", e)
            self.save_settings(self._defaults)
            return self._defaults

    def _read_minutes(self, key: str, default_seconds: int) -> int:
        raw = get_setting(self._db, key)
        if not raw:
            return default_seconds
        try:
            return int(raw) * 60
        except ValueError:
            logger.warning("ignoring non-numeric setting %s=%r", key, raw)
            return default_seconds

    def _read_int(self, key: str, default: int) -> int:
        raw = get_setting(self._db, key)
        if not raw:
            return default
        try:
            return int(raw)
        except ValueError:
            logger.warning("ignoring non-numeric setting %s=%r", key, raw)
            return default


__all__ = [
    "ConfigurationError",
    "TimerSettings",
    "SettingsProvider",
    "session_duration",
    "next_session_kind",
    "POMO_WORK",
    "POMO_SB",
    "POMO_LB",
    "POMO_CYC",
]
