from __future__ import annotations

"""Pomodoro timer state machine.

Design:
 - States: idle -> running -> paused -> running ... -> completed -> idle.
   ``reset`` returns running/paused sessions to idle, ``skip`` and
   ``set_kind`` move to idle from anywhere they are allowed.
 - A session record is opened on start and closed exactly once: as completed
   when the countdown reaches zero, as abandoned on reset/skip/shutdown.
 - After a natural completion the timer stays ``completed`` for a short grace
   period (completion banner), then advances to the next kind like ``skip``
   does, without touching the already closed record.
 - All transitions run on the owner thread. The countdown engine reports in
   through queued ``tick``/``completed`` signals handled one at a time.
 - Invalid transitions raise ``TimerStateError`` and leave the state as is.
"""

from dataclasses import dataclass, replace
from enum import Enum
import logging
from typing import Optional

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from .countdown import Clock, CountdownEngine
from .models import SessionKind
from .notifications import NotificationSink, safe_notify
from .pomodoro import ConfigurationError, TimerSettings, next_session_kind, session_duration
from .session_recorder import RecordHandle, SessionRecorder

logger = logging.getLogger(__name__)

GRACE_PERIOD_MS = 3000
TIME_STEP_SECONDS = 60
MIN_ADJUSTED_SECONDS = 60
APP_TITLE = "Caffe Pomodoro"


class TimerStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class TimerStateError(RuntimeError):
    pass


@dataclass(slots=True)
class TimerState:
    status: TimerStatus
    kind: SessionKind
    remaining_seconds: int
    completed_work_sessions: int = 0
    active_record: Optional[RecordHandle] = None
    task_id: Optional[int] = None


def format_mmss(seconds: int) -> str:
    m, s = divmod(max(0, seconds), 60)
    return f"{m:02d}:{s:02d}"


class PomodoroTimer(QObject):
    state_changed = pyqtSignal(str)  # idle|running|paused|completed
    tick = pyqtSignal(int)  # remaining seconds
    kind_changed = pyqtSignal(object)  # SessionKind
    session_completed = pyqtSignal(object)  # SessionKind that finished naturally
    error = pyqtSignal(str)

    def __init__(
        self,
        settings_provider,
        recorder: SessionRecorder,
        engine: CountdownEngine | None = None,
        notifier: NotificationSink | None = None,
        *,
        clock: Optional[Clock] = None,
        grace_ms: int = GRACE_PERIOD_MS,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._settings_provider = settings_provider
        self._recorder = recorder
        self._notifier = notifier
        self._settings: TimerSettings = self._load_settings()

        self._engine = engine or CountdownEngine(clock=clock)
        self._engine.tick.connect(self._on_engine_tick)
        self._engine.completed.connect(self._on_engine_complete)

        self._grace_timer = QTimer(self)
        self._grace_timer.setSingleShot(True)
        self._grace_timer.setInterval(grace_ms)
        self._grace_timer.timeout.connect(self._on_grace_elapsed)

        first = session_duration(SessionKind.WORK, self._settings)
        self._state = TimerState(TimerStatus.IDLE, SessionKind.WORK, first)
        self._planned_seconds = first

    # --- Properties -----------------------------------------------------
    @property
    def state(self) -> TimerState:
        return replace(self._state)

    @property
    def status(self) -> TimerStatus:
        return self._state.status

    @property
    def settings(self) -> TimerSettings:
        return self._settings

    @property
    def formatted_remaining(self) -> str:
        return format_mmss(self._state.remaining_seconds)

    @property
    def progress(self) -> float:
        if self._planned_seconds <= 0:
            return 0.0
        return min(1.0, max(0.0, 1 - self._state.remaining_seconds / self._planned_seconds))

    # --- Public API -----------------------------------------------------
    def start(self, task_id: Optional[int] = None) -> None:
        self._require({TimerStatus.IDLE, TimerStatus.COMPLETED}, "start")
        self._settings = self._load_settings()
        if self._state.status is TimerStatus.COMPLETED:
            # Starting during the grace period performs the pending advance first
            self._grace_timer.stop()
            self._advance()
        st = self._state
        planned = st.remaining_seconds
        handle = self._recorder.open(st.kind, task_id, planned)
        self._engine.start(planned)
        st.active_record = handle
        st.task_id = task_id
        self._planned_seconds = planned
        logger.info(
            "session started",
            extra={"_json_kind": st.kind.name, "_json_seconds": planned, "_json_task_id": task_id},
        )
        self._set_status(TimerStatus.RUNNING)
        self.tick.emit(st.remaining_seconds)

    def pause(self) -> None:
        self._require({TimerStatus.RUNNING}, "pause")
        remaining = self._engine.pause()
        if remaining <= 0:
            # Deadline passed before the final tick was delivered
            self._complete()
            return
        self._state.remaining_seconds = remaining
        self._set_status(TimerStatus.PAUSED)
        self.tick.emit(remaining)

    def resume(self) -> None:
        self._require({TimerStatus.PAUSED}, "resume")
        self._set_status(TimerStatus.RUNNING)
        self._engine.resume(self._state.remaining_seconds)

    def reset(self) -> None:
        self._require({TimerStatus.RUNNING, TimerStatus.PAUSED}, "reset")
        self._engine.stop()
        self._close_active(was_completed=False)
        st = self._state
        st.remaining_seconds = session_duration(st.kind, self._settings)
        self._planned_seconds = st.remaining_seconds
        self._set_status(TimerStatus.IDLE)
        self.tick.emit(st.remaining_seconds)

    def skip(self) -> None:
        settings = self._load_settings()
        self._engine.stop()
        self._grace_timer.stop()
        self._close_active(was_completed=False)
        self._settings = settings
        self._advance()

    def set_kind(self, kind: SessionKind) -> None:
        self._require({TimerStatus.IDLE, TimerStatus.COMPLETED}, "change session kind")
        self._settings = self._load_settings()
        self._grace_timer.stop()
        st = self._state
        st.kind = kind
        st.remaining_seconds = session_duration(kind, self._settings)
        self._planned_seconds = st.remaining_seconds
        st.task_id = None
        self.kind_changed.emit(kind)
        self._set_status(TimerStatus.IDLE)
        self.tick.emit(st.remaining_seconds)

    def add_time(self) -> None:
        self._require({TimerStatus.IDLE}, "add time")
        self._state.remaining_seconds += TIME_STEP_SECONDS
        self._planned_seconds = self._state.remaining_seconds
        self.tick.emit(self._state.remaining_seconds)

    def subtract_time(self) -> None:
        self._require({TimerStatus.IDLE}, "subtract time")
        self._state.remaining_seconds = max(
            MIN_ADJUSTED_SECONDS, self._state.remaining_seconds - TIME_STEP_SECONDS
        )
        self._planned_seconds = self._state.remaining_seconds
        self.tick.emit(self._state.remaining_seconds)

    def apply_settings(self) -> None:
        """Re-read settings; an idle timer picks up the new duration immediately."""
        self._settings = self._load_settings()
        if self._state.status is TimerStatus.IDLE:
            st = self._state
            st.remaining_seconds = session_duration(st.kind, self._settings)
            self._planned_seconds = st.remaining_seconds
            self.tick.emit(st.remaining_seconds)

    def resync(self) -> None:
        if self._state.status is TimerStatus.RUNNING:
            self._engine.resync()

    def shutdown(self) -> None:
        self._grace_timer.stop()
        self._engine.stop()
        self._close_active(was_completed=False)
        self._engine.shutdown()

    # --- Engine callbacks -------------------------------------------------
    def _on_engine_tick(self, remaining: int) -> None:
        if self._state.status is not TimerStatus.RUNNING:
            return
        self._state.remaining_seconds = remaining
        self.tick.emit(remaining)

    def _on_engine_complete(self) -> None:
        if self._state.status is not TimerStatus.RUNNING:
            return
        self._complete()

    def _on_grace_elapsed(self) -> None:
        if self._state.status is not TimerStatus.COMPLETED:
            return
        try:
            self._settings = self._load_settings()
            self._advance()
        except ConfigurationError as e:
            logger.error("cannot advance to next session: %s", e)
            self.error.emit(str(e))

    # --- Internal -------------------------------------------------------
    def _complete(self) -> None:
        self._engine.stop()
        st = self._state
        self._close_active(was_completed=True)
        st.remaining_seconds = 0
        self._set_status(TimerStatus.COMPLETED)
        self.tick.emit(0)
        message = "Time for a break!" if st.kind is SessionKind.WORK else "Time to work!"
        safe_notify(self._notifier, APP_TITLE, message)
        self.session_completed.emit(st.kind)
        logger.info("session completed", extra={"_json_kind": st.kind.name})
        self._grace_timer.start()

    def _advance(self) -> None:
        st = self._state
        count = st.completed_work_sessions + (1 if st.kind is SessionKind.WORK else 0)
        nxt = next_session_kind(st.kind, count, self._settings.sessions_before_long_break)
        st.completed_work_sessions = count
        st.kind = nxt
        st.remaining_seconds = session_duration(nxt, self._settings)
        st.task_id = None
        self._planned_seconds = st.remaining_seconds
        self.kind_changed.emit(nxt)
        self._set_status(TimerStatus.IDLE)
        self.tick.emit(st.remaining_seconds)

    def _close_active(self, *, was_completed: bool) -> None:
        handle = self._state.active_record
        if handle is None:
            return
        self._state.active_record = None
        self._recorder.close(handle, was_completed)

    def _load_settings(self) -> TimerSettings:
        return self._settings_provider.get_settings().validate()

    def _require(self, allowed: set[TimerStatus], action: str) -> None:
        if self._state.status not in allowed:
            raise TimerStateError(f"Cannot {action} while {self._state.status.value}")

    def _set_status(self, status: TimerStatus) -> None:
        if status != self._state.status:
            self._state.status = status
            self.state_changed.emit(status.value)


__all__ = [
    "PomodoroTimer",
    "TimerState",
    "TimerStatus",
    "TimerStateError",
    "format_mmss",
    "GRACE_PERIOD_MS",
]
