from __future__ import annotations

"""Deadline based countdown engine.

Remaining time is always derived from ``deadline - clock()``, never from a
count of ticks, so late or missed ticks (window minimised, laptop asleep,
event loop stalled) cannot make the countdown drift. Each tick simply
recomputes the value.

The heartbeat that drives ticks lives on its own ``QThread``. It only emits a
``beat`` signal; Qt queues it onto the engine's thread where the arithmetic
and the public ``tick``/``completed`` signals happen. Nothing else is shared
between the two threads.
"""

import logging
import math
import time
from typing import Callable, Optional

from PyQt6.QtCore import QObject, QThread, QTimer, pyqtSignal

Clock = Callable[[], float]

logger = logging.getLogger(__name__)


class CountdownError(RuntimeError):
    pass


class _Heartbeat(QObject):
    beat = pyqtSignal()

    def __init__(self, interval_ms: int):
        super().__init__()
        self._interval_ms = interval_ms
        self._timer: QTimer | None = None

    # Created lazily so the QTimer belongs to whichever thread runs start()
    def start(self) -> None:
        if self._timer is None:
            self._timer = QTimer(self)
            self._timer.setInterval(self._interval_ms)
            self._timer.timeout.connect(self.beat)
        self._timer.start()

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.stop()


class CountdownEngine(QObject):
    tick = pyqtSignal(int)  # remaining seconds
    completed = pyqtSignal()

    _start_heartbeat = pyqtSignal()
    _stop_heartbeat = pyqtSignal()

    def __init__(
        self,
        clock: Optional[Clock] = None,
        interval_ms: int = 1000,
        background: bool = True,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._clock: Clock = clock or time.monotonic
        self._deadline: float | None = None
        self._background = background
        self._thread: Optional[QThread] = None
        self._heartbeat = _Heartbeat(interval_ms)
        if background:
            self._thread = QThread()
            self._thread.setObjectName("countdown-heartbeat")
            self._heartbeat.moveToThread(self._thread)
            self._thread.start()
        else:
            self._heartbeat.setParent(self)
        self._start_heartbeat.connect(self._heartbeat.start)
        self._stop_heartbeat.connect(self._heartbeat.stop)
        self._heartbeat.beat.connect(self._on_beat)

    # --- Properties -----------------------------------------------------
    @property
    def is_active(self) -> bool:
        return self._deadline is not None

    def remaining(self) -> int:
        if self._deadline is None:
            return 0
        return max(0, math.ceil(self._deadline - self._clock()))

    # --- Public API -----------------------------------------------------
    def start(self, duration_seconds: int) -> None:
        if self._deadline is not None:
            raise CountdownError("Countdown already active; stop it before starting another")
        self._deadline = self._clock() + duration_seconds
        self._start_heartbeat.emit()
        logger.debug("countdown started", extra={"_json_duration": duration_seconds})

    def pause(self) -> int:
        """Stop ticking and return the remaining seconds for the caller to keep."""
        remaining = self.remaining()
        self._halt()
        return remaining

    def resume(self, remaining_seconds: int) -> None:
        if self._deadline is not None:
            raise CountdownError("Countdown already active")
        if remaining_seconds <= 0:
            self.completed.emit()
            return
        self._deadline = self._clock() + remaining_seconds
        self._start_heartbeat.emit()

    def stop(self) -> None:
        self._halt()

    def resync(self) -> Optional[int]:
        """Recompute and emit remaining time from the live deadline."""
        if self._deadline is None:
            return None
        return self._emit_remaining()

    def shutdown(self) -> None:
        self._halt()
        if self._thread is not None:
            self._thread.quit()
            self._thread.wait(2000)
            self._thread = None

    # --- Internal -------------------------------------------------------
    def _halt(self) -> None:
        self._deadline = None
        self._stop_heartbeat.emit()

    def _on_beat(self) -> None:
        # Beats queued before a stop can still arrive afterwards
        if self._deadline is None:
            return
        self._emit_remaining()

    def _emit_remaining(self) -> int:
        remaining = self.remaining()
        self.tick.emit(remaining)
        if remaining <= 0 and self._deadline is not None:
            self._halt()
            self.completed.emit()
        return remaining


__all__ = ["CountdownEngine", "CountdownError", "Clock"]
