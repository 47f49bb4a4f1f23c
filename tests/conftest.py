from concurrent.futures import Executor, Future
from dataclasses import dataclass
import os
from pathlib import Path
import sys

import pytest

# Ensure src/ is on sys.path for direct test invocation without an editable install
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

# Widget tests run headless
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from caffe_pomodoro.countdown import CountdownEngine
from caffe_pomodoro.database_manager import DBConfig, DatabaseManager
from caffe_pomodoro.pomodoro import TimerSettings
from caffe_pomodoro.session_recorder import SessionRecorder
from caffe_pomodoro.timer_service import PomodoroTimer


@pytest.fixture()
def db(tmp_path: Path):
    config = DBConfig(path=tmp_path / "test.sqlite")
    manager = DatabaseManager(config)
    manager.init_db()
    yield manager
    manager.close()


# --- Timer test doubles -------------------------------------------------------

class FakeClock:
    def __init__(self, start: float = 10_000.0):
        self.now = start

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def __call__(self) -> float:
        return self.now


class SyncExecutor(Executor):
    """Runs jobs inline, in submission order."""

    def submit(self, fn, *args, **kwargs):
        fut: Future = Future()
        try:
            fut.set_result(fn(*args, **kwargs))
        except BaseException as e:  # mirror ThreadPoolExecutor
            fut.set_exception(e)
        return fut


class DeferredExecutor(Executor):
    """Queues jobs until ``run_all`` so tests can interleave timer actions with slow I/O."""

    def __init__(self):
        self.jobs = []

    def submit(self, fn, *args, **kwargs):
        fut: Future = Future()
        self.jobs.append((fut, fn, args, kwargs))
        return fut

    def run_all(self) -> None:
        while self.jobs:
            fut, fn, args, kwargs = self.jobs.pop(0)
            try:
                fut.set_result(fn(*args, **kwargs))
            except BaseException as e:
                fut.set_exception(e)


class RecordingStore:
    def __init__(self, fail_create=False, fail_close=False, fail_increment=False):
        self.calls: list[tuple] = []
        self._next_id = 1
        self.fail_create = fail_create
        self.fail_close = fail_close
        self.fail_increment = fail_increment

    def create_session(self, kind, task_id, planned_duration_seconds):
        if self.fail_create:
            raise ConnectionError("backend unavailable")
        record_id = self._next_id
        self._next_id += 1
        self.calls.append(("create", record_id, kind, task_id, planned_duration_seconds))
        return record_id

    def close_session(self, record_id, was_completed):
        if self.fail_close:
            raise ConnectionError("backend unavailable")
        self.calls.append(("close", record_id, was_completed))

    def increment_task_pomodoro(self, task_id):
        if self.fail_increment:
            raise ConnectionError("backend unavailable")
        self.calls.append(("increment", task_id))

    def of(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]


class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.messages: list[tuple[str, str]] = []
        self.fail = fail

    def notify(self, title: str, body: str) -> None:
        if self.fail:
            raise PermissionError("notifications denied")
        self.messages.append((title, body))


class StaticSettings:
    def __init__(self, settings: TimerSettings):
        self.settings = settings

    def get_settings(self) -> TimerSettings:
        return self.settings


@dataclass
class TimerHarness:
    timer: PomodoroTimer
    clock: FakeClock
    engine: CountdownEngine
    store: RecordingStore
    notifier: RecordingNotifier
    provider: StaticSettings

    def elapse(self, seconds: float) -> None:
        """Advance wall-clock time and deliver one heartbeat."""
        self.clock.advance(seconds)
        self.engine.resync()

    def run_to_completion(self) -> None:
        self.elapse(self.timer.state.remaining_seconds)


SCENARIO_SETTINGS = TimerSettings(
    work_seconds=1500, short_break_seconds=300, long_break_seconds=900, sessions_before_long_break=4
)


@pytest.fixture()
def make_timer(qtbot):
    created: list[TimerHarness] = []

    def _make(settings: TimerSettings = SCENARIO_SETTINGS, store: RecordingStore | None = None, notifier=None, grace_ms: int = 20):
        clock = FakeClock()
        store = store or RecordingStore()
        notifier = notifier or RecordingNotifier()
        provider = StaticSettings(settings)
        engine = CountdownEngine(clock=clock, background=False)
        recorder = SessionRecorder(store, executor=SyncExecutor())
        timer = PomodoroTimer(provider, recorder, engine, notifier, grace_ms=grace_ms)
        harness = TimerHarness(timer, clock, engine, store, notifier, provider)
        created.append(harness)
        return harness

    yield _make
    for h in created:
        h.engine.stop()
