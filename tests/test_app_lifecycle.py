from PyQt6.QtWidgets import QWidget

from caffe_pomodoro.app import AppState
from caffe_pomodoro.database_manager import DBConfig, DatabaseManager
from caffe_pomodoro.gemini_client import TaskSuggester
from caffe_pomodoro.models import SessionKind, Task
from caffe_pomodoro.notifications import DND_KEY, TrayNotifier
from caffe_pomodoro.pomodoro import SettingsProvider
from caffe_pomodoro.repositories import (
    create_session,
    create_task,
    get_current_session,
    list_session_history,
    set_setting,
)
from caffe_pomodoro.session_recorder import SessionRecorder, SqliteSessionStore
from caffe_pomodoro.stats_page import describe_session, local_time_label
from caffe_pomodoro.task_store import TaskStore
from caffe_pomodoro.timer_service import PomodoroTimer


def test_shutdown_stops_heartbeat_and_closes_running_session(tmp_path, qtbot):
    path = tmp_path / "app.sqlite"
    db = DatabaseManager(DBConfig(path=path))
    db.init_db()
    task = create_task(db, Task(id=None, title="Draft chapter"))
    state = AppState(
        data_dir=tmp_path,
        db=db,
        settings_provider=SettingsProvider(db),
        recorder=SessionRecorder(SqliteSessionStore(db)),
        task_store=TaskStore(db),
        suggester=TaskSuggester(None),
    )
    timer = PomodoroTimer(state.settings_provider, state.recorder)
    timer.start(task.id)
    engine = timer._engine
    assert engine._thread is not None and engine._thread.isRunning()

    # Window close and application quit may both run the cleanup
    for _ in range(2):
        timer.shutdown()
        state.close()

    assert engine._thread is None
    assert state.closed

    reopened = DatabaseManager(DBConfig(path=path))
    try:
        [record] = list_session_history(reopened, days=1)
        assert record.kind is SessionKind.WORK
        assert record.completed_at is not None
        assert not record.was_completed
    finally:
        reopened.close()


def test_tray_notifier_plays_sound_unless_do_not_disturb(db, qtbot):
    parent = QWidget()
    qtbot.addWidget(parent)
    sounds: list[bool] = []
    notifier = TrayNotifier(parent, db, sound=lambda: sounds.append(True))

    notifier.notify("Caffe Pomodoro", "Time for a break!")
    assert sounds == [True]

    notifier.set_dnd(True)
    notifier.notify("Caffe Pomodoro", "Time to work!")
    assert sounds == [True]

    set_setting(db, DND_KEY, "0")
    notifier.notify("Caffe Pomodoro", "Time to work!")
    assert sounds == [True, True]


def test_recent_session_labels(db):
    create_session(db, SessionKind.WORK, None, 1500, started_at="2025-03-10T09:00:00Z")
    current = get_current_session(db)
    assert current is not None
    label = describe_session(current, with_date=True)
    assert label.endswith("Focus 25m (open)")
    assert label.startswith("2025-03-")
    assert len(local_time_label(current.started_at)) == 5
