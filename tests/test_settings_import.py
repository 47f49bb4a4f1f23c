import pytest

from caffe_pomodoro.models import SessionKind
from caffe_pomodoro.notifications import DND_KEY
from caffe_pomodoro.pomodoro import POMO_CYC, POMO_WORK, ConfigurationError, SettingsProvider, TimerSettings
from caffe_pomodoro.repositories import get_setting, set_setting
from caffe_pomodoro.session_recorder import SessionRecorder
from caffe_pomodoro.settings_page import THEME_KEY, import_settings
from caffe_pomodoro.task_store import TaskStore
from caffe_pomodoro.timer_page import TimerPage
from caffe_pomodoro.timer_service import PomodoroTimer, TimerStatus

from conftest import RecordingStore, SyncExecutor


def _timer(db) -> PomodoroTimer:
    return PomodoroTimer(SettingsProvider(db), SessionRecorder(RecordingStore(), executor=SyncExecutor()))


def test_import_stores_valid_document(db):
    provider = SettingsProvider(db)
    imported = import_settings(
        db,
        provider,
        {THEME_KEY: "dark", DND_KEY: "1", "pomo.work": "50", "pomo.short": 10, "pomo.long": "", "pomo.cycles": "3"},
    )
    assert imported == TimerSettings(3000, 600, 900, 3)
    assert provider.get_settings() == imported
    assert get_setting(db, THEME_KEY) == "dark"
    assert get_setting(db, DND_KEY) == "1"


@pytest.mark.parametrize(
    "document",
    [
        {"pomo.cycles": "0", THEME_KEY: "dark"},
        {"pomo.work": "-5"},
        {"pomo.work": "half an hour"},
        [1, 2],
        "pomo.cycles=4",
    ],
)
def test_rejected_import_leaves_settings_untouched(db, qtbot, document):
    set_setting(db, POMO_WORK, "30")
    with pytest.raises(ConfigurationError):
        import_settings(db, SettingsProvider(db), document)
    assert get_setting(db, POMO_WORK) == "30"
    assert get_setting(db, POMO_CYC) is None
    assert get_setting(db, THEME_KEY) is None

    timer = _timer(db)
    timer.start()
    assert timer.status is TimerStatus.RUNNING
    timer.shutdown()


def test_unusable_stored_settings_are_reset_at_startup(db, qtbot, caplog):
    set_setting(db, POMO_CYC, "0")
    provider = SettingsProvider(db)
    assert provider.load_or_reset() == TimerSettings()
    assert get_setting(db, POMO_CYC) == "4"
    assert "restoring defaults" in caplog.text

    timer = _timer(db)
    timer.start()
    assert timer.status is TimerStatus.RUNNING
    timer.shutdown()


def test_timer_page_reports_invalid_settings_instead_of_raising(db, make_timer, qtbot):
    h = make_timer()
    page = TimerPage(h.timer, TaskStore(db))
    qtbot.addWidget(page)
    h.provider.settings = TimerSettings(1500, 300, 900, 0)

    page._on_start()
    page.btn_skip.click()
    page._on_kind_clicked(int(SessionKind.LONG_BREAK))

    assert h.timer.status is TimerStatus.IDLE
    assert h.timer.state.kind is SessionKind.WORK
    assert page._kind_buttons[SessionKind.WORK].isChecked()
    assert h.store.calls == []
