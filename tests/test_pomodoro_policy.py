import pytest

from caffe_pomodoro.models import SessionKind
from caffe_pomodoro.pomodoro import (
    POMO_CYC,
    POMO_WORK,
    ConfigurationError,
    SettingsProvider,
    TimerSettings,
    next_session_kind,
    session_duration,
)
from caffe_pomodoro.repositories import get_setting, set_setting


def test_session_duration_per_kind():
    s = TimerSettings(1500, 300, 900, 4)
    assert session_duration(SessionKind.WORK, s) == 1500
    assert session_duration(SessionKind.SHORT_BREAK, s) == 300
    assert session_duration(SessionKind.LONG_BREAK, s) == 900


def test_session_duration_rejects_unknown_kind():
    with pytest.raises(ValueError):
        session_duration("nap", TimerSettings())  # type: ignore[arg-type]


@pytest.mark.parametrize("threshold", [1, 2, 3, 4, 7])
def test_long_break_every_threshold_work_sessions(threshold):
    for n in range(0, 30):
        nxt = next_session_kind(SessionKind.WORK, n, threshold)
        if n > 0 and n % threshold == 0:
            assert nxt is SessionKind.LONG_BREAK
        else:
            assert nxt is SessionKind.SHORT_BREAK
        assert next_session_kind(SessionKind.SHORT_BREAK, n, threshold) is SessionKind.WORK
        assert next_session_kind(SessionKind.LONG_BREAK, n, threshold) is SessionKind.WORK


def test_zero_threshold_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        next_session_kind(SessionKind.WORK, 4, 0)


@pytest.mark.parametrize(
    "settings",
    [
        TimerSettings(0, 300, 900, 4),
        TimerSettings(1500, -1, 900, 4),
        TimerSettings(1500, 300, 0, 4),
        TimerSettings(1500, 300, 900, 0),
    ],
)
def test_validate_rejects_bad_settings(settings):
    with pytest.raises(ConfigurationError):
        settings.validate()


def test_from_minutes():
    assert TimerSettings.from_minutes(50, 10, 30, 3) == TimerSettings(3000, 600, 1800, 3)


def test_provider_defaults_when_unset(db):
    assert SettingsProvider(db).get_settings() == TimerSettings()


def test_provider_reads_minutes_and_ignores_garbage(db, caplog):
    set_setting(db, POMO_WORK, "45")
    set_setting(db, POMO_CYC, "three")
    settings = SettingsProvider(db).get_settings()
    assert settings.work_seconds == 2700
    assert settings.sessions_before_long_break == 4
    assert "ignoring non-numeric setting" in caplog.text


def test_provider_save_round_trip(db):
    provider = SettingsProvider(db)
    provider.save_settings(TimerSettings.from_minutes(30, 6, 20, 3))
    assert get_setting(db, POMO_WORK) == "30"
    assert provider.get_settings() == TimerSettings(1800, 360, 1200, 3)


def test_provider_refuses_to_save_invalid_settings(db):
    provider = SettingsProvider(db)
    with pytest.raises(ConfigurationError):
        provider.save_settings(TimerSettings(1500, 300, 900, 0))
    assert get_setting(db, POMO_CYC) is None
