import json
import logging

from caffe_pomodoro.logging_setup import JsonFormatter, _level_from_env


def test_json_formatter_includes_structured_extras():
    record = logging.LogRecord("caffe_pomodoro.test", logging.INFO, __file__, 1, "session closed", None, None)
    record._json_record_id = 7
    payload = json.loads(JsonFormatter().format(record))
    assert payload["msg"] == "session closed"
    assert payload["level"] == "INFO"
    assert payload["record_id"] == 7


def test_level_override_from_env(monkeypatch):
    monkeypatch.setenv("CAFFE_POMODORO_LOG_LEVEL", "debug")
    assert _level_from_env(logging.INFO) == logging.DEBUG
    monkeypatch.setenv("CAFFE_POMODORO_LOG_LEVEL", "chatty")
    assert _level_from_env(logging.INFO) == logging.INFO
