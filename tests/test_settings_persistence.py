import keyring
from keyring.errors import KeyringError

from caffe_pomodoro import keys
from caffe_pomodoro.models import TaskPriority
from caffe_pomodoro.repositories import get_setting, list_tasks
from caffe_pomodoro.task_store import SELECTED_KEY, TaskStore


def test_selected_task_persistence(db, qtbot):
    store = TaskStore(db)
    store.load()
    t = store.create("Plan sprint", estimated_pomodoros=2)
    assert t is not None
    store.set_selected_task_id(t.id)
    # New store instance should read same selection
    store2 = TaskStore(db)
    store2.load()
    assert store2.get_selected_task_id() == t.id


def test_deleting_selected_task_clears_selection(db, qtbot):
    store = TaskStore(db)
    t = store.create("Temporary")
    store.set_selected_task_id(t.id)  # type: ignore[union-attr]
    with qtbot.waitSignal(store.changed):
        assert store.delete(t.id)  # type: ignore[union-attr]
    assert store.get_selected_task_id() is None
    assert get_setting(db, SELECTED_KEY) == ""
    assert not store.delete(12345)


def test_validation_errors_are_emitted(db, qtbot):
    store = TaskStore(db)
    with qtbot.waitSignal(store.error) as blocker:
        assert store.create("   ") is None
    assert blocker.args == ["Title required"]
    with qtbot.waitSignal(store.error) as blocker:
        assert store.create("Too big", estimated_pomodoros=21) is None
    assert blocker.args == ["Estimate must be 1-20 pomodoros"]
    assert list_tasks(db) == []


def test_update_toggle_and_open_tasks(db, qtbot):
    store = TaskStore(db)
    a = store.create("Write tests", tags=["💻 Code"])
    b = store.create("Review PR")
    assert store.update(a, title="Write more tests", description="timer", estimated_pomodoros=4, priority=TaskPriority.URGENT)  # type: ignore[arg-type]
    store.toggle_completed(b.id)  # type: ignore[union-attr]
    assert [t.title for t in store.open_tasks()] == ["Write more tests"]
    reloaded = store.get(a.id)  # type: ignore[union-attr]
    assert reloaded is not None
    assert reloaded.priority is TaskPriority.URGENT
    assert reloaded.tags == ["💻 Code"]
    store.reorder([b.id, a.id])  # type: ignore[union-attr,list-item]
    assert [t.id for t in store.tasks()] == [b.id, a.id]  # type: ignore[union-attr]


def test_api_key_falls_back_to_file_without_keyring(tmp_path, monkeypatch):
    def broken(*args, **kwargs):
        raise KeyringError("no backend")

    monkeypatch.setattr(keyring, "set_password", broken)
    monkeypatch.setattr(keyring, "get_password", broken)
    monkeypatch.delenv(keys.ENV_VAR, raising=False)
    assert keys.load_api_key(tmp_path) is None
    keys.save_api_key(tmp_path, "AIzaSecretValue")
    stored = (tmp_path / keys.FALLBACK_FILENAME).read_bytes()
    assert b"AIzaSecretValue" not in stored
    assert keys.load_api_key(tmp_path) == "AIzaSecretValue"


def test_api_key_from_environment(tmp_path, monkeypatch):
    monkeypatch.setattr(keyring, "get_password", lambda *a: None)
    monkeypatch.setenv(keys.ENV_VAR, "env-key-123")
    assert keys.load_api_key(tmp_path) == "env-key-123"


def test_redact():
    assert keys.redact(None) == "<none>"
    assert keys.redact("abc") == "***"
    assert keys.redact("AIzaSecretValue") == "AIz***lue"
