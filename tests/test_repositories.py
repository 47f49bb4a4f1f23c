from datetime import datetime, timedelta, timezone

from caffe_pomodoro.models import SessionKind, Task, TaskPriority, to_utc_iso, utc_now_iso
from caffe_pomodoro.repositories import (
    close_open_sessions,
    close_session,
    create_session,
    create_task,
    delete_task,
    get_current_session,
    get_daily_stats,
    get_session,
    get_task,
    get_weekly_stats,
    increment_task_pomodoro,
    list_session_history,
    list_sessions_for_day,
    list_tasks,
    reorder_tasks,
    set_task_completed,
    update_task,
)


def test_init_idempotent(db):
    # Second call should not raise and should not duplicate migrations
    db.init_db()
    rows = db.query_all("SELECT COUNT(*) as c FROM schema_migrations")
    assert rows[0]["c"] == 3


def test_task_crud(db):
    t = create_task(db, Task(id=None, title="Write report", estimated_pomodoros=3, priority=TaskPriority.HIGH, tags=["💼 Work"]))
    assert t.id is not None
    fetched = get_task(db, t.id)
    assert fetched is not None
    assert fetched.title == "Write report"
    assert fetched.tags == ["💼 Work"]
    assert fetched.priority is TaskPriority.HIGH
    t.title = "Write final report"
    update_task(db, t)
    assert get_task(db, t.id).title == "Write final report"  # type: ignore[union-attr]
    delete_task(db, t.id)
    assert get_task(db, t.id) is None


def test_new_tasks_are_appended_and_reorderable(db):
    a = create_task(db, Task(id=None, title="A"))
    b = create_task(db, Task(id=None, title="B"))
    c = create_task(db, Task(id=None, title="C"))
    assert [t.title for t in list_tasks(db)] == ["A", "B", "C"]
    reordered = reorder_tasks(db, [c.id, a.id, b.id])  # type: ignore[list-item]
    assert [t.title for t in reordered] == ["C", "A", "B"]


def test_increment_task_pomodoro(db):
    t = create_task(db, Task(id=None, title="Counted"))
    increment_task_pomodoro(db, t.id)  # type: ignore[arg-type]
    updated = increment_task_pomodoro(db, t.id)  # type: ignore[arg-type]
    assert updated is not None and updated.completed_pomodoros == 2
    assert increment_task_pomodoro(db, 9999) is None


def test_set_task_completed_toggles_timestamp(db):
    t = create_task(db, Task(id=None, title="Finish"))
    done = set_task_completed(db, t.id, True)  # type: ignore[arg-type]
    assert done is not None and done.is_completed and done.completed_at
    undone = set_task_completed(db, t.id, False)  # type: ignore[arg-type]
    assert undone is not None and not undone.is_completed and undone.completed_at is None


def test_session_open_close_flow(db):
    t = create_task(db, Task(id=None, title="Focus"))
    rec = create_session(db, SessionKind.WORK, t.id, 1500, started_at="2025-01-01T10:00:00Z")
    assert rec.id is not None
    current = get_current_session(db)
    assert current is not None and current.id == rec.id
    closed = close_session(db, rec.id, True, completed_at="2025-01-01T10:25:00Z")
    assert closed is not None and closed.was_completed
    assert closed.completed_at == "2025-01-01T10:25:00Z"
    assert get_current_session(db) is None
    assert get_session(db, rec.id).kind is SessionKind.WORK  # type: ignore[union-attr]


def test_close_open_sessions_marks_abandoned(db):
    rec = create_session(db, SessionKind.SHORT_BREAK, None, 300)
    assert close_open_sessions(db) == 1
    stale = get_session(db, rec.id)  # type: ignore[arg-type]
    assert stale is not None and stale.completed_at is not None and not stale.was_completed
    assert close_open_sessions(db) == 0


def test_session_history_window(db):
    now = datetime(2025, 3, 10, 12, 0, 0)
    create_session(db, SessionKind.WORK, None, 1500, started_at="2025-03-09T09:00:00Z")
    create_session(db, SessionKind.WORK, None, 1500, started_at="2025-02-01T09:00:00Z")
    history = list_session_history(db, days=7, now=now)
    assert [s.started_at for s in history] == ["2025-03-09T09:00:00Z"]


def test_daily_and_weekly_stats(db):
    def add(started_at: str, kind=SessionKind.WORK, completed=True, planned=1500):
        rec = create_session(db, kind, None, planned, started_at=started_at)
        close_session(db, rec.id, completed)  # type: ignore[arg-type]

    add("2025-03-10T09:00:00Z")
    add("2025-03-10T09:30:00Z")
    add("2025-03-10T10:00:00Z", completed=False)
    add("2025-03-10T09:25:00Z", kind=SessionKind.SHORT_BREAK, planned=300)  # breaks are not counted
    add("2025-03-12T09:00:00Z")
    add("2025-03-16T09:00:00Z")  # Sunday: next week

    day = get_daily_stats(db, "2025-03-10", tz=timezone.utc)
    assert day.total_sessions == 3
    assert day.completed_sessions == 2
    assert day.total_minutes == 50
    assert len(list_sessions_for_day(db, "2025-03-10", tz=timezone.utc)) == 4

    week = get_weekly_stats(db, "2025-03-12", tz=timezone.utc)  # Wednesday
    assert week.start_date == "2025-03-09"  # Sunday
    assert week.end_date == "2025-03-15"
    assert week.total_sessions == 4
    assert week.completed_sessions == 3
    assert week.total_minutes == 75
    assert len(week.daily_breakdown) == 7
    assert week.daily_breakdown[1].completed_sessions == 2


def test_days_are_local_calendar_days(db):
    eastern = timezone(timedelta(hours=-5))
    late = create_session(db, SessionKind.WORK, None, 1500, started_at="2025-03-11T02:00:00Z")  # 21:00 on the 10th
    close_session(db, late.id, True)  # type: ignore[arg-type]
    early = create_session(db, SessionKind.WORK, None, 1500, started_at="2025-03-10T04:30:00Z")  # 23:30 on the 9th
    close_session(db, early.id, True)  # type: ignore[arg-type]

    assert [s.id for s in list_sessions_for_day(db, "2025-03-10", tz=eastern)] == [late.id]
    assert get_daily_stats(db, "2025-03-10", tz=eastern).completed_sessions == 1
    assert get_daily_stats(db, "2025-03-09", tz=eastern).completed_sessions == 1
    # The same rows in UTC fall on the 10th and the 11th
    assert [s.id for s in list_sessions_for_day(db, "2025-03-10", tz=timezone.utc)] == [early.id]


def test_history_defaults_to_now(db):
    rec = create_session(db, SessionKind.WORK, None, 1500)
    create_session(db, SessionKind.WORK, None, 1500, started_at="2001-01-01T00:00:00Z")
    assert [s.id for s in list_session_history(db, days=1)] == [rec.id]


def test_to_utc_iso_normalises_offsets():
    assert to_utc_iso(datetime(2025, 3, 10, 21, 0, 5, 999, tzinfo=timezone(timedelta(hours=-5)))) == "2025-03-11T02:00:05Z"
    assert to_utc_iso(datetime(2025, 3, 10, 9, 0)) == "2025-03-10T09:00:00Z"
    assert utc_now_iso().endswith("Z") and "+" not in utc_now_iso()
