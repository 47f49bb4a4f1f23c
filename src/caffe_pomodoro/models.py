from __future__ import annotations

"""Dataclass models representing database entities."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Optional


def to_utc_iso(moment: datetime) -> str:
    """Format as ``YYYY-MM-DDTHH:MM:SSZ``; naive values are taken to be UTC already."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment.replace(microsecond=0).isoformat() + "Z"


def utc_now_iso() -> str:
    return to_utc_iso(datetime.now(timezone.utc))


class SessionKind(IntEnum):
    WORK = 0
    SHORT_BREAK = 1
    LONG_BREAK = 2

    @property
    def label(self) -> str:
        return {
            SessionKind.WORK: "Focus",
            SessionKind.SHORT_BREAK: "Short Break",
            SessionKind.LONG_BREAK: "Long Break",
        }[self]


class TaskPriority(IntEnum):
    NORMAL = 0
    HIGH = 1
    URGENT = 2


@dataclass(slots=True)
class Task:
    id: Optional[int]
    title: str
    description: Optional[str] = None
    is_completed: bool = False
    estimated_pomodoros: int = 1
    completed_pomodoros: int = 0
    priority: TaskPriority = TaskPriority.NORMAL
    display_order: int = 0
    tags: list[str] = field(default_factory=list)
    created_at: Optional[str] = None
    completed_at: Optional[str] = None


@dataclass(slots=True)
class SessionRecord:
    id: Optional[int]
    kind: SessionKind
    task_id: Optional[int]
    planned_duration_seconds: int
    started_at: str
    completed_at: Optional[str] = None
    was_completed: bool = False


@dataclass(slots=True)
class DailyStats:
    date: str  # YYYY-MM-DD
    total_sessions: int = 0
    completed_sessions: int = 0
    total_minutes: int = 0
    tasks_completed: int = 0


@dataclass(slots=True)
class WeeklyStats:
    start_date: str
    end_date: str
    total_sessions: int = 0
    completed_sessions: int = 0
    total_minutes: int = 0
    tasks_completed: int = 0
    daily_breakdown: list[DailyStats] = field(default_factory=list)


__all__ = [
    "SessionKind",
    "TaskPriority",
    "Task",
    "SessionRecord",
    "DailyStats",
    "WeeklyStats",
    "utc_now_iso",
    "to_utc_iso",
]
