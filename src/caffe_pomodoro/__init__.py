"""Caffe Pomodoro: a desktop pomodoro timer with a task list and focus history."""

__version__ = "0.1.0"
