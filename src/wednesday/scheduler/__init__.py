"""Task scheduling: timer rules, the timer loop and the single-consumer worker."""

from wednesday.scheduler.models import (
    DailyRule,
    IntervalRule,
    ScheduleEntry,
    Task,
    WeeklyRule,
)
from wednesday.scheduler.rules import build_schedule, due_tasks
from wednesday.scheduler.timer import Scheduler
from wednesday.scheduler.worker import TaskWorker

__all__ = [
    "DailyRule",
    "IntervalRule",
    "ScheduleEntry",
    "Scheduler",
    "Task",
    "TaskWorker",
    "WeeklyRule",
    "build_schedule",
    "due_tasks",
]
