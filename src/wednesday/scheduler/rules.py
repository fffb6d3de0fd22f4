"""Declarative schedule and the pure due-task evaluation."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import TYPE_CHECKING

from wednesday.scheduler.models import (
    DailyRule,
    IntervalRule,
    ScheduleEntry,
    Task,
    WeeklyRule,
)

if TYPE_CHECKING:
    from wednesday.config import SchedulerSettings
    from wednesday.rates.assets import AssetConfig


def build_schedule(
    settings: SchedulerSettings, assets: Iterable[AssetConfig]
) -> list[ScheduleEntry]:
    """Build the full list of ``(rule, task)`` entries once at startup."""
    schedule = [
        ScheduleEntry(
            name="wednesday",
            rule=WeeklyRule(
                weekday=settings.weekly_weekday,
                at=settings.weekly_time,
                tz=settings.tz,
            ),
            task=Task.WEDNESDAY,
        ),
        ScheduleEntry(
            name="crypto_report",
            rule=DailyRule(times=tuple(settings.report_times), tz=settings.tz),
            task=Task.CRYPTO,
        ),
    ]
    for asset in assets:
        schedule.append(
            ScheduleEntry(
                name=f"{asset.symbol.lower()}_trend",
                rule=IntervalRule(seconds=asset.interval_seconds),
                task=asset.task,
            )
        )
    schedule.append(
        ScheduleEntry(
            name="heartbeat",
            rule=IntervalRule(seconds=settings.heartbeat_interval_seconds),
            task=Task.HEARTBEAT,
        )
    )

    names = [entry.name for entry in schedule]
    if len(names) != len(set(names)):
        raise ValueError(f"duplicate schedule entry names: {names}")
    return schedule


def due_entries(
    schedule: Sequence[ScheduleEntry],
    now: datetime,
    last_runs: dict[str, datetime],
) -> list[ScheduleEntry]:
    """Entries whose rule is due at ``now``, in schedule order."""
    return [
        entry
        for entry in schedule
        if entry.rule.is_due(now, last_runs.get(entry.name))
    ]


def due_tasks(
    schedule: Sequence[ScheduleEntry],
    now: datetime,
    last_runs: dict[str, datetime],
) -> list[Task]:
    """Tasks due at ``now`` given the last firing time of each entry.

    Pure: ``last_runs`` is not modified. An entry missing from
    ``last_runs`` has never run and is due immediately.
    """
    return [entry.task for entry in due_entries(schedule, now, last_runs)]
