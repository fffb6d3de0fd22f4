"""Task tokens and timer rules.

Rules are plain values with an ``is_due(now, last_run)`` predicate so the
whole schedule can be evaluated without real timers. Wall-clock rules are
backed by APScheduler cron triggers pinned to the scheduler's fixed UTC
offset; the triggers are only asked for fire times, never run.
"""

from dataclasses import dataclass
from datetime import datetime, time, timezone, tzinfo
from enum import Enum
from functools import cached_property

from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.combining import OrTrigger
from apscheduler.triggers.cron import CronTrigger


class Task(str, Enum):
    """Identifies which recurring job fired."""

    WEDNESDAY = "wednesday"
    CRYPTO = "crypto"
    BTC_RATE = "btc_rate"
    ETH_RATE = "eth_rate"
    ZEE_RATE = "zee_rate"
    HEARTBEAT = "heartbeat"


def _cron_at(at: time, tz: tzinfo, **fields: int) -> CronTrigger:
    return CronTrigger(hour=at.hour, minute=at.minute, second=at.second, timezone=tz, **fields)


def _fired_since(trigger: BaseTrigger, now: datetime, last_run: datetime | None) -> bool:
    """True if ``trigger`` has a fire time in ``(last_run, now]``."""
    if last_run is None:
        return True
    next_fire = trigger.get_next_fire_time(last_run, last_run)
    return next_fire is not None and next_fire <= now


@dataclass(frozen=True)
class IntervalRule:
    """Fires every ``seconds`` seconds, measured from the previous run."""

    seconds: float

    def is_due(self, now: datetime, last_run: datetime | None) -> bool:
        if last_run is None:
            return True
        return (now - last_run).total_seconds() >= self.seconds


@dataclass(frozen=True)
class DailyRule:
    """Fires once at each of ``times`` every day."""

    times: tuple[time, ...]
    tz: tzinfo = timezone.utc

    def __post_init__(self) -> None:
        if not self.times:
            raise ValueError("DailyRule needs at least one time")

    @cached_property
    def trigger(self) -> BaseTrigger:
        triggers = [_cron_at(at, self.tz) for at in self.times]
        return triggers[0] if len(triggers) == 1 else OrTrigger(triggers)

    def next_occurrence(self, after: datetime) -> datetime:
        return self.trigger.get_next_fire_time(after, after)

    def is_due(self, now: datetime, last_run: datetime | None) -> bool:
        return _fired_since(self.trigger, now, last_run)


@dataclass(frozen=True)
class WeeklyRule:
    """Fires once a week on ``weekday`` (Monday=0) at ``at``."""

    weekday: int
    at: time
    tz: tzinfo = timezone.utc

    @cached_property
    def trigger(self) -> CronTrigger:
        return _cron_at(self.at, self.tz, day_of_week=self.weekday)

    def next_occurrence(self, after: datetime) -> datetime:
        return self.trigger.get_next_fire_time(after, after)

    def is_due(self, now: datetime, last_run: datetime | None) -> bool:
        return _fired_since(self.trigger, now, last_run)


Rule = IntervalRule | DailyRule | WeeklyRule


@dataclass(frozen=True)
class ScheduleEntry:
    """One declarative ``(rule, task)`` pair, keyed by a unique name."""

    name: str
    rule: Rule
    task: Task
