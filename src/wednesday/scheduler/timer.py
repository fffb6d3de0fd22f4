"""Timer loop that turns due schedule entries into queued task tokens.

The loop only evaluates rules and enqueues; it never runs a handler, so a
slow upstream call cannot skew the firing cadence of unrelated rules.
"""

import asyncio
from collections.abc import Callable, Sequence
from datetime import datetime

from wednesday.logging import get_logger
from wednesday.scheduler.models import ScheduleEntry, Task
from wednesday.scheduler.rules import due_entries

logger = get_logger(__name__)


class Scheduler:
    """Periodically evaluates the schedule and feeds a bounded task queue.

    Args:
        schedule: Declarative list of entries.
        queue: Bounded queue consumed by the TaskWorker.
        clock: Returns the current timezone-aware time in the scheduler's offset.
        tick_seconds: How often rules are evaluated.
    """

    def __init__(
        self,
        schedule: Sequence[ScheduleEntry],
        queue: "asyncio.Queue[Task]",
        clock: Callable[[], datetime],
        tick_seconds: float = 30.0,
    ) -> None:
        self._schedule = list(schedule)
        self._queue = queue
        self._clock = clock
        self._tick_seconds = tick_seconds
        self._last_runs: dict[str, datetime] = {}
        self._running = False
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]

    @property
    def last_runs(self) -> dict[str, datetime]:
        return dict(self._last_runs)

    def seed(self, now: datetime) -> None:
        """Mark every entry as having run at ``now`` so nothing fires retroactively."""
        for entry in self._schedule:
            self._last_runs.setdefault(entry.name, now)

    async def tick(self) -> list[Task]:
        """Evaluate rules once and enqueue every due task. Returns what was enqueued."""
        now = self._clock()
        fired: list[Task] = []
        for entry in due_entries(self._schedule, now, self._last_runs):
            self._last_runs[entry.name] = now
            if self._queue.full():
                logger.warning("task_queue_full", task=entry.task.value, size=self._queue.qsize())
            await self._queue.put(entry.task)
            fired.append(entry.task)
            logger.debug("task_enqueued", task=entry.task.value, entry=entry.name)
        return fired

    async def start(self) -> None:
        """Seed last-run times and begin ticking in the background."""
        if self._running:
            logger.warning("scheduler_already_running")
            return
        self.seed(self._clock())
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            "scheduler_started",
            entries=len(self._schedule),
            tick_seconds=self._tick_seconds,
        )

    async def stop(self) -> None:
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("scheduler_stopped")

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.error("scheduler_tick_error", exc_info=True)
            await asyncio.sleep(self._tick_seconds)
