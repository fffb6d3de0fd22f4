"""Single consumer that executes queued tasks one at a time, in order."""

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping

import structlog

from wednesday.logging import get_logger
from wednesday.scheduler.models import Task

logger = get_logger(__name__)

TaskHandler = Callable[[], Awaitable[object]]


class TaskWorker:
    """Drains the task queue and dispatches to registered handlers.

    A failing handler is logged and the loop moves on to the next token;
    nothing a handler raises (other than cancellation) stops the worker.

    Args:
        queue: Queue fed by the Scheduler.
        handlers: Handler per task token.
    """

    def __init__(
        self,
        queue: "asyncio.Queue[Task]",
        handlers: Mapping[Task, TaskHandler],
    ) -> None:
        self._queue = queue
        self._handlers = dict(handlers)
        self._running = False
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]
        self.processed = 0
        self.failed = 0

    async def run_one(self, task: Task) -> bool:
        """Run the handler for ``task``. Returns False if it failed."""
        handler = self._handlers.get(task)
        if handler is None:
            logger.error("no_handler_for_task", task=task.value)
            self.failed += 1
            return False

        started = time.monotonic()
        with structlog.contextvars.bound_contextvars(task=task.value):
            try:
                await handler()
            except asyncio.CancelledError:
                raise
            except Exception:
                self.failed += 1
                logger.error(
                    "task_failed",
                    duration_seconds=round(time.monotonic() - started, 3),
                    exc_info=True,
                )
                return False
            self.processed += 1
            logger.debug(
                "task_completed",
                duration_seconds=round(time.monotonic() - started, 3),
            )
        return True

    async def run(self) -> None:
        """Consume tokens until stopped or cancelled."""
        self._running = True
        logger.info("worker_started", handlers=sorted(t.value for t in self._handlers))
        try:
            while self._running:
                task = await self._queue.get()
                try:
                    await self.run_one(task)
                finally:
                    self._queue.task_done()
        finally:
            self._running = False
            logger.info("worker_stopped", processed=self.processed, failed=self.failed)

    async def start(self) -> None:
        """Run the consumer loop as a background task."""
        if self._task is not None:
            logger.warning("worker_already_running")
            return
        self._task = asyncio.create_task(self.run())

    async def wait(self) -> None:
        """Block until the background consumer finishes."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def stop(self) -> None:
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
