"""
Notification Dispatcher

Fire-and-forget job queue for notification delivery.

A fixed pool of asyncio workers drains a bounded queue. Each job runs
under its own timeout; a job that fails or hangs is logged and
forgotten, so one dead recipient never stalls the rest. With a single
worker, jobs run strictly in submission order.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[Any]]


class NotificationDispatcher:
    """Bounded-concurrency executor for notification jobs."""

    def __init__(
        self,
        name: str = "notifications",
        workers: int = 4,
        job_timeout: float = 10.0,
        max_queue: int = 1000,
    ):
        self.name = name
        self.workers = workers
        self.job_timeout = job_timeout
        self._queue: asyncio.Queue[tuple[str, Job]] = asyncio.Queue(maxsize=max_queue)
        self._tasks: list[asyncio.Task] = []
        self.completed = 0
        self.failed = 0

    @property
    def is_running(self) -> bool:
        return bool(self._tasks)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"{self.name}-worker-{i}")
            for i in range(self.workers)
        ]
        logger.info(f"Dispatcher '{self.name}' started with {self.workers} worker(s)")

    async def stop(self, drain_timeout: Optional[float] = 5.0) -> None:
        """Let queued jobs finish (up to ``drain_timeout``), then cancel the workers."""
        if not self._tasks:
            return
        if drain_timeout:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=drain_timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Dispatcher '{self.name}' stopped with {self.pending} job(s) pending")

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info(f"Dispatcher '{self.name}' stopped")

    def submit(self, label: str, job: Job) -> bool:
        """Queue a job without waiting. Returns False if the queue is full."""
        try:
            self._queue.put_nowait((label, job))
        except asyncio.QueueFull:
            logger.warning(f"Dispatcher '{self.name}' queue full - dropped {label}")
            return False
        return True

    async def join(self) -> None:
        """Wait until every queued job has finished."""
        await self._queue.join()

    async def _worker(self, index: int) -> None:
        while True:
            label, job = await self._queue.get()
            try:
                await asyncio.wait_for(job(), timeout=self.job_timeout)
                self.completed += 1
            except asyncio.TimeoutError:
                self.failed += 1
                logger.error(f"{label} timed out after {self.job_timeout}s")
            except asyncio.CancelledError:
                raise
            except Exception:
                self.failed += 1
                logger.exception(f"{label} failed")
            finally:
                self._queue.task_done()
