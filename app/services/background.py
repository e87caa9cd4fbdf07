import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable]


class BackgroundDispatcher:
    """
    Runs post-write side effects outside the request path.

    Jobs go into a bounded queue consumed by a fixed set of worker tasks.
    Submitting never blocks: a full queue drops the job with a warning.
    A failing job is logged by its worker and never reaches the submitter.
    Stopping drains the queue for up to ``drain_timeout`` seconds, after
    which the remaining jobs are abandoned.
    """

    def __init__(self, workers: int = 2, max_queue_size: int = 1000, drain_timeout: float = 5.0):
        self.worker_count = max(1, workers)
        self.max_queue_size = max_queue_size
        self.drain_timeout = drain_timeout
        self._queue: Optional[asyncio.Queue] = None
        self._workers: List[asyncio.Task] = []
        self.submitted = 0
        self.completed = 0
        self.failed = 0
        self.dropped = 0

    @property
    def running(self) -> bool:
        return bool(self._workers)

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._workers = [
            asyncio.create_task(self._worker(index), name=f"background-worker-{index}")
            for index in range(self.worker_count)
        ]
        logger.info(f"Background dispatcher started with {self.worker_count} worker(s)")

    def submit(self, name: str, job: Job) -> bool:
        if self._queue is None:
            logger.warning(f"Background dispatcher not running, job '{name}' dropped")
            self.dropped += 1
            return False
        try:
            self._queue.put_nowait((name, job))
        except asyncio.QueueFull:
            logger.warning(f"Background queue full ({self.max_queue_size}), job '{name}' dropped")
            self.dropped += 1
            return False
        self.submitted += 1
        return True

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self, drain: bool = True) -> None:
        if not self.running:
            return
        if drain:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=self.drain_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    f"Background drain timed out after {self.drain_timeout}s, "
                    f"{self._queue.qsize()} job(s) abandoned"
                )
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self._queue = None
        logger.info(
            f"Background dispatcher stopped (completed={self.completed}, "
            f"failed={self.failed}, dropped={self.dropped})"
        )

    async def _worker(self, index: int) -> None:
        while True:
            item: Tuple[str, Job] = await self._queue.get()
            name, job = item
            try:
                await job()
                self.completed += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.failed += 1
                logger.error(f"Background job '{name}' failed in worker {index}: {str(e)}")
            finally:
                self._queue.task_done()
