"""
Bounded Dispatcher
==================

Fixed-size worker pool draining a FIFO queue of generation tasks.

This module provides the BoundedDispatcher class, the only concurrency
primitive in the pipeline. Each of the N workers takes one task, runs
the blocking extraction/composition in a thread pool of the same size,
and only then takes the next task.

Design Rules:
    - At most N tasks are ever inside the blocking stage
    - submit() never blocks: it returns a future immediately
    - Queue depth is bounded by admission control (0 = unbounded)
    - One task's failure never blocks or crashes the pool
    - No retries, no cancellation once a worker has started a task
"""

import asyncio
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Tuple

from thumbnailer.errors import (
    DispatcherClosedError,
    QueueFullError,
    ThumbnailerError,
    TransformError,
)
from thumbnailer.models.task import GenerationResult, Task


logger = logging.getLogger(__name__)


ProcessFn = Callable[[Task], GenerationResult]


class DispatcherMetrics:
    """Metrics for BoundedDispatcher observability."""

    __slots__ = (
        "submitted",
        "completed",
        "failed",
        "rejected",
        "active",
        "peak_active",
    )

    def __init__(self) -> None:
        self.submitted: int = 0
        self.completed: int = 0
        self.failed: int = 0
        self.rejected: int = 0
        self.active: int = 0
        self.peak_active: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "submitted": self.submitted,
            "completed": self.completed,
            "failed": self.failed,
            "rejected": self.rejected,
            "active": self.active,
            "peak_active": self.peak_active,
        }


class BoundedDispatcher:
    """
    Worker pool with a FIFO queue and admission control.

    Attributes:
        workers: Pool size N
        max_queue_depth: Maximum waiting tasks (0 = unbounded)

    Example:
        dispatcher = BoundedDispatcher(generator.generate, workers=4)
        await dispatcher.start()

        result = await dispatcher.submit(Task(key=url))

        await dispatcher.shutdown()
    """

    def __init__(
        self,
        process: ProcessFn,
        workers: Optional[int] = None,
        max_queue_depth: int = 256,
    ) -> None:
        """
        Initialize dispatcher.

        Args:
            process: Blocking callable run for every task
            workers: Pool size. Defaults to the number of CPUs.
            max_queue_depth: Queue bound. Must be >= 0.
        """
        workers = workers or os.cpu_count() or 1
        if workers < 1:
            raise ValueError("workers must be >= 1")
        if max_queue_depth < 0:
            raise ValueError("max_queue_depth must be >= 0")

        self._process = process
        self._workers = workers
        self._max_queue_depth = max_queue_depth
        self._metrics = DispatcherMetrics()

        self._queue: Optional[asyncio.Queue[Tuple[Task, asyncio.Future]]] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._worker_tasks: List[asyncio.Task] = []
        self._running: bool = False

    @property
    def workers(self) -> int:
        return self._workers

    @property
    def max_queue_depth(self) -> int:
        return self._max_queue_depth

    @property
    def running(self) -> bool:
        return self._running

    @property
    def queue_depth(self) -> int:
        """Tasks waiting for a free worker."""
        return self._queue.qsize() if self._queue is not None else 0

    @property
    def metrics(self) -> DispatcherMetrics:
        return self._metrics

    async def start(self) -> None:
        """Spawn the worker coroutines and the thread pool."""
        if self._running:
            return

        self._queue = asyncio.Queue()
        self._executor = ThreadPoolExecutor(
            max_workers=self._workers,
            thread_name_prefix="thumbnail-worker",
        )
        self._worker_tasks = [
            asyncio.create_task(self._worker_loop(i), name=f"dispatcher_worker_{i}")
            for i in range(self._workers)
        ]
        self._running = True

        logger.info(
            f"Dispatcher started: workers={self._workers}, "
            f"max_queue_depth={self._max_queue_depth or 'unbounded'}"
        )

    def submit(self, task: Task) -> "asyncio.Future[GenerationResult]":
        """
        Enqueue a task.

        Args:
            task: Task to run

        Returns:
            Future resolved with the GenerationResult or the task's error

        Raises:
            DispatcherClosedError: If the dispatcher is not running
            QueueFullError: If max_queue_depth tasks are already waiting
        """
        if not self._running or self._queue is None:
            raise DispatcherClosedError("Dispatcher is not running")

        if self._max_queue_depth and self._queue.qsize() >= self._max_queue_depth:
            self._metrics.rejected += 1
            logger.warning(
                f"Queue full ({self._queue.qsize()}/{self._max_queue_depth}), "
                f"rejected task for {task.key}"
            )
            raise QueueFullError(f"Queue depth limit {self._max_queue_depth} reached")

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._queue.put_nowait((task, future))
        self._metrics.submitted += 1
        return future

    async def shutdown(self, drain: bool = True) -> None:
        """
        Stop accepting work and release the pool.

        Args:
            drain: Wait for queued tasks to finish. Otherwise queued tasks
                fail with DispatcherClosedError.
        """
        if not self._running:
            return

        self._running = False
        assert self._queue is not None and self._executor is not None

        if drain:
            logger.info(f"Draining dispatcher ({self._queue.qsize()} queued)")
            await self._queue.join()
        else:
            dropped = 0
            while True:
                try:
                    _, future = self._queue.get_nowait()
                except asyncio.QueueEmpty:
                    break
                if not future.done():
                    future.set_exception(DispatcherClosedError("Dispatcher shut down"))
                self._queue.task_done()
                dropped += 1
            if dropped:
                logger.warning(f"Dropped {dropped} queued tasks on shutdown")

        for worker in self._worker_tasks:
            worker.cancel()
        await asyncio.gather(*self._worker_tasks, return_exceptions=True)
        self._worker_tasks = []

        self._executor.shutdown(wait=drain, cancel_futures=not drain)
        self._executor = None

        logger.info(f"Dispatcher stopped: {self._metrics.to_dict()}")

    async def _worker_loop(self, index: int) -> None:
        """Take one task at a time until cancelled."""
        assert self._queue is not None
        loop = asyncio.get_running_loop()

        while True:
            task, future = await self._queue.get()
            try:
                if future.cancelled():
                    continue

                self._metrics.active += 1
                self._metrics.peak_active = max(self._metrics.peak_active, self._metrics.active)
                try:
                    result = await loop.run_in_executor(self._executor, self._process, task)
                except asyncio.CancelledError:
                    if not future.done():
                        future.set_exception(DispatcherClosedError("Dispatcher shut down"))
                    raise
                except ThumbnailerError as e:
                    self._fail(future, task, e)
                except Exception as e:
                    self._fail(future, task, TransformError(f"Unexpected error: {e}"))
                else:
                    self._metrics.completed += 1
                    if not future.done():
                        future.set_result(result)
                finally:
                    self._metrics.active -= 1
            finally:
                self._queue.task_done()

    def _fail(self, future: asyncio.Future, task: Task, error: ThumbnailerError) -> None:
        self._metrics.failed += 1
        logger.error(f"Task failed for {task.key}: {error}")
        if not future.done():
            future.set_exception(error)
