"""Bounded background task runner.

Runs load jobs as asyncio tasks inside the API process.  Admission follows
the usual worker-pool rules: up to ``core_size`` jobs start immediately,
further jobs wait in a bounded queue, and only once the queue is full does
the pool grow towards ``max_size``.  Beyond that, submissions are rejected.
"""

import asyncio
from collections import deque
from collections.abc import Callable, Coroutine
from typing import Any, Protocol

from loguru import logger


class TaskRejectedError(RuntimeError):
    """Raised when the runner has no free worker and no queue capacity."""


class BackgroundTaskRunner(Protocol):
    """Protocol for background task execution."""

    def submit_task(
        self,
        coro: Coroutine[Any, Any, Any],
        *,
        name: str | None = None,
        on_discard: Callable[[], None] | None = None,
    ) -> None:
        """Schedule a coroutine for background execution.

        Args:
            coro: The coroutine to execute.
            name: Optional task name used in logs.
            on_discard: Called if the coroutine is dropped without ever running.

        Raises:
            TaskRejectedError: If the task cannot be accepted.
        """
        ...


_QueuedTask = tuple[Coroutine[Any, Any, Any], str | None, Callable[[], None] | None]


class BoundedTaskRunner:
    """In-process runner with a fixed worker budget and a bounded backlog.

    Must be used from inside a running event loop.
    """

    def __init__(self, core_size: int = 5, max_size: int = 10, queue_capacity: int = 25) -> None:
        if core_size < 1:
            msg = "core_size must be at least 1"
            raise ValueError(msg)
        if max_size < core_size:
            msg = "max_size must be greater than or equal to core_size"
            raise ValueError(msg)
        if queue_capacity < 0:
            msg = "queue_capacity must not be negative"
            raise ValueError(msg)
        self.core_size = core_size
        self.max_size = max_size
        self.queue_capacity = queue_capacity
        self._running: set[asyncio.Task[Any]] = set()
        self._queue: deque[_QueuedTask] = deque()
        self._closed = False

    @property
    def running_count(self) -> int:
        return len(self._running)

    @property
    def queued_count(self) -> int:
        return len(self._queue)

    def submit_task(
        self,
        coro: Coroutine[Any, Any, Any],
        *,
        name: str | None = None,
        on_discard: Callable[[], None] | None = None,
    ) -> None:
        """Start, enqueue, or reject a coroutine.

        A rejected coroutine is closed without calling ``on_discard``; the
        caller learns about it from the exception.

        Args:
            coro: The coroutine to execute.
            name: Optional task name used in logs.
            on_discard: Called if the queued coroutine is dropped at shutdown.

        Raises:
            TaskRejectedError: If the runner is shut down or saturated.
        """
        if self._closed:
            coro.close()
            msg = "Task runner is shut down"
            raise TaskRejectedError(msg)

        if len(self._running) < self.core_size:
            self._start(coro, name)
        elif len(self._queue) < self.queue_capacity:
            self._queue.append((coro, name, on_discard))
            logger.debug(f"Queued task {name} ({len(self._queue)}/{self.queue_capacity} waiting)")
        elif len(self._running) < self.max_size:
            self._start(coro, name)
        else:
            coro.close()
            msg = (
                f"Task rejected: {len(self._running)} tasks running and "
                f"{len(self._queue)} queued (capacity {self.queue_capacity})"
            )
            raise TaskRejectedError(msg)

    def _start(self, coro: Coroutine[Any, Any, Any], name: str | None) -> None:
        task = asyncio.create_task(coro, name=name)
        self._running.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._running.discard(task)
        if not task.cancelled():
            exc = task.exception()
            if exc is not None:
                logger.opt(exception=exc).debug(f"Background task {task.get_name()} ended with an error")
        if self._queue and not self._closed:
            coro, name, _ = self._queue.popleft()
            self._start(coro, name)

    async def join(self) -> None:
        """Wait until every running and queued task has finished."""
        while self._running:
            await asyncio.gather(*self._running, return_exceptions=True)

    async def shutdown(self) -> None:
        """Discard queued coroutines and cancel running tasks.

        Each discarded coroutine's ``on_discard`` callback runs so its owner
        can release what the task would have cleaned up.
        """
        self._closed = True
        while self._queue:
            coro, name, on_discard = self._queue.popleft()
            coro.close()
            logger.info(f"Discarded queued task {name} at shutdown")
            if on_discard is not None:
                try:
                    on_discard()
                except Exception:
                    logger.exception(f"Discard callback for task {name} failed")
        tasks = list(self._running)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"Task runner shut down ({len(tasks)} running task(s) cancelled)")
