"""Bounded worker pool for inbound updates.

A fixed number of workers drain a bounded queue. When the queue is full,
:meth:`Dispatcher.submit` waits, which pushes back on whatever is feeding
updates in.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

_logger = logging.getLogger(__name__)

T = TypeVar("T")

_STOP = object()


class Dispatcher(Generic[T]):
    """Run ``handler(item)`` for submitted items on ``workers`` tasks.

    Usage::

        async with Dispatcher(service.handle, workers=8, queue_size=256) as dispatcher:
            await dispatcher.submit(update)
    """

    def __init__(
        self,
        handler: Callable[[T], Awaitable[Any]],
        *,
        workers: int,
        queue_size: int,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self._handler = handler
        self._workers = workers
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=queue_size)
        self._tasks: list[asyncio.Task[None]] = []

    async def __aenter__(self) -> Dispatcher[T]:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    @property
    def is_running(self) -> bool:
        return bool(self._tasks)

    def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._worker(), name=f"aqiwatch-worker-{n}") for n in range(self._workers)
        ]

    async def submit(self, item: T) -> None:
        """Enqueue *item*, waiting while the queue is full."""
        if not self._tasks:
            raise RuntimeError("Dispatcher not started")
        await self._queue.put(item)

    async def join(self) -> None:
        """Wait until every submitted item has been handled."""
        await self._queue.join()

    async def stop(self) -> None:
        """Finish queued work, then stop the workers."""
        if not self._tasks:
            return
        for _ in self._tasks:
            await self._queue.put(_STOP)
        tasks, self._tasks = self._tasks, []
        with contextlib.suppress(asyncio.CancelledError):
            await asyncio.gather(*tasks)

    async def _worker(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                if item is _STOP:
                    return
                await self._handler(item)
            except Exception:
                _logger.exception("Unhandled error while processing %r", item)
            finally:
                self._queue.task_done()
