"""Periodic triggers for the reconciliation loop and the janitor."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any

_logger = logging.getLogger(__name__)


class PeriodicJob:
    """Call a coroutine function every ``interval``.

    A tick that arrives while the previous run is still going is skipped,
    never overlapped. Errors are logged and the schedule continues.
    """

    def __init__(
        self,
        name: str,
        job: Callable[[], Awaitable[Any]],
        interval: timedelta,
        *,
        run_immediately: bool = False,
    ) -> None:
        if interval <= timedelta(0):
            raise ValueError("interval must be positive")
        self.name = name
        self._job = job
        self._interval = interval.total_seconds()
        self._run_immediately = run_immediately
        self._running: asyncio.Task[None] | None = None
        self._ticker: asyncio.Task[None] | None = None
        self.skipped = 0

    @property
    def is_running(self) -> bool:
        return self._running is not None and not self._running.done()

    def start(self) -> None:
        if self._ticker is None:
            self._ticker = asyncio.create_task(self._tick_loop(), name=f"aqiwatch-{self.name}")

    async def stop(self) -> None:
        """Stop ticking and wait for an in-flight run to finish."""
        ticker, self._ticker = self._ticker, None
        if ticker is not None:
            ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await ticker
        running = self._running
        if running is not None and not running.done():
            await running

    def trigger(self) -> bool:
        """Start a run now unless one is in progress. Returns whether it started."""
        if self.is_running:
            self.skipped += 1
            _logger.warning("%s still running; skipping this tick", self.name)
            return False
        self._running = asyncio.create_task(self._run_once())
        return True

    async def _tick_loop(self) -> None:
        if self._run_immediately:
            self.trigger()
        while True:
            await asyncio.sleep(self._interval)
            self.trigger()

    async def _run_once(self) -> None:
        try:
            result = await self._job()
        except Exception:
            _logger.exception("%s failed", self.name)
            return
        _logger.debug("%s finished: %r", self.name, result)
