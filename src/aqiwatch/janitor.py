"""Retention janitor: hard-delete what is no longer needed."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from aqiwatch._constants import DEFAULT_RETENTION_WINDOW
from aqiwatch.state.store import Store

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Janitor:
    """Purge disabled subscriptions and expired readings.

    Both operations are idempotent. Enabled subscriptions and each chat's
    most recent reading are never removed.
    """

    def __init__(
        self,
        store: Store,
        *,
        retention_window: timedelta = DEFAULT_RETENTION_WINDOW,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._retention_window = retention_window
        self._clock = clock

    async def purge_disabled_subscriptions(self) -> int:
        removed = await asyncio.to_thread(self._store.delete_disabled_subscriptions)
        _logger.info("Purged %d disabled subscription(s)", removed)
        return removed

    async def purge_stale_readings(self, cutoff: datetime | None = None) -> int:
        """Delete readings observed before *cutoff* (default: now minus the retention window)."""
        if cutoff is None:
            cutoff = self._clock() - self._retention_window
        removed = await asyncio.to_thread(self._store.delete_readings_before, cutoff)
        _logger.info("Purged %d reading(s) older than %s", removed, cutoff.isoformat())
        return removed

    async def run(self) -> tuple[int, int]:
        """Run both purges; returns ``(subscriptions, readings)`` removed."""
        subscriptions = await self.purge_disabled_subscriptions()
        readings = await self.purge_stale_readings()
        return subscriptions, readings
