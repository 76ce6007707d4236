"""Reconciliation loop: refresh every enabled subscription and report changes."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import timedelta

from aqiwatch._constants import DEFAULT_CYCLE_BUDGET
from aqiwatch.exceptions import DeliveryError, PersistenceError, TransientProviderError
from aqiwatch.lanes import ChatLanes
from aqiwatch.models.events import AqiChangeEvent
from aqiwatch.models.subscription import Subscription
from aqiwatch.provider import AirQualityProvider
from aqiwatch.state.policy import change_direction
from aqiwatch.state.store import Store
from aqiwatch.transport import Transport

_logger = logging.getLogger(__name__)


class Reconciler:
    """Sequential pass over a snapshot of enabled subscriptions.

    Each item is isolated: a provider or store failure on one subscription
    is logged and the pass moves on to the next one.
    """

    def __init__(
        self,
        store: Store,
        provider: AirQualityProvider,
        transport: Transport,
        *,
        lanes: ChatLanes | None = None,
        cycle_budget: timedelta = DEFAULT_CYCLE_BUDGET,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._provider = provider
        self._transport = transport
        self._lanes = lanes or ChatLanes()
        self._cycle_budget = cycle_budget.total_seconds()
        self._monotonic = monotonic

    async def reconcile(self) -> int:
        """Run one pass and return the number of change events emitted.

        Raises
        ------
        PersistenceError
            If the subscription snapshot cannot be read.
        """
        subscriptions = await asyncio.to_thread(self._store.list_enabled_subscriptions)
        _logger.info("%d subscription(s) to process", len(subscriptions))

        started = self._monotonic()
        emitted = 0
        for index, sub in enumerate(subscriptions):
            if self._monotonic() - started > self._cycle_budget:
                _logger.warning(
                    "Cycle budget of %.0fs exhausted; leaving %d subscription(s) for the next run",
                    self._cycle_budget,
                    len(subscriptions) - index,
                )
                break

            try:
                event = await self._refresh(sub)
            except TransientProviderError as exc:
                _logger.warning("Fetch failed for subscription %s: %s", sub.id, exc)
                continue
            except PersistenceError:
                _logger.warning("Store failed for subscription %s", sub.id, exc_info=True)
                continue

            if event is None:
                continue

            emitted += 1
            try:
                await self._transport.deliver(sub.chat_id, sub.language_code, event)
            except DeliveryError as exc:
                _logger.warning("Delivery failed for chat %s: %s", sub.chat_id, exc)

        _logger.info("Emitted %d change event(s)", emitted)
        return emitted

    async def _refresh(self, sub: Subscription) -> AqiChangeEvent | None:
        """Fetch, store and compare one subscription under its chat lane."""
        async with self._lanes.hold(sub.chat_id):
            readings = await self._provider.fetch(sub.chat_id, sub.location)
            await asyncio.to_thread(self._store.add_readings, sub.chat_id, readings)
            latest = await asyncio.to_thread(self._store.latest_reading, sub.chat_id)
            if latest is None:
                raise PersistenceError(f"reading for chat {sub.chat_id} vanished after insert")

            direction = change_direction(sub.last_known_aqi, latest.aqi)
            if direction is None:
                _logger.debug("Subscription %s unchanged at %d", sub.id, latest.aqi)
                return None

            await asyncio.to_thread(self._store.update_subscription_aqi, sub.id, latest.aqi)

        _logger.debug("Subscription %s %s: %d -> %d", sub.id, direction, sub.last_known_aqi, latest.aqi)
        return AqiChangeEvent(
            subscription_id=sub.id,
            direction=direction,
            previous=sub.last_known_aqi,
            aqi=latest.aqi,
            components=latest.components,
        )
