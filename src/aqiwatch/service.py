"""High-level async service wiring the engine together."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import aiohttp

from aqiwatch.config import AqiWatchConfig
from aqiwatch.exceptions import (
    AqiWatchError,
    DeliveryError,
    DuplicateSubscriptionError,
    NoReadingError,
    NoSessionError,
    PersistenceError,
    TransientProviderError,
)
from aqiwatch.janitor import Janitor
from aqiwatch.lanes import ChatLanes
from aqiwatch.models.events import (
    AboutInfo,
    AqiReport,
    CommandMenu,
    DuplicateSubscription,
    LocationPrompt,
    OutboundEvent,
    PreconditionNotice,
    ReadingDetails,
    RetryNotice,
    SubscriptionCreated,
    SubscriptionList,
    SubscriptionSummary,
    Unsubscribed,
)
from aqiwatch.models.reading import Location, Reading
from aqiwatch.models.subscription import Subscription
from aqiwatch.models.updates import (
    AboutRequested,
    AirRequested,
    DetailsRequested,
    InboundUpdate,
    ListRequested,
    LocationShared,
    StartRequested,
    SubscribeRequested,
    UnsubscribeRequested,
)
from aqiwatch.provider import AirQualityProvider, OpenWeatherMapProvider
from aqiwatch.reconcile import Reconciler
from aqiwatch.registry import SessionRegistry, SubscriptionRegistry
from aqiwatch.scheduler import PeriodicJob
from aqiwatch.state.policy import needs_refresh
from aqiwatch.state.store import Store
from aqiwatch.transport import TelegramTransport, Transport

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AqiWatchService:
    """Async AQI tracking service.

    Usage::

        async with AqiWatchService(config) as service:
            reading = await service.share_location(chat_id, user_id, "en", location)
            await service.subscribe(chat_id)
            emitted = await service.reconcile()

    The store, provider and transport default to SQLite at
    ``config.db_path``, OpenWeatherMap and Telegram; any of them can be
    passed in instead.
    """

    def __init__(
        self,
        config: AqiWatchConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        store: Store | None = None,
        provider: AirQualityProvider | None = None,
        transport: Transport | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._external_store = store is not None
        self._store = store
        self._provider = provider
        self._transport = transport
        self._clock = clock
        self._lanes = ChatLanes()
        self._sessions: SessionRegistry | None = None
        self._subscriptions: SubscriptionRegistry | None = None
        self._reconciler: Reconciler | None = None
        self._janitor: Janitor | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> AqiWatchService:
        if self._store is None:
            self._store = Store(self._config.db_path)
        # Schema failures are fatal: let PersistenceError propagate.
        await asyncio.to_thread(self._store.init_schema)

        if self._http_session is None and (self._provider is None or self._transport is None):
            self._http_session = aiohttp.ClientSession()
        if self._provider is None:
            assert self._http_session is not None  # noqa: S101
            self._provider = OpenWeatherMapProvider(self._config, self._http_session)
        if self._transport is None:
            assert self._http_session is not None  # noqa: S101
            self._transport = TelegramTransport(self._config, self._http_session)

        self._sessions = SessionRegistry(self._store, clock=self._clock)
        self._subscriptions = SubscriptionRegistry(
            self._store,
            epsilon=self._config.dedup_epsilon,
            clock=self._clock,
        )
        self._reconciler = Reconciler(
            self._store,
            self._provider,
            self._transport,
            lanes=self._lanes,
            cycle_budget=self._config.cycle_budget,
        )
        self._janitor = Janitor(
            self._store,
            retention_window=self._config.retention_window,
            clock=self._clock,
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_store and self._store is not None:
            self._store.close()
            self._store = None
        self._sessions = None
        self._subscriptions = None
        self._reconciler = None
        self._janitor = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_started(self) -> tuple[Store, SessionRegistry, SubscriptionRegistry]:
        if self._store is None or self._sessions is None or self._subscriptions is None:
            raise AqiWatchError("Service not started. Use 'async with AqiWatchService(...) as service:'")
        return self._store, self._sessions, self._subscriptions

    # ------------------------------------------------------------------
    # Engine operations
    # ------------------------------------------------------------------

    async def share_location(
        self,
        chat_id: int,
        user_id: int,
        language_code: str,
        location: Location,
    ) -> Reading:
        """Record the chat's location and return an up-to-date reading.

        The cached reading is reused while younger than ``config.cache_ttl``.
        The whole check-fetch-store sequence runs in the chat's lane.

        Raises
        ------
        TransientProviderError
            A refetch was needed and the provider failed.
        """
        store, sessions, _ = self._require_started()
        assert self._provider is not None  # noqa: S101

        async with self._lanes.hold(chat_id):
            await sessions.update(chat_id, user_id, language_code, location)
            latest = await asyncio.to_thread(store.latest_reading, chat_id)
            if not needs_refresh(latest, self._clock(), self._config.cache_ttl):
                assert latest is not None  # noqa: S101
                _logger.debug("Using cached reading for chat=%s", chat_id)
                return latest

            readings = await self._provider.fetch(chat_id, location)
            await asyncio.to_thread(store.add_readings, chat_id, readings)
            latest = await asyncio.to_thread(store.latest_reading, chat_id)
            if latest is None:
                raise PersistenceError(f"reading for chat {chat_id} vanished after insert")
            return latest

    async def latest_reading(self, chat_id: int) -> Reading | None:
        store, _, _ = self._require_started()
        return await asyncio.to_thread(store.latest_reading, chat_id)

    async def subscribe(self, chat_id: int) -> int:
        """See :meth:`SubscriptionRegistry.subscribe`."""
        _, _, subscriptions = self._require_started()
        async with self._lanes.hold(chat_id):
            return await subscriptions.subscribe(chat_id)

    async def unsubscribe_all(self, chat_id: int) -> int:
        _, _, subscriptions = self._require_started()
        async with self._lanes.hold(chat_id):
            return await subscriptions.unsubscribe_all(chat_id)

    async def list_subscriptions(self, chat_id: int) -> list[Subscription]:
        _, _, subscriptions = self._require_started()
        return await subscriptions.list(chat_id)

    async def reconcile(self) -> int:
        if self._reconciler is None:
            raise AqiWatchError("Service not started. Use 'async with AqiWatchService(...) as service:'")
        return await self._reconciler.reconcile()

    async def cleanup(self) -> tuple[int, int]:
        """Purge disabled subscriptions and expired readings."""
        if self._janitor is None:
            raise AqiWatchError("Service not started. Use 'async with AqiWatchService(...) as service:'")
        return await self._janitor.run()

    def schedules(self) -> list[PeriodicJob]:
        """Periodic jobs for reconciliation and cleanup (not started)."""
        return [
            PeriodicJob("reconcile", self.reconcile, self._config.reconcile_interval),
            PeriodicJob("cleanup", self.cleanup, self._config.cleanup_interval),
        ]

    # ------------------------------------------------------------------
    # Inbound updates
    # ------------------------------------------------------------------

    async def handle(self, update: InboundUpdate) -> OutboundEvent:
        """Process one inbound update and deliver the reply.

        Business outcomes (duplicate, missing precondition) get their own
        events; provider and store failures become a :class:`RetryNotice`.
        Returns the event that was delivered (or attempted).
        """
        try:
            event = await self._reply_for(update)
        except DuplicateSubscriptionError as exc:
            event = DuplicateSubscription(existing_id=exc.existing_id)
        except NoSessionError:
            event = PreconditionNotice(reason="no_session")
        except NoReadingError:
            event = PreconditionNotice(reason="no_reading")
        except (TransientProviderError, PersistenceError) as exc:
            _logger.warning("Update %s for chat %s failed: %s", update.kind, update.chat_id, exc)
            event = RetryNotice()

        assert self._transport is not None  # noqa: S101
        try:
            await self._transport.deliver(update.chat_id, update.language_code, event)
        except DeliveryError as exc:
            _logger.warning("Reply to chat %s not delivered: %s", update.chat_id, exc)
        return event

    async def _reply_for(self, update: InboundUpdate) -> OutboundEvent:
        if isinstance(update, LocationShared):
            reading = await self.share_location(
                update.chat_id,
                update.user_id,
                update.language_code,
                update.location,
            )
            return AqiReport(aqi=reading.aqi)
        if isinstance(update, SubscribeRequested):
            subscription_id = await self.subscribe(update.chat_id)
            return SubscriptionCreated(subscription_id=subscription_id)
        if isinstance(update, UnsubscribeRequested):
            count = await self.unsubscribe_all(update.chat_id)
            return Unsubscribed(count=count)
        if isinstance(update, ListRequested):
            subs = await self.list_subscriptions(update.chat_id)
            return SubscriptionList(
                subscriptions=[
                    SubscriptionSummary(location=sub.location, last_known_aqi=sub.last_known_aqi) for sub in subs
                ]
            )
        if isinstance(update, DetailsRequested):
            reading = await self.latest_reading(update.chat_id)
            if reading is None:
                raise NoReadingError(update.chat_id)
            return ReadingDetails(observed_at=reading.observed_at, aqi=reading.aqi, components=reading.components)
        if isinstance(update, StartRequested):
            return CommandMenu()
        if isinstance(update, AboutRequested):
            return AboutInfo()
        if isinstance(update, AirRequested):
            return LocationPrompt()
        raise TypeError(f"unsupported update {type(update).__name__}")
