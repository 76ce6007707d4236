"""Session and subscription registries."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime

from aqiwatch._constants import DEFAULT_DEDUP_EPSILON
from aqiwatch.exceptions import DuplicateSubscriptionError, NoReadingError, NoSessionError
from aqiwatch.models.reading import Location
from aqiwatch.models.subscription import ChatSession, Subscription
from aqiwatch.state.policy import is_same_target
from aqiwatch.state.store import Store

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SessionRegistry:
    """Latest location/language per chat."""

    def __init__(self, store: Store, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._store = store
        self._clock = clock

    async def update(self, chat_id: int, user_id: int, language_code: str, location: Location) -> ChatSession:
        """Replace the chat's session with the given values."""
        session = ChatSession(
            chat_id=chat_id,
            user_id=user_id,
            language_code=language_code,
            location=location,
            updated_at=self._clock(),
        )
        await asyncio.to_thread(self._store.upsert_session, session)
        return session

    async def get(self, chat_id: int) -> ChatSession | None:
        return await asyncio.to_thread(self._store.get_session, chat_id)


class SubscriptionRegistry:
    """Create, list and soft-delete AQI subscriptions."""

    def __init__(
        self,
        store: Store,
        *,
        epsilon: float = DEFAULT_DEDUP_EPSILON,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._epsilon = epsilon
        self._clock = clock

    async def subscribe(self, chat_id: int) -> int:
        """Subscribe the chat's current session location.

        Returns the new subscription id.

        Raises
        ------
        NoSessionError
            No location was shared in this chat.
        DuplicateSubscriptionError
            An enabled subscription of this chat is within epsilon on
            latitude or on longitude.
        NoReadingError
            No reading was fetched for this chat yet.
        """
        session = await asyncio.to_thread(self._store.get_session, chat_id)
        if session is None:
            raise NoSessionError(chat_id)

        existing = await asyncio.to_thread(self._store.list_enabled_subscriptions, chat_id)
        for sub in existing:
            if is_same_target(sub.location, session.location, self._epsilon):
                _logger.info("Subscription already exists: chat=%s id=%s", chat_id, sub.id)
                raise DuplicateSubscriptionError(chat_id, sub.id)

        latest = await asyncio.to_thread(self._store.latest_reading, chat_id)
        if latest is None:
            raise NoReadingError(chat_id)

        subscription_id = await asyncio.to_thread(
            lambda: self._store.insert_subscription(
                chat_id=chat_id,
                language_code=session.language_code,
                location=session.location,
                aqi=latest.aqi,
                created_at=self._clock(),
            )
        )
        _logger.info("Subscribed chat=%s id=%s aqi=%d", chat_id, subscription_id, latest.aqi)
        return subscription_id

    async def unsubscribe_all(self, chat_id: int) -> int:
        """Disable every subscription of the chat. Returns how many were enabled."""
        count = await asyncio.to_thread(self._store.disable_subscriptions, chat_id)
        _logger.info("Disabled %d subscription(s) for chat=%s", count, chat_id)
        return count

    async def list(self, chat_id: int) -> list[Subscription]:
        """Enabled subscriptions of the chat."""
        return await asyncio.to_thread(self._store.list_enabled_subscriptions, chat_id)
