from __future__ import annotations

from datetime import UTC, datetime

import pytest
from _doubles import FakeClock, seed_session

from aqiwatch.exceptions import DuplicateSubscriptionError, NoReadingError, NoSessionError
from aqiwatch.models.reading import AirQualityIndex, Location, Reading
from aqiwatch.registry import SessionRegistry, SubscriptionRegistry
from aqiwatch.state.store import Store

_NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
_A = Location(latitude=1.000, longitude=2.000)


async def _share(store: Store, clock: FakeClock, chat_id: int, location: Location, aqi: int = 2) -> None:
    await SessionRegistry(store, clock=clock).update(chat_id, 7, "en", location)
    store.add_readings(chat_id, [Reading(chat_id=chat_id, observed_at=clock(), aqi=aqi)])


@pytest.mark.asyncio
async def test_session_registry_replaces_and_reads_back(store: Store, clock: FakeClock) -> None:
    sessions = SessionRegistry(store, clock=clock)
    await sessions.update(1, 7, "en", _A)
    await sessions.update(1, 8, "ru", Location(latitude=3.0, longitude=4.0))

    session = await sessions.get(1)
    assert session is not None
    assert (session.user_id, session.language_code) == (8, "ru")
    assert session.location == Location(latitude=3.0, longitude=4.0)
    assert await sessions.get(2) is None


@pytest.mark.asyncio
async def test_subscribe_without_session_fails(store: Store, clock: FakeClock) -> None:
    registry = SubscriptionRegistry(store, clock=clock)

    with pytest.raises(NoSessionError):
        await registry.subscribe(1)


@pytest.mark.asyncio
async def test_subscribe_without_reading_fails(store: Store, clock: FakeClock) -> None:
    seed_session(store, 1, _A, at=_NOW)
    registry = SubscriptionRegistry(store, clock=clock)

    with pytest.raises(NoReadingError):
        await registry.subscribe(1)
    assert await registry.list(1) == []


@pytest.mark.asyncio
async def test_subscribe_captures_session_and_latest_index(store: Store, clock: FakeClock) -> None:
    await _share(store, clock, 1, _A, aqi=4)
    registry = SubscriptionRegistry(store, clock=clock)

    sub_id = await registry.subscribe(1)

    (sub,) = await registry.list(1)
    assert sub.id == sub_id
    assert sub.location == _A
    assert sub.language_code == "en"
    assert sub.last_known_aqi == AirQualityIndex.POOR
    assert sub.enabled is True


@pytest.mark.asyncio
async def test_duplicate_by_latitude_only(store: Store, clock: FakeClock) -> None:
    registry = SubscriptionRegistry(store, clock=clock)
    await _share(store, clock, 1, _A)
    first = await registry.subscribe(1)

    await _share(store, clock, 1, Location(latitude=1.0005, longitude=5.000))
    with pytest.raises(DuplicateSubscriptionError) as excinfo:
        await registry.subscribe(1)

    assert excinfo.value.existing_id == first
    assert len(await registry.list(1)) == 1


@pytest.mark.asyncio
async def test_far_location_is_accepted(store: Store, clock: FakeClock) -> None:
    registry = SubscriptionRegistry(store, clock=clock)
    await _share(store, clock, 1, _A)
    await registry.subscribe(1)

    await _share(store, clock, 1, Location(latitude=3.000, longitude=5.000))
    await registry.subscribe(1)

    assert len(await registry.list(1)) == 2


@pytest.mark.asyncio
async def test_dedup_is_per_chat(store: Store, clock: FakeClock) -> None:
    registry = SubscriptionRegistry(store, clock=clock)
    await _share(store, clock, 1, _A)
    await _share(store, clock, 2, _A)

    await registry.subscribe(1)
    await registry.subscribe(2)

    assert len(await registry.list(1)) == 1
    assert len(await registry.list(2)) == 1


@pytest.mark.asyncio
async def test_disabled_subscription_does_not_block_resubscribe(store: Store, clock: FakeClock) -> None:
    registry = SubscriptionRegistry(store, clock=clock)
    await _share(store, clock, 1, _A)
    await registry.subscribe(1)

    assert await registry.unsubscribe_all(1) == 1
    assert await registry.list(1) == []

    await registry.subscribe(1)
    assert len(await registry.list(1)) == 1


@pytest.mark.asyncio
async def test_unsubscribe_all_with_nothing_is_fine(store: Store, clock: FakeClock) -> None:
    registry = SubscriptionRegistry(store, clock=clock)
    assert await registry.unsubscribe_all(5) == 0
