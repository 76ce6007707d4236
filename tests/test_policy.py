from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from aqiwatch.models.events import Direction
from aqiwatch.models.reading import AirQualityIndex, Location, Reading
from aqiwatch.state.policy import change_direction, is_same_target, needs_refresh

_NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def _reading_aged(age: timedelta) -> Reading:
    return Reading(chat_id=1, observed_at=_NOW - age, aqi=2)


def test_no_reading_always_needs_refresh() -> None:
    assert needs_refresh(None, _NOW) is True
    assert needs_refresh(None, _NOW, timedelta(days=365)) is True


@pytest.mark.parametrize(
    ("age", "ttl", "expected"),
    [
        (timedelta(0), timedelta(minutes=10), False),
        (timedelta(minutes=9, seconds=59), timedelta(minutes=10), False),
        (timedelta(minutes=10), timedelta(minutes=10), False),
        (timedelta(minutes=10, seconds=1), timedelta(minutes=10), True),
        (timedelta(hours=3), timedelta(minutes=10), True),
        (timedelta(minutes=1), timedelta(0), True),
        (timedelta(hours=1), timedelta(hours=2), False),
    ],
)
def test_refresh_iff_older_than_ttl(age: timedelta, ttl: timedelta, expected: bool) -> None:
    assert needs_refresh(_reading_aged(age), _NOW, ttl) is expected


def test_epoch_reading_is_stale_not_absent() -> None:
    epoch = Reading(chat_id=1, observed_at=0, aqi=1)

    assert epoch.observed_at == datetime(1970, 1, 1, tzinfo=UTC)
    assert needs_refresh(epoch, _NOW) is True


def test_same_target_when_latitude_close_even_if_longitude_far() -> None:
    a = Location(latitude=1.000, longitude=2.000)
    b = Location(latitude=1.0005, longitude=5.000)

    assert is_same_target(a, b) is True


def test_same_target_when_longitude_close_only() -> None:
    a = Location(latitude=10.0, longitude=2.000)
    b = Location(latitude=40.0, longitude=2.0008)

    assert is_same_target(a, b) is True


def test_distinct_targets_when_both_axes_beyond_epsilon() -> None:
    a = Location(latitude=1.000, longitude=2.000)
    b = Location(latitude=3.000, longitude=5.000)

    assert is_same_target(a, b) is False


def test_epsilon_boundary_is_exclusive() -> None:
    a = Location(latitude=0.0, longitude=0.0)
    b = Location(latitude=0.5, longitude=0.5)

    assert is_same_target(a, b, epsilon=0.5) is False
    assert is_same_target(a, b, epsilon=0.5001) is True


@pytest.mark.parametrize(
    ("previous", "current", "expected"),
    [
        (3, 2, Direction.IMPROVED),
        (2, 4, Direction.DEGRADED),
        (3, 3, None),
        (5, 1, Direction.IMPROVED),
    ],
)
def test_change_direction(previous: int, current: int, expected: Direction | None) -> None:
    assert change_direction(AirQualityIndex(previous), AirQualityIndex(current)) == expected
