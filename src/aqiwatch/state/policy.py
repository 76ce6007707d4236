"""Deterministic staleness, dedup and change policies.

Nothing here touches storage or the network.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from aqiwatch._constants import DEFAULT_CACHE_TTL, DEFAULT_DEDUP_EPSILON
from aqiwatch.models.events import Direction
from aqiwatch.models.reading import AirQualityIndex, Location, Reading


def needs_refresh(
    latest: Reading | None,
    now: datetime,
    ttl: timedelta = DEFAULT_CACHE_TTL,
) -> bool:
    """Decide whether a fresh reading must be fetched.

    Policy:
    - No reading at all: refresh.
    - Reading older than *ttl* (strictly): refresh.
    """
    if latest is None:
        return True
    return latest.age(now) > ttl


def is_same_target(a: Location, b: Location, epsilon: float = DEFAULT_DEDUP_EPSILON) -> bool:
    """Whether two locations count as the same subscription target.

    Either axis being within *epsilon* is enough: this is a per-axis OR,
    not a distance check, so points sharing only a latitude collide.
    """
    return abs(a.latitude - b.latitude) < epsilon or abs(a.longitude - b.longitude) < epsilon


def change_direction(previous: AirQualityIndex, current: AirQualityIndex) -> Direction | None:
    """``None`` when unchanged; lower index is an improvement."""
    if current == previous:
        return None
    if current < previous:
        return Direction.IMPROVED
    return Direction.DEGRADED
