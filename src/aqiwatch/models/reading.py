"""Air quality reading models."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from enum import IntEnum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


def parse_epoch_timestamp(value: Any) -> datetime:
    """Convert an epoch timestamp (seconds) or datetime to a tz-aware UTC datetime.

    Naive datetimes are assumed to be UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=UTC)
        except (OverflowError, OSError) as exc:
            raise ValueError(f"timestamp {value!r} is out of range") from exc
    if isinstance(value, str):
        return parse_epoch_timestamp(datetime.fromisoformat(value))
    raise ValueError(f"cannot interpret {value!r} as a timestamp")


UtcTimestamp = Annotated[datetime, BeforeValidator(parse_epoch_timestamp)]
"""Annotated type that coerces epoch seconds, ISO strings and naive datetimes to UTC."""


_AQI_LABELS: dict[int, str] = {
    1: "🟩 (Good)",
    2: "🟨 (Fair)",
    3: "🟧 (Moderate)",
    4: "🟥 (Poor)",
    5: "⬛ (Very Poor)",
}

_AQI_DESCRIPTIONS: dict[int, str] = {
    1: "No health implications.",
    2: "Some pollutants may slightly affect very few hypersensitive individuals.",
    3: (
        "Healthy people may experience slight irritations and sensitive individuals "
        "will be slightly affected to a larger extent."
    ),
    4: (
        "Sensitive individuals will experience more serious conditions. "
        "The hearts and respiratory systems of healthy people may be affected."
    ),
    5: (
        "Healthy people will commonly show symptoms. People with respiratory or heart "
        "diseases will be significantly affected and will experience reduced endurance in activities."
    ),
}


class AirQualityIndex(IntEnum):
    """Air Quality Index level. Lower is better."""

    GOOD = 1
    FAIR = 2
    MODERATE = 3
    POOR = 4
    VERY_POOR = 5

    @property
    def label(self) -> str:
        """Short emoji label, e.g. ``"🟧 (Moderate)"``."""
        return _AQI_LABELS[self.value]

    @property
    def description(self) -> str:
        """Health implications of this level."""
        return _AQI_DESCRIPTIONS[self.value]


class Location(BaseModel):
    """A point on the globe in decimal degrees."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)


class Reading(BaseModel):
    """One AQI observation for a chat.

    Parameters
    ----------
    id : int or None
        Row id; ``None`` until persisted.
    chat_id : int
        Owning chat.
    observed_at : datetime
        Observation time reported by the provider (UTC).
    aqi : AirQualityIndex
        Index level, 1-5.
    components : dict
        Pollutant concentrations in μg/m3 keyed by component name.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int | None = None
    chat_id: int
    observed_at: UtcTimestamp
    aqi: AirQualityIndex
    components: dict[str, float] = Field(default_factory=dict)

    @field_validator("aqi", mode="before")
    @classmethod
    def _coerce_aqi(cls, value: Any) -> Any:
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value

    def age(self, now: datetime) -> timedelta:
        """Time elapsed between the observation and *now*."""
        return now - self.observed_at
