"""OpenWeatherMap air pollution API response models.

See https://openweathermap.org/api/air-pollution#fields
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from aqiwatch.models.reading import AirQualityIndex, Reading, UtcTimestamp


class OwmMain(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    aqi: AirQualityIndex


class OwmDataPoint(BaseModel):
    """One entry of the ``list`` array."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    dt: UtcTimestamp
    main: OwmMain
    components: dict[str, float] = Field(default_factory=dict)

    @field_validator("components", mode="before")
    @classmethod
    def _drop_null_components(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        return {key: conc for key, conc in value.items() if conc is not None}

    def to_reading(self, chat_id: int) -> Reading:
        return Reading(
            chat_id=chat_id,
            observed_at=self.dt,
            aqi=self.main.aqi,
            components=dict(self.components),
        )


class OwmCoord(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    lat: float
    lon: float


class AirPollutionResponse(BaseModel):
    """Top-level ``air_pollution`` response."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    coord: OwmCoord | None = None
    data_points: list[OwmDataPoint] = Field(default_factory=list, alias="list")
