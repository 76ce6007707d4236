"""Chat session and subscription models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from aqiwatch.models.reading import AirQualityIndex, Location, UtcTimestamp


class ChatSession(BaseModel):
    """Latest location and language shared in a chat.

    One per chat; every update replaces the whole row.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    chat_id: int
    user_id: int
    language_code: str = ""
    location: Location
    updated_at: UtcTimestamp


class Subscription(BaseModel):
    """A standing request to be notified when the AQI at a location changes."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int
    chat_id: int
    language_code: str = ""
    location: Location
    last_known_aqi: AirQualityIndex
    enabled: bool = True
    created_at: UtcTimestamp = Field(description="Creation time (UTC)")
