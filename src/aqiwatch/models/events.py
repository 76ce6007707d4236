"""Structured outbound events.

The engine never renders text. Everything it wants a chat to see is one
of these events; the transport decides how to present it.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from aqiwatch.models.reading import AirQualityIndex, Location, UtcTimestamp


class Direction(StrEnum):
    IMPROVED = "improved"
    DEGRADED = "degraded"


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class AqiChangeEvent(_Event):
    """AQI changed for a subscribed location."""

    kind: Literal["aqi_change"] = "aqi_change"
    subscription_id: int
    direction: Direction
    previous: AirQualityIndex
    aqi: AirQualityIndex
    components: dict[str, float] = Field(default_factory=dict)


class AqiReport(_Event):
    """Reply to a location share."""

    kind: Literal["aqi_report"] = "aqi_report"
    aqi: AirQualityIndex


class ReadingDetails(_Event):
    """Component breakdown of the latest reading."""

    kind: Literal["reading_details"] = "reading_details"
    observed_at: UtcTimestamp
    aqi: AirQualityIndex
    components: dict[str, float] = Field(default_factory=dict)


class SubscriptionCreated(_Event):
    kind: Literal["subscription_created"] = "subscription_created"
    subscription_id: int


class DuplicateSubscription(_Event):
    kind: Literal["duplicate_subscription"] = "duplicate_subscription"
    existing_id: int


class Unsubscribed(_Event):
    kind: Literal["unsubscribed"] = "unsubscribed"
    count: int


class SubscriptionSummary(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    location: Location
    last_known_aqi: AirQualityIndex


class SubscriptionList(_Event):
    kind: Literal["subscription_list"] = "subscription_list"
    subscriptions: list[SubscriptionSummary] = Field(default_factory=list)


class PreconditionNotice(_Event):
    """The user has to do something first (share a location)."""

    kind: Literal["precondition"] = "precondition"
    reason: Literal["no_session", "no_reading"]


class RetryNotice(_Event):
    """Something failed on our side; retrying is safe."""

    kind: Literal["retry"] = "retry"


class CommandMenu(_Event):
    """Greeting with the command keyboard."""

    kind: Literal["command_menu"] = "command_menu"


class AboutInfo(_Event):
    kind: Literal["about"] = "about"


class LocationPrompt(_Event):
    """Ask the user to share a location."""

    kind: Literal["location_prompt"] = "location_prompt"


OutboundEvent = Annotated[
    AqiChangeEvent
    | AqiReport
    | ReadingDetails
    | SubscriptionCreated
    | DuplicateSubscription
    | Unsubscribed
    | SubscriptionList
    | PreconditionNotice
    | RetryNotice
    | CommandMenu
    | AboutInfo
    | LocationPrompt,
    Field(discriminator="kind"),
]
