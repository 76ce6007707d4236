"""Inbound user updates, already decoded from the chat platform."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from aqiwatch.models.reading import Location


class _Update(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    chat_id: int
    language_code: str = ""


class LocationShared(_Update):
    kind: Literal["location"] = "location"
    user_id: int
    location: Location


class SubscribeRequested(_Update):
    kind: Literal["subscribe"] = "subscribe"


class UnsubscribeRequested(_Update):
    kind: Literal["unsubscribe"] = "unsubscribe"


class ListRequested(_Update):
    kind: Literal["list"] = "list"


class DetailsRequested(_Update):
    kind: Literal["details"] = "details"


class StartRequested(_Update):
    kind: Literal["start"] = "start"


class AboutRequested(_Update):
    kind: Literal["about"] = "about"


class AirRequested(_Update):
    """``/air`` or ``/airQualityIndex`` sent as text, without a location."""

    kind: Literal["air"] = "air"


InboundUpdate = Annotated[
    LocationShared
    | SubscribeRequested
    | UnsubscribeRequested
    | ListRequested
    | DetailsRequested
    | StartRequested
    | AboutRequested
    | AirRequested,
    Field(discriminator="kind"),
]
