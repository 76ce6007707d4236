"""Data models for aqiwatch."""

from aqiwatch.models.events import (
    AboutInfo,
    AqiChangeEvent,
    AqiReport,
    CommandMenu,
    Direction,
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
from aqiwatch.models.owm import AirPollutionResponse, OwmDataPoint
from aqiwatch.models.reading import AirQualityIndex, Location, Reading, UtcTimestamp, parse_epoch_timestamp
from aqiwatch.models.subscription import ChatSession, Subscription
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

__all__ = [
    "AboutInfo",
    "AboutRequested",
    "AirPollutionResponse",
    "AirQualityIndex",
    "AirRequested",
    "AqiChangeEvent",
    "AqiReport",
    "ChatSession",
    "CommandMenu",
    "DetailsRequested",
    "Direction",
    "DuplicateSubscription",
    "InboundUpdate",
    "ListRequested",
    "Location",
    "LocationPrompt",
    "LocationShared",
    "OutboundEvent",
    "OwmDataPoint",
    "PreconditionNotice",
    "Reading",
    "ReadingDetails",
    "RetryNotice",
    "Subscription",
    "StartRequested",
    "SubscribeRequested",
    "SubscriptionCreated",
    "SubscriptionList",
    "SubscriptionSummary",
    "UnsubscribeRequested",
    "Unsubscribed",
    "UtcTimestamp",
    "parse_epoch_timestamp",
]
