"""aqiwatch - Air Quality Index subscriptions with change notifications."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("aqiwatch")
except PackageNotFoundError:
    __version__ = "0+local"

from aqiwatch.config import AqiWatchConfig
from aqiwatch.dispatch import Dispatcher
from aqiwatch.exceptions import (
    AqiWatchError,
    ConfigError,
    DeliveryError,
    DuplicateSubscriptionError,
    NoReadingError,
    NoSessionError,
    PersistenceError,
    TransientProviderError,
)
from aqiwatch.janitor import Janitor
from aqiwatch.models import (
    AirQualityIndex,
    AqiChangeEvent,
    ChatSession,
    Direction,
    Location,
    Reading,
    Subscription,
)
from aqiwatch.provider import AirQualityProvider, OpenWeatherMapProvider
from aqiwatch.reconcile import Reconciler
from aqiwatch.registry import SessionRegistry, SubscriptionRegistry
from aqiwatch.scheduler import PeriodicJob
from aqiwatch.service import AqiWatchService
from aqiwatch.state.policy import change_direction, is_same_target, needs_refresh
from aqiwatch.state.store import Store
from aqiwatch.transport import TelegramTransport, Transport

__all__ = [
    "__version__",
    "AirQualityIndex",
    "AirQualityProvider",
    "AqiChangeEvent",
    "AqiWatchConfig",
    "AqiWatchError",
    "AqiWatchService",
    "ChatSession",
    "ConfigError",
    "DeliveryError",
    "Direction",
    "Dispatcher",
    "DuplicateSubscriptionError",
    "Janitor",
    "Location",
    "NoReadingError",
    "NoSessionError",
    "OpenWeatherMapProvider",
    "PeriodicJob",
    "PersistenceError",
    "Reading",
    "Reconciler",
    "SessionRegistry",
    "Store",
    "Subscription",
    "SubscriptionRegistry",
    "TelegramTransport",
    "Transport",
    "TransientProviderError",
    "change_direction",
    "is_same_target",
    "needs_refresh",
]
