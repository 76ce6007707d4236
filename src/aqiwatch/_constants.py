"""Internal constants shared across the package."""

from datetime import timedelta

OWM_BASE_URL = "https://api.openweathermap.org/data/2.5"
TELEGRAM_BASE_URL = "https://api.telegram.org"
USER_AGENT = "aqiwatch/0.1"

DEFAULT_CACHE_TTL = timedelta(minutes=10)
DEFAULT_RECONCILE_INTERVAL = timedelta(minutes=30)
DEFAULT_CLEANUP_INTERVAL = timedelta(hours=12)
DEFAULT_RETENTION_WINDOW = timedelta(hours=12)
DEFAULT_CYCLE_BUDGET = timedelta(minutes=25)

#: ~100 m at the equator.
DEFAULT_DEDUP_EPSILON: float = 0.0009

DEFAULT_PROVIDER_TIMEOUT: float = 20.0
DEFAULT_WORKERS: int = 8
DEFAULT_QUEUE_SIZE: int = 256

CLEANUP_CALLBACK_DATA = "cleanup"
