"""Service configuration for aqiwatch."""

from __future__ import annotations

import dataclasses
import os
from datetime import timedelta
from typing import Any

from aqiwatch._constants import (
    DEFAULT_CACHE_TTL,
    DEFAULT_CLEANUP_INTERVAL,
    DEFAULT_CYCLE_BUDGET,
    DEFAULT_DEDUP_EPSILON,
    DEFAULT_PROVIDER_TIMEOUT,
    DEFAULT_QUEUE_SIZE,
    DEFAULT_RECONCILE_INTERVAL,
    DEFAULT_RETENTION_WINDOW,
    DEFAULT_WORKERS,
    OWM_BASE_URL,
    TELEGRAM_BASE_URL,
)
from aqiwatch.exceptions import ConfigError


def _env_seconds(value: str, key: str) -> timedelta:
    try:
        return timedelta(seconds=float(value))
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number of seconds, got {value!r}") from exc


def _env_number(value: str, key: str, cast: type[int] | type[float]) -> int | float:
    try:
        return cast(value)
    except ValueError as exc:
        raise ConfigError(f"{key} must be numeric, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class AqiWatchConfig:
    """Service configuration.

    Built once at process start and passed explicitly to every component.

    Parameters
    ----------
    owm_api_token : str
        OpenWeatherMap API key.
    telegram_api_token : str
        Telegram bot token used by :class:`~aqiwatch.transport.TelegramTransport`.
    db_path : str
        SQLite database file (``":memory:"`` for an ephemeral store).
    owm_base_url : str
        Air pollution API base URL.
    telegram_base_url : str
        Telegram Bot API base URL.
    cache_ttl : timedelta
        Maximum age of a cached reading before a refetch is required.
    reconcile_interval : timedelta
        How often the reconciliation loop is triggered.
    cleanup_interval : timedelta
        How often the retention janitor is triggered.
    retention_window : timedelta
        Readings older than this are purged. Must exceed ``cache_ttl``.
    dedup_epsilon : float
        Coordinate delta (degrees) below which two locations are the same target.
    provider_timeout : float
        Per-call timeout in seconds for provider requests.
    cycle_budget : timedelta
        Once a reconciliation run has taken this long, remaining items are
        left for the next run. Must be shorter than ``reconcile_interval``.
    workers : int
        Inbound-event worker count.
    queue_size : int
        Inbound-event queue capacity.
    """

    owm_api_token: str
    telegram_api_token: str = ""
    db_path: str = "./aqiwatch.db"
    owm_base_url: str = OWM_BASE_URL
    telegram_base_url: str = TELEGRAM_BASE_URL
    cache_ttl: timedelta = DEFAULT_CACHE_TTL
    reconcile_interval: timedelta = DEFAULT_RECONCILE_INTERVAL
    cleanup_interval: timedelta = DEFAULT_CLEANUP_INTERVAL
    retention_window: timedelta = DEFAULT_RETENTION_WINDOW
    dedup_epsilon: float = DEFAULT_DEDUP_EPSILON
    provider_timeout: float = DEFAULT_PROVIDER_TIMEOUT
    cycle_budget: timedelta = DEFAULT_CYCLE_BUDGET
    workers: int = DEFAULT_WORKERS
    queue_size: int = DEFAULT_QUEUE_SIZE

    def __post_init__(self) -> None:
        if self.cache_ttl <= timedelta(0):
            raise ConfigError("cache_ttl must be positive")
        if self.retention_window <= self.cache_ttl:
            raise ConfigError("retention_window must exceed cache_ttl")
        if self.cycle_budget >= self.reconcile_interval:
            raise ConfigError("cycle_budget must be shorter than reconcile_interval")
        if self.dedup_epsilon < 0:
            raise ConfigError("dedup_epsilon must not be negative")
        if self.provider_timeout <= 0:
            raise ConfigError("provider_timeout must be positive")
        if self.workers < 1 or self.queue_size < 1:
            raise ConfigError("workers and queue_size must be at least 1")

    @classmethod
    def from_env(cls, **overrides: Any) -> AqiWatchConfig:
        """Create configuration from environment variables.

        Reads ``AQIWATCH_OWM_API_TOKEN`` and optional ``AQIWATCH_*``
        variables. Durations are given in seconds. Explicit keyword
        arguments override environment values.

        Raises
        ------
        ConfigError
            If a required variable is missing or a value does not parse.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "AQIWATCH_OWM_API_TOKEN": "owm_api_token",
            "AQIWATCH_TELEGRAM_API_TOKEN": "telegram_api_token",
            "AQIWATCH_DB_PATH": "db_path",
            "AQIWATCH_OWM_BASE_URL": "owm_base_url",
            "AQIWATCH_TELEGRAM_BASE_URL": "telegram_base_url",
        }
        _ENV_DURATION_MAP = {
            "AQIWATCH_CACHE_TTL": "cache_ttl",
            "AQIWATCH_RECONCILE_INTERVAL": "reconcile_interval",
            "AQIWATCH_CLEANUP_INTERVAL": "cleanup_interval",
            "AQIWATCH_RETENTION_WINDOW": "retention_window",
            "AQIWATCH_CYCLE_BUDGET": "cycle_budget",
        }
        _ENV_NUMBER_MAP: dict[str, tuple[str, type[int] | type[float]]] = {
            "AQIWATCH_DEDUP_EPSILON": ("dedup_epsilon", float),
            "AQIWATCH_PROVIDER_TIMEOUT": ("provider_timeout", float),
            "AQIWATCH_WORKERS": ("workers", int),
            "AQIWATCH_QUEUE_SIZE": ("queue_size", int),
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val
        for env_key, field_name in _ENV_DURATION_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_seconds(val, env_key)
        for env_key, (field_name, cast) in _ENV_NUMBER_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(val, env_key, cast)

        config_kwargs.update(overrides)

        if not config_kwargs.get("owm_api_token"):
            raise ConfigError("AQIWATCH_OWM_API_TOKEN is not set")

        return cls(**config_kwargs)
