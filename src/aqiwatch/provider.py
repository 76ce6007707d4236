"""Air-quality provider interface and the OpenWeatherMap implementation."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import aiohttp
from pydantic import ValidationError

from aqiwatch._constants import USER_AGENT
from aqiwatch._redact import redact_for_log, redact_url
from aqiwatch.config import AqiWatchConfig
from aqiwatch.exceptions import TransientProviderError
from aqiwatch.models.owm import AirPollutionResponse
from aqiwatch.models.reading import Location, Reading

_logger = logging.getLogger(__name__)

_ENDPOINT = "/air_pollution"


class AirQualityProvider(Protocol):
    """Structural provider interface.

    Implementations return one or more readings for *location*, attributed
    to *chat_id*, or raise :class:`TransientProviderError`.
    """

    async def fetch(self, chat_id: int, location: Location) -> list[Reading]:
        ...


class OpenWeatherMapProvider:
    """Current air pollution data from openweathermap.org."""

    def __init__(self, config: AqiWatchConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.provider_timeout)

    def _build_url(self, location: Location) -> str:
        base = self._config.owm_base_url.rstrip("/")
        return f"{base}{_ENDPOINT}?lat={location.latitude:f}&lon={location.longitude:f}&appid={self._config.owm_api_token}"

    async def _get_json(self, url: str) -> Any:
        _logger.debug("GET %s", redact_url(url))
        try:
            async with self._http.get(url, headers={"user-agent": USER_AGENT}, timeout=self._timeout) as resp:
                raw = await resp.read()
                text = raw.decode("utf-8", errors="replace")
                if resp.status != 200:
                    raise TransientProviderError(
                        f"HTTP {resp.status} from {_ENDPOINT}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=_ENDPOINT,
                    )
        except TransientProviderError:
            raise
        except TimeoutError as exc:
            raise TransientProviderError(
                f"Request to {_ENDPOINT} timed out after {self._config.provider_timeout}s",
                endpoint=_ENDPOINT,
            ) from exc
        except aiohttp.ClientError as exc:
            raise TransientProviderError(f"Request to {_ENDPOINT} failed: {exc}", endpoint=_ENDPOINT) from exc

        try:
            return json.loads(text)
        except (json.JSONDecodeError, RecursionError) as exc:
            raise TransientProviderError(f"Invalid JSON from {_ENDPOINT}: {text[:200]}", endpoint=_ENDPOINT) from exc

    async def fetch(self, chat_id: int, location: Location) -> list[Reading]:
        """Fetch current readings for *location*.

        Raises
        ------
        TransientProviderError
            On network failure, timeout, non-200 status, or a payload that
            does not carry at least one valid data point.
        """
        payload = await self._get_json(self._build_url(location))
        if _logger.isEnabledFor(logging.DEBUG):
            _logger.debug("air_pollution response: %s", redact_for_log(payload))

        try:
            response = AirPollutionResponse.model_validate(payload)
        except ValidationError as exc:
            raise TransientProviderError(f"Unexpected payload from {_ENDPOINT}: {exc}", endpoint=_ENDPOINT) from exc

        if not response.data_points:
            raise TransientProviderError(f"No data points from {_ENDPOINT}", endpoint=_ENDPOINT)
        return [point.to_reading(chat_id) for point in response.data_points]
