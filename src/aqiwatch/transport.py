"""Chat transport interface and a Telegram Bot API implementation."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import aiohttp

from aqiwatch._constants import CLEANUP_CALLBACK_DATA, USER_AGENT
from aqiwatch._redact import redact_url
from aqiwatch.config import AqiWatchConfig
from aqiwatch.exceptions import DeliveryError
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
    Unsubscribed,
)

_logger = logging.getLogger(__name__)

_RETRY_TEXT = "Error! Please, retry!"
_CLEANUP_BUTTON = "Cleanup AQI Subscriptions"
_NOTIFY_ME_BUTTON = "Notify Me on AQI changes"
_DETAILS_BUTTON = "Details"
_SHARE_LOCATION_TEXT = "Share location!"
_START_TEXT = (
    "/airQualityIndex - get the Air Quality Index for the location,\n"
    "/mySubscription - your AQI subscriptions,\n"
    "/about - info about the bot."
)
_ABOUT_TEXT = "Get the Air Quality Index (AQI) for the current location."
_COMMAND_KEYBOARD: dict[str, Any] = {
    "keyboard": [
        [{"text": "/airQualityIndex", "request_location": True}],
        [{"text": "/mySubscription"}, {"text": "/about"}],
    ],
    "resize_keyboard": True,
}
_LOCATION_KEYBOARD: dict[str, Any] = {
    "keyboard": [[{"text": _SHARE_LOCATION_TEXT, "request_location": True}]],
    "one_time_keyboard": True,
}


class Transport(Protocol):
    """Structural transport interface.

    Implementations raise :class:`DeliveryError` when a message could not be
    handed over; the engine logs that and moves on.
    """

    async def deliver(self, chat_id: int, language_code: str, event: OutboundEvent) -> None:
        ...


def _inline_keyboard(*buttons: tuple[str, str]) -> dict[str, Any]:
    return {"inline_keyboard": [[{"text": text, "callback_data": data}] for text, data in buttons]}


def render(event: OutboundEvent) -> tuple[str, dict[str, Any] | None]:
    """Render *event* as English message text plus an optional reply markup."""
    if isinstance(event, AqiChangeEvent):
        head = "😌 AQI gets better" if event.direction == Direction.IMPROVED else "😷 AQI gets worse"
        text = "\n".join([head, "", f"Air Quality Index: {event.aqi.label}", "", event.aqi.description])
        return text, _inline_keyboard((_CLEANUP_BUTTON, CLEANUP_CALLBACK_DATA))
    if isinstance(event, AqiReport):
        text = "\n".join([f"Air Quality Index: {event.aqi.label}", "", event.aqi.description])
        return text, _inline_keyboard((_NOTIFY_ME_BUTTON, "notifyMe"), (_DETAILS_BUTTON, "details"))
    if isinstance(event, ReadingDetails):
        lines = [_DETAILS_BUTTON, event.observed_at.isoformat(), ""]
        lines.extend(f"{name}={value:.2f}" for name, value in sorted(event.components.items()))
        return "\n".join(lines), None
    if isinstance(event, SubscriptionCreated):
        return "OK. I will notify you if AQI changes in your location. /mySubscription", None
    if isinstance(event, DuplicateSubscription):
        return "This location is already subscribed.", None
    if isinstance(event, Unsubscribed):
        return "OK. I won't notify you anymore", None
    if isinstance(event, SubscriptionList):
        lines = [f"You have {len(event.subscriptions)} subscription(s)", ""]
        lines.extend(
            f"Location: {item.location.latitude:f};{item.location.longitude:f}. Last AQI: {item.last_known_aqi.label}"
            for item in event.subscriptions
        )
        markup = _inline_keyboard((_CLEANUP_BUTTON, CLEANUP_CALLBACK_DATA)) if event.subscriptions else None
        return "\n".join(lines), markup
    if isinstance(event, PreconditionNotice):
        return "Share your location first!", None
    if isinstance(event, RetryNotice):
        return _RETRY_TEXT, None
    if isinstance(event, CommandMenu):
        return _START_TEXT, _COMMAND_KEYBOARD
    if isinstance(event, AboutInfo):
        return _ABOUT_TEXT, None
    if isinstance(event, LocationPrompt):
        return _SHARE_LOCATION_TEXT, _LOCATION_KEYBOARD
    raise TypeError(f"unsupported event {type(event).__name__}")


class TelegramTransport:
    """Deliver events as Telegram ``sendMessage`` calls."""

    def __init__(self, config: AqiWatchConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.provider_timeout)

    def _url(self, method: str) -> str:
        base = self._config.telegram_base_url.rstrip("/")
        return f"{base}/bot{self._config.telegram_api_token}/{method}"

    async def deliver(self, chat_id: int, language_code: str, event: OutboundEvent) -> None:
        text, markup = render(event)
        body: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if markup is not None:
            body["reply_markup"] = markup

        url = self._url("sendMessage")
        _logger.debug("POST %s chat=%s kind=%s lang=%s", redact_url(url), chat_id, event.kind, language_code)
        try:
            async with self._http.post(
                url,
                data=json.dumps(body),
                headers={"content-type": "application/json", "user-agent": USER_AGENT},
                timeout=self._timeout,
            ) as resp:
                reply_text = (await resp.read()).decode("utf-8", errors="replace")
                if resp.status != 200:
                    raise DeliveryError(f"HTTP {resp.status} from sendMessage: {reply_text[:200]}", chat_id=chat_id)
        except DeliveryError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise DeliveryError(f"sendMessage failed: {exc}", chat_id=chat_id) from exc

        try:
            reply = json.loads(reply_text)
        except (json.JSONDecodeError, RecursionError) as exc:
            raise DeliveryError(f"Invalid JSON from sendMessage: {reply_text[:200]}", chat_id=chat_id) from exc
        if not isinstance(reply, dict) or not reply.get("ok"):
            description = reply.get("description", "") if isinstance(reply, dict) else ""
            raise DeliveryError(f"sendMessage rejected: {description}", chat_id=chat_id)
