from __future__ import annotations

from datetime import UTC, datetime

import aiohttp
import pytest
from _doubles import StubHttpSession

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
    ReadingDetails,
    RetryNotice,
    SubscriptionList,
    SubscriptionSummary,
)
from aqiwatch.models.reading import AirQualityIndex, Location
from aqiwatch.transport import TelegramTransport, render


def test_render_change_event_headline_follows_direction() -> None:
    better = AqiChangeEvent(subscription_id=1, direction=Direction.IMPROVED, previous=3, aqi=2)
    worse = AqiChangeEvent(subscription_id=1, direction=Direction.DEGRADED, previous=2, aqi=4)

    better_text, markup = render(better)
    worse_text, _ = render(worse)

    assert better_text.startswith("😌 AQI gets better")
    assert "🟨 (Fair)" in better_text
    assert worse_text.startswith("😷 AQI gets worse")
    assert AirQualityIndex.POOR.description in worse_text
    assert markup == {"inline_keyboard": [[{"text": "Cleanup AQI Subscriptions", "callback_data": "cleanup"}]]}


def test_render_report_offers_notify_and_details() -> None:
    _, markup = render(AqiReport(aqi=1))

    assert markup is not None
    assert [row[0]["callback_data"] for row in markup["inline_keyboard"]] == ["notifyMe", "details"]


def test_render_details_lists_components_sorted() -> None:
    text, markup = render(
        ReadingDetails(
            observed_at=datetime(2026, 1, 1, tzinfo=UTC),
            aqi=2,
            components={"pm10": 7.456, "co": 201.9},
        )
    )

    assert text.splitlines()[-2:] == ["co=201.90", "pm10=7.46"]
    assert markup is None


def test_render_subscription_list() -> None:
    empty_text, empty_markup = render(SubscriptionList())
    text, markup = render(
        SubscriptionList(
            subscriptions=[SubscriptionSummary(location=Location(latitude=1.5, longitude=2.5), last_known_aqi=3)]
        )
    )

    assert empty_text.startswith("You have 0 subscription(s)")
    assert empty_markup is None
    assert "Location: 1.500000;2.500000. Last AQI: 🟧 (Moderate)" in text
    assert markup is not None


def test_retry_notice_differs_from_duplicate() -> None:
    assert render(RetryNotice())[0] != render(DuplicateSubscription(existing_id=1))[0]


_OK_REPLY = '{"ok": true, "result": {"message_id": 1}}'


def _transport(session: StubHttpSession) -> TelegramTransport:
    config = AqiWatchConfig(owm_api_token="x", telegram_api_token="123:ABC", telegram_base_url="https://tg.test")
    return TelegramTransport(config, session)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_deliver_posts_send_message() -> None:
    session = StubHttpSession(body=_OK_REPLY)

    await _transport(session).deliver(42, "en", AqiReport(aqi=2))

    ((url, body),) = session.posts
    assert url == "https://tg.test/bot123:ABC/sendMessage"
    assert body["chat_id"] == 42
    assert body["text"].startswith("Air Quality Index: 🟨 (Fair)")
    assert "reply_markup" in body


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "session",
    [
        StubHttpSession(status=403, body='{"ok": false, "description": "Forbidden: bot was blocked by the user"}'),
        StubHttpSession(status=200, body='{"ok": false, "description": "Bad Request"}'),
        StubHttpSession(status=200, body="not json"),
        StubHttpSession(status=200, body=b"\xff\xfe"),
        StubHttpSession(error=aiohttp.ClientConnectionError("reset")),
    ],
)
async def test_deliver_failures_raise_delivery_error(session: StubHttpSession) -> None:
    with pytest.raises(DeliveryError) as excinfo:
        await _transport(session).deliver(42, "en", RetryNotice())

    assert excinfo.value.chat_id == 42


def test_render_command_menu_and_prompts() -> None:
    menu_text, menu_markup = render(CommandMenu())
    about_text, about_markup = render(AboutInfo())
    prompt_text, prompt_markup = render(LocationPrompt())

    assert menu_text.startswith("/airQualityIndex")
    assert menu_markup is not None
    assert menu_markup["keyboard"][0] == [{"text": "/airQualityIndex", "request_location": True}]
    assert about_text.startswith("Get the Air Quality Index")
    assert about_markup is None
    assert prompt_text == "Share location!"
    assert prompt_markup == {
        "keyboard": [[{"text": "Share location!", "request_location": True}]],
        "one_time_keyboard": True,
    }
