from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import TypeAdapter, ValidationError

from aqiwatch.models.owm import AirPollutionResponse
from aqiwatch.models.reading import AirQualityIndex, Location, Reading
from aqiwatch.models.updates import InboundUpdate, LocationShared, StartRequested


def test_reading_rejects_out_of_range_index() -> None:
    for bad in (0, 6, -1):
        with pytest.raises(ValidationError):
            Reading(chat_id=1, observed_at=0, aqi=bad)


def test_reading_is_immutable() -> None:
    reading = Reading(chat_id=1, observed_at=1_700_000_000, aqi=3)

    with pytest.raises(ValidationError):
        reading.aqi = AirQualityIndex.GOOD  # type: ignore[misc]


def test_naive_datetimes_are_treated_as_utc() -> None:
    reading = Reading(chat_id=1, observed_at=datetime(2026, 1, 1, 8, 0), aqi=1)

    assert reading.observed_at == datetime(2026, 1, 1, 8, 0, tzinfo=UTC)


def test_location_bounds() -> None:
    with pytest.raises(ValidationError):
        Location(latitude=91.0, longitude=0.0)
    with pytest.raises(ValidationError):
        Location(latitude=0.0, longitude=-181.0)


def test_index_labels_and_descriptions() -> None:
    assert AirQualityIndex.GOOD.label == "🟩 (Good)"
    assert AirQualityIndex.VERY_POOR.label == "⬛ (Very Poor)"
    assert AirQualityIndex.GOOD.description == "No health implications."
    assert all(level.description for level in AirQualityIndex)


def test_owm_response_parses_into_readings() -> None:
    payload = {
        "coord": {"lon": 50, "lat": 50},
        "list": [
            {
                "main": {"aqi": 1},
                "components": {
                    "co": 201.94053649902344,
                    "no": 0.01877197064459324,
                    "no2": 0.7711350917816162,
                    "o3": 68.66455078125,
                    "so2": 0.6407499313354492,
                    "pm2_5": 0.5,
                    "pm10": 0.540438711643219,
                    "nh3": 0.12369127571582794,
                },
                "dt": 1606147200,
            }
        ],
    }

    response = AirPollutionResponse.model_validate(payload)
    assert response.coord is not None
    assert (response.coord.lat, response.coord.lon) == (50, 50)

    (reading,) = [point.to_reading(7) for point in response.data_points]
    assert reading.chat_id == 7
    assert reading.aqi == AirQualityIndex.GOOD
    assert reading.observed_at == datetime.fromtimestamp(1606147200, tz=UTC)
    assert reading.components["pm2_5"] == 0.5
    assert len(reading.components) == 8


def test_owm_response_with_bad_index_fails_validation() -> None:
    with pytest.raises(ValidationError):
        AirPollutionResponse.model_validate({"list": [{"dt": 1, "main": {"aqi": 9}, "components": {}}]})


def test_out_of_range_epoch_fails_validation() -> None:
    with pytest.raises(ValidationError):
        Reading(chat_id=1, observed_at=1e20, aqi=1)


def test_inbound_updates_decode_by_kind() -> None:
    adapter: TypeAdapter[InboundUpdate] = TypeAdapter(InboundUpdate)

    start = adapter.validate_python({"kind": "start", "chat_id": 3, "language_code": "de"})
    shared = adapter.validate_python(
        {"kind": "location", "chat_id": 3, "user_id": 9, "location": {"latitude": 1, "longitude": 2}}
    )

    assert isinstance(start, StartRequested)
    assert start.language_code == "de"
    assert isinstance(shared, LocationShared)
    assert shared.location == Location(latitude=1, longitude=2)
    with pytest.raises(ValidationError):
        adapter.validate_python({"kind": "weather", "chat_id": 3})
