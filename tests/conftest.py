"""
Pytest configuration and shared fixtures.
"""

import copy
from datetime import datetime, timezone
from typing import Callable

import pytest

from weather_proxy.config import ProviderSettings
from weather_proxy.models import RawProviderPayload, WeatherQuery, WeatherRecord
from weather_proxy.normalizer import normalize

# 2023-11-14T22:13:20Z
CAPTURED_AT = datetime.fromtimestamp(1700000000, tz=timezone.utc)


class FakeResponse:
    """Minimal stand-in for aiohttp.ClientResponse."""

    def __init__(self, status: int = 200, body=None):
        self.status = status
        self.body = body if body is not None else {}

    async def json(self, content_type=None):  # pylint: disable=unused-argument
        if isinstance(self.body, Exception):
            raise self.body
        return self.body


class _RequestContext:
    def __init__(self, outcome):
        self.outcome = outcome

    async def __aenter__(self):
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome

    async def __aexit__(self, *exc_info):
        return False


class FakeSession:
    """
    Records outbound GETs and replays queued outcomes in order.

    An outcome is either a FakeResponse or an exception raised on entry.
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def get(self, url, params=None, **kwargs):
        self.calls.append((url, dict(params or {}), kwargs))
        if not self.outcomes:
            raise AssertionError(f"Unexpected request to {url}")
        return _RequestContext(self.outcomes.pop(0))


@pytest.fixture
def captured_at() -> datetime:
    return CAPTURED_AT


@pytest.fixture
def fast_settings() -> ProviderSettings:
    """OpenWeatherMap settings with no delay between retries."""
    return ProviderSettings(
        provider="openweathermap", api_key="test_openweather_api_key_123", retry_delay=0
    )


@pytest.fixture
def open_meteo_settings() -> ProviderSettings:
    return ProviderSettings(provider="open-meteo", retry_delay=0)


@pytest.fixture
def mock_openweather_response() -> dict:
    """Mock OpenWeatherMap API response (metric units)."""
    return {
        "coord": {"lon": -0.1257, "lat": 51.5085},
        "weather": [
            {"id": 500, "main": "Rain", "description": "light rain", "icon": "10d"}
        ],
        "main": {
            "temp": 14.52,
            "feels_like": 13.9,
            "temp_min": 12.5,
            "temp_max": 16.49,
            "pressure": 1012,
            "humidity": 78,
            "sea_level": 1012,
            "grnd_level": 1008,
        },
        "visibility": 10000,
        "wind": {"speed": 4.12, "deg": 240},
        "rain": {"1h": 0.35},
        "clouds": {"all": 75},
        "dt": 1699999200,
        "sys": {"country": "GB", "sunrise": 1699946000, "sunset": 1699979000},
        "timezone": 0,
        "name": "London",
        "cod": 200,
    }


@pytest.fixture
def mock_geocoding_response() -> dict:
    return {
        "results": [
            {
                "id": 1850147,
                "name": "Tokyo",
                "latitude": 35.6895,
                "longitude": 139.69171,
                "country_code": "JP",
                "timezone": "Asia/Tokyo",
            }
        ]
    }


@pytest.fixture
def mock_open_meteo_response() -> dict:
    return {
        "latitude": 35.7,
        "longitude": 139.6875,
        "utc_offset_seconds": 32400,
        "timezone": "Asia/Tokyo",
        "current": {
            "time": 1699999200,
            "interval": 900,
            "temperature_2m": 18.4,
            "relative_humidity_2m": 55,
            "apparent_temperature": 17.6,
            "is_day": 0,
            "rain": 0.0,
            "snowfall": 0.0,
            "weather_code": 3,
            "cloud_cover": 100,
            "pressure_msl": 1018.2,
            "surface_pressure": 1015.9,
            "wind_speed_10m": 3.41,
            "wind_direction_10m": 350,
            "wind_gusts_10m": 7.2,
            "visibility": 24140.0,
        },
        "daily": {
            "time": [1699974000],
            "temperature_2m_max": [20.1],
            "temperature_2m_min": [12.6],
            "sunrise": [1699995000],
            "sunset": [1700032000],
        },
    }


@pytest.fixture
def record_factory(mock_openweather_response) -> Callable[[str], WeatherRecord]:
    """Build a normalized record for an arbitrary city name."""

    def make(city: str) -> WeatherRecord:
        data = copy.deepcopy(mock_openweather_response)
        data["name"] = city
        raw = RawProviderPayload(provider="openweathermap", data=data)
        return normalize(raw, WeatherQuery(city=city), CAPTURED_AT)

    return make
