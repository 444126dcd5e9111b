"""
Response normalizer tests.
"""

import copy
from datetime import timedelta, timezone

import pytest

from weather_proxy.models import Location, RawProviderPayload, Units, WeatherQuery
from weather_proxy.normalizer import (
    UNKNOWN_ICON,
    convert_visibility,
    local_time_at,
    lookup_wmo_condition,
    normalize,
    round_temperature,
)


@pytest.fixture
def owm_raw(mock_openweather_response):
    return RawProviderPayload(provider="openweathermap", data=mock_openweather_response)


@pytest.fixture
def open_meteo_raw(mock_open_meteo_response):
    return RawProviderPayload(
        provider="open-meteo",
        data=mock_open_meteo_response,
        location=Location(
            name="Tokyo",
            country="JP",
            latitude=35.6895,
            longitude=139.69171,
            timezone="Asia/Tokyo",
        ),
        api_calls=2,
    )


class TestOpenWeatherMap:
    def test_field_mapping(self, owm_raw, captured_at):
        record = normalize(owm_raw, WeatherQuery(city="London"), captured_at)

        assert record.city == "London"
        assert record.country == "GB"
        assert record.temperature == 15
        assert record.feels_like == 14
        assert record.temp_min == 13
        assert record.temp_max == 16
        assert record.humidity == 78
        assert record.pressure == 1012
        assert record.sea_level == 1012
        assert record.ground_level == 1008
        assert record.cloud_cover == 75
        assert record.visibility == 10.0
        assert record.condition.description == "light rain"
        assert record.condition.icon == "10d"
        assert record.coordinates.lat == 51.5085
        assert record.meta.api_calls_used == 1
        assert record.meta.source == "OpenWeatherMap Current Weather API"

    def test_missing_optional_fields_are_absent_not_zero(self, owm_raw, captured_at):
        del owm_raw.data["main"]["sea_level"]
        del owm_raw.data["main"]["grnd_level"]
        del owm_raw.data["visibility"]

        record = normalize(owm_raw, WeatherQuery(city="London"), captured_at)

        assert record.wind.gust is None
        assert record.sea_level is None
        assert record.ground_level is None
        assert record.visibility is None
        assert record.precipitation.snow is None

    def test_precipitation_windows(self, owm_raw, captured_at):
        owm_raw.data["snow"] = {"3h": 1.2}

        record = normalize(owm_raw, WeatherQuery(city="London"), captured_at)

        assert record.precipitation.rain.one_hour == 0.35
        assert record.precipitation.rain.three_hours is None
        # Parent present: a missing 1h window means no snow in that hour
        assert record.precipitation.snow.one_hour == 0
        assert record.precipitation.snow.three_hours == 1.2

    def test_imperial_visibility_in_miles(self, owm_raw, captured_at):
        query = WeatherQuery(city="London", units=Units.IMPERIAL)

        record = normalize(owm_raw, query, captured_at)

        assert record.visibility == 6.21
        assert record.units.visibility == "miles"

    def test_wind_gust_rounded(self, owm_raw, captured_at):
        owm_raw.data["wind"]["gust"] = 9.8765

        record = normalize(owm_raw, WeatherQuery(city="London"), captured_at)

        assert record.wind.gust == 9.88
        assert record.wind.direction == 240

    def test_empty_weather_list_uses_unknown_condition(self, owm_raw, captured_at):
        owm_raw.data["weather"] = []

        record = normalize(owm_raw, WeatherQuery(city="London"), captured_at)

        assert record.condition.icon == UNKNOWN_ICON

    @pytest.mark.parametrize("offset", [3600, -18000])
    def test_sun_times_are_epoch_plus_offset(self, owm_raw, captured_at, offset):
        owm_raw.data["timezone"] = offset

        record = normalize(owm_raw, WeatherQuery(city="London"), captured_at)

        assert record.sun.sunrise.timestamp() == 1699946000 + offset
        assert record.sun.sunset.timestamp() == 1699979000 + offset
        assert record.sun.sunrise.utcoffset() == timedelta(0)


class TestOpenMeteo:
    def test_field_mapping(self, open_meteo_raw, captured_at):
        record = normalize(open_meteo_raw, WeatherQuery(city="tokyo"), captured_at)

        assert record.city == "Tokyo"
        assert record.country == "JP"
        assert record.temperature == 18
        assert record.feels_like == 18
        assert record.temp_min == 13
        assert record.temp_max == 20
        assert record.humidity == 55
        assert record.pressure == 1018.2
        assert record.ground_level == 1015.9
        assert record.visibility == 24.14
        assert record.wind.speed == 3.41
        assert record.wind.gust == 7.2
        assert record.coordinates.lon == 139.69171
        assert record.timezone_offset == 32400
        assert record.meta.api_calls_used == 2
        assert record.meta.source == "Open-Meteo Forecast API"

    def test_condition_from_code_table(self, open_meteo_raw, captured_at):
        record = normalize(open_meteo_raw, WeatherQuery(city="Tokyo"), captured_at)

        assert record.condition.code == 3
        assert record.condition.main == "Clouds"
        assert record.condition.description == "overcast"
        assert record.condition.icon == "04n"

    def test_zero_precipitation_when_reported(self, open_meteo_raw, captured_at):
        record = normalize(open_meteo_raw, WeatherQuery(city="Tokyo"), captured_at)

        assert record.precipitation.rain.one_hour == 0
        assert record.precipitation.snow.one_hour == 0

    def test_snowfall_centimetres_to_millimetres(self, open_meteo_raw, captured_at):
        open_meteo_raw.data["current"]["snowfall"] = 0.7

        record = normalize(open_meteo_raw, WeatherQuery(city="Tokyo"), captured_at)

        assert record.precipitation.snow.one_hour == 7.0

    def test_missing_gust_is_absent(self, open_meteo_raw, captured_at):
        del open_meteo_raw.data["current"]["wind_gusts_10m"]

        record = normalize(open_meteo_raw, WeatherQuery(city="Tokyo"), captured_at)

        assert record.wind.gust is None

    def test_standard_units_converted_to_kelvin(self, open_meteo_raw, captured_at):
        query = WeatherQuery(city="Tokyo", units=Units.STANDARD)

        record = normalize(open_meteo_raw, query, captured_at)

        assert record.temperature == 292
        assert record.temp_max == 293
        assert record.units.temperature == "K"


class TestUnitLabels:
    @pytest.mark.parametrize(
        "units,temperature,wind,visibility",
        [
            (Units.METRIC, "°C", "m/s", "km"),
            (Units.IMPERIAL, "°F", "mph", "miles"),
            (Units.STANDARD, "K", "m/s", "km"),
        ],
    )
    def test_labels_match_requested_units(
        self, owm_raw, open_meteo_raw, captured_at, units, temperature, wind, visibility
    ):
        for raw in (owm_raw, open_meteo_raw):
            record = normalize(raw, WeatherQuery(city="X", units=units), captured_at)

            assert record.units.temperature == temperature
            assert record.units.wind_speed == wind
            assert record.units.pressure == "hPa"
            assert record.units.visibility == visibility
            assert record.units.precipitation == "mm"
            assert record.meta.requested_units == units


class TestLocalTime:
    @pytest.mark.parametrize("offset", [0, 32400, -18000, 19800, -34200])
    def test_local_time_is_capture_plus_offset(self, owm_raw, captured_at, offset):
        owm_raw.data["timezone"] = offset

        record = normalize(owm_raw, WeatherQuery(city="London"), captured_at)

        assert record.local_time == captured_at + timedelta(seconds=offset)
        assert record.timezone_offset == offset

    def test_open_meteo_times_shifted_by_utc_offset(self, open_meteo_raw, captured_at):
        record = normalize(open_meteo_raw, WeatherQuery(city="Tokyo"), captured_at)

        assert record.local_time == captured_at + timedelta(seconds=32400)
        assert record.local_time.hour == 7
        assert record.sun.sunrise.timestamp() == 1699995000 + 32400
        assert record.sun.sunset.timestamp() == 1700032000 + 32400

    def test_naive_capture_time_is_treated_as_utc(self, captured_at):
        naive = captured_at.replace(tzinfo=None)

        local = local_time_at(naive, -3600)

        assert local == captured_at - timedelta(hours=1)
        assert local.tzinfo is not None

    def test_normalization_is_reproducible(self, owm_raw, open_meteo_raw, captured_at):
        for raw in (owm_raw, open_meteo_raw):
            query = WeatherQuery(city="X")
            first = normalize(copy.deepcopy(raw), query, captured_at)
            second = normalize(copy.deepcopy(raw), query, captured_at)

            assert first.model_dump_json() == second.model_dump_json()

    def test_data_timestamp_is_utc(self, owm_raw, captured_at):
        record = normalize(owm_raw, WeatherQuery(city="London"), captured_at)

        assert record.data_timestamp.tzinfo == timezone.utc
        assert record.data_timestamp.timestamp() == 1699999200


class TestHelpers:
    @pytest.mark.parametrize(
        "value,expected", [(14.5, 15), (14.49, 14), (-0.5, 0), (-2.6, -3), (0, 0)]
    )
    def test_round_temperature(self, value, expected):
        assert round_temperature(value) == expected

    def test_convert_visibility(self):
        assert convert_visibility(None, Units.METRIC) is None
        assert convert_visibility(1609.34, Units.IMPERIAL) == 1.0
        assert convert_visibility(8500, Units.STANDARD) == 8.5

    @pytest.mark.parametrize("code", [4, 100, -1, None])
    def test_unknown_codes_map_to_default(self, code):
        condition = lookup_wmo_condition(code)

        assert condition.main == "Unknown"
        assert condition.description == "unknown"
        assert condition.icon == UNKNOWN_ICON

    def test_day_and_night_icons(self):
        assert lookup_wmo_condition(0, is_day=True).icon == "01d"
        assert lookup_wmo_condition(0, is_day=False).icon == "01n"
        assert lookup_wmo_condition(95).main == "Thunderstorm"

    def test_unknown_provider(self, captured_at):
        raw = RawProviderPayload(provider="weatherstack", data={})

        with pytest.raises(ValueError):
            normalize(raw, WeatherQuery(city="X"), captured_at)
