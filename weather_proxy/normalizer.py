"""
Response normalizer.

Maps raw provider payloads onto ``WeatherRecord``. Normalization is pure:
every time-derived field is computed from the payload and the capture
instant passed in, never from the wall clock.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from weather_proxy.models import (
    Accumulation,
    Condition,
    Coordinates,
    Precipitation,
    RawProviderPayload,
    RecordMeta,
    SunTimes,
    UnitLabels,
    Units,
    WeatherQuery,
    WeatherRecord,
    Wind,
)
from weather_proxy.providers import PROVIDERS

METERS_PER_MILE = 1609.34
KELVIN_OFFSET = 273.15

UNIT_LABELS = {
    Units.METRIC: UnitLabels(
        temperature="°C", wind_speed="m/s", pressure="hPa", visibility="km"
    ),
    Units.IMPERIAL: UnitLabels(
        temperature="°F", wind_speed="mph", pressure="hPa", visibility="miles"
    ),
    Units.STANDARD: UnitLabels(
        temperature="K", wind_speed="m/s", pressure="hPa", visibility="km"
    ),
}

# WMO weather interpretation codes -> (main, description, icon without d/n)
WMO_CONDITIONS: Dict[int, Tuple[str, str, str]] = {
    0: ("Clear", "clear sky", "01"),
    1: ("Clouds", "mainly clear", "02"),
    2: ("Clouds", "partly cloudy", "03"),
    3: ("Clouds", "overcast", "04"),
    45: ("Fog", "fog", "50"),
    48: ("Fog", "depositing rime fog", "50"),
    51: ("Drizzle", "light drizzle", "09"),
    53: ("Drizzle", "moderate drizzle", "09"),
    55: ("Drizzle", "dense drizzle", "09"),
    56: ("Drizzle", "light freezing drizzle", "09"),
    57: ("Drizzle", "dense freezing drizzle", "09"),
    61: ("Rain", "slight rain", "10"),
    63: ("Rain", "moderate rain", "10"),
    65: ("Rain", "heavy rain", "10"),
    66: ("Rain", "light freezing rain", "13"),
    67: ("Rain", "heavy freezing rain", "13"),
    71: ("Snow", "slight snow fall", "13"),
    73: ("Snow", "moderate snow fall", "13"),
    75: ("Snow", "heavy snow fall", "13"),
    77: ("Snow", "snow grains", "13"),
    80: ("Rain", "slight rain showers", "09"),
    81: ("Rain", "moderate rain showers", "09"),
    82: ("Rain", "violent rain showers", "09"),
    85: ("Snow", "slight snow showers", "13"),
    86: ("Snow", "heavy snow showers", "13"),
    95: ("Thunderstorm", "thunderstorm", "11"),
    96: ("Thunderstorm", "thunderstorm with slight hail", "11"),
    99: ("Thunderstorm", "thunderstorm with heavy hail", "11"),
}

UNKNOWN_MAIN = "Unknown"
UNKNOWN_DESCRIPTION = "unknown"
UNKNOWN_ICON = "unknown"


def round_temperature(value: float) -> int:
    """Round half up to the nearest whole unit."""
    return int(math.floor(value + 0.5))


def convert_visibility(meters: Optional[float], units: Units) -> Optional[float]:
    if meters is None:
        return None
    if units == Units.IMPERIAL:
        return round(meters / METERS_PER_MILE, 2)
    return round(meters / 1000, 2)


def local_time_at(captured_at: datetime, offset_seconds: int) -> datetime:
    """
    Local wall-clock time at the location for a UTC capture instant.

    The result is ``captured_at + offset_seconds`` labelled UTC, so its
    fields read as the local clock and the offset lives in
    ``timezone_offset``.
    """
    if captured_at.tzinfo is None:
        captured_at = captured_at.replace(tzinfo=timezone.utc)
    return captured_at.astimezone(timezone.utc) + timedelta(seconds=offset_seconds)


def epoch_to_local(epoch: Optional[int], offset_seconds: int) -> Optional[datetime]:
    if epoch is None:
        return None
    return datetime.fromtimestamp(epoch + offset_seconds, tz=timezone.utc)


def lookup_wmo_condition(code: Optional[int], is_day: bool = True) -> Condition:
    """Map a WMO weather code to a condition. Unknown codes never raise."""
    entry = WMO_CONDITIONS.get(code) if code is not None else None
    if entry is None:
        return Condition(
            code=code,
            main=UNKNOWN_MAIN,
            description=UNKNOWN_DESCRIPTION,
            icon=UNKNOWN_ICON,
        )

    main, description, icon = entry
    return Condition(
        code=code,
        main=main,
        description=description,
        icon=f"{icon}{'d' if is_day else 'n'}",
    )


def _accumulation(window: Optional[Dict[str, Any]]) -> Optional[Accumulation]:
    # 1h is zero when the parent object exists, 3h stays absent
    if window is None:
        return None
    return Accumulation(one_hour=window.get("1h", 0), three_hours=window.get("3h"))


def _optional_round(value: Optional[float], digits: int = 2) -> Optional[float]:
    return round(value, digits) if value is not None else None


def _meta(raw: RawProviderPayload, query: WeatherQuery) -> RecordMeta:
    return RecordMeta(
        requested_units=query.units,
        requested_language=query.language,
        api_calls_used=raw.api_calls,
        source=PROVIDERS[raw.provider].source,
    )


def normalize_openweathermap(
    raw: RawProviderPayload, query: WeatherQuery, captured_at: datetime
) -> WeatherRecord:
    """OpenWeatherMap already returns values in the requested unit system."""
    data = raw.data
    main = data["main"]
    sys_data = data.get("sys", {})
    wind = data.get("wind") or {}
    offset = data.get("timezone", 0)

    weather = data.get("weather") or []
    if weather:
        condition = Condition(
            code=weather[0].get("id"),
            main=weather[0].get("main", UNKNOWN_MAIN),
            description=weather[0].get("description", UNKNOWN_DESCRIPTION),
            icon=weather[0].get("icon", UNKNOWN_ICON),
        )
    else:
        condition = lookup_wmo_condition(None)

    return WeatherRecord(
        city=data["name"],
        country=sys_data.get("country"),
        temperature=round_temperature(main["temp"]),
        feels_like=round_temperature(main.get("feels_like", main["temp"])),
        temp_min=round_temperature(main.get("temp_min", main["temp"])),
        temp_max=round_temperature(main.get("temp_max", main["temp"])),
        humidity=main["humidity"],
        pressure=main["pressure"],
        sea_level=main.get("sea_level"),
        ground_level=main.get("grnd_level"),
        cloud_cover=(data.get("clouds") or {}).get("all", 0),
        visibility=convert_visibility(data.get("visibility"), query.units),
        condition=condition,
        wind=Wind(
            speed=round(wind.get("speed", 0), 2),
            direction=wind.get("deg", 0),
            gust=_optional_round(wind.get("gust")),
        ),
        precipitation=Precipitation(
            rain=_accumulation(data.get("rain")),
            snow=_accumulation(data.get("snow")),
        ),
        coordinates=Coordinates(lat=data["coord"]["lat"], lon=data["coord"]["lon"]),
        sun=SunTimes(
            sunrise=epoch_to_local(sys_data.get("sunrise"), offset),
            sunset=epoch_to_local(sys_data.get("sunset"), offset),
        ),
        timezone_offset=offset,
        local_time=local_time_at(captured_at, offset),
        data_timestamp=datetime.fromtimestamp(data["dt"], tz=timezone.utc),
        captured_at=captured_at,
        units=UNIT_LABELS[query.units].model_copy(),
        meta=_meta(raw, query),
    )


def normalize_open_meteo(
    raw: RawProviderPayload, query: WeatherQuery, captured_at: datetime
) -> WeatherRecord:
    """
    Open-Meteo has Celsius/Fahrenheit and m/s/mph but no Kelvin, and
    reports visibility in metres and snowfall in centimetres.
    """
    data = raw.data
    current = data["current"]
    daily = data.get("daily") or {}
    offset = data.get("utc_offset_seconds", 0)
    location = raw.location

    def temperature(value: float) -> int:
        if query.units == Units.STANDARD:
            value = value + KELVIN_OFFSET
        return round_temperature(value)

    def first(key: str) -> Optional[Any]:
        values = daily.get(key) or []
        return values[0] if values else None

    temp = current["temperature_2m"]
    temp_min = first("temperature_2m_min")
    temp_max = first("temperature_2m_max")

    rain = current.get("rain")
    snowfall = current.get("snowfall")

    return WeatherRecord(
        city=location.name if location else query.city,
        country=location.country if location else None,
        temperature=temperature(temp),
        feels_like=temperature(current.get("apparent_temperature", temp)),
        temp_min=temperature(temp_min if temp_min is not None else temp),
        temp_max=temperature(temp_max if temp_max is not None else temp),
        humidity=current["relative_humidity_2m"],
        pressure=current["pressure_msl"],
        sea_level=current.get("pressure_msl"),
        ground_level=current.get("surface_pressure"),
        cloud_cover=current.get("cloud_cover", 0),
        visibility=convert_visibility(current.get("visibility"), query.units),
        condition=lookup_wmo_condition(
            current.get("weather_code"), bool(current.get("is_day", 1))
        ),
        wind=Wind(
            speed=round(current.get("wind_speed_10m", 0), 2),
            direction=current.get("wind_direction_10m", 0),
            gust=_optional_round(current.get("wind_gusts_10m")),
        ),
        precipitation=Precipitation(
            rain=Accumulation(one_hour=rain) if rain is not None else None,
            snow=(
                Accumulation(one_hour=round(snowfall * 10, 2))
                if snowfall is not None
                else None
            ),
        ),
        coordinates=Coordinates(
            lat=location.latitude if location else data["latitude"],
            lon=location.longitude if location else data["longitude"],
        ),
        sun=SunTimes(
            sunrise=epoch_to_local(first("sunrise"), offset),
            sunset=epoch_to_local(first("sunset"), offset),
        ),
        timezone_offset=offset,
        local_time=local_time_at(captured_at, offset),
        data_timestamp=datetime.fromtimestamp(current["time"], tz=timezone.utc),
        captured_at=captured_at,
        units=UNIT_LABELS[query.units].model_copy(),
        meta=_meta(raw, query),
    )


NORMALIZERS: Dict[
    str, Callable[[RawProviderPayload, WeatherQuery, datetime], WeatherRecord]
] = {
    "openweathermap": normalize_openweathermap,
    "open-meteo": normalize_open_meteo,
}


def normalize(
    raw: RawProviderPayload, query: WeatherQuery, captured_at: datetime
) -> WeatherRecord:
    """
    Normalize a raw provider payload.

    Args:
        raw: Payload returned by the provider client
        query: The query that produced it
        captured_at: UTC instant the data was captured

    Returns:
        WeatherRecord: Provider-independent weather record
    """
    try:
        normalizer = NORMALIZERS[raw.provider]
    except KeyError as e:
        raise ValueError(f"No normalizer for provider '{raw.provider}'") from e
    return normalizer(raw, query, captured_at)
