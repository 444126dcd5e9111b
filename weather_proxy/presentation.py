"""
Display choices derived from store state.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from weather_proxy.models import Units, WeatherRecord
from weather_proxy.normalizer import KELVIN_OFFSET

DEFAULT_THEME = "default"


class TextPalette(BaseModel):
    """Text colour classes for primary, secondary and accent text."""

    model_config = ConfigDict(frozen=True)

    primary: str
    secondary: str
    accent: str


DEFAULT_PALETTE = TextPalette(
    primary="text-white", secondary="text-blue-100", accent="text-white/80"
)
DARK_TEXT = TextPalette(
    primary="text-gray-800", secondary="text-gray-700", accent="text-gray-600"
)
LIGHT_TEXT = TextPalette(
    primary="text-white", secondary="text-gray-100", accent="text-white/80"
)


def to_celsius(temperature: float, units: Units) -> float:
    if units == Units.IMPERIAL:
        return (temperature - 32) * 5 / 9
    if units == Units.STANDARD:
        return temperature - KELVIN_OFFSET
    return temperature


def temperature_color(temperature: float, units: Units = Units.METRIC) -> str:
    """Colour class for a temperature reading."""
    celsius = to_celsius(temperature, units)
    if celsius <= 0:
        return "blue-600"
    if celsius <= 15:
        return "blue-400"
    if celsius <= 25:
        return "green-500"
    if celsius <= 35:
        return "yellow-500"
    return "red-500"


def _temperature_theme(celsius: float) -> str:
    if celsius <= 0:
        return "freezing"
    if celsius <= 10:
        return "very-cold"
    if celsius <= 20:
        return "cold"
    if celsius <= 25:
        return "mild"
    if celsius <= 30:
        return "warm"
    if celsius <= 35:
        return "hot"
    return "scorching"


def background_theme(record: Optional[WeatherRecord]) -> str:
    """
    Background theme for the current record.

    The weather condition takes priority; temperature is the fallback.
    """
    if record is None:
        return DEFAULT_THEME

    main = record.condition.main.lower()
    description = record.condition.description.lower()

    if main == "clear" or "sunny" in description:
        return "sunny"
    if main in ("rain", "drizzle") or "drizzle" in description:
        return "rainy"
    if main == "thunderstorm" or "storm" in description:
        return "stormy"
    if main == "snow" or "blizzard" in description:
        return "snowy"
    if main in ("mist", "fog", "haze") or "fog" in description:
        return "foggy"
    if main == "clouds" or "cloud" in description:
        return "cloudy"

    return _temperature_theme(
        to_celsius(record.temperature, record.meta.requested_units)
    )


def text_palette(record: Optional[WeatherRecord]) -> TextPalette:
    """Dark text over light backgrounds, light text otherwise."""
    if record is None:
        return DEFAULT_PALETTE

    main = record.condition.main.lower()
    description = record.condition.description.lower()
    celsius = to_celsius(record.temperature, record.meta.requested_units)

    light_background = (
        main in ("clear", "snow")
        or "sunny" in description
        or "fog" in description
        or "mist" in description
        or celsius > 25
    )
    return DARK_TEXT if light_background else LIGHT_TEXT
