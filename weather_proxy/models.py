"""
Pydantic models for request/response validation.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


class Units(str, Enum):
    """Unit systems accepted by the weather endpoint."""

    METRIC = "metric"
    IMPERIAL = "imperial"
    STANDARD = "standard"


class WeatherQuery(BaseModel):
    """A single-city weather lookup."""

    city: str
    units: Units = Units.METRIC
    language: str = "en"

    @field_validator("city")
    @classmethod
    def city_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("City name cannot be empty")
        return value


class Location(BaseModel):
    """Result of a geocoding lookup."""

    name: str
    country: Optional[str] = None
    latitude: float
    longitude: float
    timezone: Optional[str] = None


class RawProviderPayload(BaseModel):
    """Unnormalized provider response plus what it took to get it."""

    provider: str
    data: Dict[str, Any]
    location: Optional[Location] = None
    api_calls: int = 1


class Condition(BaseModel):
    code: Optional[int] = None
    main: str
    description: str
    icon: str


class Wind(BaseModel):
    speed: float
    direction: int
    gust: Optional[float] = None


class Accumulation(BaseModel):
    """Precipitation accumulated over the last 1h / 3h, in mm."""

    one_hour: float = 0
    three_hours: Optional[float] = None


class Precipitation(BaseModel):
    rain: Optional[Accumulation] = None
    snow: Optional[Accumulation] = None


class Coordinates(BaseModel):
    lat: float
    lon: float


class SunTimes(BaseModel):
    sunrise: Optional[datetime] = None
    sunset: Optional[datetime] = None


class UnitLabels(BaseModel):
    temperature: str
    wind_speed: str
    pressure: str
    visibility: str
    precipitation: str = "mm"


class RecordMeta(BaseModel):
    requested_units: Units
    requested_language: str
    api_calls_used: int
    source: str


class WeatherRecord(BaseModel):
    """Normalized current conditions for one city."""

    city: str
    country: Optional[str] = None
    temperature: int
    feels_like: int
    temp_min: int
    temp_max: int
    humidity: int
    pressure: float
    sea_level: Optional[float] = None
    ground_level: Optional[float] = None
    cloud_cover: int
    visibility: Optional[float] = None
    condition: Condition
    wind: Wind
    precipitation: Precipitation
    coordinates: Coordinates
    sun: SunTimes
    timezone_offset: int = Field(..., description="Seconds east of UTC")
    local_time: datetime
    data_timestamp: datetime
    captured_at: datetime
    units: UnitLabels
    meta: RecordMeta


class ErrorResponse(BaseModel):
    """Response model for error cases."""

    error: str
    code: str
