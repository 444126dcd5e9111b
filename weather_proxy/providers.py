"""
Concrete weather providers.
"""

import logging
from typing import Any, Dict, Optional

from weather_proxy.config import ExternalAPIConfig, ProviderSettings
from weather_proxy.external_api import GetJSON, NotFound, WeatherProvider
from weather_proxy.models import Location, Units, WeatherQuery

logger = logging.getLogger(__name__)


class OpenWeatherMapProvider(WeatherProvider):
    """OpenWeatherMap current weather API. Accepts city names directly."""

    name = "openweathermap"
    source = "OpenWeatherMap Current Weather API"
    requires_api_key = True

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None):
        super().__init__(api_key)
        self.base_url = base_url or ExternalAPIConfig.OPENWEATHER_BASE_URL

    async def fetch_current_conditions(
        self, query: WeatherQuery, location: Optional[Location], get_json: GetJSON
    ) -> Dict[str, Any]:
        params = {
            "q": query.city,
            "appid": self.api_key,
            "units": query.units.value,
            "lang": query.language,
        }
        logger.debug("Requesting OpenWeatherMap data for city: %s", query.city)
        return await get_json(f"{self.base_url}/weather", params)


class OpenMeteoProvider(WeatherProvider):
    """
    Open-Meteo geocoding + forecast APIs.

    Needs a geocoding call before the conditions call and reports WMO
    numeric weather codes instead of descriptions.
    """

    name = "open-meteo"
    source = "Open-Meteo Forecast API"

    CURRENT_FIELDS = (
        "temperature_2m",
        "relative_humidity_2m",
        "apparent_temperature",
        "is_day",
        "rain",
        "snowfall",
        "weather_code",
        "cloud_cover",
        "pressure_msl",
        "surface_pressure",
        "wind_speed_10m",
        "wind_direction_10m",
        "wind_gusts_10m",
        "visibility",
    )
    DAILY_FIELDS = ("temperature_2m_max", "temperature_2m_min", "sunrise", "sunset")

    def __init__(
        self,
        api_key: Optional[str] = None,
        geocoding_url: Optional[str] = None,
        forecast_url: Optional[str] = None,
    ):
        super().__init__(api_key)
        self.geocoding_url = geocoding_url or ExternalAPIConfig.OPEN_METEO_GEOCODING_URL
        self.forecast_url = forecast_url or ExternalAPIConfig.OPEN_METEO_FORECAST_URL

    async def resolve_location(
        self, query: WeatherQuery, get_json: GetJSON
    ) -> Optional[Location]:
        params = {
            "name": query.city,
            "count": 1,
            "language": query.language,
            "format": "json",
        }
        data = await get_json(self.geocoding_url, params)

        results = data.get("results") or []
        if not results:
            logger.warning("No geocoding match for %s", query.city)
            raise NotFound(f"City '{query.city}' not found")

        match = results[0]
        return Location(
            name=match.get("name", query.city),
            country=match.get("country_code"),
            latitude=match["latitude"],
            longitude=match["longitude"],
            timezone=match.get("timezone"),
        )

    async def fetch_current_conditions(
        self, query: WeatherQuery, location: Optional[Location], get_json: GetJSON
    ) -> Dict[str, Any]:
        if location is None:
            raise ValueError("Open-Meteo needs a resolved location")

        imperial = query.units == Units.IMPERIAL
        params = {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "current": ",".join(self.CURRENT_FIELDS),
            "daily": ",".join(self.DAILY_FIELDS),
            "timezone": "auto",
            "timeformat": "unixtime",
            "forecast_days": 1,
            # No Kelvin support; standard is converted from Celsius
            "temperature_unit": "fahrenheit" if imperial else "celsius",
            "wind_speed_unit": "mph" if imperial else "ms",
            "precipitation_unit": "mm",
        }
        return await get_json(self.forecast_url, params)

    def error_message(self, body: Dict[str, Any]) -> Optional[str]:
        return body.get("reason")


PROVIDERS = {
    OpenWeatherMapProvider.name: OpenWeatherMapProvider,
    OpenMeteoProvider.name: OpenMeteoProvider,
}


def build_provider(settings: ProviderSettings) -> WeatherProvider:
    """Instantiate the provider named in the settings."""
    try:
        provider_class = PROVIDERS[settings.provider]
    except KeyError as e:
        raise ValueError(
            f"Unknown weather provider '{settings.provider}'. "
            f"Supported values: {', '.join(sorted(PROVIDERS))}"
        ) from e
    return provider_class(api_key=settings.api_key)
