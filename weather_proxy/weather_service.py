"""
Weather service layer tying the provider client to the normalizer.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import aiohttp

from weather_proxy.config import ProviderSettings
from weather_proxy.external_api import (
    InternalError,
    WeatherAPIError,
    WeatherProviderClient,
)
from weather_proxy.models import WeatherQuery, WeatherRecord
from weather_proxy.normalizer import normalize
from weather_proxy.providers import build_provider

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WeatherService:
    """
    Weather service that handles the fetch-normalize pipeline.
    """

    def __init__(
        self,
        settings: ProviderSettings,
        session: Optional[aiohttp.ClientSession] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the weather service.

        Args:
            settings: Provider selection, credentials, timeout and retry settings
            session: Optional shared aiohttp session
            clock: Source of the UTC capture instant
        """
        self.settings = settings
        self.provider = build_provider(settings)
        self.api_client = WeatherProviderClient(self.provider, settings, session)
        self.clock = clock

    async def get_weather(self, query: WeatherQuery) -> WeatherRecord:
        """
        Get normalized weather information for a single city.

        Args:
            query: Validated weather query

        Returns:
            WeatherRecord: Normalized weather data

        Raises:
            WeatherAPIError: If weather data cannot be retrieved
        """
        try:
            raw = await self.api_client.resolve_and_fetch(query)
            return normalize(raw, query, self.clock())

        except WeatherAPIError:
            # Re-raise API errors as-is
            raise
        except Exception as e:
            logger.exception(
                "Unexpected error in weather service for %s", query.city
            )
            raise InternalError("Failed to fetch weather data") from e

    def health_check(self) -> Dict[str, Any]:
        """
        Report service configuration without calling the provider.

        Returns:
            Dict with health status information
        """
        credentials_ok = not self.provider.requires_api_key or bool(
            self.provider.api_key
        )
        return {
            "status": "healthy" if credentials_ok else "unhealthy",
            "timestamp": self.clock().isoformat(),
            "checks": {
                "provider": self.provider.name,
                "credentials": "configured" if credentials_ok else "missing",
            },
        }
