"""
Configuration constants and provider settings.
"""

import os
from typing import Optional

from pydantic import BaseModel


class RetryConfig:
    """Retry configuration for outbound provider calls"""

    # 1 initial attempt + 2 retries, fixed delay between attempts
    API_MAX_ATTEMPTS = 3
    API_BASE_DELAY = 1.0


class ExternalAPIConfig:
    """External API configuration"""

    OPENWEATHER_BASE_URL = "https://api.openweathermap.org/data/2.5"
    OPEN_METEO_GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"
    OPEN_METEO_FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
    REQUEST_TIMEOUT = 15


class LambdaConfig:
    """Lambda-specific configuration"""

    # Environment variables
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    WEATHER_PROVIDER = os.getenv("WEATHER_PROVIDER", "openweathermap")


class ProviderSettings(BaseModel):
    """Explicit settings handed to the provider client at construction."""

    provider: str = "openweathermap"
    api_key: Optional[str] = None
    timeout: float = ExternalAPIConfig.REQUEST_TIMEOUT
    max_attempts: int = RetryConfig.API_MAX_ATTEMPTS
    retry_delay: float = RetryConfig.API_BASE_DELAY

    @classmethod
    def from_env(cls) -> "ProviderSettings":
        """Build settings from the process environment."""
        return cls(
            provider=os.getenv("WEATHER_PROVIDER", LambdaConfig.WEATHER_PROVIDER),
            api_key=os.getenv("OPENWEATHER_API_KEY") or None,
        )
