"""
External API client for weather/geocoding providers.

The client owns transport concerns (timeouts, retries, sessions and error
classification). Provider-specific request building lives in
``weather_proxy.providers``.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp

from weather_proxy.config import ProviderSettings
from weather_proxy.models import Location, RawProviderPayload, WeatherQuery
from weather_proxy.retry_service import RetryConfig, RetryError, api_retry

logger = logging.getLogger(__name__)

GetJSON = Callable[[str, Dict[str, Any]], Awaitable[Dict[str, Any]]]


class WeatherAPIError(Exception):
    """Base exception for weather API errors."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        super().__init__(message)


class ValidationError(WeatherAPIError):
    """Bad or missing query parameters."""

    status_code = 400
    code = "INVALID_PARAMETER"


class NotFound(WeatherAPIError):
    status_code = 404
    code = "CITY_NOT_FOUND"


class AuthError(WeatherAPIError):
    """Credentials rejected by the provider."""

    status_code = 401
    code = "INVALID_API_KEY"


class MissingCredentialsError(AuthError):
    """A required credential is not configured on the server."""

    status_code = 500
    code = "API_KEY_NOT_CONFIGURED"


class RateLimited(WeatherAPIError):
    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"


class Unavailable(WeatherAPIError):
    """Transient failures exhausted the retry budget."""

    status_code = 503
    code = "SERVICE_UNAVAILABLE"

    def __init__(self, message: str, attempts: int = 0):
        self.attempts = attempts
        super().__init__(message)


class UpstreamError(WeatherAPIError):
    """Unclassified non-2xx response from the provider."""

    code = "API_ERROR"

    def __init__(self, message: str, provider_status: Optional[int] = None):
        self.provider_status = provider_status
        status = provider_status if provider_status and provider_status >= 400 else 500
        super().__init__(message, status_code=status)


class InternalError(WeatherAPIError):
    status_code = 500
    code = "INTERNAL_ERROR"


class WeatherProvider:
    """
    Provider-agnostic interface.

    Subclasses implement ``fetch_current_conditions`` and, when the provider
    cannot take a city name directly, ``resolve_location``.
    """

    name = ""
    source = ""
    requires_api_key = False

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key

    async def resolve_location(
        self, query: WeatherQuery, get_json: GetJSON
    ) -> Optional[Location]:
        """Geocode the query. Providers that accept city names return None."""
        return None

    async def fetch_current_conditions(
        self, query: WeatherQuery, location: Optional[Location], get_json: GetJSON
    ) -> Dict[str, Any]:
        raise NotImplementedError

    def error_message(self, body: Dict[str, Any]) -> Optional[str]:
        return body.get("message")

    def classify_error(
        self, status: int, body: Dict[str, Any], query: WeatherQuery
    ) -> WeatherAPIError:
        """Map a non-2xx provider response onto the error taxonomy."""
        if status == 404:
            return NotFound(f"City '{query.city}' not found")
        if status == 401:
            return AuthError("Invalid API key")
        if status == 429:
            return RateLimited("API rate limit exceeded")

        message = self.error_message(body) or "Failed to fetch weather data"
        return UpstreamError(message, provider_status=status)


class WeatherProviderClient:
    """
    Asynchronous provider client with per-call timeout and retry.
    """

    def __init__(
        self,
        provider: WeatherProvider,
        settings: ProviderSettings,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize the provider client.

        Args:
            provider: Provider implementation to call
            settings: Timeout and retry settings
            session: Shared aiohttp session; one is opened per lookup if omitted
        """
        self.provider = provider
        self.settings = settings
        self.timeout = aiohttp.ClientTimeout(total=settings.timeout)
        self._session = session

        self.retry_config = RetryConfig(
            max_attempts=settings.max_attempts, delay=settings.retry_delay
        )

    async def resolve_and_fetch(self, query: WeatherQuery) -> RawProviderPayload:
        """
        Resolve the query's location if needed and fetch current conditions.

        Args:
            query: Validated weather query

        Returns:
            RawProviderPayload: Provider data with the number of calls made

        Raises:
            WeatherAPIError: Classified provider or transport failure
        """
        if self.provider.requires_api_key and not self.provider.api_key:
            logger.error("%s API key is not configured", self.provider.name)
            raise MissingCredentialsError("Weather API key not configured")

        if self._session is not None:
            return await self._resolve_and_fetch(self._session, query)

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            return await self._resolve_and_fetch(session, query)

    async def _resolve_and_fetch(
        self, session: aiohttp.ClientSession, query: WeatherQuery
    ) -> RawProviderPayload:
        calls = 0

        async def get_json(url: str, params: Dict[str, Any]) -> Dict[str, Any]:
            nonlocal calls
            calls += 1
            return await self._get_json(session, url, params, query)

        location = await self.provider.resolve_location(query, get_json)
        data = await self.provider.fetch_current_conditions(query, location, get_json)

        logger.debug(
            "Fetched %s conditions for %s in %d call(s)",
            self.provider.name,
            query.city,
            calls,
        )
        return RawProviderPayload(
            provider=self.provider.name, data=data, location=location, api_calls=calls
        )

    async def _get_json(
        self,
        session: aiohttp.ClientSession,
        url: str,
        params: Dict[str, Any],
        query: WeatherQuery,
    ) -> Dict[str, Any]:

        @api_retry(self.retry_config)
        async def _get_with_retry() -> Dict[str, Any]:
            async with session.get(
                url, params=params, timeout=self.timeout
            ) as response:
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = None
                if not isinstance(body, dict):
                    body = {}

                if 200 <= response.status < 300:
                    return body

                logger.warning(
                    "%s returned status %d for %s",
                    self.provider.name,
                    response.status,
                    query.city,
                )
                raise self.provider.classify_error(response.status, body, query)

        try:
            return await _get_with_retry()
        except RetryError as e:
            raise Unavailable(
                "Weather service unavailable", attempts=e.attempts
            ) from e
        except aiohttp.ClientError as e:
            logger.error("Non-transient transport error for %s: %r", query.city, e)
            raise UpstreamError("Failed to fetch weather data") from e
