"""
Client-side weather store.

Holds the current weather record, the fetch status and a bounded search
history. Every transition replaces the immutable ``WeatherState`` snapshot
in one step; listeners are notified with the new snapshot.
"""

import logging
from enum import Enum
from typing import Callable, List, Optional, Tuple

import aiohttp
from pydantic import BaseModel, ConfigDict

from weather_proxy.config import ExternalAPIConfig
from weather_proxy.models import Units, WeatherRecord

logger = logging.getLogger(__name__)

MAX_HISTORY = 10
DEFAULT_ERROR_MESSAGE = "Failed to fetch weather data"


class FetchStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    FAILED = "failed"


class WeatherState(BaseModel):
    """Immutable snapshot of the store."""

    model_config = ConfigDict(frozen=True)

    status: FetchStatus = FetchStatus.IDLE
    current_weather: Optional[WeatherRecord] = None
    error: Optional[str] = None
    search_history: Tuple[str, ...] = ()
    last_city: Optional[str] = None

    @property
    def loading(self) -> bool:
        return self.status == FetchStatus.LOADING


class WeatherLookupError(Exception):
    """Error body returned by the weather endpoint."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)


class WeatherAPIClient:
    """
    HTTP client for the weather proxy's ``/weather`` endpoint.
    """

    def __init__(  # pylint: disable=too-many-arguments,R0917
        self,
        base_url: str,
        units: Units = Units.METRIC,
        language: str = "en",
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = ExternalAPIConfig.REQUEST_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.units = units
        self.language = language
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session

    async def get_weather(self, city: str) -> WeatherRecord:
        """
        Fetch the normalized record for a city.

        Raises:
            WeatherLookupError: When the endpoint answers with an error body
        """
        if self._session is not None:
            return await self._get_weather(self._session, city)

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            return await self._get_weather(session, city)

    async def _get_weather(
        self, session: aiohttp.ClientSession, city: str
    ) -> WeatherRecord:
        params = {"city": city, "units": self.units.value, "lang": self.language}

        async with session.get(
            f"{self.base_url}/weather", params=params, timeout=self.timeout
        ) as response:
            body = await response.json(content_type=None)

            if response.status == 200:
                return WeatherRecord.model_validate(body)

            body = body if isinstance(body, dict) else {}
            raise WeatherLookupError(
                body.get("error") or DEFAULT_ERROR_MESSAGE,
                code=body.get("code"),
                status_code=response.status,
            )


class WeatherStore:
    """
    Single-city weather state with last-issued-wins fetch semantics.
    """

    def __init__(self, api_client: WeatherAPIClient):
        self._api_client = api_client
        self._state = WeatherState()
        self._request_seq = 0
        self._listeners: List[Callable[[WeatherState], None]] = []

    @property
    def state(self) -> WeatherState:
        return self._state

    def subscribe(
        self, listener: Callable[[WeatherState], None]
    ) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _replace(self, **changes) -> WeatherState:
        self._state = self._state.model_copy(update=changes)
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    async def fetch(self, city: str) -> WeatherState:
        """
        Fetch weather for a city.

        A fetch issued later always wins: if another fetch starts before this
        one settles, this one's outcome is discarded.

        Args:
            city: City name to look up

        Returns:
            WeatherState: The state after this fetch settled
        """
        self._request_seq += 1
        request_id = self._request_seq
        self._replace(status=FetchStatus.LOADING, error=None, last_city=city)

        try:
            record = await self._api_client.get_weather(city)
        except WeatherLookupError as e:
            outcome = {
                "status": FetchStatus.FAILED,
                "current_weather": None,
                "error": e.message,
            }
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.warning("Weather request for %s failed: %r", city, e)
            outcome = {
                "status": FetchStatus.FAILED,
                "current_weather": None,
                "error": DEFAULT_ERROR_MESSAGE,
            }
        else:
            outcome = {
                "status": FetchStatus.SUCCESS,
                "current_weather": record,
                "error": None,
            }

        if request_id != self._request_seq:
            logger.debug("Discarding superseded response for %s", city)
            return self._state

        return self._replace(**outcome)

    async def search(self, city: str) -> WeatherState:
        """Trim the input, record it in history and fetch it."""
        city = city.strip()
        if not city:
            return self._state

        self.add_to_history(city)
        return await self.fetch(city)

    async def retry(self) -> WeatherState:
        """Re-issue the most recent fetch."""
        if self._state.last_city is None:
            return self._state
        return await self.fetch(self._state.last_city)

    def clear_error(self) -> WeatherState:
        status = self._state.status
        if status == FetchStatus.FAILED:
            status = FetchStatus.IDLE
        return self._replace(error=None, status=status)

    def add_to_history(self, city: str) -> WeatherState:
        history = (city,) + tuple(c for c in self._state.search_history if c != city)
        return self._replace(search_history=history[:MAX_HISTORY])

    def clear_history(self) -> WeatherState:
        return self._replace(search_history=())
