"""
FastAPI application exposing the weather proxy, with an AWS Lambda handler.
"""

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from mangum import Mangum

from weather_proxy.config import LambdaConfig, ProviderSettings
from weather_proxy.external_api import ValidationError, WeatherAPIError
from weather_proxy.models import ErrorResponse, Units, WeatherQuery, WeatherRecord
from weather_proxy.weather_service import WeatherService

# Configure logging
logging.basicConfig(
    level=LambdaConfig.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    status: {"model": ErrorResponse} for status in (400, 401, 404, 429, 500, 503)
}


@lru_cache(maxsize=1)
def get_settings() -> ProviderSettings:
    """Provider settings, read once from the environment."""
    return ProviderSettings.from_env()


def get_weather_service() -> WeatherService:
    """Build a stateless weather service for the current request."""
    return WeatherService(get_settings())


def build_query(
    city: Optional[str], units: Optional[str], lang: Optional[str]
) -> WeatherQuery:
    """
    Validate raw query parameters.

    Raises:
        ValidationError: With MISSING_CITY_PARAMETER or INVALID_UNITS_PARAMETER
    """
    if city is None or not city.strip():
        raise ValidationError(
            "City parameter is required", code="MISSING_CITY_PARAMETER"
        )

    try:
        units_value = Units(units or Units.METRIC.value)
    except ValueError as e:
        raise ValidationError(
            "Invalid units parameter. Supported values: metric, imperial, standard",
            code="INVALID_UNITS_PARAMETER",
        ) from e

    return WeatherQuery(city=city, units=units_value, language=lang or "en")


# Initialize FastAPI app
app = FastAPI(
    title="Weather Proxy Service",
    description="Current weather lookup by city name",
    version="1.0.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.exception_handler(WeatherAPIError)
async def weather_api_exception_handler(
    request, exc: WeatherAPIError
):  # pylint: disable=unused-argument
    """Render classified errors as {error, code}."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.message, code=exc.code).model_dump(),
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):  # pylint: disable=unused-argument
    """Global exception handler for unhandled errors."""
    logger.error("Unhandled exception: %r", exc)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="An unexpected error occurred", code="INTERNAL_ERROR"
        ).model_dump(),
    )


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint providing API information."""
    return {
        "service": "Weather Proxy Service",
        "version": "1.0.0",
        "status": "active",
        "endpoints": {
            "weather": "/weather?city=London&units=metric&lang=en",
            "health_check": "/health",
            "documentation": "/docs",
        },
    }


# Health check endpoint
@app.get("/health")
async def health_check(service: WeatherService = Depends(get_weather_service)):
    """Health check endpoint reporting provider configuration."""
    return service.health_check()


@app.get("/weather", response_model=WeatherRecord, responses=ERROR_RESPONSES)
async def get_weather(
    city: Optional[str] = Query(None, description="City name to look up"),
    units: Optional[str] = Query(
        "metric", description="metric, imperial or standard"
    ),
    lang: Optional[str] = Query("en", description="Language code"),
    service: WeatherService = Depends(get_weather_service),
):
    """
    Get current weather for a single city.

    Args:
        city: Name of the city
        units: Unit system for the returned values
        lang: Language for condition descriptions

    Returns:
        WeatherRecord: Normalized weather information

    Raises:
        WeatherAPIError: Rendered as {error, code} by the exception handler
    """
    query = build_query(city, units, lang)
    logger.info(
        "Weather lookup for %s (%s, %s)",
        query.city,
        query.units.value,
        query.language,
    )

    try:
        return await service.get_weather(query)
    except WeatherAPIError as e:
        logger.warning(
            "Weather lookup for %s failed: %s (%s)", query.city, e.message, e.code
        )
        raise


# AWS Lambda handler using Mangum
lambda_handler = Mangum(app, lifespan="off")
