"""
OpenWeatherMap Client

Thin async wrapper around the OpenWeatherMap REST API. Every method makes a
single HTTP call (no retry) and either returns a canonical model from
weather.schemas or raises ProviderError with a categorized `kind`.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ConfigurationError, ProviderError
from .schemas import (
    Coordinates,
    GeocodingResult,
    Location,
    Units,
    Weather,
    WeatherQuery,
    WeatherReport,
)

logger = logging.getLogger(__name__)

PROVIDER_NAME = "openweathermap"

DEFAULT_BASE_URL = "https://api.openweathermap.org/data/2.5"
DEFAULT_GEO_URL = "https://api.openweathermap.org/geo/1.0"

DEFAULT_TIMEOUT = 10.0
GEOCODING_TIMEOUT = 5.0
HEALTH_CHECK_TIMEOUT = 5.0

# OpenWeatherMap calls kelvin "standard".
_API_UNITS = {"metric": "metric", "imperial": "imperial", "kelvin": "standard"}


class WeatherClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        geo_url: str = DEFAULT_GEO_URL,
        lang: str = "zh_cn",
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        if not api_key:
            raise ConfigurationError("OpenWeatherMap API key is required.")

        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.geo_url = geo_url.rstrip("/")
        self.lang = lang
        self.timeout = timeout
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    async def get_current_weather(self, query: WeatherQuery) -> WeatherReport:
        logger.info(f"Fetching weather: {query.city}, {query.country}")
        payload = await self._get(
            f"{self.base_url}/weather",
            {
                "q": f"{query.city},{query.country}",
                "units": _API_UNITS[query.units],
                "lang": self.lang,
            },
        )
        report = normalize_weather(payload)
        logger.info(f"Weather fetched: {report.location.city} {report.weather.temperature}°")
        return report

    async def get_weather_by_coordinates(self, lat: float, lon: float, units: Units = "metric") -> WeatherReport:
        logger.info(f"Fetching weather: {lat}, {lon}")
        payload = await self._get(
            f"{self.base_url}/weather",
            {"lat": lat, "lon": lon, "units": _API_UNITS[units], "lang": self.lang},
        )
        return normalize_weather(payload)

    async def geocode(self, city: str, country: Optional[str] = None, limit: int = 1) -> List[GeocodingResult]:
        """City name -> coordinates."""
        query = f"{city},{country}" if country else city
        payload = await self._get(
            f"{self.geo_url}/direct",
            {"q": query, "limit": limit},
            timeout=GEOCODING_TIMEOUT,
        )
        return _parse_geocoding(payload)

    async def reverse_geocode(self, lat: float, lon: float, limit: int = 1) -> List[GeocodingResult]:
        """Coordinates -> place names."""
        payload = await self._get(
            f"{self.geo_url}/reverse",
            {"lat": lat, "lon": lon, "limit": limit},
            timeout=GEOCODING_TIMEOUT,
        )
        return _parse_geocoding(payload)

    async def check_health(self) -> bool:
        """Queries a city that always exists to check the API key and connectivity."""
        try:
            await self._get(
                f"{self.base_url}/weather",
                {"q": "London,GB"},
                timeout=HEALTH_CHECK_TIMEOUT,
            )
            return True
        except ProviderError as e:
            logger.warning(f"Weather service health check failed: {e.message}")
            return False

    async def aclose(self):
        await self._http.aclose()

    # ==========================================================================
    # HTTP
    # ==========================================================================

    async def _get(self, url: str, params: Dict[str, Any], timeout: Optional[float] = None) -> Any:
        # The API key travels as a query parameter; never log the full URL.
        params = {**params, "appid": self.api_key}
        try:
            response = await self._http.get(
                url,
                params=params,
                timeout=self.timeout if timeout is None else timeout,
            )
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            raise ProviderError(
                "Weather request timed out, check the network connection.",
                kind="timeout",
                provider=PROVIDER_NAME,
            ) from e
        except httpx.HTTPStatusError as e:
            raise _status_error(e.response) from e
        except httpx.HTTPError as e:
            raise ProviderError(
                f"Weather service unreachable: {type(e).__name__}",
                kind="network",
                provider=PROVIDER_NAME,
            ) from e
        except ValueError as e:
            raise ProviderError(
                "Weather service returned a non-JSON response.",
                kind="bad_response",
                provider=PROVIDER_NAME,
            ) from e


def _status_error(response: httpx.Response) -> ProviderError:
    status = response.status_code
    if status == 404:
        message, kind = "City not found, check the city name.", "not_found"
    elif status == 401:
        message, kind = "Weather API key is invalid or expired.", "auth"
    elif status == 429:
        message, kind = "Weather API rate limit exceeded, try again later.", "rate_limit"
    else:
        detail = response.reason_phrase
        try:
            body = response.json()
            if isinstance(body, dict) and body.get("message"):
                detail = body["message"]
        except ValueError:
            pass
        message, kind = f"Weather API error ({status}): {detail}", "api_error"

    logger.error(f"Weather API returned {status}: {message}")
    return ProviderError(message, kind=kind, provider=PROVIDER_NAME)


# ==========================================================================
# Normalization
# ==========================================================================

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def normalize_weather(payload: Any) -> WeatherReport:
    """Maps an OpenWeatherMap /weather payload onto WeatherReport."""
    try:
        conditions = payload["weather"][0]
        main = payload["main"]
        wind = payload.get("wind") or {}
        return WeatherReport(
            location=Location(
                city=payload["name"],
                country=payload["sys"]["country"],
                coordinates=Coordinates(
                    lat=payload["coord"]["lat"],
                    lon=payload["coord"]["lon"],
                ),
            ),
            weather=Weather(
                temperature=_round_half_up(main["temp"]),
                feels_like=_round_half_up(main["feels_like"]),
                humidity=main["humidity"],
                pressure=main["pressure"],
                wind_speed=wind.get("speed") or 0,
                wind_direction=wind.get("deg") or 0,
                visibility=payload.get("visibility") or 0,
                description=conditions["description"],
                main=conditions["main"],
                icon=conditions["icon"],
            ),
            timestamp=datetime.now(timezone.utc),
        )
    except (KeyError, IndexError, TypeError, AttributeError, PydanticValidationError) as e:
        raise ProviderError(
            f"Unexpected weather payload: {type(e).__name__}: {e}",
            kind="bad_response",
            provider=PROVIDER_NAME,
        ) from e


def _parse_geocoding(payload: Any) -> List[GeocodingResult]:
    if not isinstance(payload, list):
        raise ProviderError(
            "Unexpected geocoding payload.",
            kind="bad_response",
            provider=PROVIDER_NAME,
        )
    try:
        return [GeocodingResult.model_validate(item) for item in payload]
    except PydanticValidationError as e:
        raise ProviderError(
            f"Unexpected geocoding payload: {e.error_count()} invalid field(s).",
            kind="bad_response",
            provider=PROVIDER_NAME,
        ) from e
