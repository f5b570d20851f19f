"""
Weather Schemas

Canonical weather records. The client normalizes OpenWeatherMap payloads into
these models so the rest of the application never sees provider field names.
"""

from datetime import datetime
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator

Units = Literal["metric", "imperial", "kelvin"]

DEFAULT_COUNTRY = "CN"


class WeatherQuery(BaseModel):
    city: str = Field(..., min_length=1, description="City name.")
    country: str = Field(DEFAULT_COUNTRY, description="ISO 3166 country code.")
    units: Units = "metric"

    @field_validator("city")
    @classmethod
    def _strip_city(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("City name must not be empty")
        return value

    @field_validator("country", mode="before")
    @classmethod
    def _default_country(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_COUNTRY
        return value.strip() if isinstance(value, str) else value


class Coordinates(BaseModel):
    lat: float
    lon: float


class Location(BaseModel):
    city: str
    country: str
    coordinates: Coordinates


class Weather(BaseModel):
    """
    Attributes:
        temperature: Current temperature, rounded, in the requested units.
        feels_like: Apparent temperature, rounded.
        humidity: Relative humidity (%).
        pressure: Atmospheric pressure (hPa).
        wind_speed: m/s for metric/kelvin, mph for imperial.
        wind_direction: Degrees.
        visibility: Metres.
        description: Localized description (e.g. "多云").
        main: Condition group (e.g. "Clouds").
        icon: Provider icon code.
    """
    temperature: int
    feels_like: int
    humidity: float
    pressure: float
    wind_speed: float = 0
    wind_direction: float = 0
    visibility: float = 0
    description: str
    main: str
    icon: str


class WeatherReport(BaseModel):
    location: Location
    weather: Weather
    timestamp: datetime


class GeocodingResult(BaseModel):
    name: str
    local_names: Optional[Dict[str, str]] = None
    lat: float
    lon: float
    country: str
    state: Optional[str] = None
