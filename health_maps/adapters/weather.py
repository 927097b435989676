"""Weather data adapters for Health Maps."""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import httpx
from pydantic import BaseModel, ValidationError

from health_maps.exceptions import ProviderError
from health_maps.models import Coordinate

logger = logging.getLogger(__name__)

# Used whenever the provider answers without a usable temperature (Celsius)
DEFAULT_TEMPERATURE_C = 25.0


class Temperature(BaseModel):
    """Structured temperature value; ``degrees`` is the number, never the object."""

    degrees: Optional[float] = None
    unit: Optional[str] = None

    def celsius(self) -> Optional[float]:
        if self.degrees is None:
            return None
        if self.unit == 'FAHRENHEIT':
            return (self.degrees - 32) * 5 / 9
        return self.degrees


class WeatherConditions(BaseModel):
    """
    Google current-conditions payload.

    Defaults when a field is missing or malformed:
        temperature                -> None -> DEFAULT_TEMPERATURE_C
        temperature.degrees        -> None -> DEFAULT_TEMPERATURE_C
        payload fails validation   -> DEFAULT_TEMPERATURE_C
    """

    temperature: Optional[Temperature] = None

    def temperature_celsius(self) -> float:
        if self.temperature is None:
            return DEFAULT_TEMPERATURE_C
        celsius = self.temperature.celsius()
        return DEFAULT_TEMPERATURE_C if celsius is None else celsius


class WeatherDataSource(ABC):
    """Abstract base class for weather data sources."""

    @abstractmethod
    async def fetch_temperature_celsius(self, coord: Coordinate) -> float:
        pass


class MockWeatherSource(WeatherDataSource):
    """Mock weather source with a fixed temperature."""

    def __init__(self, temp_c: float = DEFAULT_TEMPERATURE_C):
        self.temp_c = temp_c
        self.calls: List[Coordinate] = []

    async def fetch_temperature_celsius(self, coord):
        self.calls.append(coord)
        return self.temp_c


class GoogleWeatherSource(WeatherDataSource):
    """Real current conditions from the Google Weather API."""

    def __init__(self, api_key: str, client: httpx.AsyncClient):
        self.api_key = api_key
        self.client = client
        self.base_url = "https://weather.googleapis.com/v1/currentConditions:lookup"

    async def fetch_temperature_celsius(self, coord):
        params = {
            'key': self.api_key,
            'location.latitude': coord.lat,
            'location.longitude': coord.lon
        }

        try:
            response = await self.client.get(self.base_url, params=params)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ProviderError(f"Weather request failed: {e}") from e

        try:
            conditions = WeatherConditions.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.warning("Malformed weather payload, using %.1f C: %s",
                           DEFAULT_TEMPERATURE_C, e)
            return DEFAULT_TEMPERATURE_C

        return conditions.temperature_celsius()


def get_weather_source(source_type: str = 'mock',
                       api_key: str = None,
                       client: httpx.AsyncClient = None) -> WeatherDataSource:
    """Factory function to get weather data source."""
    if source_type == 'mock':
        return MockWeatherSource()
    elif source_type == 'google':
        if not api_key:
            raise ValueError("API key required for Google Weather")
        if client is None:
            raise ValueError("HTTP client required for Google Weather")
        return GoogleWeatherSource(api_key, client)
    else:
        raise ValueError(f"Unknown weather source: {source_type}")
