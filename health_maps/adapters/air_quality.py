"""Air quality data adapters for Health Maps."""

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import httpx
from pydantic import BaseModel, ValidationError

from health_maps.exceptions import ProviderError
from health_maps.models import Coordinate, EnvironmentReading

logger = logging.getLogger(__name__)

# Used whenever the provider answers without a usable PM2.5 concentration (ug/m3)
DEFAULT_PM25 = 15.0


class Concentration(BaseModel):
    value: float
    units: Optional[str] = None


class Pollutant(BaseModel):
    code: str
    concentration: Optional[Concentration] = None


class AirQualityConditions(BaseModel):
    """
    Google current-conditions payload.

    Defaults when a field is missing or malformed:
        pollutants                 -> []            -> pm25 = DEFAULT_PM25
        pm25 entry                 -> absent        -> pm25 = DEFAULT_PM25
        pm25 concentration         -> None          -> pm25 = DEFAULT_PM25
        pm25 entry malformed       -> pm25 = DEFAULT_PM25
        payload fails validation   -> pm25 = DEFAULT_PM25

    Only the pm25 entry is validated; other pollutants may be malformed.
    """

    pollutants: List[Any] = []

    def pm25(self) -> float:
        for entry in self.pollutants:
            if not isinstance(entry, dict) or entry.get('code') != 'pm25':
                continue
            try:
                pollutant = Pollutant.model_validate(entry)
            except ValidationError:
                return DEFAULT_PM25
            if pollutant.concentration is not None:
                return pollutant.concentration.value
        return DEFAULT_PM25


class AirQualitySource(ABC):
    """Abstract base class for air quality sources."""

    @abstractmethod
    async def fetch_pm25(self, coord: Coordinate) -> float:
        pass

    async def fetch_reading(self, coord: Coordinate) -> EnvironmentReading:
        """Fetcher signature used by the environment cache."""
        return EnvironmentReading(pm25=await self.fetch_pm25(coord))


class MockAirQualitySource(AirQualitySource):
    """Mock source returning a fixed concentration and counting calls."""

    def __init__(self, pm25: float = DEFAULT_PM25):
        self.pm25 = pm25
        self.calls: List[Coordinate] = []

    async def fetch_pm25(self, coord):
        self.calls.append(coord)
        return self.pm25


class GoogleAirQualitySource(AirQualitySource):
    """Real PM2.5 concentrations from the Google Air Quality API."""

    def __init__(self, api_key: str, client: httpx.AsyncClient):
        self.api_key = api_key
        self.client = client
        self.base_url = "https://airquality.googleapis.com/v1/currentConditions:lookup"

    async def fetch_pm25(self, coord):
        body = {
            'location': {'latitude': coord.lat, 'longitude': coord.lon},
            # Without this the pollutants carry no concentration values
            'extraComputations': ['POLLUTANT_CONCENTRATION']
        }

        try:
            response = await self.client.post(
                self.base_url, params={'key': self.api_key}, json=body
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ProviderError(f"Air quality request failed: {e}") from e

        try:
            conditions = AirQualityConditions.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.warning("Malformed air quality payload at %s, using %.1f: %s",
                           coord.grid_key(), DEFAULT_PM25, e)
            return DEFAULT_PM25

        return conditions.pm25()


def get_air_quality_source(source_type: str = 'mock',
                           api_key: str = None,
                           client: httpx.AsyncClient = None) -> AirQualitySource:
    """Factory function to get air quality source."""
    if source_type == 'mock':
        return MockAirQualitySource()
    elif source_type == 'google':
        if not api_key:
            raise ValueError("API key required for Google Air Quality")
        if client is None:
            raise ValueError("HTTP client required for Google Air Quality")
        return GoogleAirQualitySource(api_key, client)
    else:
        raise ValueError(f"Unknown air quality source: {source_type}")
