"""Geocoding data adapters for Health Maps."""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError, field_validator

from health_maps.exceptions import GeocodingError
from health_maps.models import Coordinate

logger = logging.getLogger(__name__)


class MapboxFeature(BaseModel):
    """One geocoding match. ``center`` is ``[lon, lat]``."""

    center: List[float]
    place_name: str = ''

    @field_validator('center')
    @classmethod
    def _require_lon_lat(cls, value: List[float]) -> List[float]:
        if len(value) != 2:
            raise ValueError("center must be [lon, lat]")
        return value


class MapboxGeocodingResponse(BaseModel):
    """
    Mapbox places payload.

    Defaults when a field is missing:
        features -> [] (reported as not found)
        message  -> None (no provider error)
    """

    features: List[MapboxFeature] = []
    message: Optional[str] = None


class GeocodingSource(ABC):
    """Abstract base class for geocoding sources."""

    @abstractmethod
    async def search(self, text: str,
                     proximity: Optional[Coordinate] = None) -> Optional[Coordinate]:
        """Return the best match for ``text`` or None when nothing matches."""


class MockGeocodingSource(GeocodingSource):
    """Mock geocoder backed by a small in-memory gazetteer."""

    PLACES = {
        'kota': (75.8333, 25.2023),
        'jaipur': (75.7873, 26.9124),
        'delhi': (77.2090, 28.6139),
        'bengaluru': (77.5946, 12.9716),
    }

    def __init__(self, places: Optional[Dict[str, Tuple[float, float]]] = None):
        self.places = {k.lower(): v for k, v in (places or self.PLACES).items()}
        self.calls: List[str] = []

    async def search(self, text, proximity=None):
        self.calls.append(text)
        match = self.places.get(text.strip().lower())
        if match is None:
            return None
        return Coordinate(lon=match[0], lat=match[1])


class MapboxGeocodingSource(GeocodingSource):
    """Forward geocoding through the Mapbox places API."""

    def __init__(self, access_token: str, client: httpx.AsyncClient):
        self.access_token = access_token
        self.client = client
        self.base_url = "https://api.mapbox.com/geocoding/v5/mapbox.places"

    async def search(self, text, proximity=None):
        params = {
            'access_token': self.access_token,
            'limit': 1
        }
        if proximity is not None:
            params['proximity'] = proximity.as_lon_lat()

        url = f"{self.base_url}/{quote(text, safe='')}.json"
        try:
            response = await self.client.get(url, params=params)
            payload = MapboxGeocodingResponse.model_validate(response.json())
        except httpx.HTTPError as e:
            raise GeocodingError(f"Mapbox API Error: {e}") from e
        except (ValueError, ValidationError) as e:
            raise GeocodingError(f"Mapbox API Error: malformed response ({e})") from e

        if payload.message:
            raise GeocodingError(f"Mapbox API Error: {payload.message}")
        if response.is_error:
            raise GeocodingError(f"Mapbox API Error: HTTP {response.status_code}")
        if not payload.features:
            return None

        best = payload.features[0]
        logger.info('Geocoded "%s" -> %s', text, best.place_name)
        return Coordinate(lon=best.center[0], lat=best.center[1])


def get_geocoding_source(source_type: str = 'mock',
                         api_key: str = None,
                         client: httpx.AsyncClient = None) -> GeocodingSource:
    """Factory function to get geocoding source."""
    if source_type == 'mock':
        return MockGeocodingSource()
    elif source_type == 'mapbox':
        if not api_key:
            raise ValueError("Access token required for Mapbox geocoding")
        if client is None:
            raise ValueError("HTTP client required for Mapbox geocoding")
        return MapboxGeocodingSource(api_key, client)
    else:
        raise ValueError(f"Unknown geocoding source: {source_type}")
