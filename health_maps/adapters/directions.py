"""Directions data adapters for Health Maps."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ValidationError

from health_maps.exceptions import NoRouteFound, ProviderError
from health_maps.models import Coordinate, RouteCandidate
from health_maps.utils import haversine_distance

logger = logging.getLogger(__name__)

# Mapbox codes that mean "no route between these points" rather than a failure
NO_ROUTE_CODES = ('NoRoute', 'NoSegment')


class MapboxLeg(BaseModel):
    summary: str = ''


class MapboxRoute(BaseModel):
    geometry: Dict[str, Any]
    duration: float
    distance: float
    legs: List[MapboxLeg] = []


class MapboxDirectionsResponse(BaseModel):
    """
    Mapbox directions payload.

    Defaults when a field is missing:
        routes  -> None (reported as no route found)
        code    -> None
        message -> None
    """

    code: Optional[str] = None
    message: Optional[str] = None
    routes: Optional[List[MapboxRoute]] = None


def to_candidates(routes: List[MapboxRoute]) -> List[RouteCandidate]:
    """Convert provider routes into candidates, keeping provider order."""
    candidates = []
    for index, route in enumerate(routes):
        summary = route.legs[0].summary if route.legs else ''
        candidates.append(RouteCandidate(
            id=f"route-{index}",
            geometry=route.geometry,
            duration_s=route.duration,
            distance_m=route.distance,
            name=summary or f"Alternative Route {index + 1}"
        ))
    return candidates


class DirectionsSource(ABC):
    """Abstract base class for directions sources."""

    @abstractmethod
    async def get_routes(self, origin: Coordinate,
                         destination: Coordinate) -> List[RouteCandidate]:
        """Alternative driving routes, fastest-first as the provider orders them."""


class MockDirectionsSource(DirectionsSource):
    """
    Mock directions source.

    Returns a straight route and a detour through a point offset from the
    midpoint, both timed at a constant driving speed.
    """

    def __init__(self, speed_kmh: float = 40.0, detour_offset_deg: float = 0.01):
        self.speed_kmh = speed_kmh
        self.detour_offset_deg = detour_offset_deg

    async def get_routes(self, origin, destination):
        midpoint = [
            (origin.lon + destination.lon) / 2 + self.detour_offset_deg,
            (origin.lat + destination.lat) / 2 + self.detour_offset_deg
        ]
        paths = [
            [[origin.lon, origin.lat], [destination.lon, destination.lat]],
            [[origin.lon, origin.lat], midpoint, [destination.lon, destination.lat]],
        ]

        routes = []
        for name, coords in zip(['Direct', 'Detour'], paths):
            distance_m = sum(
                haversine_distance(a[1], a[0], b[1], b[0])
                for a, b in zip(coords, coords[1:])
            )
            routes.append(MapboxRoute(
                geometry={'type': 'LineString', 'coordinates': coords},
                duration=distance_m / (self.speed_kmh / 3.6),
                distance=distance_m,
                legs=[MapboxLeg(summary=name)]
            ))
        return to_candidates(routes)


class MapboxDirectionsSource(DirectionsSource):
    """Driving alternatives from the Mapbox directions API."""

    def __init__(self, access_token: str, client: httpx.AsyncClient,
                 profile: str = 'driving'):
        self.access_token = access_token
        self.client = client
        self.profile = profile
        self.base_url = "https://api.mapbox.com/directions/v5/mapbox"

    async def get_routes(self, origin, destination):
        coordinates = f"{origin.as_lon_lat()};{destination.as_lon_lat()}"
        url = f"{self.base_url}/{self.profile}/{coordinates}"
        params = {
            'alternatives': 'true',
            'geometries': 'geojson',
            'overview': 'full',
            'access_token': self.access_token
        }

        try:
            response = await self.client.get(url, params=params)
            payload = MapboxDirectionsResponse.model_validate(response.json())
        except httpx.HTTPError as e:
            raise ProviderError(f"Mapbox directions request failed: {e}") from e
        except (ValueError, ValidationError) as e:
            raise ProviderError(f"Mapbox directions returned a malformed response: {e}") from e

        if response.is_error and payload.code not in NO_ROUTE_CODES:
            detail = payload.message or f"HTTP {response.status_code}"
            raise ProviderError(f"Mapbox directions error: {detail}")
        if not payload.routes:
            raise NoRouteFound()

        return to_candidates(payload.routes)


def get_directions_source(source_type: str = 'mock',
                          api_key: str = None,
                          client: httpx.AsyncClient = None) -> DirectionsSource:
    """Factory function to get directions source."""
    if source_type == 'mock':
        return MockDirectionsSource()
    elif source_type == 'mapbox':
        if not api_key:
            raise ValueError("Access token required for Mapbox directions")
        if client is None:
            raise ValueError("HTTP client required for Mapbox directions")
        return MapboxDirectionsSource(api_key, client)
    else:
        raise ValueError(f"Unknown directions source: {source_type}")
