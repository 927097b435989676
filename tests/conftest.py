"""Shared fixtures and fakes for Health Maps tests."""

import math

import httpx
import pytest

from health_maps.adapters.directions import DirectionsSource
from health_maps.adapters.geocoding import GeocodingSource, MockGeocodingSource
from health_maps.adapters.weather import MockWeatherSource
from health_maps.cache import EnvironmentCache
from health_maps.locations import LocationResolver
from health_maps.models import Coordinate, EnvironmentReading, RouteCandidate
from health_maps.orchestrator import RouteHealthPlanner
from health_maps.sampling import MeasuredLine, as_line_feature
from health_maps.utils import EARTH_RADIUS_M

# Kilometres per degree of longitude on the equator
KM_PER_DEGREE = EARTH_RADIUS_M * math.pi / 180 / 1000


def equator_line(length_km, start_lon=0.0):
    """GeoJSON LineString running east along the equator."""
    return {
        'type': 'LineString',
        'coordinates': [[start_lon, 0.0], [start_lon + length_km / KM_PER_DEGREE, 0.0]]
    }


def line_length_km(geometry):
    """Spherical length of a route geometry in kilometres."""
    return MeasuredLine(as_line_feature(geometry)).length_km


def mock_client(handler):
    """Async HTTP client whose requests are answered by ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class RecordingGeocoder(GeocodingSource):
    """Geocoder that remembers the proximity bias it was called with."""

    def __init__(self, places):
        self.places = places
        self.calls = []

    async def search(self, text, proximity=None):
        self.calls.append((text, proximity))
        match = self.places.get(text)
        return Coordinate(lon=match[0], lat=match[1]) if match else None


class StaticDirections(DirectionsSource):
    """Directions source returning prebuilt candidates."""

    def __init__(self, candidates=None, error=None):
        self.candidates = candidates or []
        self.error = error
        self.calls = []

    async def get_routes(self, origin, destination):
        self.calls.append((origin, destination))
        if self.error is not None:
            raise self.error
        return list(self.candidates)


class LatitudePollution:
    """Air quality fetcher whose PM2.5 grows with distance from the equator."""

    def __init__(self, base=10.0, per_degree=1000.0, error=None):
        self.base = base
        self.per_degree = per_degree
        self.error = error
        self.calls = []

    async def __call__(self, coord):
        self.calls.append(coord)
        if self.error is not None:
            raise self.error
        return EnvironmentReading(pm25=self.base + abs(coord.lat) * self.per_degree)


def make_candidate(index, duration_s, geometry=None, distance_m=1000.0, name=''):
    return RouteCandidate(
        id=f"route-{index}",
        geometry=geometry or equator_line(1.0),
        duration_s=duration_s,
        distance_m=distance_m,
        name=name or f"Alternative Route {index + 1}"
    )


@pytest.fixture
def places():
    return {
        'Home': (75.80, 0.0),
        'Office': (75.81, 0.0),
    }


@pytest.fixture
def pollution():
    return LatitudePollution()


@pytest.fixture
def weather():
    return MockWeatherSource(temp_c=25.0)


@pytest.fixture
def build_planner(places, pollution, weather):
    """Factory for planners wired to in-memory fakes."""
    def _build(candidates=None, directions=None, geocoder=None, cache=None):
        # An empty cache is falsy, so compare against None
        return RouteHealthPlanner(
            resolver=LocationResolver(geocoder or RecordingGeocoder(places)),
            directions=directions or StaticDirections(candidates),
            weather=weather,
            cache=EnvironmentCache(pollution) if cache is None else cache
        )
    return _build


@pytest.fixture
def mock_geocoder():
    return MockGeocodingSource()
