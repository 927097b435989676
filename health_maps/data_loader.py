"""Wiring of configured data sources for Health Maps."""

from typing import Dict, Optional

import httpx

from health_maps.adapters.air_quality import AirQualitySource, get_air_quality_source
from health_maps.adapters.directions import get_directions_source
from health_maps.adapters.geocoding import get_geocoding_source
from health_maps.adapters.weather import get_weather_source
from health_maps.cache import EnvironmentCache
from health_maps.locations import LocationResolver
from health_maps.orchestrator import RouteHealthPlanner
from health_maps.sampling import DEFAULT_STEP_KM, RouteSampler

DEFAULT_TIMEOUT_S = 10.0


def create_http_client(config: Dict) -> httpx.AsyncClient:
    """Shared async HTTP client with the configured timeout."""
    api_config = config.get('external_apis', {})
    timeout = api_config.get('request_timeout_s', DEFAULT_TIMEOUT_S)
    return httpx.AsyncClient(timeout=timeout)


def get_air_quality(config: Dict, client: Optional[httpx.AsyncClient]) -> AirQualitySource:
    """Get the air quality source using configured source."""
    api_config = config.get('external_apis', {})
    return get_air_quality_source(
        api_config.get('air_quality_source', 'mock'),
        api_config.get('google_api_key'),
        client
    )


def build_cache(config: Dict, air_quality: AirQualitySource) -> EnvironmentCache:
    """Create the process-wide environment cache around an air quality source."""
    cache_config = config.get('cache', {})
    return EnvironmentCache(
        air_quality.fetch_reading,
        max_entries=cache_config.get('max_entries', 50000),
        ttl_seconds=cache_config.get('ttl_seconds')
    )


def build_planner(config: Dict, client: Optional[httpx.AsyncClient],
                  cache: Optional[EnvironmentCache] = None) -> RouteHealthPlanner:
    """
    Build a planner from configuration.

    Args:
        config: Loaded configuration
        client: Shared HTTP client; only mock sources work without one
        cache: Existing environment cache to reuse across planners

    Returns:
        Ready to use planner
    """
    api_config = config.get('external_apis', {})
    sampling_config = config.get('sampling', {})

    geocoder = get_geocoding_source(
        api_config.get('geocoding_source', 'mock'),
        api_config.get('mapbox_access_token'),
        client
    )
    directions = get_directions_source(
        api_config.get('directions_source', 'mock'),
        api_config.get('mapbox_access_token'),
        client
    )
    weather = get_weather_source(
        api_config.get('weather_source', 'mock'),
        api_config.get('google_api_key'),
        client
    )
    if cache is None:
        cache = build_cache(config, get_air_quality(config, client))

    sampler = RouteSampler(
        step_km=sampling_config.get('step_km', DEFAULT_STEP_KM),
        include_endpoint=sampling_config.get('include_endpoint', False)
    )
    return RouteHealthPlanner(
        resolver=LocationResolver(geocoder),
        directions=directions,
        weather=weather,
        cache=cache,
        sampler=sampler
    )
