"""
Request orchestration for Health Maps.

Sequences location resolution, routing, weather, sampling, pollution lookups
and ranking for one request. Any failure aborts the whole request.
"""

import asyncio
import logging
from typing import List, Optional

from health_maps.adapters.directions import DirectionsSource
from health_maps.adapters.weather import WeatherDataSource
from health_maps.cache import EnvironmentCache
from health_maps.exceptions import ValidationError
from health_maps.locations import LocationResolver
from health_maps.models import Coordinate, RankedResult, RouteCandidate, ScoredRoute
from health_maps.sampling import RouteSampler
from health_maps.scoring import rank_routes, score_candidate

logger = logging.getLogger(__name__)


class RouteHealthPlanner:
    """Plan a trip and rank its alternatives by health score."""

    def __init__(self, resolver: LocationResolver, directions: DirectionsSource,
                 weather: WeatherDataSource, cache: EnvironmentCache,
                 sampler: Optional[RouteSampler] = None):
        self.resolver = resolver
        self.directions = directions
        self.weather = weather
        self.cache = cache
        self.sampler = sampler or RouteSampler()

    async def plan(self, start: Optional[str], end: Optional[str]) -> RankedResult:
        """
        Rank route alternatives between two locations.

        Args:
            start: Origin as place text or ``"lat, lon"``
            end: Destination as place text or ``"lat, lon"``

        Returns:
            Fastest, healthiest and second healthiest routes
        """
        if not start or not start.strip() or not end or not end.strip():
            raise ValidationError()

        start_coord = await self.resolver.resolve(start)
        end_coord = await self.resolver.resolve(end, proximity=start_coord)

        candidates = await self.directions.get_routes(start_coord, end_coord)
        logger.info("Found %d routes", len(candidates))

        # One destination reading shared by every candidate
        temp_celsius = await self.weather.fetch_temperature_celsius(end_coord)
        logger.info("Destination temp: %s C", temp_celsius)

        scored = await asyncio.gather(
            *[self.score_route(candidate, temp_celsius) for candidate in candidates]
        )
        return rank_routes(list(scored))

    async def score_route(self, candidate: RouteCandidate,
                          temp_celsius: float) -> ScoredRoute:
        samples = self.sampler.sample(candidate.geometry)
        pm25_values = await self.sample_pm25(samples)

        scored = score_candidate(candidate, pm25_values, temp_celsius)
        logger.info("%s: %d min | %d samples | avg PM2.5: %.1f | health: %d",
                    candidate.id, scored.duration_mins, len(samples),
                    scored.avg_pm25, scored.health_score)
        return scored

    async def sample_pm25(self, samples: List[Coordinate]) -> List[float]:
        readings = await asyncio.gather(
            *[self.cache.get_or_fetch(coord) for coord in samples]
        )
        return [reading.pm25 for reading in readings]
