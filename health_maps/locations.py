"""
Location resolution for Health Maps.

Turns a free-text place name, or a literal ``"lat, lon"`` pair, into a
Coordinate.
"""

import logging
import re
from typing import Optional

from health_maps.adapters.geocoding import GeocodingSource
from health_maps.exceptions import LocationNotFound
from health_maps.models import Coordinate

logger = logging.getLogger(__name__)

RAW_COORDINATES = re.compile(r'^(-?\d+\.?\d*),\s*(-?\d+\.?\d*)$')


def parse_raw_coordinates(query: str) -> Optional[Coordinate]:
    """Parse ``"lat, lon"`` input; returns None for anything else."""
    match = RAW_COORDINATES.match(query.strip())
    if not match:
        return None
    lat, lon = float(match.group(1)), float(match.group(2))
    return Coordinate(lon=lon, lat=lat)


class LocationResolver:
    """Resolve location queries, bypassing the geocoder for raw coordinates."""

    def __init__(self, geocoder: GeocodingSource):
        self.geocoder = geocoder

    async def resolve(self, query: str,
                      proximity: Optional[Coordinate] = None) -> Coordinate:
        """
        Resolve a location query.

        Args:
            query: Place name or ``"lat, lon"``
            proximity: Optional point that nearby matches are preferred around

        Returns:
            Resolved coordinate

        Raises:
            LocationNotFound: geocoder returned no match
            GeocodingError: geocoder reported an error or was unreachable
        """
        coord = parse_raw_coordinates(query)
        if coord is not None:
            logger.info("Using raw coordinates: [%s, %s]", coord.lon, coord.lat)
            return coord

        coord = await self.geocoder.search(query, proximity=proximity)
        if coord is None:
            raise LocationNotFound(query)
        return coord
