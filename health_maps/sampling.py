"""
Spatial sampling of route geometries.

Routes arrive as GeoJSON mappings. They must pass through ``as_line_feature``
before any length or along-line query; ``MeasuredLine`` refuses anything that
has not been converted.
"""

import math
from collections.abc import Mapping
from typing import Any, List, Optional, Union

import numpy as np
from shapely.errors import ShapelyError
from shapely.geometry import LineString, MultiLineString, shape

from health_maps.exceptions import InvalidGeometryError
from health_maps.models import Coordinate
from health_maps.utils import EARTH_RADIUS_M, destination_point, initial_bearing

DEFAULT_STEP_KM = 0.3

LineFeature = Union[LineString, MultiLineString]


def as_line_feature(geometry: Any) -> LineFeature:
    """
    Convert a route geometry into a line usable for spatial queries.

    Accepts a GeoJSON LineString/MultiLineString mapping, a GeoJSON Feature
    wrapping one, or an already converted shapely line.

    Raises:
        InvalidGeometryError: anything that is not a non-empty line
    """
    if isinstance(geometry, (LineString, MultiLineString)):
        line = geometry
    elif isinstance(geometry, Mapping):
        if geometry.get('type') == 'Feature':
            geometry = geometry.get('geometry') or {}
        try:
            line = shape(geometry)
        except (ShapelyError, AttributeError, KeyError, TypeError, ValueError) as e:
            raise InvalidGeometryError(f"Unusable route geometry: {e}") from e
    else:
        raise InvalidGeometryError(
            f"Unusable route geometry of type {type(geometry).__name__}"
        )

    if not isinstance(line, (LineString, MultiLineString)):
        raise InvalidGeometryError(f"Route geometry must be a line, got {line.geom_type}")
    if line.is_empty:
        raise InvalidGeometryError("Route geometry is empty")
    return line


def segment_lengths_m(coords: np.ndarray) -> np.ndarray:
    """Haversine length of each consecutive segment of an (n, 2) lon/lat array."""
    lon = np.radians(coords[:, 0])
    lat = np.radians(coords[:, 1])
    dlat = np.diff(lat)
    dlon = np.diff(lon)

    a = np.sin(dlat / 2) ** 2 + np.cos(lat[:-1]) * np.cos(lat[1:]) * np.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_M * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


class MeasuredLine:
    """A converted line with cumulative along-line distances per part."""

    def __init__(self, line: LineFeature):
        if not isinstance(line, (LineString, MultiLineString)):
            raise TypeError("MeasuredLine needs a line from as_line_feature()")

        parts = list(line.geoms) if isinstance(line, MultiLineString) else [line]
        self.parts = [np.asarray(part.coords, dtype=float)[:, :2] for part in parts]
        self.cumulative_m = [
            np.concatenate(([0.0], np.cumsum(segment_lengths_m(coords))))
            for coords in self.parts
        ]
        self.length_m = float(sum(cum[-1] for cum in self.cumulative_m))

    @property
    def length_km(self) -> float:
        return self.length_m / 1000.0

    @property
    def end(self) -> Coordinate:
        lon, lat = self.parts[-1][-1]
        return Coordinate(lon=float(lon), lat=float(lat))

    def point_at(self, distance_km: float) -> Coordinate:
        """Point ``distance_km`` along the line; clamps to the ends."""
        remaining = max(distance_km, 0.0) * 1000.0

        for coords, cum in zip(self.parts, self.cumulative_m):
            if remaining > cum[-1]:
                remaining -= cum[-1]
                continue

            i = int(np.searchsorted(cum, remaining, side='left'))
            if i == 0 or cum[i] == remaining:
                lon, lat = coords[i]
                return Coordinate(lon=float(lon), lat=float(lat))

            # Step back from vertex i towards vertex i-1 by the overshoot
            overshoot = float(cum[i] - remaining)
            lon_i, lat_i = coords[i]
            lon_prev, lat_prev = coords[i - 1]
            bearing = initial_bearing(lon_i, lat_i, lon_prev, lat_prev)
            lon, lat = destination_point(lon_i, lat_i, overshoot, bearing)
            return Coordinate(lon=lon, lat=lat)

        return self.end


def sample_distances(total_length_km: float, step_km: float = DEFAULT_STEP_KM) -> List[float]:
    """Distances ``0, step, 2*step, ...`` that do not exceed the total length."""
    if step_km <= 0:
        raise ValueError("step_km must be positive")
    steps = int(math.floor(total_length_km / step_km)) if total_length_km > 0 else 0
    # One spare step absorbs floor() landing just below an exact multiple
    distances = [i * step_km for i in range(steps + 2)]
    return [d for d in distances if d <= total_length_km] or [0.0]


class RouteSampler:
    """Sample route geometries at a fixed along-route interval."""

    def __init__(self, step_km: float = DEFAULT_STEP_KM, include_endpoint: bool = False):
        if step_km <= 0:
            raise ValueError("step_km must be positive")
        self.step_km = step_km
        self.include_endpoint = include_endpoint

    def sample(self, geometry: Any, total_length_km: Optional[float] = None,
               step_km: Optional[float] = None) -> List[Coordinate]:
        """
        Sample points along a route.

        Args:
            geometry: GeoJSON line geometry (converted via ``as_line_feature``)
            total_length_km: Length to sample up to; measured when omitted
            step_km: Interval override for this call

        Returns:
            Ordered sample coordinates, starting at the route origin. The route
            end is only included when it falls on a step boundary, unless the
            sampler was built with ``include_endpoint=True``.
        """
        line = MeasuredLine(as_line_feature(geometry))
        if total_length_km is None:
            total_length_km = line.length_km

        distances = sample_distances(
            total_length_km, self.step_km if step_km is None else step_km
        )
        points = [line.point_at(d) for d in distances]

        if self.include_endpoint and points[-1] != line.end:
            points.append(line.end)
        return points
