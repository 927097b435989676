"""Domain types shared across the Health Maps pipeline."""

from dataclasses import dataclass, field
from typing import Any, Dict

from health_maps.utils import round_half_up


@dataclass(frozen=True)
class Coordinate:
    """WGS84 position in degrees. Longitude first, like GeoJSON."""

    lon: float
    lat: float

    def as_lon_lat(self) -> str:
        return f"{self.lon},{self.lat}"

    def grid_key(self, precision: int = 3) -> str:
        """Quantized cache key; precision 3 gives roughly 110 m cells."""
        return f"{self.lon:.{precision}f},{self.lat:.{precision}f}"


@dataclass(frozen=True)
class RouteCandidate:
    """One alternative returned by the directions provider."""

    id: str
    geometry: Dict[str, Any] = field(hash=False, compare=False)
    duration_s: float
    distance_m: float
    name: str


@dataclass(frozen=True)
class EnvironmentReading:
    pm25: float


@dataclass(frozen=True)
class ScoredRoute:
    """A candidate with its exposure metrics and health score."""

    candidate: RouteCandidate
    avg_pm25: float
    temp_celsius: float
    duration_mins: int
    distance_km: float
    health_score: int

    @property
    def id(self) -> str:
        return self.candidate.id

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.candidate.id,
            'name': self.candidate.name,
            'durationMins': self.duration_mins,
            'distanceKm': self.distance_km,
            'healthScore': self.health_score,
            'metrics': {
                'pm25': round_half_up(self.avg_pm25),
                'tempCelsius': self.temp_celsius,
            },
            'geometry': self.candidate.geometry,
        }


@dataclass(frozen=True)
class RankedResult:
    fastest: ScoredRoute
    healthiest: ScoredRoute
    second_healthiest: ScoredRoute

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fastest': self.fastest.to_dict(),
            'healthiest': self.healthiest.to_dict(),
            'secondHealthiest': self.second_healthiest.to_dict(),
        }
