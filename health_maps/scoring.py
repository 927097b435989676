"""
Route health scoring and ranking for Health Maps.

The health score starts at 100 and subtracts penalties for:
- Average PM2.5 exposure along the route
- Destination heat above a comfort threshold
- Travel time
"""

from typing import Iterable, List, Sequence

from health_maps.exceptions import NoRouteFound
from health_maps.models import RankedResult, RouteCandidate, ScoredRoute
from health_maps.utils import round_half_up

PM25_WEIGHT = 0.4
HEAT_WEIGHT = 1.5
HEAT_THRESHOLD_C = 32.0
DURATION_WEIGHT = 0.2

MIN_SCORE = 0
MAX_SCORE = 100


def heat_penalty(temp_celsius: float) -> float:
    """Penalty for heat; zero at or below the threshold."""
    if temp_celsius > HEAT_THRESHOLD_C:
        return (temp_celsius - HEAT_THRESHOLD_C) * HEAT_WEIGHT
    return 0.0


def health_score(avg_pm25: float, temp_celsius: float, duration_mins: float) -> int:
    """
    Composite health score for a route.

    Args:
        avg_pm25: Mean PM2.5 concentration over the route samples
        temp_celsius: Destination temperature
        duration_mins: Travel time in minutes

    Returns:
        Integer score in [0, 100]; higher is healthier
    """
    score = (MAX_SCORE
             - avg_pm25 * PM25_WEIGHT
             - heat_penalty(temp_celsius)
             - duration_mins * DURATION_WEIGHT)
    return round_half_up(max(MIN_SCORE, min(MAX_SCORE, score)))


def average_pm25(values: Iterable[float]) -> float:
    """Unweighted mean of per-sample readings."""
    values = list(values)
    if not values:
        raise ValueError("At least one PM2.5 reading is required")
    return sum(values) / len(values)


def score_candidate(candidate: RouteCandidate, pm25_values: Sequence[float],
                    temp_celsius: float) -> ScoredRoute:
    """Score one candidate from its sample readings and the shared temperature."""
    duration_mins = round_half_up(candidate.duration_s / 60)
    avg = average_pm25(pm25_values)

    return ScoredRoute(
        candidate=candidate,
        avg_pm25=avg,
        temp_celsius=temp_celsius,
        duration_mins=duration_mins,
        distance_km=round(candidate.distance_m / 1000, 1),
        health_score=health_score(avg, temp_celsius, duration_mins)
    )


def rank_routes(scored: List[ScoredRoute]) -> RankedResult:
    """
    Pick the fastest, healthiest and second healthiest routes.

    Ties keep provider order. With a single route all three picks are that
    route; with two, the second healthiest is the other one.
    """
    if not scored:
        raise NoRouteFound()

    fastest = min(scored, key=lambda route: route.duration_mins)
    by_health = sorted(scored, key=lambda route: route.health_score, reverse=True)
    healthiest = by_health[0]
    second = by_health[1] if len(by_health) > 1 else healthiest

    return RankedResult(
        fastest=fastest,
        healthiest=healthiest,
        second_healthiest=second
    )
