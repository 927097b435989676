"""Utility functions for Health Maps."""

import logging
import math
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv

# Mean Earth radius in meters, matching the radius web mapping libraries use
EARTH_RADIUS_M = 6371008.8

DEFAULT_CONFIG_PATH = "config/default_config.yml"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    A ``.env`` file next to the working directory is loaded first so that
    ``${VAR}`` placeholders can be filled from it.

    Args:
        config_path: Path to config file

    Returns:
        Configuration dictionary with environment placeholders replaced
    """
    load_dotenv()
    with open(resolve_config_path(config_path), 'r') as f:
        config = yaml.safe_load(f) or {}
    return load_config_with_env_vars(config)


def load_config_with_env_vars(config: Dict) -> Dict:
    """Replace environment variable placeholders in config."""
    def replace_env_vars(value):
        if isinstance(value, str):
            pattern = r'\$\{([^}]+)\}'
            matches = re.findall(pattern, value)
            for match in matches:
                env_value = os.getenv(match, '')
                value = value.replace(f'${{{match}}}', env_value)
        elif isinstance(value, dict):
            return {k: replace_env_vars(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [replace_env_vars(v) for v in value]
        return value

    return replace_env_vars(config)


def configure_logging(level: Optional[str] = None) -> None:
    """Install the service log format on the root logger."""
    logging.basicConfig(
        level=getattr(logging, (level or 'INFO').upper(), logging.INFO),
        format=LOG_FORMAT
    )


def round_half_up(value: float) -> int:
    """Round halves toward positive infinity, the way JavaScript Math.round does."""
    return int(math.floor(value + 0.5))


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate haversine distance between two points.

    Returns distance in meters.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi/2)**2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda/2)**2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1-a))

    return EARTH_RADIUS_M * c


def initial_bearing(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """Initial great-circle bearing from point 1 to point 2, in degrees."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dlambda = math.radians(lon2 - lon1)

    y = math.sin(dlambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dlambda)
    return math.degrees(math.atan2(y, x))


def destination_point(lon: float, lat: float, distance_m: float,
                      bearing_deg: float) -> Tuple[float, float]:
    """Point reached travelling ``distance_m`` along ``bearing_deg``; returns (lon, lat)."""
    phi1 = math.radians(lat)
    lambda1 = math.radians(lon)
    theta = math.radians(bearing_deg)
    delta = distance_m / EARTH_RADIUS_M

    phi2 = math.asin(
        math.sin(phi1) * math.cos(delta) +
        math.cos(phi1) * math.sin(delta) * math.cos(theta)
    )
    lambda2 = lambda1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * math.sin(phi2)
    )
    return math.degrees(lambda2), math.degrees(phi2)


def resolve_config_path(config_path: str) -> Path:
    """Resolve a config path relative to the working directory or the repo root."""
    path = Path(config_path)
    if path.exists() or path.is_absolute():
        return path
    repo_path = Path(__file__).resolve().parent.parent / config_path
    return repo_path if repo_path.exists() else path
