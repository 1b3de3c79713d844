from __future__ import annotations

from math import asin, cos, radians, sin, sqrt
from typing import Literal

"""
Geospatial helpers.

We keep a tiny geometry layer here (haversine + unit conversion) so the finder
and the report can do distance calculations without pulling in GIS dependencies.
"""

EARTH_RADIUS_M = 6_371_000

DistanceUnit = Literal["m", "km", "mi", "ft"]

_METERS_PER_UNIT: dict[str, float] = {
    "m": 1.0,
    "km": 1000.0,
    "mi": 1609.344,
    "ft": 0.3048,
}


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute great-circle distance in meters between two lat/lon pairs (degrees)."""
    phi1 = radians(lat1)
    phi2 = radians(lat2)
    dlat = phi2 - phi1
    dlon = radians(lon2) - radians(lon1)

    h = sin(dlat / 2) ** 2 + cos(phi1) * cos(phi2) * sin(dlon / 2) ** 2
    # Rounding can push `h` a hair above 1 for antipodal points.
    return 2 * EARTH_RADIUS_M * asin(min(1.0, sqrt(h)))


def convert_distance(meters: float, unit: DistanceUnit) -> float:
    """Convert a distance in meters to `unit` (m, km, mi, ft)."""
    try:
        factor = _METERS_PER_UNIT[unit]
    except KeyError:
        raise ValueError(f"Unknown distance unit '{unit}', expected one of {sorted(_METERS_PER_UNIT)}")
    return float(meters) / factor


def to_meters(value: float, unit: DistanceUnit) -> float:
    """Inverse of `convert_distance`: express `value` (in `unit`) as meters."""
    try:
        factor = _METERS_PER_UNIT[unit]
    except KeyError:
        raise ValueError(f"Unknown distance unit '{unit}', expected one of {sorted(_METERS_PER_UNIT)}")
    return float(value) * factor


def distance_units() -> list[str]:
    return list(_METERS_PER_UNIT)
