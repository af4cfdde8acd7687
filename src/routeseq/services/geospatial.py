"""Geospatial helper functions.

Straight-line distances here are for filtering and map metadata only; tour
costs always come from the travel matrix oracle.
"""

from __future__ import annotations

import math
from typing import Sequence

from shapely.geometry import MultiPoint

from ..models.domain import Point

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def within_radius(point: Point, center: Point, radius_km: float) -> bool:
    return haversine_km(point.latitude, point.longitude, center.latitude, center.longitude) <= radius_km


def filter_within_radius(
    points: Sequence[Point], center: Point, radius_km: float
) -> tuple[list[Point], list[Point]]:
    """Split ``points`` into those inside and outside ``radius_km`` of ``center``."""
    inside: list[Point] = []
    outside: list[Point] = []
    for point in points:
        (inside if within_radius(point, center, radius_km) else outside).append(point)
    return inside, outside


def centroid(points: Sequence[Point]) -> tuple[float, float] | None:
    """Mean position as (lat, lon), or None for an empty sequence."""
    if not points:
        return None
    center = MultiPoint([(point.longitude, point.latitude) for point in points]).centroid
    return (center.y, center.x)


def bounding_box(points: Sequence[Point]) -> dict[str, float] | None:
    if not points:
        return None
    west, south, east, north = MultiPoint([(point.longitude, point.latitude) for point in points]).bounds
    return {"north": north, "south": south, "east": east, "west": west}
