"""Spherical-earth helpers for movement thresholds and search polygons."""

from __future__ import annotations

import math
from typing import List, Tuple

EARTH_RADIUS_M = 6_371_000.0
CIRCLE_POINTS = 36

LatLon = Tuple[float, float]


def distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates (haversine)."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2.0) ** 2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


def has_moved_significantly(previous: LatLon, current: LatLon, threshold_meters: float) -> bool:
    """True iff the distance between the two points exceeds the threshold.

    NaN coordinates give a NaN distance, which never compares greater.
    """
    return distance_meters(previous[0], previous[1], current[0], current[1]) > threshold_meters


def circle_polygon(latitude: float, longitude: float, radius_km: float, points: int = CIRCLE_POINTS) -> List[LatLon]:
    """Approximate a circle of `radius_km` around a point as an open ring (first vertex not repeated).

    Uses an equirectangular offset: latitude degrees per metre are constant,
    longitude degrees are stretched by 1/cos(latitude).
    """
    angular = (radius_km * 1000.0) / EARTH_RADIUS_M
    lat_scale = math.degrees(angular)
    lon_scale = lat_scale / math.cos(math.radians(latitude))

    ring: List[LatLon] = []
    for i in range(points):
        bearing = math.radians(i * 360.0 / points)
        ring.append((latitude + lat_scale * math.cos(bearing), longitude + lon_scale * math.sin(bearing)))
    return ring
