from __future__ import annotations

import math

from ..core.contracts import GeoBounds, LatLng

EARTH_RADIUS_KM = 6371.0
KM_PER_DEG_LAT = 111.0


def haversine_km(a: LatLng, b: LatLng) -> float:
    """Great-circle distance between two points in kilometers."""
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    dlat = math.radians(b.lat - a.lat)
    dlng = math.radians(b.lng - a.lng)

    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def haversine_m(a: LatLng, b: LatLng) -> float:
    return haversine_km(a, b) * 1000.0


def half_diagonal_km(bounds: GeoBounds) -> float:
    """Radius of the circle around the bounds' center touching its corners."""
    return haversine_km(bounds.center, LatLng(bounds.north, bounds.east))
