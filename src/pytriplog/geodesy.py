"""Great-circle distance between two coordinates."""

from __future__ import annotations

import math
from typing import Protocol

from pytriplog._constants import EARTH_MEAN_RADIUS_M, METERS_PER_NAUTICAL_MILE


class Coordinate(Protocol):
    latitude: float | None
    longitude: float | None


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance in meters on a spherical earth."""
    lat1, lon1, lat2, lon2 = map(math.radians, (lat1, lon1, lat2, lon2))
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.asin(math.sqrt(min(1.0, a)))
    return EARTH_MEAN_RADIUS_M * c


def distance(a: Coordinate, b: Coordinate) -> float:
    """Distance in meters between two positions with valid coordinates."""
    if a.latitude is None or a.longitude is None or b.latitude is None or b.longitude is None:
        raise ValueError("both positions need latitude and longitude")
    return haversine_m(a.latitude, a.longitude, b.latitude, b.longitude)


def meters_to_nautical_miles(meters: float) -> float:
    return meters / METERS_PER_NAUTICAL_MILE
