"""Great-circle distance helpers. All distances are in statute miles."""

from __future__ import annotations

import math
from typing import Iterable, Optional

from planit.schemas.place import Coordinates, Place

EARTH_RADIUS_MILES = 3958.7613
METERS_PER_MILE = 1609.34


def miles_to_meters(miles: float) -> int:
    """Convert a radius in miles to whole meters (truncated)."""
    return int(miles * METERS_PER_MILE)


def distance_miles(origin: Coordinates, target: Coordinates) -> float:
    """Haversine distance between two coordinates."""
    lat1, lat2 = math.radians(origin.lat), math.radians(target.lat)
    d_lat = lat2 - lat1
    d_lng = math.radians(target.lng - origin.lng)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_MILES * math.asin(min(1.0, math.sqrt(a)))


def place_distance(place: Place, origin: Coordinates) -> Optional[float]:
    """Distance from origin to the place, or None when it has no coordinates."""
    if place.coordinates is None:
        return None
    return distance_miles(origin, place.coordinates)


def filter_within_radius(
    places: Iterable[Place],
    origin: Coordinates,
    radius_miles: float,
) -> list[Place]:
    """
    Keep places whose straight-line distance is within the radius.
    Places without coordinates are excluded.
    """
    kept: list[Place] = []
    for place in places:
        dist = place_distance(place, origin)
        if dist is not None and dist <= radius_miles:
            kept.append(place)
    return kept


def format_distance(miles: float) -> str:
    if miles < 0.1:
        return f"{miles * 5280:.0f} ft"
    return f"{miles:.1f} mi"
