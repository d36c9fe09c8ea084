"""Great-circle distance estimates, used offline and as the provider fallback.

Straight-line miles are scaled by ROAD_DISTANCE_FACTOR to approximate road
distance; travel time assumes a constant average speed.
"""

import math

from dispatch.core.errors import InvalidArgumentError
from dispatch.providers.base import DistanceProvider

EARTH_RADIUS_MILES = 3959.0
ROAD_DISTANCE_FACTOR = 1.3
AVERAGE_SPEED_MPH = 30.0


def validate_coordinates(lat: float, lng: float) -> None:
    """Raise InvalidArgumentError for a latitude or longitude out of range."""
    if not -90.0 <= lat <= 90.0:
        msg = f"Latitude must be between -90 and 90, got {lat}"
        raise InvalidArgumentError(msg)
    if not -180.0 <= lng <= 180.0:
        msg = f"Longitude must be between -180 and 180, got {lng}"
        raise InvalidArgumentError(msg)


def haversine_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Approximate road distance in miles between two coordinates."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c * ROAD_DISTANCE_FACTOR


def estimate_travel_minutes(distance_miles: float) -> int:
    """Whole minutes at AVERAGE_SPEED_MPH, rounded up."""
    return math.ceil(distance_miles / AVERAGE_SPEED_MPH * 60)


class HaversineDistanceProvider(DistanceProvider):
    """Offline provider: no network, deterministic estimates."""

    async def get_distance(
        self, from_lat: float, from_lng: float, to_lat: float, to_lng: float,
    ) -> float:
        validate_coordinates(from_lat, from_lng)
        validate_coordinates(to_lat, to_lng)
        return haversine_miles(from_lat, from_lng, to_lat, to_lng)

    async def get_travel_time(
        self, from_lat: float, from_lng: float, to_lat: float, to_lng: float,
    ) -> int:
        distance = await self.get_distance(from_lat, from_lng, to_lat, to_lng)
        return estimate_travel_minutes(distance)
