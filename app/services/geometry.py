"""
Distance helpers for trip context estimation.
"""

import math
from typing import Optional

from app.models.requests import Coordinates


EARTH_RADIUS_KM = 6371.0

# Straight-line distance underestimates real road travel
ROAD_FACTOR = 1.3

KM_TO_MILES = 0.621371


def round_half_up(value: float, digits: int = 0) -> float:
    """Round half away from zero for positive values (JS Math.round semantics)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance (Haversine) in kilometers."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def road_distance_km(origin: Coordinates, destination: Coordinates) -> float:
    """
    Approximate road distance between two points.

    Args:
        origin: Starting coordinates
        destination: Destination coordinates

    Returns:
        Haversine distance scaled by the road factor, rounded to 0.1 km
    """
    straight = haversine_km(origin.lat, origin.lng, destination.lat, destination.lng)
    return round_half_up(straight * ROAD_FACTOR, 1)


def fallback_distance_km(
    destination_name: str,
    current_location: Optional[str] = None,
    pincode: Optional[str] = None
) -> float:
    """
    Deterministic pseudo-distance used when map coordinates are unavailable.

    The value only depends on the lengths of the given strings so identical
    requests always produce the same distance (and the same cache entry).

    Args:
        destination_name: Destination name as entered
        current_location: Starting location label
        pincode: Destination postal code

    Returns:
        Distance in whole kilometers: 5 + 1.5 * seed (at most 33.5) rounded
        half up, so between 5 and 34
    """
    seed = (len(destination_name) + len(current_location or "") + len(pincode or "")) % 20
    return round_half_up(5 + seed * 1.5)


def estimate_distance_km(
    destination_name: str,
    current_location: Optional[str] = None,
    pincode: Optional[str] = None,
    current_coords: Optional[Coordinates] = None,
    destination_coords: Optional[Coordinates] = None
) -> float:
    """Road distance when both coordinates are known, fallback distance otherwise."""
    if current_coords is not None and destination_coords is not None:
        return road_distance_km(current_coords, destination_coords)
    return fallback_distance_km(destination_name, current_location, pincode)


def km_to_miles(distance_km: float) -> float:
    """Convert kilometers to miles, rounded to one decimal."""
    return round_half_up(distance_km * KM_TO_MILES, 1)
