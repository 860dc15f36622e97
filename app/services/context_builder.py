"""
Context builder: turns a validated trip request into a TripContext.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Tuple

from app.models.requests import FlightMode, TransportMode, TripRequest
from app.models.responses import TripContext
from app.services.geometry import estimate_distance_km, km_to_miles, round_half_up
from app.services.time_utils import add_minutes, combine, format_hour

logger = logging.getLogger(__name__)


SPEED_KMH: Dict[str, int] = {
    TransportMode.DRIVING.value: 45,
    TransportMode.TRANSIT.value: 30,
    TransportMode.WALKING.value: 5,
    TransportMode.CYCLING.value: 15,
}
DEFAULT_SPEED_KMH = 45

VENUE_OPEN_HOUR = 9
DEFAULT_CLOSE_HOUR = 18

# Checked top to bottom, first keyword found in the destination name wins
VENUE_CLOSING_HOURS: List[Tuple[str, int]] = [
    ("restaurant", 22),
    ("bar", 2),
    ("club", 2),
    ("gym", 21),
    ("fitness", 21),
    ("park", 20),
]

AIRPORT_HOURS = "Airport - 24/7"
AIRPORT_CLOSING_TIME = "N/A"


def travel_speed_kmh(transport_mode: str) -> int:
    """Average speed for a transport mode, driving speed for unknown modes."""
    mode = transport_mode.value if isinstance(transport_mode, TransportMode) else transport_mode
    return SPEED_KMH.get(mode, DEFAULT_SPEED_KMH)


def venue_closing_hour(destination_name: str) -> int:
    """Closing hour (24h) guessed from keywords in the venue name."""
    name = destination_name.lower()
    for keyword, hour in VENUE_CLOSING_HOURS:
        if keyword in name:
            return hour
    return DEFAULT_CLOSE_HOUR


def estimate_travel_minutes(distance_km: float, transport_mode: str) -> int:
    return int(round_half_up(distance_km / travel_speed_kmh(transport_mode) * 60))


def _departure_instant(request: TripRequest) -> datetime:
    departure = combine(request.departure_date, request.departure_time)
    if departure is None:
        # Only reachable with unvalidated input; keep the date if possible
        logger.warning(
            f"Unparseable departure {request.departure_date} {request.departure_time}, using midnight"
        )
        departure = combine(request.departure_date, "00:00") or datetime(1970, 1, 1)
    return departure


def build_context(request: TripRequest) -> TripContext:
    """
    Build the trip context for a request.

    The result depends only on the request, so identical requests always
    produce identical contexts.

    Args:
        request: Validated trip request

    Returns:
        TripContext with distance, travel time, arrival and venue hours
    """
    distance_km = estimate_distance_km(
        request.destination_name,
        request.current_location,
        request.destination_pincode,
        request.current_coords,
        request.destination_coords,
    )
    travel_minutes = estimate_travel_minutes(distance_km, request.transport_mode)

    departure = _departure_instant(request)
    arrival = departure + timedelta(minutes=travel_minutes)

    fields = {
        "destination": request.destination_name,
        "full_address": request.full_address or None,
        "event_name": request.event_name or None,
        "departure_time": departure,
        "estimated_travel_minutes": travel_minutes,
        "estimated_arrival_time": arrival,
        "user_departure_time": request.departure_time,
        "user_arrival_time": add_minutes(request.departure_time, travel_minutes),
        "user_timezone": request.user_timezone or None,
        "transport_mode": request.transport_mode,
        "distance_km": distance_km,
        "distance_miles": km_to_miles(distance_km),
    }

    if request.flight_mode == FlightMode.NONE:
        closing_hour = venue_closing_hour(request.destination_name)
        fields["venue_hours"] = f"{format_hour(VENUE_OPEN_HOUR)} - {format_hour(closing_hour)}"
        fields["venue_closing_time"] = format_hour(closing_hour)
    else:
        fields["venue_hours"] = AIRPORT_HOURS
        fields["venue_closing_time"] = AIRPORT_CLOSING_TIME
        fields["flight_mode"] = request.flight_mode

        if request.flight_mode == FlightMode.CATCHING:
            fields.update({
                "flight_number": request.flight_number or None,
                "flight_airline": request.flight_airline or None,
                "flight_destination_city": request.flight_destination_city or None,
                "flight_departure_time": request.flight_departure_time or None,
            })
        else:
            fields.update({
                "pickup_flight_number": request.pickup_flight_number or None,
                "pickup_arrival_time": request.pickup_arrival_time or None,
            })

    return TripContext(**fields)
