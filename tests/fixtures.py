"""
Test fixtures with sample trip requests and hand-built trip contexts.
Provides realistic test data for the analysis engine and the API.
"""

from datetime import timedelta
from typing import Any, Dict

from app.models.requests import FlightMode, TripRequest
from app.models.responses import TripContext
from app.services.context_builder import (
    AIRPORT_CLOSING_TIME,
    AIRPORT_HOURS,
    VENUE_OPEN_HOUR,
    venue_closing_hour,
)
from app.services.geometry import km_to_miles
from app.services.time_utils import add_minutes, combine, format_hour


class TripPayloadFixtures:
    """Sample camelCase request bodies as sent by the web client."""

    VENUE_VISIT: Dict[str, Any] = {
        "destinationName": "Central Park",
        "destinationCity": "New York",
        "destinationState": "NY",
        "destinationPincode": "10024",
        "departureDate": "2026-10-19",
        "departureTime": "14:00",
        "transportMode": "driving",
        "currentLocation": "Brooklyn",
    }

    LATE_NIGHT_BAR: Dict[str, Any] = {
        "destinationName": "Downtown Bar",
        "departureDate": "2026-10-19",
        "departureTime": "23:30",
        "transportMode": "walking",
        "eventName": "Birthday drinks",
    }

    CATCHING_FLIGHT: Dict[str, Any] = {
        "destinationName": "JFK Airport",
        "departureDate": "2026-10-19",
        "departureTime": "15:00",
        "transportMode": "driving",
        "flightMode": "catching",
        "flightNumber": "AA100",
        "flightAirline": "American Airlines",
        "flightDestinationCity": "Los Angeles",
        "flightDepartureTime": "18:00",
    }

    AIRPORT_PICKUP: Dict[str, Any] = {
        "destinationName": "SFO Airport",
        "departureDate": "2026-10-19",
        "departureTime": "14:30",
        "transportMode": "driving",
        "flightMode": "pickup",
        "pickupFlightNumber": "UA200",
        "pickupArrivalTime": "15:00",
    }

    WITH_COORDINATES: Dict[str, Any] = {
        "destinationName": "Golden Gate Park",
        "departureDate": "2026-10-19",
        "departureTime": "10:00",
        "transportMode": "cycling",
        "currentCoords": {"lat": 37.7749, "lng": -122.4194},
        "destinationCoords": {"lat": 37.7694, "lng": -122.4862},
    }

    INVALID_PAYLOADS = [
        {"destinationName": "", "departureDate": "2026-10-19", "departureTime": "14:00"},
        {"destinationName": "Museum", "departureDate": "19/10/2026", "departureTime": "14:00"},
        {"destinationName": "Museum", "departureDate": "2026-10-19", "departureTime": "25:00"},
        {"destinationName": "Museum", "departureDate": "2026-10-19", "departureTime": "14:00",
         "transportMode": "teleport"},
        {"destinationName": "Museum", "departureDate": "2026-10-19", "departureTime": "14:00",
         "destinationPincode": "!!"},
    ]


def trip_request(payload: Dict[str, Any], **overrides) -> TripRequest:
    """Validate a sample payload into a TripRequest, with camelCase overrides."""
    return TripRequest.model_validate({**payload, **overrides})


def make_context(
    request: TripRequest,
    travel_minutes: int,
    distance_km: float = 30.0,
    user_timezone: str = None
) -> TripContext:
    """
    Trip context with a chosen travel time and distance.

    Mirrors build_context for everything except the distance estimate, so
    scenarios can use exact figures.
    """
    departure = combine(request.departure_date, request.departure_time)
    fields = {
        "destination": request.destination_name,
        "full_address": request.full_address or None,
        "event_name": request.event_name,
        "departure_time": departure,
        "estimated_travel_minutes": travel_minutes,
        "estimated_arrival_time": departure + timedelta(minutes=travel_minutes),
        "user_departure_time": request.departure_time,
        "user_arrival_time": add_minutes(request.departure_time, travel_minutes),
        "user_timezone": user_timezone,
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
    return TripContext(**fields)


SAMPLE_OUTCOME: Dict[str, Any] = {
    "risks": [
        {"type": "warning", "title": "Flight Delayed", "description": "AA100 is delayed by 25 minutes."}
    ],
    "suggestions": [
        {"type": "timing", "title": "Leave 20 Minutes Later", "description": "The delay gives you extra time."}
    ],
    "reasoning": "Flight AA100 is delayed; the current plan still leaves a comfortable buffer.",
    "overallStatus": "caution",
    "statusMessage": "Flight delayed by 25 min, timing still works.",
}
