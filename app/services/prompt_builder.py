"""
Prompt construction for remote AI trip analyzers.
"""

from typing import Any, Dict, Optional
from urllib.parse import quote_plus

from app.models.requests import FlightMode, TripRequest
from app.models.responses import TripContext


RESPONSE_SHAPE = """Return ONLY a valid JSON object (no markdown, no code blocks) with this exact structure:
{
  "risks": [{"type": "warning|danger|info", "title": "short title", "description": "explanation"}],
  "suggestions": [{"type": "timing|alternative|tip", "title": "short title", "description": "explanation"}],
  "reasoning": "2-3 sentence analysis of the overall plan including real-time flight status if available",
  "overallStatus": "good|caution|danger",
  "statusMessage": "one-line summary including flight status (e.g. on-time, delayed by X min)"
}"""


def flight_search_query(request: TripRequest) -> str:
    """Web search query for real-time flight status, empty when there is nothing to look up."""
    airline = f"{request.flight_airline} " if request.flight_airline else ""

    if request.flight_mode == FlightMode.CATCHING:
        if request.flight_number:
            return f"{airline}flight {request.flight_number} status today"
        if request.flight_airline and request.flight_destination_city:
            return f"{request.flight_airline} flights to {request.flight_destination_city} today status"
    elif request.flight_mode == FlightMode.PICKUP:
        if request.pickup_flight_number:
            return f"{airline}flight {request.pickup_flight_number} status today"
        if request.flight_airline:
            return f"{request.flight_airline} flight arrival {request.destination_name} today status"
    return ""


def search_url(request: TripRequest) -> str:
    """Page the browsing agent starts from: flight status or venue hours."""
    query = flight_search_query(request)
    if not query:
        query = f"{request.destination_name} {request.full_address} hours today"
    return f"https://www.google.com/search?q={quote_plus(query)}"


def _flight_context(request: TripRequest) -> str:
    if request.flight_mode == FlightMode.CATCHING:
        return f"""

FLIGHT CONTEXT (User is catching a flight):
- Airline: {request.flight_airline or "Not specified"}
- Flight number: {request.flight_number or "Not specified"}
- Destination city: {request.flight_destination_city or "Not specified"}
- Scheduled departure time: {request.flight_departure_time or "Not specified"}
- Look up the real-time flight status: on time, delayed, cancelled or gate change. Report any delay, updated departure time, terminal and gate.
- Factor in recommended airport arrival times (2-3 hours before domestic, 3 hours before international), check-in, security and boarding."""

    if request.flight_mode == FlightMode.PICKUP:
        return f"""

PICKUP CONTEXT (User is picking someone up at the airport):
- Airline: {request.flight_airline or "Not specified"}
- Arriving flight number: {request.pickup_flight_number or "Not specified"}
- Expected arrival time: {request.pickup_arrival_time or "Not specified"}
- Look up the real-time arrival status: on time, delayed, cancelled or diverted. Report any delay, updated arrival time, terminal and baggage claim.
- Factor in taxiing and baggage claim (typically 20-40 minutes after landing). Suggest an optimal departure time and cell phone lot or parking options."""

    return ""


def _previous_context(previous_state: Optional[Dict[str, Any]]) -> str:
    if not previous_state:
        return ""
    recent = ", ".join(previous_state.get("recentDestinations", [])) or "none"
    return (
        f"\nPrevious context: User has made {previous_state.get('queryCount', 0)} queries. "
        f"Last destination: {previous_state.get('lastDestination') or 'none'}. "
        f"Recent destinations: {recent}."
    )


def build_analysis_prompt(
    request: TripRequest,
    context: TripContext,
    previous_state: Optional[Dict[str, Any]] = None
) -> str:
    """
    Build the goal/prompt sent to a remote analyzer.

    Args:
        request: Trip request
        context: Locally computed trip context
        previous_state: Agent memory for this caller, if any

    Returns:
        Prompt text asking for the AnalysisOutcome JSON shape
    """
    lines = [
        "You are TripSense, a smart trip intelligence AI. Analyze this trip plan and return a JSON object "
        "with risk assessment and recommendations.",
        "",
    ]

    if flight_search_query(request):
        lines.extend([
            "IMPORTANT: The page you are viewing contains real-time flight status information. Extract the "
            "actual flight status (on-time, delayed, cancelled, gate, terminal, updated times) and adjust your "
            "timing recommendations accordingly.",
            "",
        ])

    lines.append("Plan details:")
    lines.append(f"- Destination: {request.destination_name}")
    if request.full_address:
        lines.append(f"- Full Address: {request.full_address}")
    lines.extend([
        f"- Starting from: {request.current_location or 'Current Location'}",
        f"- Event: {request.event_name or 'General visit'}",
        f"- Departure Date: {request.departure_date}",
        f"- Departure Time: {request.departure_time}",
        f"- Transport: {request.transport_mode.value}",
        f"- Estimated travel: {context.estimated_travel_minutes} minutes",
        f"- Estimated arrival: {context.user_arrival_time}",
        f"- Venue hours: {context.venue_hours}",
        f"- Distance: {context.distance_km} km ({context.distance_miles} miles)",
    ])
    if request.notes:
        lines.append(f"- Notes: {request.notes}")

    details = "\n".join(lines) + _flight_context(request) + _previous_context(previous_state)

    return (
        f"{details}\n\n{RESPONSE_SHAPE}\n\n"
        "Consider: real-time flight status, arrival vs closing time, travel duration, traffic patterns, "
        "weather, schedule conflicts, and practical tips. Be specific and helpful."
    )
