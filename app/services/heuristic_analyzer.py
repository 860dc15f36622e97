"""
Heuristic trip-risk engine.

Rules-based analysis over the trip context, used whenever no remote AI
analyzer is configured or the remote call fails. The engine never raises:
anything it cannot parse falls through to the skip/else path of the check.
"""

import logging
import re
from datetime import timedelta
from typing import Any, Dict, List, Optional

from app.models.requests import FlightMode, TransportMode, TripRequest
from app.models.responses import (
    AnalysisOutcome,
    AnalysisResult,
    OverallStatus,
    Risk,
    RiskType,
    Suggestion,
    SuggestionType,
    TripContext,
)
from app.services.context_builder import DEFAULT_CLOSE_HOUR, build_context
from app.services.time_utils import add_minutes, combine, format_clock, minutes_between, parse_clock
from app.services.trip_analyzer import TripAnalyzer

logger = logging.getLogger(__name__)


CLOSING_TIME_PATTERN = re.compile(r"(\d+):(\d+)\s*(AM|PM)", re.IGNORECASE)

CLOSE_CALL_MINUTES = 60
MIN_FLIGHT_BUFFER_MINUTES = 60
COMFORTABLE_FLIGHT_BUFFER_MINUTES = 120
CURB_READY_MINUTES = 30
EARLY_PICKUP_MINUTES = 45
LONG_TRAVEL_MINUTES = 45
RUSH_HOUR_START = 17
RUSH_HOUR_END = 19


def parse_closing_hour(closing_time: str) -> int:
    """Convert a "8:00 PM" style closing time to a 24-hour hour (18 if unparseable)."""
    match = CLOSING_TIME_PATTERN.search(closing_time or "")
    if not match:
        return DEFAULT_CLOSE_HOUR

    hour = int(match.group(1))
    meridiem = match.group(3).upper()
    if meridiem == "PM" and hour != 12:
        hour += 12
    if meridiem == "AM" and hour == 12:
        hour = 0
    return hour


def _number(value: float) -> str:
    """Render 30.0 as "30" and 18.6 as "18.6"."""
    return str(int(value)) if float(value).is_integer() else str(value)


def _mode_label(mode) -> str:
    return mode.value if isinstance(mode, TransportMode) else str(mode)


class _Assessment:
    """Mutable accumulator for a single analysis run."""

    def __init__(self):
        self.risks: List[Risk] = []
        self.suggestions: List[Suggestion] = []
        self.status = OverallStatus.GOOD
        # Figures referenced by the reasoning text
        self.minutes_before_close: Optional[int] = None
        self.buffer_minutes: Optional[int] = None
        self.wait_minutes: Optional[int] = None

    def escalate(self, status: OverallStatus) -> None:
        self.status = self.status.escalate(status)

    def risk(self, risk_type: RiskType, title: str, description: str) -> None:
        self.risks.append(Risk(type=risk_type, title=title, description=description))

    def suggest(self, suggestion_type: SuggestionType, title: str, description: str) -> None:
        self.suggestions.append(Suggestion(type=suggestion_type, title=title, description=description))


class HeuristicAnalyzer(TripAnalyzer):
    """
    Deterministic rules engine producing the same shape as the remote AI analyzers.

    Exactly one trip-type branch runs per request (regular venue visit,
    catching a flight, airport pickup), followed by checks that apply to
    every trip. The overall status only ever moves towards danger.
    """

    name = "heuristic"

    async def analyze(
        self,
        request: TripRequest,
        context: TripContext,
        previous_state: Optional[Dict[str, Any]] = None
    ) -> AnalysisOutcome:
        # Rules depend on the current request only
        return self.evaluate(request, context)

    def evaluate(self, request: TripRequest, context: TripContext) -> AnalysisOutcome:
        """
        Run the rules engine synchronously.

        Args:
            request: Trip request the context was built from
            context: Trip context

        Returns:
            AnalysisOutcome with risks, suggestions, reasoning and final status
        """
        assessment = _Assessment()

        if request.flight_mode == FlightMode.CATCHING:
            self._assess_flight(request, context, assessment)
        elif request.flight_mode == FlightMode.PICKUP:
            self._assess_pickup(request, context, assessment)
        else:
            self._assess_venue(request, context, assessment)

        self._assess_travel(request, context, assessment)

        outcome = AnalysisOutcome(
            risks=assessment.risks,
            suggestions=assessment.suggestions,
            reasoning=self._reasoning(request, context, assessment),
            overall_status=assessment.status,
            status_message=self._status_message(request, assessment.status),
        )
        logger.debug(
            f"Heuristic analysis for {request.destination_name}: {assessment.status.value} "
            f"({len(assessment.risks)} risks, {len(assessment.suggestions)} suggestions)"
        )
        return outcome

    # Trip-type branches

    def _assess_venue(self, request: TripRequest, context: TripContext, assessment: _Assessment) -> None:
        arrival = parse_clock(context.user_arrival_time)
        closing = context.venue_closing_time
        tz = context.user_timezone

        if arrival is None:
            assessment.risk(
                RiskType.INFO,
                "Good Timing",
                f"You should arrive before {request.destination_name} closes at {closing}."
            )
        else:
            closing_hour = parse_closing_hour(closing)
            minutes_before_close = closing_hour * 60 - (arrival[0] * 60 + arrival[1])
            assessment.minutes_before_close = minutes_before_close

            if minutes_before_close < 0:
                assessment.escalate(OverallStatus.DANGER)
                assessment.risk(
                    RiskType.DANGER,
                    "Arriving After Closing Time",
                    f"Based on your departure time and estimated {context.estimated_travel_minutes}-minute travel, "
                    f"you'd arrive around {format_clock(context.user_arrival_time, tz)}, "
                    f"after the venue closes at {closing}."
                )
                assessment.suggest(
                    SuggestionType.TIMING,
                    "Leave Earlier",
                    f"To arrive before closing, you'd need to depart at least "
                    f"{abs(minutes_before_close) + 30} minutes earlier than planned."
                )
            elif minutes_before_close < CLOSE_CALL_MINUTES:
                assessment.escalate(OverallStatus.CAUTION)
                assessment.risk(
                    RiskType.WARNING,
                    "Cutting It Close",
                    f"You'll arrive only {minutes_before_close} minutes before closing at {closing}. "
                    f"That may not be enough time for your visit."
                )
                assessment.suggest(
                    SuggestionType.TIMING,
                    "Consider Leaving Sooner",
                    "Departing 30-45 minutes earlier would give you a more comfortable buffer."
                )
            else:
                assessment.risk(
                    RiskType.INFO,
                    "Good Timing",
                    f"You'll arrive about {minutes_before_close} minutes before closing at {closing}, "
                    f"plenty of time for your visit."
                )

        assessment.suggest(
            SuggestionType.TIP,
            "Check Before You Go",
            f"Verify that {request.destination_name} hasn't changed their hours today. "
            f"Holiday schedules and special events can affect operating times."
        )

        if request.event_name:
            assessment.suggest(
                SuggestionType.TIP,
                "Event Preparation",
                f"For \"{request.event_name}\", consider arriving 15-20 minutes early to find parking, "
                f"get oriented, and settle in."
            )

    def _assess_flight(self, request: TripRequest, context: TripContext, assessment: _Assessment) -> None:
        label = self._flight_label(request)
        flight_time = combine(request.departure_date, request.flight_departure_time)

        if flight_time is not None:
            buffer_minutes = minutes_between(context.estimated_arrival_time, flight_time)
            assessment.buffer_minutes = buffer_minutes

            if buffer_minutes < MIN_FLIGHT_BUFFER_MINUTES:
                assessment.escalate(OverallStatus.DANGER)
                assessment.risk(
                    RiskType.DANGER,
                    "Not Enough Time to Catch Your Flight",
                    f"You'd arrive at the airport only {max(0, buffer_minutes)} minutes before your {label} "
                    f"departure. That is not enough time for check-in and security; airlines recommend "
                    f"arriving 2-3 hours early."
                )
            elif buffer_minutes < COMFORTABLE_FLIGHT_BUFFER_MINUTES:
                assessment.escalate(OverallStatus.CAUTION)
                assessment.risk(
                    RiskType.WARNING,
                    "Tight Airport Buffer",
                    f"You'd have about {buffer_minutes} minutes at the airport before {label} departs. "
                    f"For domestic flights, 2 hours is recommended; international flights need 3 hours."
                )
            else:
                assessment.risk(
                    RiskType.INFO,
                    "Good Airport Timing",
                    f"You'll arrive about {buffer_minutes} minutes before your {label}, "
                    f"plenty of time for check-in and security."
                )
        elif request.flight_departure_time:
            logger.info(f"Ignoring unparseable flight departure time: {request.flight_departure_time!r}")

        assessment.suggest(
            SuggestionType.TIP,
            "Pre-Flight Checklist",
            f"For {label}: check in online 24 hours before departure, have your boarding pass and ID ready, "
            f"and be at the gate 30 minutes before boarding."
        )
        assessment.suggest(
            SuggestionType.TIP,
            "Airport Parking",
            "Long-term lots are cheaper, ride-sharing drop-off is fastest, and some airports have "
            "cell phone lots for quick access."
        )

    def _assess_pickup(self, request: TripRequest, context: TripContext, assessment: _Assessment) -> None:
        label = self._pickup_label(request)
        landing = combine(request.departure_date, request.pickup_arrival_time)
        tz = context.user_timezone

        if landing is not None:
            curb_ready = landing + timedelta(minutes=CURB_READY_MINUTES)
            curb_ready_clock = format_clock(add_minutes(request.pickup_arrival_time, CURB_READY_MINUTES), tz)
            arrival = context.estimated_arrival_time

            if arrival > curb_ready:
                late_minutes = minutes_between(curb_ready, arrival)
                assessment.wait_minutes = -late_minutes
                assessment.escalate(OverallStatus.CAUTION)
                assessment.risk(
                    RiskType.WARNING,
                    "Passenger May Be Waiting",
                    f"Passengers from {label} should be curb-ready around {curb_ready_clock}, "
                    f"30 minutes after landing. You'd arrive around "
                    f"{format_clock(context.user_arrival_time, tz)}, so your passenger may wait about "
                    f"{late_minutes} minutes."
                )
            else:
                wait_minutes = minutes_between(arrival, curb_ready)
                assessment.wait_minutes = wait_minutes

                if wait_minutes > EARLY_PICKUP_MINUTES:
                    assessment.risk(
                        RiskType.INFO,
                        "Early Arrival for Pickup",
                        f"You'll arrive about {wait_minutes} minutes before passengers from {label} are "
                        f"curb-ready. Wait at the cell phone lot to save on parking."
                    )
                else:
                    assessment.risk(
                        RiskType.INFO,
                        "Good Pickup Timing",
                        f"You'll arrive about {wait_minutes} minutes before passengers from {label} reach "
                        f"the curb around {curb_ready_clock}, right when they exit."
                    )
        elif request.pickup_arrival_time:
            logger.info(f"Ignoring unparseable pickup arrival time: {request.pickup_arrival_time!r}")

        assessment.suggest(
            SuggestionType.TIP,
            "Pickup Strategy",
            f"Use the airport's free cell phone lot until your passenger from {label} texts that they "
            f"have their bags, then drive to arrivals for curbside pickup."
        )
        assessment.suggest(
            SuggestionType.TIMING,
            "Baggage Claim Buffer",
            "After landing, passengers typically need 20-40 minutes for taxiing, deplaning, and baggage "
            "claim. Factor this into your timing."
        )

    # Checks that apply to every trip type

    def _assess_travel(self, request: TripRequest, context: TripContext, assessment: _Assessment) -> None:
        mode = _mode_label(request.transport_mode)
        driving = mode == TransportMode.DRIVING.value

        if context.estimated_travel_minutes > LONG_TRAVEL_MINUTES:
            assessment.escalate(OverallStatus.CAUTION)
            assessment.risk(
                RiskType.WARNING,
                "Long Travel Time",
                f"The {_number(context.distance_km)} km ({_number(context.distance_miles)} mi) trip will take "
                f"approximately {context.estimated_travel_minutes} minutes by {mode}. "
                f"Traffic or delays could extend this."
            )
            if driving:
                if request.is_flight_trip:
                    assessment.suggest(
                        SuggestionType.ALTERNATIVE,
                        "Consider a Rideshare",
                        "For a long airport run, a rideshare skips parking and lets you go straight to "
                        "the terminal curb."
                    )
                else:
                    assessment.suggest(
                        SuggestionType.ALTERNATIVE,
                        "Consider Public Transit",
                        "For longer trips, public transit can be more predictable and lets you use "
                        "travel time productively."
                    )

        arrival = parse_clock(context.user_arrival_time)
        if arrival is not None and RUSH_HOUR_START <= arrival[0] <= RUSH_HOUR_END and driving:
            assessment.escalate(OverallStatus.CAUTION)
            assessment.risk(
                RiskType.WARNING,
                "Rush Hour Traffic",
                "Your estimated arrival falls during peak rush hour (5-7 PM). "
                "Expect potential delays of 15-30 minutes."
            )
            assessment.suggest(
                SuggestionType.TIMING,
                "Avoid Rush Hour",
                "Consider departing before 4 PM or after 7 PM to avoid the worst traffic congestion."
            )

    # Text

    @staticmethod
    def _flight_label(request: TripRequest) -> str:
        if request.flight_number:
            return f"flight {request.flight_number}"
        return f"flight to {request.flight_destination_city or 'your destination'}"

    @staticmethod
    def _pickup_label(request: TripRequest) -> str:
        if request.pickup_flight_number:
            return f"flight {request.pickup_flight_number}"
        return "the arriving flight"

    def _status_message(self, request: TripRequest, status: OverallStatus) -> str:
        if request.flight_mode == FlightMode.CATCHING:
            return {
                OverallStatus.DANGER: "You may miss your flight! There isn't enough time for check-in and security.",
                OverallStatus.CAUTION: "Tight timing for your flight. Consider leaving earlier.",
                OverallStatus.GOOD: "You're on track to make your flight with time to spare.",
            }[status]
        if request.flight_mode == FlightMode.PICKUP:
            return {
                OverallStatus.DANGER: "Your pickup is at risk. Consider leaving much earlier.",
                OverallStatus.CAUTION: "Your pickup timing is tight, and your passenger may have to wait.",
                OverallStatus.GOOD: "Your pickup timing looks good.",
            }[status]
        return {
            OverallStatus.DANGER: "You'll arrive after the venue closes. Consider going earlier or another day.",
            OverallStatus.CAUTION: "Tight timing for the venue. Consider adjusting your departure.",
            OverallStatus.GOOD: "Your plan looks solid! You should reach the venue with plenty of time.",
        }[status]

    def _reasoning(self, request: TripRequest, context: TripContext, assessment: _Assessment) -> str:
        minutes = context.estimated_travel_minutes
        destination = request.destination_name
        mode = _mode_label(request.transport_mode)
        status = assessment.status

        if request.flight_mode == FlightMode.CATCHING:
            label = self._flight_label(request)
            trip = f"Your {minutes}-minute trip to {destination}"
            if assessment.buffer_minutes is not None:
                trip += f" leaves about {max(0, assessment.buffer_minutes)} minutes before {label} departs."
            else:
                trip += f" is planned without a scheduled departure time for {label}."

            if status == OverallStatus.DANGER:
                return (
                    f"Critical timing issue for {label}. {trip} "
                    f"That won't cover check-in, security, and boarding; airlines recommend arriving "
                    f"2-3 hours before departure. Leave significantly earlier or arrange faster transport."
                )
            if status == OverallStatus.CAUTION:
                return (
                    f"The timing for {label} is tight. {trip} "
                    f"Consider leaving earlier to build in a safety buffer for unexpected delays."
                )
            return (
                f"Good planning for {label}. {trip} "
                f"Remember to check in online and have your documents ready."
            )

        if request.flight_mode == FlightMode.PICKUP:
            label = self._pickup_label(request)
            trip = f"Your {minutes}-minute trip to {destination}"
            wait = assessment.wait_minutes
            if wait is None:
                trip += f" is planned without a landing time for {label}."
            elif wait < 0:
                trip += f" gets you there about {-wait} minutes after passengers from {label} are curb-ready."
            else:
                trip += f" gets you there about {wait} minutes before passengers from {label} are curb-ready."

            if status == OverallStatus.DANGER:
                return (
                    f"Timing concern for picking up from {label} at {destination}. {trip} "
                    f"Consider leaving earlier or using the airport's cell phone lot."
                )
            if status == OverallStatus.CAUTION:
                return (
                    f"The pickup timing for {label} could be tighter than ideal. {trip} "
                    f"Factor in 20-40 minutes for deplaning and baggage claim, and use the cell phone lot "
                    f"to coordinate the pickup."
                )
            return (
                f"Your timing for picking up from {label} at {destination} looks good. {trip} "
                f"Use the cell phone lot to wait if you arrive early."
            )

        before_close = assessment.minutes_before_close
        if status == OverallStatus.DANGER:
            late = abs(before_close) if before_close is not None else 0
            return (
                f"This plan has significant timing issues. With a {minutes}-minute travel time via {mode} "
                f"over {_number(context.distance_km)} km, you would arrive at {destination} about {late} "
                f"minutes after it closes at {context.venue_closing_time}. "
                f"Consider an earlier departure or a different day."
            )
        if status == OverallStatus.CAUTION:
            window = (
                f" with only {before_close} minutes before closing"
                if before_close is not None and before_close < CLOSE_CALL_MINUTES
                else ""
            )
            return (
                f"This plan is feasible but tight. The {minutes}-minute journey to {destination} via {mode} "
                f"gets you there around {format_clock(context.user_arrival_time, context.user_timezone)}"
                f"{window}. Consider leaving earlier, and watch for traffic or transit delays that could eat "
                f"into your available time."
            )
        spare = (
            f" with about {before_close} minutes to spare before closing"
            if before_close is not None
            else " with comfortable time to spare"
        )
        return (
            f"This plan looks well-timed. Your {minutes}-minute trip to {destination} via {mode} "
            f"should get you there{spare}. Just double-check venue hours and account for any unusual "
            f"conditions."
        )


def analyze(request: TripRequest) -> AnalysisResult:
    """
    Build the context for a request and run the heuristic engine on it.

    Pure function of the request: identical requests yield identical results.
    """
    context = build_context(request)
    outcome = HeuristicAnalyzer().evaluate(request, context)
    return AnalysisResult.from_outcome(context, outcome)
