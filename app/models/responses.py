"""Response models for the Trip Analysis API."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.requests import FlightMode, TransportMode


class RiskType(str, Enum):
    """Severity of a single risk entry"""
    WARNING = "warning"
    DANGER = "danger"
    INFO = "info"


class SuggestionType(str, Enum):
    """Kind of advice given to the user"""
    TIMING = "timing"
    ALTERNATIVE = "alternative"
    TIP = "tip"


class OverallStatus(str, Enum):
    """Overall verdict for a trip plan"""
    GOOD = "good"
    CAUTION = "caution"
    DANGER = "danger"

    @property
    def severity(self) -> int:
        return _STATUS_SEVERITY[self]

    def escalate(self, other: "OverallStatus") -> "OverallStatus":
        """Return the more severe of the two statuses."""
        return other if other.severity > self.severity else self


_STATUS_SEVERITY = {
    OverallStatus.GOOD: 0,
    OverallStatus.CAUTION: 1,
    OverallStatus.DANGER: 2,
}


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, as the web client expects."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Risk(CamelModel):
    """A single risk found in the trip plan."""

    type: RiskType
    title: str
    description: str


class Suggestion(CamelModel):
    """A single recommendation for the trip plan."""

    type: SuggestionType
    title: str
    description: str


class TripContext(CamelModel):
    """
    Derived trip summary shared by every analyzer.

    Built once per request and never mutated afterwards.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        frozen=True,
    )

    destination: str = Field(..., description="Destination label as entered")
    full_address: Optional[str] = None
    event_name: Optional[str] = None
    departure_time: datetime = Field(..., description="Departure instant in the user's timezone")
    estimated_travel_minutes: int = Field(..., ge=0)
    estimated_arrival_time: datetime = Field(..., description="Arrival instant in the user's timezone")
    user_departure_time: str = Field(..., description="Departure wall-clock time (HH:MM)")
    user_arrival_time: str = Field(..., description="Arrival wall-clock time (HH:MM)")
    user_timezone: Optional[str] = None
    venue_hours: str
    venue_closing_time: str
    transport_mode: TransportMode
    distance_km: float = Field(..., ge=0)
    distance_miles: float = Field(..., ge=0)

    flight_mode: Optional[FlightMode] = None
    flight_number: Optional[str] = None
    flight_airline: Optional[str] = None
    flight_destination_city: Optional[str] = None
    flight_departure_time: Optional[str] = None
    pickup_flight_number: Optional[str] = None
    pickup_arrival_time: Optional[str] = None


class AnalysisOutcome(CamelModel):
    """
    The part of an analysis produced by an analyzer strategy.

    Remote agents return exactly this shape; the heuristic engine must be
    able to reproduce every field on its own.
    """

    risks: List[Risk] = Field(default_factory=list)
    suggestions: List[Suggestion] = Field(default_factory=list)
    reasoning: str
    overall_status: OverallStatus = Field(default=OverallStatus.GOOD)
    status_message: str


class AnalysisResult(AnalysisOutcome):
    """Response model for the trip analysis endpoint."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        json_schema_extra={
            "example": {
                "context": {
                    "destination": "Central Park",
                    "departureTime": "2026-10-19T14:00:00",
                    "estimatedTravelMinutes": 40,
                    "estimatedArrivalTime": "2026-10-19T14:40:00",
                    "userDepartureTime": "14:00",
                    "userArrivalTime": "14:40",
                    "venueHours": "9:00 AM - 8:00 PM",
                    "venueClosingTime": "8:00 PM",
                    "transportMode": "driving",
                    "distanceKm": 30,
                    "distanceMiles": 18.6
                },
                "risks": [
                    {
                        "type": "info",
                        "title": "Good Timing",
                        "description": "You'll arrive about 320 minutes before closing."
                    }
                ],
                "suggestions": [],
                "reasoning": "This plan looks well-timed.",
                "overallStatus": "good",
                "statusMessage": "Your plan looks solid!"
            }
        }
    )

    context: TripContext

    @classmethod
    def from_outcome(cls, context: TripContext, outcome: AnalysisOutcome) -> "AnalysisResult":
        return cls(context=context, **outcome.model_dump())


class ErrorResponse(BaseModel):
    """Error response model for consistent error handling."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "timestamp": "2026-01-15T10:30:00Z"
            }
        }
    )

    error: str = Field(..., description="Error code or type")
    message: str = Field(..., description="Human-readable error message")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Error timestamp"
    )
