# Pydantic models for request/response validation

from .requests import Coordinates, FlightMode, TransportMode, TripRequest
from .responses import (
    AnalysisOutcome,
    AnalysisResult,
    ErrorResponse,
    OverallStatus,
    Risk,
    RiskType,
    Suggestion,
    SuggestionType,
    TripContext,
)

__all__ = [
    "Coordinates",
    "FlightMode",
    "TransportMode",
    "TripRequest",
    "AnalysisOutcome",
    "AnalysisResult",
    "ErrorResponse",
    "OverallStatus",
    "Risk",
    "RiskType",
    "Suggestion",
    "SuggestionType",
    "TripContext",
]
