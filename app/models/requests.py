"""Request models for the Trip Analysis API."""

import re
from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


PINCODE_PATTERN = re.compile(r"^[A-Za-z0-9\s\-]{3,10}$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_PATTERN = re.compile(r"^\d{2}:\d{2}$")


class TransportMode(str, Enum):
    """Supported ways of getting to the destination"""
    DRIVING = "driving"
    TRANSIT = "transit"
    WALKING = "walking"
    CYCLING = "cycling"


class FlightMode(str, Enum):
    """Trip type: regular venue visit, catching a flight or an airport pickup"""
    NONE = "none"
    CATCHING = "catching"
    PICKUP = "pickup"


class Coordinates(BaseModel):
    """Geographic point in decimal degrees."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class TripRequest(BaseModel):
    """Request model for the trip analysis endpoint."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "destinationName": "Central Park",
                "destinationCity": "New York",
                "destinationState": "NY",
                "destinationPincode": "10024",
                "departureDate": "2026-10-19",
                "departureTime": "14:00",
                "transportMode": "driving",
                "currentLocation": "Brooklyn",
                "flightMode": "none"
            }
        }
    )

    destination_name: str = Field(..., min_length=1, max_length=200, description="Destination or venue name")
    destination_address: Optional[str] = Field(default=None, max_length=300)
    destination_city: Optional[str] = Field(default=None, max_length=100)
    destination_state: Optional[str] = Field(default=None, max_length=100)
    destination_pincode: Optional[str] = Field(default=None, description="Postal/zip code")
    event_name: Optional[str] = Field(default=None, max_length=200)

    departure_date: str = Field(..., description="Departure date (YYYY-MM-DD)")
    departure_time: str = Field(..., description="Departure time (HH:MM, 24-hour)")
    transport_mode: TransportMode = Field(default=TransportMode.DRIVING)

    current_location: Optional[str] = Field(default="Current Location", max_length=300)
    current_coords: Optional[Coordinates] = None
    destination_coords: Optional[Coordinates] = None
    notes: Optional[str] = Field(default=None, max_length=500)

    flight_mode: FlightMode = Field(default=FlightMode.NONE)
    flight_number: Optional[str] = Field(default=None, max_length=20)
    flight_airline: Optional[str] = Field(default=None, max_length=50)
    flight_destination_city: Optional[str] = Field(default=None, max_length=100)
    flight_departure_time: Optional[str] = Field(default=None, description="Scheduled flight departure (HH:MM)")
    pickup_flight_number: Optional[str] = Field(default=None, max_length=20)
    pickup_arrival_time: Optional[str] = Field(default=None, description="Expected landing time (HH:MM)")

    user_timezone: Optional[str] = Field(default=None, max_length=50, description="Display-only timezone label")

    @field_validator("destination_pincode")
    @classmethod
    def validate_pincode(cls, v: Optional[str]) -> Optional[str]:
        """Accept empty values or 3-10 letters, digits, spaces and hyphens"""
        if v and not PINCODE_PATTERN.match(v):
            raise ValueError("Enter a valid postal/zip code (3-10 characters)")
        return v

    @field_validator("departure_date")
    @classmethod
    def validate_departure_date(cls, v: str) -> str:
        if not DATE_PATTERN.match(v):
            raise ValueError("Enter a valid date")
        try:
            date.fromisoformat(v)
        except ValueError:
            raise ValueError("Enter a valid date")
        return v

    @field_validator("departure_time")
    @classmethod
    def validate_departure_time(cls, v: str) -> str:
        if not TIME_PATTERN.match(v):
            raise ValueError("Enter a valid time")
        hour, minute = (int(part) for part in v.split(":"))
        if hour > 23 or minute > 59:
            raise ValueError("Enter a valid time")
        return v

    @property
    def full_address(self) -> str:
        """Address, city, state and postal code joined with commas"""
        parts = [
            self.destination_address,
            self.destination_city,
            self.destination_state,
            self.destination_pincode,
        ]
        return ", ".join(part for part in parts if part)

    @property
    def is_flight_trip(self) -> bool:
        return self.flight_mode != FlightMode.NONE
