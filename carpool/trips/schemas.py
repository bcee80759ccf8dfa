"""Pydantic schemas for trips."""

from datetime import date, datetime

from pydantic import Field, field_validator

from carpool.db.models import CarStatus
from carpool.schemas import CamelModel

TIME_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"


def _check_date(value: str) -> str:
    try:
        date.fromisoformat(value)
    except ValueError:
        raise ValueError("Flight date must be YYYY-MM-DD")
    return value


def _pad_time(value: str) -> str:
    hours, minutes = value.split(":")
    return f"{int(hours):02d}:{minutes}"


class TripBase(CamelModel):
    """Base schema for trips."""

    name: str = Field(..., min_length=1, max_length=255)
    flight_date: str = Field(..., min_length=1)
    flight_time: str = Field(..., pattern=TIME_PATTERN)
    flight_number: str = Field(..., min_length=1, max_length=20)
    car_status: CarStatus

    @field_validator("flight_date")
    @classmethod
    def valid_date(cls, v: str) -> str:
        """Validate the flight date is an ISO date."""
        return _check_date(v)

    @field_validator("flight_time")
    @classmethod
    def normalize_time(cls, v: str) -> str:
        """Zero-pad the hour so times sort as strings."""
        return _pad_time(v)

    @field_validator("flight_number")
    @classmethod
    def upper_flight_number(cls, v: str) -> str:
        """Store flight numbers upper-case."""
        return v.strip().upper()


class TripCreate(TripBase):
    """Schema for creating a trip."""

    pass


class TripUpdate(CamelModel):
    """Schema for updating a trip."""

    name: str | None = Field(None, min_length=1, max_length=255)
    flight_date: str | None = None
    flight_time: str | None = Field(None, pattern=TIME_PATTERN)
    flight_number: str | None = Field(None, min_length=1, max_length=20)
    car_status: CarStatus | None = None

    @field_validator("flight_date")
    @classmethod
    def valid_date(cls, v: str | None) -> str | None:
        """Validate the flight date is an ISO date."""
        return _check_date(v) if v is not None else v

    @field_validator("flight_time")
    @classmethod
    def normalize_time(cls, v: str | None) -> str | None:
        """Zero-pad the hour so times sort as strings."""
        return _pad_time(v) if v is not None else v

    @field_validator("flight_number")
    @classmethod
    def upper_flight_number(cls, v: str | None) -> str | None:
        """Store flight numbers upper-case."""
        return v.strip().upper() if v is not None else v


class TripResponse(TripBase):
    """Schema for trip response."""

    id: str
    created_at: datetime | None = None
