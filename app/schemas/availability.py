"""Staff availability and slot schemas."""

from datetime import date, datetime, time
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

from app.schemas.appointments import coerce_time
from app.services.slot_generator import format_time


class AvailabilityCreate(BaseModel):
    """Schema for adding a weekly availability window."""

    day_of_week: int = Field(..., ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    start_time: time
    end_time: time

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def validate_time(cls, v: object) -> time:
        """Accept HH:MM strings only."""
        return coerce_time(v)

    @model_validator(mode="after")
    def validate_range(self) -> "AvailabilityCreate":
        """Validate end time is after start time."""
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class AvailabilityResponse(BaseModel):
    """Schema for an availability window."""

    id: UUID
    staff_id: UUID
    day_of_week: int
    start_time: time
    end_time: time
    is_available: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_serializer("start_time", "end_time")
    def serialize_time(self, value: time) -> str:
        """Render times as HH:MM."""
        return format_time(value)


class TimeSlot(BaseModel):
    """A bookable slot."""

    start_time: str
    end_time: str


class AvailableSlotsResponse(BaseModel):
    """Bookable slots for one staff member on one date."""

    staff_id: UUID
    date: date
    day_of_week: int
    granularity_minutes: int
    slots: list[TimeSlot]


class WeeklyStatsResponse(BaseModel):
    """Availability usage for one week."""

    week_start: date
    week_end: date
    total_slots: int
    booked_slots: int
    available_slots: int
    pending_appointments: int
