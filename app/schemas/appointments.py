"""Appointment schemas for request/response validation."""

from datetime import date, datetime, time
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

from app.core.exceptions import InvalidTimeFormatException
from app.services.slot_generator import format_time, parse_time


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


def coerce_time(value: object) -> time:
    """Parse an ``HH:MM`` field, reporting failures as pydantic validation errors."""
    try:
        return parse_time(value)  # type: ignore[arg-type]
    except InvalidTimeFormatException as e:
        raise ValueError(e.message) from e


class AppointmentSlot(BaseModel):
    """Date and time range of an appointment request."""

    appointment_date: date
    start_time: time
    end_time: time

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def validate_time(cls, v: object) -> time:
        """Accept HH:MM strings only."""
        return coerce_time(v)

    @model_validator(mode="after")
    def validate_range(self) -> "AppointmentSlot":
        """Validate end time is after start time."""
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class AppointmentCreate(AppointmentSlot):
    """Schema for booking a new appointment."""

    staff_id: UUID
    subject: str | None = Field(None, max_length=200)
    notes: str | None = Field(None, max_length=1000)


class AppointmentUpdate(AppointmentCreate):
    """Schema for editing a pending appointment; replaces the booking in place."""


class AppointmentStatusUpdate(BaseModel):
    """Schema for a lifecycle transition."""

    status: AppointmentStatus
    staff_notes: str | None = Field(None, max_length=1000)


class StaffNotesUpdate(BaseModel):
    """Schema for annotating an appointment."""

    staff_notes: str = Field(..., max_length=1000)


class ParticipantSummary(BaseModel):
    """Name and department of the other party on an appointment."""

    user_id: UUID
    full_name: str
    department: str | None = None


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    student_id: UUID
    staff_id: UUID
    appointment_date: date
    start_time: time
    end_time: time
    status: AppointmentStatus
    subject: str | None = None
    notes: str | None = None
    staff_notes: str | None = None
    created_at: datetime
    updated_at: datetime
    student: ParticipantSummary | None = None
    staff: ParticipantSummary | None = None

    model_config = {"from_attributes": True}

    @field_serializer("start_time", "end_time")
    def serialize_time(self, value: time) -> str:
        """Render times as HH:MM."""
        return format_time(value)


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    search: str | None = Field(None, max_length=200)
    from_date: date | None = None
    to_date: date | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)
