"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Table,
    Text,
    Time,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

from app.models.base import metadata

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    # Participants
    Column(
        "student_id",
        UUID(as_uuid=True),
        ForeignKey("user_profiles.user_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "staff_id",
        UUID(as_uuid=True),
        ForeignKey("user_profiles.user_id", ondelete="CASCADE"),
        nullable=False,
    ),
    # Booking
    Column("appointment_date", Date, nullable=False),
    Column("start_time", Time, nullable=False),
    Column("end_time", Time, nullable=False),
    # Status management
    Column("status", Text, nullable=False, server_default="pending"),
    # Details
    Column("subject", Text, nullable=True),
    Column("notes", Text, nullable=True),
    Column("staff_notes", Text, nullable=True),
    # Audit fields
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    # Constraints
    CheckConstraint(
        "status IN ('pending', 'approved', 'declined', 'cancelled', 'completed')",
        name="appointments_status_check",
    ),
    CheckConstraint("start_time < end_time", name="appointments_range_check"),
    Index("idx_appointments_student_id", "student_id"),
    Index("idx_appointments_staff_id", "staff_id"),
    Index("idx_appointments_date", "appointment_date"),
    Index("idx_appointments_status", "status"),
)
