"""Staff availability table using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Table,
    Time,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

from app.models.base import metadata

# Recurring weekly windows; day_of_week is 0 = Sunday ... 6 = Saturday
staff_availability = Table(
    "staff_availability",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    Column(
        "staff_id",
        UUID(as_uuid=True),
        ForeignKey("user_profiles.user_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("day_of_week", Integer, nullable=False),
    Column("start_time", Time, nullable=False),
    Column("end_time", Time, nullable=False),
    Column("is_available", Boolean, nullable=False, server_default=text("true")),
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    CheckConstraint(
        "day_of_week >= 0 AND day_of_week <= 6", name="staff_availability_day_check"
    ),
    CheckConstraint("start_time < end_time", name="staff_availability_range_check"),
    Index("idx_staff_availability_staff_id", "staff_id"),
    Index("idx_staff_availability_day", "day_of_week"),
)
