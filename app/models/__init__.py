"""Database models."""

from app.models.appointments import appointments
from app.models.availability import staff_availability
from app.models.base import metadata
from app.models.notifications import notifications
from app.models.users import identities, user_profiles

__all__ = [
    "appointments",
    "identities",
    "metadata",
    "notifications",
    "staff_availability",
    "user_profiles",
]
