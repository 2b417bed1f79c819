"""Data store interface shared by the live and demo back ends."""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any
from uuid import UUID

from app.schemas.appointments import AppointmentStatus
from app.services.slot_generator import TimeRange

BLOCKING_STATUSES = (AppointmentStatus.PENDING.value, AppointmentStatus.APPROVED.value)


def conflicts_with(
    candidate: Mapping[str, Any],
    existing: Iterable[Mapping[str, Any]],
    exclude_id: UUID | None = None,
) -> bool:
    """
    Check a booking against the staff member's committed appointments.

    Only pending and approved appointments on the same date for the same staff
    member count; ``exclude_id`` skips the appointment being rebooked.
    """
    wanted = TimeRange(candidate["start_time"], candidate["end_time"])
    for row in existing:
        if exclude_id is not None and str(row["id"]) == str(exclude_id):
            continue
        if str(row["staff_id"]) != str(candidate["staff_id"]):
            continue
        if row["appointment_date"] != candidate["appointment_date"]:
            continue
        if row["status"] not in BLOCKING_STATUSES:
            continue
        if wanted.overlaps(TimeRange(row["start_time"], row["end_time"])):
            return True
    return False


class BookingStore(ABC):
    """
    Persistence primitives for identities, profiles, availability,
    appointments and notifications.

    Implementations return plain dicts and perform no authorization; wrap a
    store in ``ScopedStore`` to apply the per-user row rules.
    """

    #: "live" for the database, "demo" for the in-memory fixtures
    mode: str = "live"

    async def reset(self) -> None:
        """Discard any half-finished unit of work before a retry."""

    async def close(self) -> None:
        """Release resources held by the store."""

    @abstractmethod
    async def ping(self) -> bool:
        """Round-trip to the store."""

    # Identities

    @abstractmethod
    async def get_identity(self, identity_id: UUID) -> dict | None: ...

    @abstractmethod
    async def get_identity_by_email(self, email: str) -> dict | None: ...

    @abstractmethod
    async def create_identity(self, email: str, hashed_password: str) -> dict:
        """
        Create credentials for a new user.

        Raises:
            ConflictException: If the email is already registered
        """

    @abstractmethod
    async def touch_identity(self, identity_id: UUID) -> None:
        """Record a successful sign-in."""

    # Profiles

    @abstractmethod
    async def create_profile(self, values: dict[str, Any]) -> dict: ...

    @abstractmethod
    async def get_profile(self, user_id: UUID) -> dict | None: ...

    @abstractmethod
    async def list_profiles(
        self,
        role: str | None = None,
        user_ids: Iterable[UUID] | None = None,
    ) -> list[dict]:
        """List profiles ordered by full name."""

    @abstractmethod
    async def update_profile(self, user_id: UUID, values: dict[str, Any]) -> dict | None: ...

    # Availability windows

    @abstractmethod
    async def list_windows(
        self,
        staff_id: UUID,
        day_of_week: int | None = None,
        only_available: bool = False,
    ) -> list[dict]:
        """List a staff member's windows ordered by day and start time."""

    @abstractmethod
    async def get_window(self, window_id: UUID) -> dict | None: ...

    @abstractmethod
    async def create_window(self, values: dict[str, Any]) -> dict: ...

    @abstractmethod
    async def update_window(self, window_id: UUID, values: dict[str, Any]) -> dict | None: ...

    @abstractmethod
    async def delete_window(self, window_id: UUID) -> bool: ...

    # Appointments

    @abstractmethod
    async def get_appointment(self, appointment_id: UUID) -> dict | None: ...

    @abstractmethod
    async def list_appointments(
        self,
        student_id: UUID | None = None,
        staff_id: UUID | None = None,
        statuses: Iterable[str] | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> list[dict]:
        """List appointments, newest date and start time first."""

    @abstractmethod
    async def book_appointment(self, values: dict[str, Any]) -> dict:
        """
        Insert a pending appointment if its range is still free.

        The conflict check and the insert are atomic with respect to other
        bookings for the same staff member and date.

        Raises:
            SlotConflictException: If a pending or approved appointment overlaps
        """

    @abstractmethod
    async def rebook_appointment(
        self,
        appointment_id: UUID,
        values: dict[str, Any],
        expected_status: str | None = None,
    ) -> dict | None:
        """
        Move an appointment to a new range, atomically re-checking conflicts.

        Returns ``None`` when no row matches the id and, if given, ``expected_status``.

        Raises:
            SlotConflictException: If another blocking appointment overlaps
        """

    @abstractmethod
    async def update_appointment(
        self,
        appointment_id: UUID,
        values: dict[str, Any],
        expected_status: str | None = None,
    ) -> dict | None:
        """
        Write ``values`` if the row still has ``expected_status`` (when given).

        Returns ``None`` when no row matches.

        Raises:
            SlotConflictException: If the new status makes the range overlap another booking
        """

    @abstractmethod
    async def delete_appointment(self, appointment_id: UUID) -> bool:
        """Remove an appointment; notifications keep existing with the reference cleared."""

    # Notifications

    @abstractmethod
    async def create_notification(self, values: dict[str, Any]) -> dict: ...

    @abstractmethod
    async def get_notification(self, notification_id: UUID) -> dict | None: ...

    @abstractmethod
    async def list_notifications(
        self,
        user_id: UUID,
        unread_only: bool = False,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict]:
        """List a user's notifications, newest first."""

    @abstractmethod
    async def count_notifications(self, user_id: UUID, unread_only: bool = False) -> int: ...

    @abstractmethod
    async def mark_notifications_read(
        self, user_id: UUID, notification_id: UUID | None = None
    ) -> int:
        """Flag one or all of a user's unread notifications as read; return the count."""

    @abstractmethod
    async def delete_notification(self, notification_id: UUID) -> bool: ...
