"""Row-level authorization over a ``BookingStore``."""

from datetime import date
from typing import Any
from uuid import UUID

from app.core.exceptions import ForbiddenException, NotFoundException
from app.core.policy import AccessPolicy, policy
from app.core.session import SessionContext
from app.schemas.users import UserRole
from app.stores.base import BLOCKING_STATUSES, BookingStore


class ScopedStore:
    """
    A store bound to one signed-in user.

    Every read and write goes through the access policy's row predicates.
    Missing rows raise ``NotFoundException``; rows that exist but belong to
    someone else raise ``ForbiddenException``.
    """

    def __init__(
        self,
        store: BookingStore,
        session: SessionContext,
        access_policy: AccessPolicy = policy,
    ):
        """Initialize with the backing store and the viewer's session."""
        self.store = store
        self.session = session
        self.policy = access_policy

    @property
    def viewer_id(self) -> UUID:
        return self.session.user_id

    @property
    def mode(self) -> str:
        return self.store.mode

    # Profiles

    async def get_profile(self, user_id: UUID) -> dict:
        """
        Get a profile the viewer may see.

        Raises:
            NotFoundException: If no profile exists
            ForbiddenException: If the viewer may not read it
        """
        profile = await self.store.get_profile(user_id)
        if profile is None:
            raise NotFoundException("Profile not found")

        shares_appointment = False
        if (
            self.session.role == UserRole.STAFF
            and profile["role"] == UserRole.STUDENT.value
            and str(user_id) != str(self.viewer_id)
        ):
            shared = await self.store.list_appointments(student_id=user_id, staff_id=self.viewer_id)
            shares_appointment = bool(shared)

        if not self.policy.can_read_profile(
            self.viewer_id, self.session.role, profile, shares_appointment
        ):
            raise ForbiddenException("You do not have access to this profile")
        return profile

    async def list_staff_profiles(self) -> list[dict]:
        return await self.store.list_profiles(role=UserRole.STAFF.value)

    async def update_own_profile(self, values: dict[str, Any]) -> dict:
        profile = await self.store.get_profile(self.viewer_id)
        if profile is None:
            raise NotFoundException("Profile not found")
        if not self.policy.can_write_profile(self.viewer_id, profile):
            raise ForbiddenException("You can only update your own profile")
        if not values:
            return profile
        updated = await self.store.update_profile(self.viewer_id, values)
        if updated is None:
            raise NotFoundException("Profile not found")
        return updated

    async def participants(self, rows: list[dict]) -> dict[str, dict]:
        """
        Profiles of everyone referenced by appointments the viewer can access.

        Returns:
            Profiles keyed by ``str(user_id)``
        """
        user_ids: set[UUID] = set()
        for row in rows:
            if self.policy.can_access_appointment(self.viewer_id, row):
                user_ids.update({row["student_id"], row["staff_id"]})
        profiles = await self.store.list_profiles(user_ids=user_ids)
        return {str(profile["user_id"]): profile for profile in profiles}

    # Availability windows

    async def list_windows(
        self,
        staff_id: UUID,
        day_of_week: int | None = None,
    ) -> list[dict]:
        """Owners see every window; other viewers see available ones only."""
        only_available = str(staff_id) != str(self.viewer_id)
        rows = await self.store.list_windows(staff_id, day_of_week, only_available)
        return [row for row in rows if self.policy.can_read_window(self.viewer_id, row)]

    async def get_own_window(self, window_id: UUID) -> dict:
        """
        Get one of the viewer's windows for writing.

        Raises:
            NotFoundException: If the window does not exist
            ForbiddenException: If it belongs to another staff member
        """
        window = await self.store.get_window(window_id)
        if window is None:
            raise NotFoundException("Availability window not found")
        if not self.policy.can_write_window(self.viewer_id, window):
            raise ForbiddenException("You can only manage your own availability")
        return window

    async def create_window(self, values: dict[str, Any]) -> dict:
        return await self.store.create_window({**values, "staff_id": self.viewer_id})

    async def update_window(self, window_id: UUID, values: dict[str, Any]) -> dict:
        await self.get_own_window(window_id)
        updated = await self.store.update_window(window_id, values)
        if updated is None:
            raise NotFoundException("Availability window not found")
        return updated

    async def delete_window(self, window_id: UUID) -> None:
        await self.get_own_window(window_id)
        await self.store.delete_window(window_id)

    # Appointments

    async def get_appointment(self, appointment_id: UUID) -> dict:
        """
        Get an appointment the viewer participates in.

        Raises:
            NotFoundException: If no appointment exists
            ForbiddenException: If the viewer is not a participant
        """
        appointment = await self.store.get_appointment(appointment_id)
        if appointment is None:
            raise NotFoundException("Appointment not found")
        if not self.policy.can_access_appointment(self.viewer_id, appointment):
            raise ForbiddenException("Access denied to this appointment")
        return appointment

    async def list_appointments(
        self,
        statuses: list[str] | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> list[dict]:
        """List the viewer's own appointments on their side of the booking."""
        side = "staff_id" if self.session.role == UserRole.STAFF else "student_id"
        rows = await self.store.list_appointments(
            statuses=statuses,
            from_date=from_date,
            to_date=to_date,
            **{side: self.viewer_id},
        )
        return [row for row in rows if self.policy.can_access_appointment(self.viewer_id, row)]

    async def booked_intervals(
        self,
        staff_id: UUID,
        on_date: date,
        exclude_id: UUID | None = None,
    ) -> list[dict]:
        """
        Time ranges a staff member already has committed on a date.

        Only the ranges are exposed, so any signed-in user may ask; this is
        what slot generation needs to see beyond the viewer's own bookings.
        """
        rows = await self.store.list_appointments(
            staff_id=staff_id,
            statuses=list(BLOCKING_STATUSES),
            from_date=on_date,
            to_date=on_date,
        )
        return [
            {"start_time": row["start_time"], "end_time": row["end_time"]}
            for row in rows
            if exclude_id is None or str(row["id"]) != str(exclude_id)
        ]

    async def book_appointment(self, values: dict[str, Any]) -> dict:
        if not self.policy.can_access_appointment(self.viewer_id, values):
            raise ForbiddenException("You can only book appointments for yourself")
        return await self.store.book_appointment(values)

    async def rebook_appointment(
        self,
        appointment_id: UUID,
        values: dict[str, Any],
        expected_status: str | None = None,
    ) -> dict | None:
        """Returns ``None`` if the status moved away from ``expected_status``."""
        await self.get_appointment(appointment_id)
        updated = await self.store.rebook_appointment(appointment_id, values, expected_status)
        if updated is None:
            await self.get_appointment(appointment_id)
        return updated

    async def update_appointment(
        self,
        appointment_id: UUID,
        values: dict[str, Any],
        expected_status: str | None = None,
    ) -> dict | None:
        """Returns ``None`` if the status moved away from ``expected_status``."""
        await self.get_appointment(appointment_id)
        updated = await self.store.update_appointment(appointment_id, values, expected_status)
        if updated is None:
            await self.get_appointment(appointment_id)
        return updated

    async def delete_appointment(self, appointment_id: UUID) -> None:
        await self.get_appointment(appointment_id)
        await self.store.delete_appointment(appointment_id)

    # Notifications

    async def create_notification(self, values: dict[str, Any]) -> dict:
        """Any signed-in user may notify any other user."""
        return await self.store.create_notification(values)

    async def list_notifications(
        self,
        unread_only: bool = False,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict]:
        return await self.store.list_notifications(self.viewer_id, unread_only, limit, offset)

    async def count_notifications(self, unread_only: bool = False) -> int:
        return await self.store.count_notifications(self.viewer_id, unread_only)

    async def _owned_notification(self, notification_id: UUID) -> dict:
        notification = await self.store.get_notification(notification_id)
        if notification is None:
            raise NotFoundException("Notification not found")
        if not self.policy.can_access_notification(self.viewer_id, notification):
            raise ForbiddenException("Access denied to this notification")
        return notification

    async def mark_notification_read(self, notification_id: UUID) -> int:
        await self._owned_notification(notification_id)
        return await self.store.mark_notifications_read(self.viewer_id, notification_id)

    async def mark_all_notifications_read(self) -> int:
        return await self.store.mark_notifications_read(self.viewer_id)

    async def delete_notification(self, notification_id: UUID) -> None:
        await self._owned_notification(notification_id)
        await self.store.delete_notification(notification_id)
