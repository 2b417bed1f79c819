"""In-memory store used in demo mode and by the test suite."""

import asyncio
import secrets
from collections.abc import Iterable
from datetime import UTC, date, datetime, time
from typing import Any
from uuid import UUID, uuid4

import structlog

from app.core.exceptions import ConflictException, SlotConflictException
from app.core.security import get_password_hash
from app.schemas.users import UserRole
from app.stores.base import BLOCKING_STATUSES, BookingStore, conflicts_with

logger = structlog.get_logger(__name__)

DEMO_STUDENT_EMAIL = "demo-student@campus.edu"
DEMO_STAFF_EMAIL = "demo-staff@campus.edu"


def _now() -> datetime:
    return datetime.now(UTC)


class InMemoryBookingStore(BookingStore):
    """
    Dict-backed implementation of ``BookingStore``.

    Records are copied on the way in and out so callers never share state with
    the store. Bookings are serialized with an ``asyncio.Lock``.
    """

    mode = "demo"

    def __init__(self) -> None:
        """Initialize empty tables."""
        self.identities: dict[UUID, dict] = {}
        self.profiles: dict[UUID, dict] = {}
        self.windows: dict[UUID, dict] = {}
        self.appointments: dict[UUID, dict] = {}
        self.notifications: dict[UUID, dict] = {}
        self._booking_lock = asyncio.Lock()

    async def ping(self) -> bool:
        return True

    # Identities

    async def get_identity(self, identity_id: UUID) -> dict | None:
        row = self.identities.get(identity_id)
        return dict(row) if row else None

    async def get_identity_by_email(self, email: str) -> dict | None:
        wanted = email.lower()
        for row in self.identities.values():
            if row["email"].lower() == wanted:
                return dict(row)
        return None

    async def create_identity(self, email: str, hashed_password: str) -> dict:
        if await self.get_identity_by_email(email):
            raise ConflictException("An account with this email already exists")
        row = {
            "id": uuid4(),
            "email": email,
            "hashed_password": hashed_password,
            "created_at": _now(),
            "last_sign_in_at": None,
        }
        self.identities[row["id"]] = row
        return dict(row)

    async def touch_identity(self, identity_id: UUID) -> None:
        if identity_id in self.identities:
            self.identities[identity_id]["last_sign_in_at"] = _now()

    # Profiles

    async def create_profile(self, values: dict[str, Any]) -> dict:
        if values["user_id"] in self.profiles:
            raise ConflictException("Profile already exists")
        now = _now()
        row = {
            "id": uuid4(),
            "phone": None,
            "department": None,
            **values,
            "created_at": now,
            "updated_at": now,
        }
        self.profiles[row["user_id"]] = row
        return dict(row)

    async def get_profile(self, user_id: UUID) -> dict | None:
        row = self.profiles.get(user_id)
        return dict(row) if row else None

    async def list_profiles(
        self,
        role: str | None = None,
        user_ids: Iterable[UUID] | None = None,
    ) -> list[dict]:
        wanted = {str(u) for u in user_ids} if user_ids is not None else None
        rows = [
            dict(row)
            for row in self.profiles.values()
            if (role is None or row["role"] == role)
            and (wanted is None or str(row["user_id"]) in wanted)
        ]
        return sorted(rows, key=lambda row: row["full_name"].lower())

    async def update_profile(self, user_id: UUID, values: dict[str, Any]) -> dict | None:
        row = self.profiles.get(user_id)
        if row is None:
            return None
        row.update(values, updated_at=_now())
        return dict(row)

    # Availability windows

    async def list_windows(
        self,
        staff_id: UUID,
        day_of_week: int | None = None,
        only_available: bool = False,
    ) -> list[dict]:
        rows = [
            dict(row)
            for row in self.windows.values()
            if str(row["staff_id"]) == str(staff_id)
            and (day_of_week is None or row["day_of_week"] == day_of_week)
            and (not only_available or row["is_available"])
        ]
        return sorted(rows, key=lambda row: (row["day_of_week"], row["start_time"]))

    async def get_window(self, window_id: UUID) -> dict | None:
        row = self.windows.get(window_id)
        return dict(row) if row else None

    async def create_window(self, values: dict[str, Any]) -> dict:
        now = _now()
        row = {"id": uuid4(), "is_available": True, **values, "created_at": now, "updated_at": now}
        self.windows[row["id"]] = row
        return dict(row)

    async def update_window(self, window_id: UUID, values: dict[str, Any]) -> dict | None:
        row = self.windows.get(window_id)
        if row is None:
            return None
        row.update(values, updated_at=_now())
        return dict(row)

    async def delete_window(self, window_id: UUID) -> bool:
        return self.windows.pop(window_id, None) is not None

    # Appointments

    async def get_appointment(self, appointment_id: UUID) -> dict | None:
        row = self.appointments.get(appointment_id)
        return dict(row) if row else None

    async def list_appointments(
        self,
        student_id: UUID | None = None,
        staff_id: UUID | None = None,
        statuses: Iterable[str] | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> list[dict]:
        status_set = set(statuses) if statuses is not None else None
        rows = [
            dict(row)
            for row in self.appointments.values()
            if (student_id is None or str(row["student_id"]) == str(student_id))
            and (staff_id is None or str(row["staff_id"]) == str(staff_id))
            and (status_set is None or row["status"] in status_set)
            and (from_date is None or row["appointment_date"] >= from_date)
            and (to_date is None or row["appointment_date"] <= to_date)
        ]
        return sorted(
            rows,
            key=lambda row: (row["appointment_date"], row["start_time"]),
            reverse=True,
        )

    def _matching(self, appointment_id: UUID, expected_status: str | None) -> dict | None:
        row = self.appointments.get(appointment_id)
        if row is None or (expected_status is not None and row["status"] != expected_status):
            return None
        return row

    async def book_appointment(self, values: dict[str, Any]) -> dict:
        async with self._booking_lock:
            if conflicts_with(values, self.appointments.values()):
                raise SlotConflictException()
            now = _now()
            row = {
                "id": uuid4(),
                "status": "pending",
                "subject": None,
                "notes": None,
                "staff_notes": None,
                **values,
                "created_at": now,
                "updated_at": now,
            }
            self.appointments[row["id"]] = row
            return dict(row)

    async def rebook_appointment(
        self,
        appointment_id: UUID,
        values: dict[str, Any],
        expected_status: str | None = None,
    ) -> dict | None:
        async with self._booking_lock:
            row = self._matching(appointment_id, expected_status)
            if row is None:
                return None
            candidate = {**row, **values}
            if conflicts_with(candidate, self.appointments.values(), exclude_id=appointment_id):
                raise SlotConflictException()
            row.update(values, updated_at=_now())
            return dict(row)

    async def update_appointment(
        self,
        appointment_id: UUID,
        values: dict[str, Any],
        expected_status: str | None = None,
    ) -> dict | None:
        async with self._booking_lock:
            row = self._matching(appointment_id, expected_status)
            if row is None:
                return None
            candidate = {**row, **values}
            if candidate["status"] in BLOCKING_STATUSES and conflicts_with(
                candidate, self.appointments.values(), exclude_id=appointment_id
            ):
                raise SlotConflictException()
            row.update(values, updated_at=_now())
            return dict(row)

    async def delete_appointment(self, appointment_id: UUID) -> bool:
        if self.appointments.pop(appointment_id, None) is None:
            return False
        for notification in self.notifications.values():
            if str(notification.get("appointment_id")) == str(appointment_id):
                notification["appointment_id"] = None
        return True

    # Notifications

    async def create_notification(self, values: dict[str, Any]) -> dict:
        row = {
            "id": uuid4(),
            "is_read": False,
            "appointment_id": None,
            **values,
            "created_at": _now(),
        }
        self.notifications[row["id"]] = row
        return dict(row)

    async def get_notification(self, notification_id: UUID) -> dict | None:
        row = self.notifications.get(notification_id)
        return dict(row) if row else None

    def _user_notifications(self, user_id: UUID, unread_only: bool) -> list[dict]:
        return [
            row
            for row in self.notifications.values()
            if str(row["user_id"]) == str(user_id) and not (unread_only and row["is_read"])
        ]

    async def list_notifications(
        self,
        user_id: UUID,
        unread_only: bool = False,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict]:
        rows = sorted(
            self._user_notifications(user_id, unread_only),
            key=lambda row: row["created_at"],
            reverse=True,
        )
        end = offset + limit if limit is not None else None
        return [dict(row) for row in rows[offset:end]]

    async def count_notifications(self, user_id: UUID, unread_only: bool = False) -> int:
        return len(self._user_notifications(user_id, unread_only))

    async def mark_notifications_read(
        self, user_id: UUID, notification_id: UUID | None = None
    ) -> int:
        updated = 0
        for row in self._user_notifications(user_id, unread_only=True):
            if notification_id is None or str(row["id"]) == str(notification_id):
                row["is_read"] = True
                updated += 1
        return updated

    async def delete_notification(self, notification_id: UUID) -> bool:
        return self.notifications.pop(notification_id, None) is not None


async def seed_demo_data(store: BookingStore) -> dict[str, dict]:
    """
    Create the demo student and staff accounts with a week of availability.

    Seeded accounts have unguessable passwords; they are reached through the
    demo sign-in endpoint.

    Returns:
        Profiles keyed by role
    """
    seeded: dict[str, dict] = {}
    accounts = [
        (UserRole.STUDENT, DEMO_STUDENT_EMAIL, "Demo Student", "Computer Science"),
        (UserRole.STAFF, DEMO_STAFF_EMAIL, "Demo Staff", "Academic Affairs"),
    ]
    for role, email, full_name, department in accounts:
        identity = await store.get_identity_by_email(email)
        if identity is None:
            identity = await store.create_identity(
                email, get_password_hash(secrets.token_urlsafe(16))
            )
        profile = await store.get_profile(identity["id"])
        if profile is None:
            profile = await store.create_profile(
                {
                    "user_id": identity["id"],
                    "role": role.value,
                    "full_name": full_name,
                    "email": email,
                    "department": department,
                }
            )
        seeded[role.value] = profile

    staff_id = seeded[UserRole.STAFF.value]["user_id"]
    if not await store.list_windows(staff_id):
        # Monday to Friday mornings
        for day in range(1, 6):
            await store.create_window(
                {
                    "staff_id": staff_id,
                    "day_of_week": day,
                    "start_time": time(9, 0),
                    "end_time": time(12, 0),
                }
            )

    logger.info("demo_data_seeded", profiles=len(seeded))
    return seeded
