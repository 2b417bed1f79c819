"""PostgreSQL store built on SQLAlchemy Core."""

from collections.abc import Iterable
from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import and_, delete, func, insert, select, text, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, SlotConflictException
from app.core.resilience import bounded
from app.models.appointments import appointments
from app.models.availability import staff_availability
from app.models.notifications import notifications
from app.models.users import identities, user_profiles
from app.stores.base import BLOCKING_STATUSES, BookingStore


class SQLBookingStore(BookingStore):
    """
    ``BookingStore`` over one ``AsyncSession``.

    Reads retry on connectivity failures; writes get a single bounded attempt.
    """

    mode = "live"

    def __init__(self, db: AsyncSession):
        """Initialize store with database session."""
        self.db = db

    async def reset(self) -> None:
        await self.db.rollback()

    async def close(self) -> None:
        await self.db.close()

    @bounded(retry=True)
    async def ping(self) -> bool:
        await self.db.execute(text("SELECT 1"))
        return True

    async def _fetch_one(self, stmt: Any) -> dict | None:
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        return dict(row) if row else None

    async def _fetch_all(self, stmt: Any) -> list[dict]:
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    async def _write_one(self, stmt: Any) -> dict | None:
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        await self.db.commit()
        return dict(row) if row else None

    # Identities

    @bounded(retry=True)
    async def get_identity(self, identity_id: UUID) -> dict | None:
        return await self._fetch_one(select(identities).where(identities.c.id == identity_id))

    @bounded(retry=True)
    async def get_identity_by_email(self, email: str) -> dict | None:
        return await self._fetch_one(
            select(identities).where(func.lower(identities.c.email) == email.lower())
        )

    @bounded()
    async def create_identity(self, email: str, hashed_password: str) -> dict:
        stmt = (
            insert(identities)
            .values(email=email, hashed_password=hashed_password)
            .returning(identities)
        )
        try:
            row = await self._write_one(stmt)
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictException("An account with this email already exists") from e
        if not row:
            raise ValueError("Failed to create identity")
        return row

    @bounded()
    async def touch_identity(self, identity_id: UUID) -> None:
        await self.db.execute(
            update(identities)
            .where(identities.c.id == identity_id)
            .values(last_sign_in_at=datetime.now(UTC))
        )
        await self.db.commit()

    # Profiles

    @bounded()
    async def create_profile(self, values: dict[str, Any]) -> dict:
        stmt = insert(user_profiles).values(**values).returning(user_profiles)
        try:
            row = await self._write_one(stmt)
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictException("Profile already exists") from e
        if not row:
            raise ValueError("Failed to create profile")
        return row

    @bounded(retry=True)
    async def get_profile(self, user_id: UUID) -> dict | None:
        return await self._fetch_one(
            select(user_profiles).where(user_profiles.c.user_id == user_id)
        )

    @bounded(retry=True)
    async def list_profiles(
        self,
        role: str | None = None,
        user_ids: Iterable[UUID] | None = None,
    ) -> list[dict]:
        conditions = []
        if role is not None:
            conditions.append(user_profiles.c.role == role)
        if user_ids is not None:
            ids = list(user_ids)
            if not ids:
                return []
            conditions.append(user_profiles.c.user_id.in_(ids))

        stmt = select(user_profiles).order_by(user_profiles.c.full_name)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        return await self._fetch_all(stmt)

    @bounded()
    async def update_profile(self, user_id: UUID, values: dict[str, Any]) -> dict | None:
        stmt = (
            update(user_profiles)
            .where(user_profiles.c.user_id == user_id)
            .values(**values, updated_at=datetime.now(UTC))
            .returning(user_profiles)
        )
        return await self._write_one(stmt)

    # Availability windows

    @bounded(retry=True)
    async def list_windows(
        self,
        staff_id: UUID,
        day_of_week: int | None = None,
        only_available: bool = False,
    ) -> list[dict]:
        conditions = [staff_availability.c.staff_id == staff_id]
        if day_of_week is not None:
            conditions.append(staff_availability.c.day_of_week == day_of_week)
        if only_available:
            conditions.append(staff_availability.c.is_available.is_(True))

        stmt = (
            select(staff_availability)
            .where(and_(*conditions))
            .order_by(staff_availability.c.day_of_week, staff_availability.c.start_time)
        )
        return await self._fetch_all(stmt)

    @bounded(retry=True)
    async def get_window(self, window_id: UUID) -> dict | None:
        return await self._fetch_one(
            select(staff_availability).where(staff_availability.c.id == window_id)
        )

    @bounded()
    async def create_window(self, values: dict[str, Any]) -> dict:
        row = await self._write_one(
            insert(staff_availability).values(**values).returning(staff_availability)
        )
        if not row:
            raise ValueError("Failed to create availability window")
        return row

    @bounded()
    async def update_window(self, window_id: UUID, values: dict[str, Any]) -> dict | None:
        stmt = (
            update(staff_availability)
            .where(staff_availability.c.id == window_id)
            .values(**values, updated_at=datetime.now(UTC))
            .returning(staff_availability)
        )
        return await self._write_one(stmt)

    @bounded()
    async def delete_window(self, window_id: UUID) -> bool:
        result = await self.db.execute(
            delete(staff_availability).where(staff_availability.c.id == window_id)
        )
        await self.db.commit()
        return result.rowcount > 0  # type: ignore[attr-defined]

    # Appointments

    @bounded(retry=True)
    async def get_appointment(self, appointment_id: UUID) -> dict | None:
        return await self._fetch_one(
            select(appointments).where(appointments.c.id == appointment_id)
        )

    @bounded(retry=True)
    async def list_appointments(
        self,
        student_id: UUID | None = None,
        staff_id: UUID | None = None,
        statuses: Iterable[str] | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> list[dict]:
        conditions = []
        if student_id is not None:
            conditions.append(appointments.c.student_id == student_id)
        if staff_id is not None:
            conditions.append(appointments.c.staff_id == staff_id)
        if statuses is not None:
            conditions.append(appointments.c.status.in_(list(statuses)))
        if from_date is not None:
            conditions.append(appointments.c.appointment_date >= from_date)
        if to_date is not None:
            conditions.append(appointments.c.appointment_date <= to_date)

        stmt = select(appointments).order_by(
            appointments.c.appointment_date.desc(),
            appointments.c.start_time.desc(),
        )
        if conditions:
            stmt = stmt.where(and_(*conditions))
        return await self._fetch_all(stmt)

    async def _lock_staff_day(self, staff_id: UUID, appointment_date: date) -> None:
        """Serialize bookings for one staff member and date until the transaction ends."""
        key = f"{staff_id}:{appointment_date.isoformat()}"
        await self.db.execute(
            select(func.pg_advisory_xact_lock(func.hashtextextended(key, 0)))
        )

    async def _has_conflict(
        self,
        values: dict[str, Any],
        exclude_id: UUID | None = None,
    ) -> bool:
        conditions = [
            appointments.c.staff_id == values["staff_id"],
            appointments.c.appointment_date == values["appointment_date"],
            appointments.c.status.in_(BLOCKING_STATUSES),
            appointments.c.start_time < values["end_time"],
            appointments.c.end_time > values["start_time"],
        ]
        if exclude_id is not None:
            conditions.append(appointments.c.id != exclude_id)
        result = await self.db.execute(
            select(func.count()).select_from(appointments).where(and_(*conditions))
        )
        return (result.scalar() or 0) > 0

    @bounded()
    async def book_appointment(self, values: dict[str, Any]) -> dict:
        try:
            await self._lock_staff_day(values["staff_id"], values["appointment_date"])
            if await self._has_conflict(values):
                await self.db.rollback()
                raise SlotConflictException()
            row = await self._write_one(
                insert(appointments).values(**values).returning(appointments)
            )
        except IntegrityError as e:
            # Exclusion constraint caught a booking the lock did not cover
            await self.db.rollback()
            raise SlotConflictException() from e
        if not row:
            raise ValueError("Failed to create appointment")
        return row

    @staticmethod
    def _matching(appointment_id: UUID, expected_status: str | None) -> list:
        conditions = [appointments.c.id == appointment_id]
        if expected_status is not None:
            conditions.append(appointments.c.status == expected_status)
        return conditions

    @bounded()
    async def rebook_appointment(
        self,
        appointment_id: UUID,
        values: dict[str, Any],
        expected_status: str | None = None,
    ) -> dict | None:
        try:
            await self._lock_staff_day(values["staff_id"], values["appointment_date"])
            if await self._has_conflict(values, exclude_id=appointment_id):
                await self.db.rollback()
                raise SlotConflictException()
            return await self._write_one(
                update(appointments)
                .where(*self._matching(appointment_id, expected_status))
                .values(**values, updated_at=datetime.now(UTC))
                .returning(appointments)
            )
        except IntegrityError as e:
            await self.db.rollback()
            raise SlotConflictException() from e

    @bounded()
    async def update_appointment(
        self,
        appointment_id: UUID,
        values: dict[str, Any],
        expected_status: str | None = None,
    ) -> dict | None:
        stmt = (
            update(appointments)
            .where(*self._matching(appointment_id, expected_status))
            .values(**values, updated_at=datetime.now(UTC))
            .returning(appointments)
        )
        try:
            return await self._write_one(stmt)
        except IntegrityError as e:
            # The new status collides with appointments_no_overlap
            await self.db.rollback()
            raise SlotConflictException() from e

    @bounded()
    async def delete_appointment(self, appointment_id: UUID) -> bool:
        # notifications.appointment_id is ON DELETE SET NULL
        result = await self.db.execute(
            delete(appointments).where(appointments.c.id == appointment_id)
        )
        await self.db.commit()
        return result.rowcount > 0  # type: ignore[attr-defined]

    # Notifications

    @bounded()
    async def create_notification(self, values: dict[str, Any]) -> dict:
        row = await self._write_one(
            insert(notifications).values(**values).returning(notifications)
        )
        if not row:
            raise ValueError("Failed to create notification")
        return row

    @bounded(retry=True)
    async def get_notification(self, notification_id: UUID) -> dict | None:
        return await self._fetch_one(
            select(notifications).where(notifications.c.id == notification_id)
        )

    @staticmethod
    def _notification_conditions(user_id: UUID, unread_only: bool) -> list:
        conditions = [notifications.c.user_id == user_id]
        if unread_only:
            conditions.append(notifications.c.is_read.is_(False))
        return conditions

    @bounded(retry=True)
    async def list_notifications(
        self,
        user_id: UUID,
        unread_only: bool = False,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict]:
        stmt = (
            select(notifications)
            .where(and_(*self._notification_conditions(user_id, unread_only)))
            .order_by(notifications.c.created_at.desc())
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return await self._fetch_all(stmt)

    @bounded(retry=True)
    async def count_notifications(self, user_id: UUID, unread_only: bool = False) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(notifications)
            .where(and_(*self._notification_conditions(user_id, unread_only)))
        )
        return result.scalar() or 0

    @bounded()
    async def mark_notifications_read(
        self, user_id: UUID, notification_id: UUID | None = None
    ) -> int:
        conditions = self._notification_conditions(user_id, unread_only=True)
        if notification_id is not None:
            conditions.append(notifications.c.id == notification_id)
        result = await self.db.execute(
            update(notifications).where(and_(*conditions)).values(is_read=True)
        )
        await self.db.commit()
        return result.rowcount  # type: ignore[attr-defined]

    @bounded()
    async def delete_notification(self, notification_id: UUID) -> bool:
        result = await self.db.execute(
            delete(notifications).where(notifications.c.id == notification_id)
        )
        await self.db.commit()
        return result.rowcount > 0  # type: ignore[attr-defined]
