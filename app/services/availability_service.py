"""Staff availability management and bookable slot lookup."""

from datetime import date, datetime, timedelta
from uuid import UUID

import structlog

from app.config import settings
from app.core.exceptions import NotFoundException
from app.core.policy import Capability
from app.schemas.availability import (
    AvailabilityCreate,
    AvailabilityResponse,
    AvailableSlotsResponse,
    TimeSlot,
    WeeklyStatsResponse,
)
from app.schemas.users import UserRole
from app.services.slot_generator import TimeRange, day_of_week_for, generate_slots
from app.stores.base import BLOCKING_STATUSES
from app.stores.scoped import ScopedStore

logger = structlog.get_logger(__name__)


def slot_granularity() -> timedelta:
    return timedelta(minutes=settings.slot_granularity_minutes)


class AvailabilityService:
    """Service for weekly availability windows and the slots they yield."""

    def __init__(self, store: ScopedStore):
        """Initialize service with the caller's scoped store."""
        self.store = store
        self.session = store.session

    async def list_my_windows(self) -> list[AvailabilityResponse]:
        self.session.require(Capability.MANAGE_AVAILABILITY)
        rows = await self.store.list_windows(self.session.user_id)
        return [AvailabilityResponse.model_validate(row) for row in rows]

    async def add_window(self, data: AvailabilityCreate) -> AvailabilityResponse:
        """
        Add a recurring weekly window for the calling staff member.

        Overlapping windows are allowed; the slot generator deduplicates.

        Args:
            data: Day of week and time range

        Returns:
            Created window, available by default
        """
        self.session.require(Capability.MANAGE_AVAILABILITY)
        row = await self.store.create_window(data.model_dump())
        logger.info(
            "availability_window_added",
            staff_id=str(self.session.user_id),
            day_of_week=data.day_of_week,
        )
        return AvailabilityResponse.model_validate(row)

    async def toggle_window(self, window_id: UUID) -> AvailabilityResponse:
        """
        Flip a window between available and unavailable.

        Raises:
            NotFoundException: If the window does not exist
            ForbiddenException: If it belongs to someone else
        """
        self.session.require(Capability.MANAGE_AVAILABILITY)
        window = await self.store.get_own_window(window_id)
        row = await self.store.update_window(
            window_id, {"is_available": not window["is_available"]}
        )
        return AvailabilityResponse.model_validate(row)

    async def delete_window(self, window_id: UUID) -> None:
        self.session.require(Capability.MANAGE_AVAILABILITY)
        await self.store.delete_window(window_id)
        logger.info("availability_window_deleted", window_id=str(window_id))

    async def weekly_stats(self, week_start: date) -> WeeklyStatsResponse:
        """
        Summarize one week of the calling staff member's availability.

        Args:
            week_start: First day of the week

        Returns:
            Available window count, blocking appointments that week and pending count
        """
        self.session.require(Capability.MANAGE_AVAILABILITY)
        week_end = week_start + timedelta(days=6)

        windows = await self.store.list_windows(self.session.user_id)
        total_slots = sum(1 for row in windows if row["is_available"])

        rows = await self.store.list_appointments(
            statuses=list(BLOCKING_STATUSES), from_date=week_start, to_date=week_end
        )
        booked = len(rows)
        pending = sum(1 for row in rows if row["status"] == "pending")

        return WeeklyStatsResponse(
            week_start=week_start,
            week_end=week_end,
            total_slots=total_slots,
            booked_slots=booked,
            available_slots=max(total_slots - booked, 0),
            pending_appointments=pending,
        )

    async def offerable_slots(
        self,
        staff_id: UUID,
        on_date: date,
        now: datetime,
        exclude_appointment_id: UUID | None = None,
    ) -> list[TimeRange]:
        """
        Compute the slots that may be booked right now.

        Args:
            staff_id: Staff member to book
            on_date: Calendar date
            now: Current wall-clock instant
            exclude_appointment_id: Appointment being edited; its own range stays offerable

        Returns:
            Generated slots whose start is still in the future

        Raises:
            NotFoundException: If ``staff_id`` is not a staff member
        """
        staff = await self.store.get_profile(staff_id)
        if staff["role"] != UserRole.STAFF.value:
            raise NotFoundException("Staff member not found")

        windows = await self.store.list_windows(staff_id, day_of_week_for(on_date))
        windows = [row for row in windows if row["is_available"]]

        booked = await self.store.booked_intervals(
            staff_id, on_date, exclude_id=exclude_appointment_id
        )

        slots = generate_slots(windows, booked, slot_granularity())
        return [slot for slot in slots if datetime.combine(on_date, slot.start) > now]

    async def available_slots(
        self, staff_id: UUID, on_date: date, now: datetime
    ) -> AvailableSlotsResponse:
        """
        Bookable slots for one staff member on one date.

        Returns:
            Slots in ascending start order; empty when nothing is offerable
        """
        self.session.require(Capability.VIEW_SLOTS)
        slots = await self.offerable_slots(staff_id, on_date, now)
        return AvailableSlotsResponse(
            staff_id=staff_id,
            date=on_date,
            day_of_week=day_of_week_for(on_date),
            granularity_minutes=settings.slot_granularity_minutes,
            slots=[TimeSlot(**slot.as_dict()) for slot in slots],
        )
