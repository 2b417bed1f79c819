"""Appointment service for business logic."""

from collections.abc import Callable
from datetime import date, datetime, time
from uuid import UUID

import structlog

from app.core.clock import local_now
from app.core.exceptions import (
    ForbiddenException,
    InvalidTransitionException,
    SlotConflictException,
    ValidationException,
)
from app.core.policy import Capability
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    ParticipantSummary,
)
from app.services import appointment_lifecycle as lifecycle
from app.services.availability_service import AvailabilityService
from app.services.notification_service import NotificationService
from app.services.slot_generator import TimeRange, format_time, is_offerable
from app.stores.scoped import ScopedStore

logger = structlog.get_logger(__name__)


def _summary(profile: dict | None) -> ParticipantSummary | None:
    if profile is None:
        return None
    return ParticipantSummary(
        user_id=profile["user_id"],
        full_name=profile["full_name"],
        department=profile.get("department"),
    )


class AppointmentService:
    """Service for booking appointments and moving them through their lifecycle."""

    def __init__(self, store: ScopedStore, clock: Callable[[], datetime] = local_now):
        """Initialize service with the caller's scoped store and a wall clock."""
        self.store = store
        self.session = store.session
        self.clock = clock

    async def _to_responses(self, rows: list[dict]) -> list[AppointmentResponse]:
        """Attach student and staff summaries to appointment rows."""
        people = await self.store.participants(rows)
        return [
            AppointmentResponse.model_validate(
                {
                    **row,
                    "student": _summary(people.get(str(row["student_id"]))),
                    "staff": _summary(people.get(str(row["staff_id"]))),
                }
            )
            for row in rows
        ]

    async def _to_response(self, row: dict) -> AppointmentResponse:
        return (await self._to_responses([row]))[0]

    def _counter_party(self, appointment: dict) -> UUID:
        if self.session.is_staff:
            return appointment["student_id"]
        return appointment["staff_id"]

    async def _notify(self, event: str, appointment: AppointmentResponse) -> None:
        """Notify the other participant; failures are logged, never raised."""
        row = {
            "id": appointment.id,
            "student_id": appointment.student_id,
            "staff_id": appointment.staff_id,
            "appointment_date": appointment.appointment_date,
            "start_time": appointment.start_time,
            "end_time": appointment.end_time,
        }
        names = {
            "student": appointment.student.full_name if appointment.student else "A student",
            "staff": appointment.staff.full_name if appointment.staff else "Staff",
            "actor": self.session.profile.get("full_name", "A participant"),
        }
        try:
            await NotificationService.notify_appointment_event(
                self.store, event, row, self._counter_party(row), names
            )
        except Exception as e:
            # Log error but don't fail the request
            logger.warning(
                "failed_to_send_appointment_notification",
                appointment_id=str(appointment.id),
                notification_event=event,
                error=str(e),
            )

    async def _stale(self, appointment_id: UUID, requested: str) -> InvalidTransitionException:
        """Describe a write that lost the race against another status change."""
        latest = await self.store.get_appointment(appointment_id)
        logger.info(
            "appointment_changed_concurrently",
            appointment_id=str(appointment_id),
            status=latest["status"],
            requested=requested,
        )
        return InvalidTransitionException(
            latest["status"],
            requested,
            self.session.role.value,
            "the appointment was changed by another request",
        )

    async def _ensure_offerable(
        self,
        staff_id: UUID,
        on_date: date,
        start_time: time,
        end_time: time,
        exclude_appointment_id: UUID | None = None,
    ) -> None:
        """
        Check a requested range against freshly generated slots.

        Raises:
            SlotConflictException: If the range overlaps a committed booking
            ValidationException: If the range is not a slot or already started
        """
        now = self.clock()
        slots = await AvailabilityService(self.store).offerable_slots(
            staff_id, on_date, now, exclude_appointment_id
        )
        if is_offerable(slots, start_time, end_time):
            return

        requested = TimeRange(start_time, end_time)
        booked = await self.store.booked_intervals(
            staff_id, on_date, exclude_id=exclude_appointment_id
        )
        if any(requested.overlaps(TimeRange(b["start_time"], b["end_time"])) for b in booked):
            raise SlotConflictException()
        if datetime.combine(on_date, start_time) <= now:
            raise ValidationException("Appointments cannot be booked in the past")
        raise ValidationException(
            "The requested time is not an available slot",
            details={
                "appointment_date": on_date.isoformat(),
                "start_time": format_time(start_time),
                "end_time": format_time(end_time),
            },
        )

    async def create_appointment(self, data: AppointmentCreate) -> AppointmentResponse:
        """
        Book a pending appointment with a staff member.

        Args:
            data: Staff member, date, slot and optional subject/notes

        Returns:
            Created appointment

        Raises:
            ForbiddenException: If the caller cannot book
            SlotConflictException: If the slot is already taken
            ValidationException: If the range is not an offerable slot
        """
        self.session.require(Capability.BOOK_APPOINTMENTS)
        await self._ensure_offerable(
            data.staff_id, data.appointment_date, data.start_time, data.end_time
        )

        row = await self.store.book_appointment(
            {
                "student_id": self.session.user_id,
                "staff_id": data.staff_id,
                "appointment_date": data.appointment_date,
                "start_time": data.start_time,
                "end_time": data.end_time,
                "status": "pending",
                "subject": data.subject,
                "notes": data.notes,
            }
        )
        appointment = await self._to_response(row)
        logger.info(
            "appointment_booked",
            appointment_id=str(appointment.id),
            student_id=str(appointment.student_id),
            staff_id=str(appointment.staff_id),
        )

        await self._notify("booked", appointment)
        return appointment

    async def get_appointment(self, appointment_id: UUID) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the caller is not a participant
        """
        return await self._to_response(await self.store.get_appointment(appointment_id))

    async def list_appointments(self, filters: AppointmentFilters) -> AppointmentListResponse:
        """
        List the caller's appointments with filtering and pagination.

        Search matches subject, notes and the other participant's name,
        case-insensitively.

        Args:
            filters: Filter and pagination parameters

        Returns:
            Paginated list of appointments, newest first
        """
        rows = await self.store.list_appointments(
            statuses=[filters.status.value] if filters.status else None,
            from_date=filters.from_date,
            to_date=filters.to_date,
        )
        items = await self._to_responses(rows)

        if filters.search and filters.search.strip():
            needle = filters.search.strip().lower()
            items = [item for item in items if self._matches(item, needle)]

        offset = (filters.page - 1) * filters.page_size
        return AppointmentListResponse(
            total=len(items),
            page=filters.page,
            page_size=filters.page_size,
            items=items[offset : offset + filters.page_size],
        )

    def _matches(self, item: AppointmentResponse, needle: str) -> bool:
        other = item.student if self.session.is_staff else item.staff
        haystack = [item.subject, item.notes, other.full_name if other else None]
        return any(needle in value.lower() for value in haystack if value)

    async def edit_appointment(
        self,
        appointment_id: UUID,
        data: AppointmentUpdate,
    ) -> AppointmentResponse:
        """
        Replace a pending booking in place.

        Args:
            appointment_id: Appointment ID
            data: New staff member, date, slot, subject and notes

        Returns:
            Updated appointment, still pending

        Raises:
            InvalidTransitionException: If the caller may not edit it now
            SlotConflictException: If the new slot is taken
            ValidationException: If the new range is not an offerable slot
        """
        self.session.require(Capability.EDIT_OWN_BOOKINGS)
        current = await self.store.get_appointment(appointment_id)
        lifecycle.validate_edit(current, self.session.user_id, self.session.role, self.clock())

        await self._ensure_offerable(
            data.staff_id,
            data.appointment_date,
            data.start_time,
            data.end_time,
            exclude_appointment_id=appointment_id,
        )

        row = await self.store.rebook_appointment(
            appointment_id,
            {
                "staff_id": data.staff_id,
                "appointment_date": data.appointment_date,
                "start_time": data.start_time,
                "end_time": data.end_time,
                "subject": data.subject,
                "notes": data.notes,
            },
            expected_status=AppointmentStatus.PENDING.value,
        )
        if row is None:
            raise await self._stale(appointment_id, lifecycle.EDIT)
        appointment = await self._to_response(row)
        logger.info("appointment_edited", appointment_id=str(appointment_id))

        await self._notify("edited", appointment)
        return appointment

    async def transition(
        self,
        appointment_id: UUID,
        data: AppointmentStatusUpdate,
    ) -> AppointmentResponse:
        """
        Move an appointment to a new status.

        Args:
            appointment_id: Appointment ID
            data: Target status and, for staff, optional notes

        Returns:
            Updated appointment

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the caller is not a participant
            InvalidTransitionException: If the lifecycle rejects the change or
                another request changed the status first
            SlotConflictException: If the status change collides with another booking
        """
        current = await self.store.get_appointment(appointment_id)
        changes = lifecycle.apply_transition(
            current,
            data.status,
            self.session.user_id,
            self.session.role,
            self.clock(),
            staff_notes=data.staff_notes,
        )

        row = await self.store.update_appointment(
            appointment_id, changes, expected_status=current["status"]
        )
        if row is None:
            raise await self._stale(appointment_id, data.status.value)
        appointment = await self._to_response(row)
        logger.info(
            "appointment_transitioned",
            appointment_id=str(appointment_id),
            from_status=current["status"],
            to_status=changes["status"],
            actor_role=self.session.role.value,
        )

        await self._notify(changes["status"], appointment)
        return appointment

    async def update_staff_notes(
        self, appointment_id: UUID, staff_notes: str
    ) -> AppointmentResponse:
        """
        Annotate an appointment; allowed in any status.

        Raises:
            ForbiddenException: If the caller is not the appointment's staff member
        """
        self.session.require(Capability.ANNOTATE_APPOINTMENTS)
        current = await self.store.get_appointment(appointment_id)
        if not lifecycle.is_owner(current, self.session.user_id, self.session.role):
            raise ForbiddenException("Only the assigned staff member can add notes")

        row = await self.store.update_appointment(appointment_id, {"staff_notes": staff_notes})
        logger.info("appointment_annotated", appointment_id=str(appointment_id))
        return await self._to_response(row)

    async def delete_appointment(self, appointment_id: UUID) -> None:
        """
        Remove a declined, cancelled or completed appointment.

        Raises:
            InvalidTransitionException: If the appointment is still active
        """
        current = await self.store.get_appointment(appointment_id)
        if not lifecycle.can_delete(current):
            raise InvalidTransitionException(
                current["status"],
                "deleted",
                self.session.role.value,
                "only declined, cancelled or completed appointments can be deleted",
            )

        await self.store.delete_appointment(appointment_id)
        logger.info("appointment_deleted", appointment_id=str(appointment_id))
