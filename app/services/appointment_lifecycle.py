"""Appointment status state machine.

Decides whether a requested status change (or an in-place edit) is allowed for
an actor at a given wall-clock instant, and computes the resulting record
changes. It never persists anything and never dispatches notifications.
"""

from collections.abc import Mapping
from datetime import date, datetime, time
from typing import Any
from uuid import UUID

from app.core.exceptions import InvalidTransitionException
from app.core.policy import Capability, policy
from app.schemas.appointments import AppointmentStatus
from app.schemas.users import UserRole

TERMINAL_STATES = frozenset(
    {AppointmentStatus.DECLINED, AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED}
)

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset(
        {AppointmentStatus.APPROVED, AppointmentStatus.DECLINED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.APPROVED: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.DECLINED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
}

# Capability required to request each target status.
TRANSITION_CAPABILITIES: dict[AppointmentStatus, Capability] = {
    AppointmentStatus.APPROVED: Capability.REVIEW_APPOINTMENTS,
    AppointmentStatus.DECLINED: Capability.REVIEW_APPOINTMENTS,
    AppointmentStatus.COMPLETED: Capability.REVIEW_APPOINTMENTS,
    AppointmentStatus.CANCELLED: Capability.CANCEL_APPOINTMENTS,
}

EDIT = "edited"


def _combine(day: date, moment: time) -> datetime:
    return datetime.combine(day, moment)


def starts_at(appointment: Mapping[str, Any]) -> datetime:
    """Return the start instant of an appointment."""
    return _combine(appointment["appointment_date"], appointment["start_time"])


def ends_at(appointment: Mapping[str, Any]) -> datetime:
    """Return the end instant of an appointment."""
    return _combine(appointment["appointment_date"], appointment["end_time"])


def is_owner(appointment: Mapping[str, Any], actor_id: UUID, role: UserRole) -> bool:
    """Check that the actor is the student or staff member referenced for their role."""
    return policy.acts_for(actor_id, role, appointment)


def validate_transition(
    appointment: Mapping[str, Any],
    target: AppointmentStatus,
    actor_id: UUID,
    actor_role: UserRole,
    now: datetime,
) -> AppointmentStatus:
    """
    Validate a status transition.

    Args:
        appointment: Current appointment record
        target: Requested status
        actor_id: Identity of the user requesting the change
        actor_role: Role of that user
        now: Current wall-clock instant, naive, in the appointment's timezone

    Returns:
        The new status

    Raises:
        InvalidTransitionException: If the transition is not permitted
    """
    current = AppointmentStatus(appointment["status"])

    def reject(reason: str) -> InvalidTransitionException:
        return InvalidTransitionException(current.value, target.value, actor_role.value, reason)

    if current in TERMINAL_STATES:
        raise reject(f"'{current.value}' is a final state")
    if target not in ALLOWED_TRANSITIONS[current]:
        raise reject("transition not allowed")
    required = TRANSITION_CAPABILITIES[target]
    if not policy.can(actor_role, required):
        raise reject(f"{actor_role.value} accounts cannot {required.value.replace('_', ' ')}")
    if not is_owner(appointment, actor_id, actor_role):
        raise reject("only the participants of this appointment may change it")

    if target == AppointmentStatus.CANCELLED and starts_at(appointment) <= now:
        raise reject("the appointment has already started")
    if target == AppointmentStatus.COMPLETED and ends_at(appointment) > now:
        raise reject("the appointment has not ended yet")

    return target


def apply_transition(
    appointment: Mapping[str, Any],
    target: AppointmentStatus,
    actor_id: UUID,
    actor_role: UserRole,
    now: datetime,
    staff_notes: str | None = None,
) -> dict[str, Any]:
    """
    Compute the field changes for a validated transition.

    Returns:
        Values to write to the appointment record
    """
    new_status = validate_transition(appointment, target, actor_id, actor_role, now)
    changes: dict[str, Any] = {"status": new_status.value}
    if staff_notes is not None:
        if not policy.can(actor_role, Capability.ANNOTATE_APPOINTMENTS):
            raise InvalidTransitionException(
                appointment["status"],
                target.value,
                actor_role.value,
                "only staff may add staff notes",
            )
        changes["staff_notes"] = staff_notes
    return changes


def validate_edit(
    appointment: Mapping[str, Any],
    actor_id: UUID,
    actor_role: UserRole,
    now: datetime,
) -> None:
    """
    Validate that a booking may be replaced in place.

    Only the owning student may edit, only while the appointment is pending and
    has not started. Offerability of the new slot is checked by the caller
    against freshly generated slots.

    Raises:
        InvalidTransitionException: If the edit is not permitted
    """
    current = AppointmentStatus(appointment["status"])

    def reject(reason: str) -> InvalidTransitionException:
        return InvalidTransitionException(current.value, EDIT, actor_role.value, reason)

    if not policy.can(actor_role, Capability.EDIT_OWN_BOOKINGS):
        raise reject("only the student who booked may edit")
    if current != AppointmentStatus.PENDING:
        raise reject("only pending appointments can be edited")
    if not is_owner(appointment, actor_id, actor_role):
        raise reject("only the participants of this appointment may change it")
    if starts_at(appointment) <= now:
        raise reject("the appointment has already started")


def can_delete(appointment: Mapping[str, Any]) -> bool:
    """Only appointments in a final state may be removed."""
    return AppointmentStatus(appointment["status"]) in TERMINAL_STATES
