"""Role capabilities and row-level access rules.

Every role check in the service goes through ``policy``: endpoints ask for a
capability, and the scoped store applies the row predicates to each record it
reads or writes on behalf of a session.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any
from uuid import UUID

from app.core.exceptions import ForbiddenException
from app.schemas.users import UserRole


class Capability(str, Enum):
    """Things a signed-in user may be allowed to do."""

    BOOK_APPOINTMENTS = "book_appointments"
    EDIT_OWN_BOOKINGS = "edit_own_bookings"
    CANCEL_APPOINTMENTS = "cancel_appointments"
    REVIEW_APPOINTMENTS = "review_appointments"
    ANNOTATE_APPOINTMENTS = "annotate_appointments"
    MANAGE_AVAILABILITY = "manage_availability"
    VIEW_SLOTS = "view_slots"
    VIEW_REPORTS = "view_reports"
    VIEW_NOTIFICATIONS = "view_notifications"


ROLE_CAPABILITIES: dict[UserRole, frozenset[Capability]] = {
    UserRole.STUDENT: frozenset(
        {
            Capability.BOOK_APPOINTMENTS,
            Capability.EDIT_OWN_BOOKINGS,
            Capability.CANCEL_APPOINTMENTS,
            Capability.VIEW_SLOTS,
            Capability.VIEW_NOTIFICATIONS,
        }
    ),
    UserRole.STAFF: frozenset(
        {
            Capability.CANCEL_APPOINTMENTS,
            Capability.REVIEW_APPOINTMENTS,
            Capability.ANNOTATE_APPOINTMENTS,
            Capability.MANAGE_AVAILABILITY,
            Capability.VIEW_SLOTS,
            Capability.VIEW_REPORTS,
            Capability.VIEW_NOTIFICATIONS,
        }
    ),
}


def _same(a: Any, b: Any) -> bool:
    return a is not None and b is not None and str(a) == str(b)


class AccessPolicy:
    """Single source of truth for role and ownership decisions."""

    def __init__(self, role_capabilities: Mapping[UserRole, frozenset[Capability]]):
        """Initialize with the role to capability mapping."""
        self.role_capabilities = role_capabilities

    def capabilities(self, role: UserRole) -> list[str]:
        """List the capabilities of a role, sorted for stable output."""
        return sorted(c.value for c in self.role_capabilities.get(role, frozenset()))

    def can(self, role: UserRole, capability: Capability) -> bool:
        """Check whether a role grants a capability."""
        return capability in self.role_capabilities.get(role, frozenset())

    def require(self, role: UserRole, capability: Capability) -> None:
        """
        Ensure a role grants a capability.

        Raises:
            ForbiddenException: If it does not
        """
        if not self.can(role, capability):
            raise ForbiddenException(
                f"{role.value.capitalize()} accounts cannot {capability.value.replace('_', ' ')}"
            )

    # Row predicates

    def can_read_profile(
        self,
        viewer_id: UUID,
        viewer_role: UserRole,
        profile: Mapping[str, Any],
        shares_appointment: bool = False,
    ) -> bool:
        """Own profile, any staff profile, or a student met through an appointment."""
        if _same(profile["user_id"], viewer_id):
            return True
        if profile["role"] == UserRole.STAFF.value:
            return True
        return viewer_role == UserRole.STAFF and shares_appointment

    def can_write_profile(self, viewer_id: UUID, profile: Mapping[str, Any]) -> bool:
        return _same(profile["user_id"], viewer_id)

    def can_read_window(self, viewer_id: UUID, window: Mapping[str, Any]) -> bool:
        """Owners see all their windows; everyone else sees available ones."""
        return _same(window["staff_id"], viewer_id) or bool(window["is_available"])

    def can_write_window(self, viewer_id: UUID, window: Mapping[str, Any]) -> bool:
        return _same(window["staff_id"], viewer_id)

    def can_access_appointment(self, viewer_id: UUID, appointment: Mapping[str, Any]) -> bool:
        """Both participants may read and write the appointment."""
        return _same(appointment["student_id"], viewer_id) or _same(
            appointment["staff_id"], viewer_id
        )

    def acts_for(self, viewer_id: UUID, role: UserRole, appointment: Mapping[str, Any]) -> bool:
        """The viewer is the appointment's student or staff member, on the side of their role."""
        field = "staff_id" if role == UserRole.STAFF else "student_id"
        return _same(appointment[field], viewer_id)

    def can_access_notification(self, viewer_id: UUID, notification: Mapping[str, Any]) -> bool:
        return _same(notification["user_id"], viewer_id)


policy = AccessPolicy(ROLE_CAPABILITIES)
