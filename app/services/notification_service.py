"""In-app notification relay."""

from datetime import date, timedelta
from typing import Any, Protocol
from uuid import UUID

import structlog

from app.core.policy import Capability
from app.schemas.appointments import AppointmentStatus
from app.schemas.notifications import (
    NotificationCreate,
    NotificationListResponse,
    NotificationRecord,
    NotificationType,
)
from app.services.slot_generator import format_time
from app.stores.base import BookingStore
from app.stores.scoped import ScopedStore

logger = structlog.get_logger(__name__)


class NotificationSink(Protocol):
    async def create_notification(self, values: dict[str, Any]) -> dict: ...


# Title and message per appointment event, addressed to the counter-party
_APPOINTMENT_EVENTS: dict[str, tuple[str, str]] = {
    "booked": ("New appointment request", "{student} requested an appointment on {when}."),
    "edited": ("Appointment updated", "{student} moved their appointment to {when}."),
    AppointmentStatus.APPROVED.value: (
        "Appointment approved",
        "{staff} approved your appointment on {when}.",
    ),
    AppointmentStatus.DECLINED.value: (
        "Appointment declined",
        "{staff} declined your appointment on {when}.",
    ),
    AppointmentStatus.CANCELLED.value: (
        "Appointment cancelled",
        "{actor} cancelled the appointment on {when}.",
    ),
    AppointmentStatus.COMPLETED.value: (
        "Appointment completed",
        "Your appointment with {staff} on {when} was marked as completed.",
    ),
}


def describe_slot(appointment: dict) -> str:
    """Human-readable date and time range of an appointment."""
    return (
        f"{appointment['appointment_date'].strftime('%a %d %b %Y')} "
        f"{format_time(appointment['start_time'])}-{format_time(appointment['end_time'])}"
    )


class NotificationService:
    """Service for emitting and reading in-app notifications."""

    def __init__(self, store: ScopedStore):
        """Initialize service with the caller's scoped store."""
        self.store = store

    @staticmethod
    async def emit(sink: NotificationSink, data: NotificationCreate) -> NotificationRecord:
        """
        Persist a notification for a user.

        Args:
            sink: Store to write to; any user may be addressed
            data: Notification content

        Returns:
            Created notification
        """
        row = await sink.create_notification({**data.model_dump(), "type": data.type.value})
        logger.info(
            "notification_emitted",
            user_id=str(data.user_id),
            type=data.type.value,
            appointment_id=str(data.appointment_id) if data.appointment_id else None,
        )
        return NotificationRecord.model_validate(row)

    @classmethod
    async def notify_appointment_event(
        cls,
        sink: NotificationSink,
        event: str,
        appointment: dict,
        recipient_id: UUID,
        names: dict[str, str],
    ) -> NotificationRecord:
        """
        Tell the counter-party about a booking, edit or status change.

        Args:
            sink: Store to write to
            event: ``"booked"``, ``"edited"`` or the new status
            appointment: Appointment after the change
            recipient_id: Participant to notify
            names: ``student``, ``staff`` and ``actor`` display names

        Returns:
            Created notification
        """
        title, template = _APPOINTMENT_EVENTS[event]
        return await cls.emit(
            sink,
            NotificationCreate(
                user_id=recipient_id,
                title=title,
                message=template.format(when=describe_slot(appointment), **names),
                type=NotificationType.APPOINTMENT,
                appointment_id=appointment["id"],
            ),
        )

    @classmethod
    async def send_welcome(cls, sink: NotificationSink, profile: dict) -> NotificationRecord:
        """Greet a newly registered user."""
        if profile["role"] == "staff":
            hint = "Add your weekly availability so students can book time with you."
        else:
            hint = "Browse the staff directory to book your first appointment."
        return await cls.emit(
            sink,
            NotificationCreate(
                user_id=profile["user_id"],
                title="Welcome to Campus Appointments",
                message=f"Hi {profile['full_name']}, your account is ready. {hint}",
                type=NotificationType.SYSTEM,
            ),
        )

    @classmethod
    async def send_reminders(cls, store: BookingStore, today: date) -> int:
        """
        Remind both participants of approved appointments taking place tomorrow.

        Args:
            store: Unscoped store; the job runs without a user session
            today: Reference date

        Returns:
            Number of notifications created. Recipients already reminded about
            an appointment are skipped.
        """
        tomorrow = today + timedelta(days=1)
        rows = await store.list_appointments(
            statuses=[AppointmentStatus.APPROVED.value],
            from_date=tomorrow,
            to_date=tomorrow,
        )
        if not rows:
            return 0

        user_ids = {row["student_id"] for row in rows} | {row["staff_id"] for row in rows}
        names = {
            str(profile["user_id"]): profile["full_name"]
            for profile in await store.list_profiles(user_ids=user_ids)
        }

        reminded: dict[str, set[str]] = {}
        for user_id in user_ids:
            reminded[str(user_id)] = {
                str(notification["appointment_id"])
                for notification in await store.list_notifications(user_id)
                if notification["type"] == NotificationType.REMINDER.value
                and notification["appointment_id"] is not None
            }

        sent = 0
        for row in rows:
            for recipient, other in (
                (row["student_id"], row["staff_id"]),
                (row["staff_id"], row["student_id"]),
            ):
                # Already reminded by an earlier run for this date
                if str(row["id"]) in reminded[str(recipient)]:
                    continue
                await cls.emit(
                    store,
                    NotificationCreate(
                        user_id=recipient,
                        title="Appointment tomorrow",
                        message=(
                            f"Reminder: you meet {names.get(str(other), 'your contact')} "
                            f"on {describe_slot(row)}."
                        ),
                        type=NotificationType.REMINDER,
                        appointment_id=row["id"],
                    ),
                )
                sent += 1

        logger.info("reminders_sent", date=tomorrow.isoformat(), count=sent)
        return sent

    async def list_notifications(
        self,
        unread_only: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> NotificationListResponse:
        """
        List the caller's notifications, newest first.

        Args:
            unread_only: Only return unread notifications
            page: Page number
            page_size: Items per page

        Returns:
            Page of notifications with totals
        """
        self.store.session.require(Capability.VIEW_NOTIFICATIONS)
        offset = (page - 1) * page_size
        rows = await self.store.list_notifications(unread_only, limit=page_size, offset=offset)
        total = await self.store.count_notifications(unread_only)
        unread = total if unread_only else await self.store.count_notifications(unread_only=True)
        return NotificationListResponse(
            notifications=[NotificationRecord.model_validate(row) for row in rows],
            total=total,
            unread_count=unread,
            page=page,
            page_size=page_size,
        )

    async def mark_read(self, notification_id: UUID) -> int:
        self.store.session.require(Capability.VIEW_NOTIFICATIONS)
        return await self.store.mark_notification_read(notification_id)

    async def mark_all_read(self) -> int:
        self.store.session.require(Capability.VIEW_NOTIFICATIONS)
        updated = await self.store.mark_all_notifications_read()
        logger.info("notifications_marked_read", user_id=str(self.store.viewer_id), count=updated)
        return updated

    async def delete(self, notification_id: UUID) -> None:
        self.store.session.require(Capability.VIEW_NOTIFICATIONS)
        await self.store.delete_notification(notification_id)
