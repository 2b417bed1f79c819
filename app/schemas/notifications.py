"""In-app notification schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    """Notification type enumeration."""

    APPOINTMENT = "appointment"
    REMINDER = "reminder"
    SYSTEM = "system"


class NotificationCreate(BaseModel):
    """Schema for a notification emitted by the relay."""

    user_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=1000)
    type: NotificationType = NotificationType.SYSTEM
    appointment_id: UUID | None = None


class NotificationRecord(BaseModel):
    """Schema for notification record."""

    id: UUID
    user_id: UUID
    title: str
    message: str
    type: NotificationType
    is_read: bool
    appointment_id: UUID | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    """Schema for the caller's notification feed."""

    notifications: list[NotificationRecord]
    total: int
    unread_count: int
    page: int
    page_size: int


class MarkReadResponse(BaseModel):
    """Number of notifications flagged as read."""

    updated: int
