"""Notification endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import UserStore
from app.schemas.notifications import MarkReadResponse, NotificationListResponse
from app.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get(
    "",
    response_model=NotificationListResponse,
    status_code=status.HTTP_200_OK,
    summary="List my notifications",
)
async def list_notifications(
    store: UserStore,
    unread_only: bool = Query(False, description="Only return unread notifications"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
) -> NotificationListResponse:
    """
    List the caller's notifications, newest first, with the unread count.

    Args:
        store: Caller's scoped store
        unread_only: Only return unread notifications
        page: Page number
        page_size: Items per page

    Returns:
        Page of notifications
    """
    service = NotificationService(store)
    return await service.list_notifications(unread_only, page, page_size)


@router.patch(
    "/{notification_id}/read",
    response_model=MarkReadResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark notification as read",
)
async def mark_notification_read(notification_id: UUID, store: UserStore) -> MarkReadResponse:
    """Mark one notification as read; already read notifications report zero updates."""
    service = NotificationService(store)
    return MarkReadResponse(updated=await service.mark_read(notification_id))


@router.post(
    "/read-all",
    response_model=MarkReadResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark all notifications as read",
)
async def mark_all_notifications_read(store: UserStore) -> MarkReadResponse:
    """Mark every unread notification of the caller as read."""
    service = NotificationService(store)
    return MarkReadResponse(updated=await service.mark_all_read())


@router.delete(
    "/{notification_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete notification",
)
async def delete_notification(notification_id: UUID, store: UserStore) -> None:
    """Delete one of the caller's notifications."""
    service = NotificationService(store)
    await service.delete(notification_id)
