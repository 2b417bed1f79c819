"""Staff availability and slot endpoints."""

from datetime import date, timedelta
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.core.clock import local_now
from app.dependencies import UserStore
from app.schemas.availability import (
    AvailabilityCreate,
    AvailabilityResponse,
    AvailableSlotsResponse,
    WeeklyStatsResponse,
)
from app.services.availability_service import AvailabilityService

router = APIRouter()


@router.get(
    "/me",
    response_model=list[AvailabilityResponse],
    status_code=status.HTTP_200_OK,
    tags=["Availability"],
    summary="List my availability windows",
)
async def list_my_availability(store: UserStore) -> list[AvailabilityResponse]:
    """List the calling staff member's weekly windows, by day then start time."""
    service = AvailabilityService(store)
    return await service.list_my_windows()


@router.post(
    "/",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Availability"],
    summary="Add availability window",
)
async def add_availability(
    data: AvailabilityCreate,
    store: UserStore,
) -> AvailabilityResponse:
    """
    Add a recurring weekly window.

    Args:
        data: Day of week (0 = Sunday) and HH:MM range
        store: Caller's scoped store

    Returns:
        Created window
    """
    service = AvailabilityService(store)
    return await service.add_window(data)


@router.patch(
    "/{window_id}/toggle",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
    tags=["Availability"],
    summary="Toggle availability window",
)
async def toggle_availability(window_id: UUID, store: UserStore) -> AvailabilityResponse:
    """Flip a window between available and unavailable."""
    service = AvailabilityService(store)
    return await service.toggle_window(window_id)


@router.delete(
    "/{window_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Availability"],
    summary="Delete availability window",
)
async def delete_availability(window_id: UUID, store: UserStore) -> None:
    """Delete one of the caller's windows."""
    service = AvailabilityService(store)
    await service.delete_window(window_id)


@router.get(
    "/me/weekly-stats",
    response_model=WeeklyStatsResponse,
    status_code=status.HTTP_200_OK,
    tags=["Availability"],
    summary="Weekly availability stats",
)
async def weekly_stats(
    store: UserStore,
    week_start: date | None = Query(None, description="Defaults to the current week's Sunday"),
) -> WeeklyStatsResponse:
    """
    Summarize a week of availability and bookings.

    Args:
        store: Caller's scoped store
        week_start: First day of the week

    Returns:
        Window and appointment counts for the week
    """
    if week_start is None:
        today = local_now().date()
        week_start = today - timedelta(days=(today.weekday() + 1) % 7)

    service = AvailabilityService(store)
    return await service.weekly_stats(week_start)


@router.get(
    "/staff/{staff_id}/slots",
    response_model=AvailableSlotsResponse,
    status_code=status.HTTP_200_OK,
    tags=["Availability"],
    summary="Bookable slots for a staff member",
)
async def available_slots(
    staff_id: UUID,
    store: UserStore,
    on_date: date = Query(..., alias="date"),
) -> AvailableSlotsResponse:
    """
    Compute the slots that can be booked with a staff member on a date.

    Args:
        staff_id: Staff member's user ID
        store: Caller's scoped store
        on_date: Calendar date

    Returns:
        Slots in ascending order; empty if none are offerable
    """
    service = AvailabilityService(store)
    return await service.available_slots(staff_id, on_date, local_now())
