"""Appointment endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import UserStore
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    StaffNotesUpdate,
)
from app.services.appointment_service import AppointmentService

router = APIRouter()


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book an appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    store: UserStore,
) -> AppointmentResponse:
    """
    Book a pending appointment in one of a staff member's offerable slots.

    Args:
        data: Staff member, date, slot, subject and notes
        store: Caller's scoped store

    Returns:
        Created appointment

    Raises:
        HTTPException: 409 if the slot was taken, 422 if it is not offerable
    """
    service = AppointmentService(store)
    return await service.create_appointment(data)


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
async def list_appointments(
    store: UserStore,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    search: str | None = Query(None, max_length=200),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List the caller's appointments with filtering.

    Args:
        store: Caller's scoped store
        status_filter: Filter by status
        search: Text matched against subject, notes and the other participant's name
        from_date: Earliest appointment date
        to_date: Latest appointment date
        page: Page number
        page_size: Items per page

    Returns:
        Paginated list of appointments
    """
    filters = AppointmentFilters(
        status=status_filter,
        search=search,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    )

    service = AppointmentService(store)
    return await service.list_appointments(filters)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    store: UserStore,
) -> AppointmentResponse:
    """
    Get a specific appointment by ID.

    Raises:
        HTTPException: If appointment not found or access denied
    """
    service = AppointmentService(store)
    return await service.get_appointment(appointment_id)


@router.put(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Edit a pending appointment",
)
async def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    store: UserStore,
) -> AppointmentResponse:
    """
    Move a pending appointment to another offerable slot.

    Args:
        appointment_id: Appointment ID
        data: Replacement booking
        store: Caller's scoped store

    Returns:
        Updated appointment

    Raises:
        HTTPException: If the appointment cannot be edited or the slot is unavailable
    """
    service = AppointmentService(store)
    return await service.edit_appointment(appointment_id, data)


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    store: UserStore,
) -> AppointmentResponse:
    """
    Approve, decline, cancel or complete an appointment.

    Args:
        appointment_id: Appointment ID
        data: Target status and optional staff notes
        store: Caller's scoped store

    Returns:
        Updated appointment

    Raises:
        HTTPException: 409 with the rejected transition if it is not allowed
    """
    service = AppointmentService(store)
    return await service.transition(appointment_id, data)


@router.patch(
    "/{appointment_id}/staff-notes",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Add staff notes",
)
async def update_staff_notes(
    appointment_id: UUID,
    data: StaffNotesUpdate,
    store: UserStore,
) -> AppointmentResponse:
    """Annotate an appointment as its staff member."""
    service = AppointmentService(store)
    return await service.update_staff_notes(appointment_id, data.staff_notes)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Appointments"],
    summary="Delete appointment",
)
async def delete_appointment(
    appointment_id: UUID,
    store: UserStore,
) -> None:
    """
    Delete a declined, cancelled or completed appointment.

    Raises:
        HTTPException: 409 if the appointment is still pending or approved
    """
    service = AppointmentService(store)
    await service.delete_appointment(appointment_id)
