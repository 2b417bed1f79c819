"""User profile endpoints."""

from uuid import UUID

from fastapi import APIRouter

from app.dependencies import Cache, UserStore
from app.schemas.users import ProfileResponse, ProfileUpdate, StaffDirectoryEntry
from app.services.profile_service import ProfileService

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=ProfileResponse)
async def get_current_user_profile(store: UserStore) -> ProfileResponse:
    """Get current user's profile."""
    profile_service = ProfileService(store)
    return await profile_service.get_my_profile()


@router.patch("/me", response_model=ProfileResponse)
async def update_current_user_profile(
    data: ProfileUpdate,
    store: UserStore,
    cache: Cache,
) -> ProfileResponse:
    """Update current user's name, phone or department."""
    profile_service = ProfileService(store, cache)
    return await profile_service.update_my_profile(data)


@router.get("/staff", response_model=list[StaffDirectoryEntry])
async def list_staff(store: UserStore, cache: Cache) -> list[StaffDirectoryEntry]:
    """
    List staff members available for booking.

    Returns:
        Staff directory ordered by name
    """
    profile_service = ProfileService(store, cache)
    return await profile_service.list_staff()


@router.get("/{user_id}/profile", response_model=ProfileResponse)
async def get_user_profile(user_id: UUID, store: UserStore) -> ProfileResponse:
    """
    Get another user's profile.

    Staff profiles are public to signed-in users; student profiles are visible
    to staff members who share an appointment with the student.
    """
    profile_service = ProfileService(store)
    return await profile_service.get_profile(user_id)
