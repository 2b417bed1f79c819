"""Profile service for business logic."""

from uuid import UUID

import structlog

from app.core.redis_client import STAFF_DIRECTORY_KEY, CacheManager
from app.schemas.users import ProfileResponse, ProfileUpdate, StaffDirectoryEntry, UserRole
from app.stores.scoped import ScopedStore

logger = structlog.get_logger(__name__)


class ProfileService:
    """Service for profile reads and updates."""

    # Cache TTL in seconds for the staff directory
    STAFF_DIRECTORY_TTL = 300

    def __init__(self, store: ScopedStore, cache_manager: CacheManager | None = None):
        """Initialize service with the caller's store and optional cache manager."""
        self.store = store
        self.cache = cache_manager

    def _directory_key(self) -> str:
        # Demo and live data never share cache entries
        return f"{STAFF_DIRECTORY_KEY}:{self.store.mode}"

    async def get_my_profile(self) -> ProfileResponse:
        return ProfileResponse.model_validate(await self.store.get_profile(self.store.viewer_id))

    async def get_profile(self, user_id: UUID) -> ProfileResponse:
        """
        Get another user's profile.

        Raises:
            NotFoundException: If the profile does not exist
            ForbiddenException: If the caller may not see it
        """
        return ProfileResponse.model_validate(await self.store.get_profile(user_id))

    async def update_my_profile(self, data: ProfileUpdate) -> ProfileResponse:
        """
        Update the caller's name, phone or department.

        Args:
            data: Fields to change; unset fields are left alone

        Returns:
            Updated profile
        """
        values = data.model_dump(exclude_unset=True)
        profile = await self.store.update_own_profile(values)

        if self.cache and profile["role"] == UserRole.STAFF.value:
            self.cache.delete(self._directory_key())

        logger.info("profile_updated", user_id=str(profile["user_id"]), fields=sorted(values))
        return ProfileResponse.model_validate(profile)

    async def list_staff(self) -> list[StaffDirectoryEntry]:
        """Staff members students can book, ordered by name."""
        key = self._directory_key()
        if self.cache:
            cached = self.cache.get_json(key)
            if cached is not None:
                return [StaffDirectoryEntry.model_validate(entry) for entry in cached]

        entries = [
            StaffDirectoryEntry.model_validate(row)
            for row in await self.store.list_staff_profiles()
        ]

        if self.cache:
            self.cache.set_json(
                key,
                [entry.model_dump(mode="json") for entry in entries],
                ttl=self.STAFF_DIRECTORY_TTL,
            )
        return entries
