"""Authentication service for email/password sign-in and JWT sessions."""

import structlog

from app.core.exceptions import ForbiddenException, NotFoundException, UnauthorizedException
from app.core.policy import policy
from app.core.redis_client import STAFF_DIRECTORY_KEY, CacheManager
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    get_password_hash,
    seconds_until_expiry,
    verify_password,
)
from app.core.session import SessionContext
from app.schemas.auth import (
    LoginResponse,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    Token,
)
from app.schemas.users import ProfileCreate, ProfileResponse, UserRole
from app.services.notification_service import NotificationService
from app.stores.base import BookingStore
from app.stores.memory import DEMO_STAFF_EMAIL, DEMO_STUDENT_EMAIL

logger = structlog.get_logger(__name__)


class AuthService:
    """Authentication service for registration, sign-in and token lifecycle."""

    def __init__(self, store: BookingStore, cache_manager: CacheManager):
        """Initialize auth service with the unscoped store and cache manager."""
        self.store = store
        self.cache = cache_manager

    def create_tokens(self, user_id: str) -> Token:
        """
        Create access and refresh tokens for a user.

        Args:
            user_id: Identity ID

        Returns:
            Token pair (access and refresh)
        """
        return Token(
            access_token=create_access_token(user_id),
            refresh_token=create_refresh_token(user_id),
            token_type="bearer",
        )

    def _login_response(self, profile: dict) -> LoginResponse:
        tokens = self.create_tokens(str(profile["user_id"]))
        return LoginResponse(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_type=tokens.token_type,
            profile=ProfileResponse.model_validate(profile),
        )

    async def sign_up(self, data: SignUpRequest) -> LoginResponse:
        """
        Register a user and create their profile.

        Args:
            data: Credentials and initial profile fields

        Returns:
            Token pair and the new profile

        Raises:
            ConflictException: If the email is already registered
        """
        identity = await self.store.create_identity(
            data.email.lower(), get_password_hash(data.password)
        )
        profile_data = ProfileCreate(
            user_id=identity["id"],
            email=identity["email"],
            role=data.role,
            full_name=data.full_name.strip(),
            department=data.department,
            phone=data.phone,
        )
        profile = await self.store.create_profile(
            {**profile_data.model_dump(), "role": data.role.value}
        )
        logger.info("user_signed_up", user_id=str(profile["user_id"]), role=profile["role"])

        if data.role == UserRole.STAFF:
            self.cache.delete(f"{STAFF_DIRECTORY_KEY}:{self.store.mode}")

        try:
            await NotificationService.send_welcome(self.store, profile)
        except Exception as e:
            # Log error but don't fail the request
            logger.warning("failed_to_send_welcome_notification", error=str(e))

        return self._login_response(profile)

    async def sign_in(self, data: SignInRequest) -> LoginResponse:
        """
        Verify email and password.

        Raises:
            UnauthorizedException: If the credentials do not match
        """
        identity = await self.store.get_identity_by_email(data.email)
        if identity is None or not verify_password(data.password, identity["hashed_password"]):
            logger.info("sign_in_rejected", email=data.email)
            raise UnauthorizedException("Invalid email or password")

        profile = await self.store.get_profile(identity["id"])
        if profile is None:
            raise UnauthorizedException("No profile exists for this account")

        await self.store.touch_identity(identity["id"])
        logger.info("user_signed_in", user_id=str(identity["id"]))
        return self._login_response(profile)

    async def demo_sign_in(self, role: UserRole) -> LoginResponse:
        """
        Sign in as a seeded demo profile.

        Raises:
            ForbiddenException: If the service is connected to the live store
            NotFoundException: If the demo profiles were not seeded
        """
        if self.store.mode != "demo":
            raise ForbiddenException("Demo sign-in is only available in demo mode")

        email = DEMO_STAFF_EMAIL if role == UserRole.STAFF else DEMO_STUDENT_EMAIL
        identity = await self.store.get_identity_by_email(email)
        profile = await self.store.get_profile(identity["id"]) if identity else None
        if profile is None:
            raise NotFoundException("Demo profiles are not seeded")

        logger.info("demo_signed_in", role=role.value)
        return self._login_response(profile)

    def refresh_access_token(self, refresh_token: str) -> Token:
        """
        Create new token pair from refresh token.

        Args:
            refresh_token: Valid refresh token

        Returns:
            New token pair

        Raises:
            UnauthorizedException: If refresh token is invalid or revoked
        """
        payload = decode_refresh_token(refresh_token)

        if payload is None:
            raise UnauthorizedException("Invalid refresh token")

        user_id = payload.get("sub")
        if user_id is None:
            raise UnauthorizedException("Invalid refresh token")

        # Check if token is blacklisted
        if self.cache.is_token_revoked(refresh_token):
            raise UnauthorizedException("Token has been revoked")

        # Rotate: the old refresh token cannot be used again
        self.cache.revoke_token(refresh_token, ttl=seconds_until_expiry(payload))
        return self.create_tokens(user_id)

    def sign_out(self, access_token: str, refresh_token: str | None = None) -> None:
        """
        Revoke the session's tokens until they expire.

        Args:
            access_token: Access token of the current request
            refresh_token: Refresh token to revoke as well, if supplied
        """
        access_payload = decode_access_token(access_token)
        if access_payload is not None:
            self.cache.revoke_token(access_token, ttl=seconds_until_expiry(access_payload))

        if refresh_token:
            refresh_payload = decode_refresh_token(refresh_token)
            if refresh_payload is not None:
                self.cache.revoke_token(refresh_token, ttl=seconds_until_expiry(refresh_payload))

        logger.info(
            "user_signed_out",
            user_id=access_payload.get("sub") if access_payload else None,
        )

    @staticmethod
    def describe_session(session: SessionContext) -> SessionResponse:
        """Current profile, role and the capabilities the UI may offer."""
        return SessionResponse(
            profile=ProfileResponse.model_validate(session.profile),
            role=session.role,
            capabilities=policy.capabilities(session.role),
            demo=session.demo,
        )
