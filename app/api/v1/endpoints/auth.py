"""Authentication endpoints."""

from fastapi import APIRouter, status

from app.dependencies import Cache, CurrentSession, Store
from app.schemas.auth import (
    DemoSignInRequest,
    LoginResponse,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    Token,
    TokenRefresh,
)
from app.services.auth_service import AuthService

router = APIRouter()


@router.post(
    "/sign-up",
    response_model=LoginResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Authentication"],
    summary="Register with email and password",
)
async def sign_up(
    request: SignUpRequest,
    store: Store,
    cache: Cache,
) -> LoginResponse:
    """
    Create an account and its student or staff profile.

    Args:
        request: Credentials, role and profile fields
        store: Data store
        cache: Cache manager

    Returns:
        Access token, refresh token and the new profile

    Raises:
        HTTPException: 409 if the email is already registered
    """
    auth_service = AuthService(store, cache)
    return await auth_service.sign_up(request)


@router.post(
    "/sign-in",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Sign in with email and password",
)
async def sign_in(
    request: SignInRequest,
    store: Store,
    cache: Cache,
) -> LoginResponse:
    """
    Exchange email and password for a token pair.

    Raises:
        HTTPException: 401 if the credentials do not match
    """
    auth_service = AuthService(store, cache)
    return await auth_service.sign_in(request)


@router.post(
    "/demo",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Sign in as a demo profile",
)
async def demo_sign_in(
    request: DemoSignInRequest,
    store: Store,
    cache: Cache,
) -> LoginResponse:
    """
    Sign in as the seeded demo student or staff member.

    Only available while the service runs on the in-memory store.
    """
    auth_service = AuthService(store, cache)
    return await auth_service.demo_sign_in(request.role)


@router.post(
    "/refresh",
    response_model=Token,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Refresh access token",
)
async def refresh_token(
    request: TokenRefresh,
    store: Store,
    cache: Cache,
) -> Token:
    """
    Refresh access token using refresh token.

    Args:
        request: Refresh token
        store: Data store
        cache: Cache manager

    Returns:
        New access token and refresh token

    Raises:
        HTTPException: If refresh token is invalid or revoked
    """
    auth_service = AuthService(store, cache)
    return auth_service.refresh_access_token(request.refresh_token)


@router.post(
    "/sign-out",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Authentication"],
    summary="Sign out and revoke tokens",
)
async def sign_out(
    session: CurrentSession,
    store: Store,
    cache: Cache,
    request: TokenRefresh | None = None,
) -> None:
    """
    Revoke the current access token and, if supplied, the refresh token.

    Args:
        session: Current session
        store: Data store
        cache: Cache manager
        request: Optional refresh token to revoke
    """
    auth_service = AuthService(store, cache)
    auth_service.sign_out(session.access_token, request.refresh_token if request else None)


@router.get(
    "/session",
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Current session",
)
async def get_session(session: CurrentSession) -> SessionResponse:
    """Return the caller's profile, role, capabilities and whether this is demo mode."""
    return AuthService.describe_session(session)
