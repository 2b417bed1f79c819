"""FastAPI dependencies."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

import redis
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app import database
from app.core.exceptions import ServiceUnavailableException, UnauthorizedException
from app.core.redis_client import CacheManager, get_redis_client
from app.core.security import decode_access_token
from app.core.session import SessionContext
from app.schemas.users import UserRole
from app.stores.base import BookingStore
from app.stores.provider import store_provider
from app.stores.scoped import ScopedStore
from app.stores.sql import SQLBookingStore

# Security
security = HTTPBearer(auto_error=False)


async def get_store() -> AsyncGenerator[BookingStore, None]:
    """
    Yield the store selected by the provider.

    Live mode opens one database session per request; demo mode shares the
    in-memory store.
    """
    if store_provider.is_live and database.AsyncSessionLocal is not None:
        async with database.AsyncSessionLocal() as session:
            yield SQLBookingStore(session)
        return

    if store_provider.memory_store is None:
        raise ServiceUnavailableException("The data store has not been initialized")
    yield store_provider.memory_store


def get_cache_manager(
    redis_client: Annotated[redis.Redis, Depends(get_redis_client)],
) -> CacheManager:
    """Wrap the shared Redis client in a fail-open cache manager."""
    return CacheManager(redis_client)


async def get_current_session(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    store: Annotated[BookingStore, Depends(get_store)],
    cache: Annotated[CacheManager, Depends(get_cache_manager)],
) -> SessionContext:
    """
    Build the caller's session from a bearer access token.

    Args:
        credentials: Bearer token credentials
        store: Data store for the profile lookup
        cache: Cache holding revoked tokens

    Returns:
        Session context for this request

    Raises:
        UnauthorizedException: If the token is missing, invalid, revoked, or
            its user has no profile
    """
    if credentials is None:
        raise UnauthorizedException("Not authenticated")

    token = credentials.credentials
    payload = decode_access_token(token)
    if payload is None:
        raise UnauthorizedException("Could not validate credentials")

    if cache.is_token_revoked(token):
        raise UnauthorizedException("Token has been revoked")

    user_id_str = payload.get("sub")
    if user_id_str is None or not isinstance(user_id_str, str):
        raise UnauthorizedException("Could not validate credentials")

    try:
        user_id = UUID(user_id_str)
    except ValueError:
        raise UnauthorizedException("Invalid user ID format")

    profile = await store.get_profile(user_id)
    if profile is None:
        raise UnauthorizedException("User not found")

    return SessionContext(
        user_id=user_id,
        role=UserRole(profile["role"]),
        profile=profile,
        access_token=token,
        demo=store.mode == "demo",
    )


def get_scoped_store(
    store: Annotated[BookingStore, Depends(get_store)],
    session: Annotated[SessionContext, Depends(get_current_session)],
) -> ScopedStore:
    """Bind the request's store to the signed-in user."""
    return ScopedStore(store, session)


# Type aliases for dependency injection
Store = Annotated[BookingStore, Depends(get_store)]
Cache = Annotated[CacheManager, Depends(get_cache_manager)]
CurrentSession = Annotated[SessionContext, Depends(get_current_session)]
UserStore = Annotated[ScopedStore, Depends(get_scoped_store)]
