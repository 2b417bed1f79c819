"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from app.config import settings
from app.core.redis_client import check_redis_connection
from app.database import check_database_connection
from app.stores.provider import store_provider

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(BaseModel):
    """Detailed health check response model."""

    status: str
    version: str
    environment: str
    store_mode: str
    database: str
    redis: str
    last_store_error: str | None = None


class ReconnectResponse(BaseModel):
    """Store mode after a reconnect attempt."""

    store_mode: str
    last_store_error: str | None = None


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns:
        Basic health status
    """
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Detailed health check",
)
async def detailed_health_check() -> DetailedHealthResponse:
    """
    Detailed health check with store mode, database and Redis status.

    Demo mode reports ``degraded``: the API works but on non-persistent data.

    Returns:
        Detailed health status including dependencies
    """
    db_healthy = store_provider.is_live and await check_database_connection()
    redis_healthy = await check_redis_connection()

    if store_provider.is_live:
        database = "healthy" if db_healthy else "unhealthy"
    else:
        database = "not_in_use"

    return DetailedHealthResponse(
        status="healthy" if db_healthy and redis_healthy else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        store_mode=store_provider.mode,
        database=database,
        redis="healthy" if redis_healthy else "unhealthy",
        last_store_error=store_provider.last_error,
    )


@router.post(
    "/health/reconnect",
    response_model=ReconnectResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Retry the database connection",
)
async def reconnect() -> ReconnectResponse:
    """
    Probe the database again and switch to live mode if it answers.

    Returns:
        Resulting store mode
    """
    mode = await store_provider.reconnect()
    return ReconnectResponse(store_mode=mode, last_store_error=store_provider.last_error)


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    """
    Simple ping endpoint.

    Returns:
        Pong response
    """
    return {"message": "pong"}
