"""Timeouts and bounded retries for calls to the data store."""

import asyncio
import functools
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

from app.config import settings
from app.core.exceptions import ServiceUnavailableException

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def is_connectivity_error(exc: BaseException) -> bool:
    """Tell transport failures apart from errors the store returned on purpose."""
    if isinstance(exc, (TimeoutError, ConnectionError, OSError)):
        return True
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int,
    backoff: float,
    timeout: float,
    label: str = "store_call",
    on_retry: Callable[[], Awaitable[Any]] | None = None,
) -> T:
    """
    Run an operation under a timeout, retrying connectivity failures.

    Args:
        operation: Factory producing a fresh awaitable per attempt
        attempts: Total number of attempts (1 disables retrying)
        backoff: Fixed delay in seconds between attempts
        timeout: Upper bound in seconds for each attempt
        label: Event name used in log lines
        on_retry: Optional cleanup awaited before the next attempt

    Returns:
        The operation's result

    Raises:
        ServiceUnavailableException: After the last failed attempt
    """
    for attempt in range(1, attempts + 1):
        try:
            return await asyncio.wait_for(operation(), timeout=timeout)
        except Exception as e:
            if not is_connectivity_error(e):
                raise
            logger.warning(
                f"{label}_failed",
                attempt=attempt,
                attempts=attempts,
                error=str(e) or e.__class__.__name__,
            )
            if attempt == attempts:
                raise ServiceUnavailableException(
                    "The data store is unreachable. Please try again shortly."
                ) from e
            if on_retry is not None:
                await on_retry()
            await asyncio.sleep(backoff)

    raise ServiceUnavailableException()


def bounded(*, retry: bool = False) -> Callable:
    """
    Decorate a store coroutine method with the configured time budget.

    Reads pass ``retry=True``; writes get a single bounded attempt. The owning
    object may define an async ``reset()`` that runs before each retry.
    """

    def decorator(method: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(method)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
            return await retry_async(
                lambda: method(self, *args, **kwargs),
                attempts=settings.store_max_retries if retry else 1,
                backoff=settings.store_retry_backoff_seconds,
                timeout=settings.store_timeout_seconds,
                label=f"store_{method.__name__}",
                on_retry=getattr(self, "reset", None),
            )

        return wrapper

    return decorator
