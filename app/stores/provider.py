"""Selection between the live database and the in-memory demo store."""

import structlog

from app.config import settings
from app.core.resilience import retry_async
from app.database import ping_database
from app.stores.memory import InMemoryBookingStore, seed_demo_data

logger = structlog.get_logger(__name__)

LIVE = "live"
DEMO = "demo"


class StoreProvider:
    """
    Decide at startup (and on request) which store backs the API.

    In ``auto`` mode an unreachable database, or none configured, puts the
    service in demo mode on a seeded in-memory store. ``live`` refuses to
    start without the database; ``memory`` never tries it.
    """

    def __init__(self) -> None:
        """Start in demo mode until ``connect`` succeeds."""
        self.mode = DEMO
        self.memory_store: InMemoryBookingStore | None = None
        self.last_error: str | None = None

    @property
    def is_live(self) -> bool:
        return self.mode == LIVE

    async def _use_memory(self, reason: str) -> str:
        if self.memory_store is None:
            self.memory_store = InMemoryBookingStore()
            if settings.demo_seed_data:
                await seed_demo_data(self.memory_store)
        self.mode = DEMO
        self.last_error = reason
        logger.warning("store_fallback_to_demo", reason=reason)
        return self.mode

    async def connect(self) -> str:
        """
        Probe the database with the bounded retry policy.

        Returns:
            The resulting mode, ``"live"`` or ``"demo"``

        Raises:
            RuntimeError: If ``STORE_BACKEND=live`` and no database is configured
            ServiceUnavailableException: If ``STORE_BACKEND=live`` and the probe fails
        """
        backend = settings.store_backend

        if backend == "memory":
            return await self._use_memory("STORE_BACKEND=memory")

        if not settings.database_url:
            if backend == "live":
                raise RuntimeError("STORE_BACKEND=live requires DATABASE_URL")
            return await self._use_memory("DATABASE_URL not configured")

        try:
            await retry_async(
                ping_database,
                attempts=settings.store_max_retries,
                backoff=settings.store_retry_backoff_seconds,
                timeout=settings.store_timeout_seconds,
                label="store_probe",
            )
        except Exception as e:
            if backend == "live":
                raise
            return await self._use_memory(str(e) or e.__class__.__name__)

        self.mode = LIVE
        self.last_error = None
        logger.info("store_connected", mode=self.mode)
        return self.mode

    async def reconnect(self) -> str:
        """Retry the live connection, keeping demo data if it still fails."""
        logger.info("store_reconnect_requested", current_mode=self.mode)
        return await self.connect()

    def status(self) -> dict[str, str | None]:
        return {"mode": self.mode, "backend": settings.store_backend, "last_error": self.last_error}


# Global provider instance
store_provider = StoreProvider()
