"""Tests for timeouts, retries and demo-mode fallback."""

import asyncio

import pytest

from app.config import settings
from app.core.exceptions import NotFoundException, ServiceUnavailableException
from app.core.resilience import bounded, is_connectivity_error, retry_async
from app.stores import provider as provider_module
from app.stores.provider import StoreProvider


def test_connectivity_errors_are_recognised() -> None:
    assert is_connectivity_error(ConnectionRefusedError())
    assert is_connectivity_error(TimeoutError())
    assert not is_connectivity_error(ValueError("bad input"))
    assert not is_connectivity_error(NotFoundException())


async def test_retry_recovers_after_transient_failure() -> None:
    calls = []

    async def flaky() -> str:
        calls.append(1)
        if len(calls) < 3:
            raise ConnectionResetError("reset by peer")
        return "ok"

    result = await retry_async(flaky, attempts=3, backoff=0, timeout=1)
    assert result == "ok"
    assert len(calls) == 3


async def test_retry_gives_up_with_service_unavailable() -> None:
    async def down() -> None:
        raise ConnectionRefusedError("refused")

    with pytest.raises(ServiceUnavailableException) as exc_info:
        await retry_async(down, attempts=2, backoff=0, timeout=1)
    assert exc_info.value.status_code == 503


async def test_timeout_counts_as_connectivity_failure() -> None:
    async def slow() -> None:
        await asyncio.sleep(1)

    with pytest.raises(ServiceUnavailableException):
        await retry_async(slow, attempts=1, backoff=0, timeout=0.01)


async def test_application_errors_are_not_retried() -> None:
    calls = []

    async def missing() -> None:
        calls.append(1)
        raise NotFoundException("nope")

    with pytest.raises(NotFoundException):
        await retry_async(missing, attempts=3, backoff=0, timeout=1)
    assert len(calls) == 1


class _FlakyStore:
    def __init__(self) -> None:
        self.attempts = 0
        self.resets = 0

    async def reset(self) -> None:
        self.resets += 1

    @bounded(retry=True)
    async def read(self) -> str:
        self.attempts += 1
        if self.attempts == 1:
            raise ConnectionResetError()
        return "row"

    @bounded()
    async def write(self) -> None:
        self.attempts += 1
        raise ConnectionResetError()


async def test_bounded_read_retries_and_resets(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "store_retry_backoff_seconds", 0)
    store = _FlakyStore()
    assert await store.read() == "row"
    assert store.attempts == 2
    assert store.resets == 1


async def test_bounded_write_is_attempted_once(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "store_retry_backoff_seconds", 0)
    store = _FlakyStore()
    with pytest.raises(ServiceUnavailableException):
        await store.write()
    assert store.attempts == 1


async def test_provider_falls_back_to_demo_without_database(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(settings, "store_backend", "auto")
    monkeypatch.setattr(settings, "database_url", None)
    monkeypatch.setattr(settings, "demo_seed_data", True)

    provider = StoreProvider()
    assert await provider.connect() == "demo"
    assert not provider.is_live
    assert provider.last_error == "DATABASE_URL not configured"
    assert provider.memory_store is not None
    assert await provider.memory_store.get_identity_by_email("demo-staff@campus.edu")


async def test_provider_falls_back_when_database_unreachable(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def unreachable() -> None:
        raise ConnectionRefusedError("connection refused")

    monkeypatch.setattr(settings, "store_backend", "auto")
    monkeypatch.setattr(settings, "database_url", "postgresql://db.invalid/campus")
    monkeypatch.setattr(settings, "demo_seed_data", False)
    monkeypatch.setattr(settings, "store_max_retries", 2)
    monkeypatch.setattr(settings, "store_retry_backoff_seconds", 0)
    monkeypatch.setattr(provider_module, "ping_database", unreachable)

    provider = StoreProvider()
    assert await provider.connect() == "demo"
    assert provider.last_error

    # Reconnect succeeds once the database answers
    async def reachable() -> None:
        return None

    monkeypatch.setattr(provider_module, "ping_database", reachable)
    assert await provider.reconnect() == "live"
    assert provider.last_error is None


async def test_live_backend_refuses_to_fall_back(monkeypatch: pytest.MonkeyPatch) -> None:
    async def unreachable() -> None:
        raise ConnectionRefusedError("connection refused")

    monkeypatch.setattr(settings, "store_backend", "live")
    monkeypatch.setattr(settings, "database_url", "postgresql://db.invalid/campus")
    monkeypatch.setattr(settings, "store_max_retries", 1)
    monkeypatch.setattr(settings, "store_retry_backoff_seconds", 0)
    monkeypatch.setattr(provider_module, "ping_database", unreachable)

    with pytest.raises(ServiceUnavailableException):
        await StoreProvider().connect()
