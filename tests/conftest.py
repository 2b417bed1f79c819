import os
from collections.abc import AsyncGenerator
from datetime import date
from typing import Any

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient

# Load environment variables from .env file
load_dotenv()

# The API suite always runs on the in-memory store
os.environ["STORE_BACKEND"] = "memory"
os.environ["DEMO_SEED_DATA"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["LOG_FORMAT"] = "console"
os.environ["TIMEZONE"] = "UTC"
os.environ.pop("DATABASE_URL", None)

from app.core.redis_client import get_redis_client  # noqa: E402
from app.dependencies import get_store  # noqa: E402
from app.main import app  # noqa: E402
from app.stores.memory import InMemoryBookingStore  # noqa: E402
from tests.helpers import FakeRedis, add_window, next_weekday, sign_up  # noqa: E402


@pytest.fixture
def store() -> InMemoryBookingStore:
    """Fresh in-memory store per test."""
    return InMemoryBookingStore()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest_asyncio.fixture
async def client(
    store: InMemoryBookingStore, fake_redis: FakeRedis
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_store() -> AsyncGenerator[InMemoryBookingStore, None]:
        yield store

    app.dependency_overrides[get_store] = override_get_store
    app.dependency_overrides[get_redis_client] = lambda: fake_redis

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def student(client: AsyncClient) -> dict[str, Any]:
    return await sign_up(
        client, "alice@university.edu", "student", "Alice Student", "Computer Science"
    )


@pytest_asyncio.fixture
async def other_student(client: AsyncClient) -> dict[str, Any]:
    return await sign_up(client, "bob@university.edu", "student", "Bob Learner", "Mathematics")


@pytest_asyncio.fixture
async def staff(client: AsyncClient) -> dict[str, Any]:
    return await sign_up(client, "carol@university.edu", "staff", "Carol Advisor", "Registry")


@pytest_asyncio.fixture
async def other_staff(client: AsyncClient) -> dict[str, Any]:
    return await sign_up(client, "dave@university.edu", "staff", "Dave Counsellor", "Wellbeing")


@pytest_asyncio.fixture
async def monday(client: AsyncClient, staff: dict[str, Any]) -> date:
    """Give ``staff`` a Monday 09:00-12:00 window and return a future Monday."""
    response = await add_window(client, staff, 1, "09:00", "12:00")
    assert response.status_code == 201, response.text
    return next_weekday(0)
