"""Tests for authentication endpoints."""

import pytest
from httpx import AsyncClient

from app.core.redis_client import BLACKLIST_PREFIX
from app.core.security import create_access_token, decode_access_token
from app.stores.memory import InMemoryBookingStore, seed_demo_data
from tests.helpers import PASSWORD, FakeRedis, sign_up


@pytest.mark.asyncio
async def test_sign_up_returns_tokens_and_profile(client: AsyncClient) -> None:
    data = await sign_up(client, "Erin@University.edu", "student", "Erin Example", "History")

    assert data["token_type"] == "bearer"
    assert decode_access_token(data["access_token"])["sub"] == data["user_id"]
    profile = data["profile"]
    assert profile["email"] == "erin@university.edu"
    assert profile["role"] == "student"
    assert profile["department"] == "History"


@pytest.mark.asyncio
async def test_sign_up_sends_welcome(client: AsyncClient, staff: dict) -> None:
    feed = (await client.get("/api/v1/notifications", headers=staff["headers"])).json()
    assert feed["total"] == 1
    welcome = feed["notifications"][0]
    assert welcome["type"] == "system"
    assert "availability" in welcome["message"]


@pytest.mark.asyncio
async def test_duplicate_email_rejected(client: AsyncClient, student: dict) -> None:
    response = await client.post(
        "/api/v1/auth/sign-up",
        json={
            "email": "ALICE@university.edu",
            "password": PASSWORD,
            "confirm_password": PASSWORD,
            "full_name": "Alice Again",
            "role": "student",
        },
    )
    assert response.status_code == 409


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"confirm_password": "different-pass"},
        {"password": "short", "confirm_password": "short"},
        {"email": "not-an-email"},
        {"role": "admin"},
        {"full_name": ""},
    ],
)
async def test_invalid_sign_up_rejected(client: AsyncClient, overrides: dict) -> None:
    payload = {
        "email": "frank@university.edu",
        "password": PASSWORD,
        "confirm_password": PASSWORD,
        "full_name": "Frank",
        "role": "student",
        **overrides,
    }
    response = await client.post("/api/v1/auth/sign-up", json=payload)
    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"


@pytest.mark.asyncio
async def test_sign_in(client: AsyncClient, student: dict) -> None:
    response = await client.post(
        "/api/v1/auth/sign-in",
        json={"email": "alice@university.edu", "password": PASSWORD},
    )
    assert response.status_code == 200
    assert response.json()["profile"]["user_id"] == student["user_id"]


@pytest.mark.asyncio
async def test_sign_in_wrong_password(client: AsyncClient, student: dict) -> None:
    response = await client.post(
        "/api/v1/auth/sign-in",
        json={"email": "alice@university.edu", "password": "wrong-password"},
    )
    assert response.status_code == 401

    unknown = await client.post(
        "/api/v1/auth/sign-in",
        json={"email": "nobody@university.edu", "password": PASSWORD},
    )
    assert unknown.status_code == 401


@pytest.mark.asyncio
async def test_session_lists_capabilities(client: AsyncClient, staff: dict) -> None:
    response = await client.get("/api/v1/auth/session", headers=staff["headers"])
    assert response.status_code == 200
    data = response.json()
    assert data["role"] == "staff"
    assert data["demo"] is True
    assert "manage_availability" in data["capabilities"]
    assert "book_appointments" not in data["capabilities"]


@pytest.mark.asyncio
async def test_invalid_tokens_rejected(client: AsyncClient, student: dict) -> None:
    garbage = await client.get(
        "/api/v1/auth/session", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert garbage.status_code == 401

    # Refresh tokens are not accepted as access tokens
    refresh_as_access = await client.get(
        "/api/v1/auth/session",
        headers={"Authorization": f"Bearer {student['refresh_token']}"},
    )
    assert refresh_as_access.status_code == 401

    orphan = create_access_token("6af011a7-44c1-4313-890a-6f973966b10d")
    no_profile = await client.get(
        "/api/v1/auth/session", headers={"Authorization": f"Bearer {orphan}"}
    )
    assert no_profile.status_code == 401


@pytest.mark.asyncio
async def test_refresh_rotates_tokens(client: AsyncClient, student: dict) -> None:
    response = await client.post(
        "/api/v1/auth/refresh", json={"refresh_token": student["refresh_token"]}
    )
    assert response.status_code == 200
    tokens = response.json()
    assert tokens["refresh_token"] != student["refresh_token"]

    session = await client.get(
        "/api/v1/auth/session",
        headers={"Authorization": f"Bearer {tokens['access_token']}"},
    )
    assert session.status_code == 200

    reused = await client.post(
        "/api/v1/auth/refresh", json={"refresh_token": student["refresh_token"]}
    )
    assert reused.status_code == 401


@pytest.mark.asyncio
async def test_refresh_rejects_access_token(client: AsyncClient, student: dict) -> None:
    response = await client.post(
        "/api/v1/auth/refresh", json={"refresh_token": student["access_token"]}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_sign_out_revokes_tokens(
    client: AsyncClient, fake_redis: FakeRedis, student: dict
) -> None:
    response = await client.post(
        "/api/v1/auth/sign-out",
        json={"refresh_token": student["refresh_token"]},
        headers=student["headers"],
    )
    assert response.status_code == 204

    access_key = f"{BLACKLIST_PREFIX}{student['access_token']}"
    assert access_key in fake_redis.data
    assert 0 < fake_redis.ttls[access_key] <= 30 * 60

    after = await client.get("/api/v1/auth/session", headers=student["headers"])
    assert after.status_code == 401

    refreshed = await client.post(
        "/api/v1/auth/refresh", json={"refresh_token": student["refresh_token"]}
    )
    assert refreshed.status_code == 401


@pytest.mark.asyncio
async def test_sign_out_without_refresh_token(client: AsyncClient, student: dict) -> None:
    response = await client.post("/api/v1/auth/sign-out", headers=student["headers"])
    assert response.status_code == 204

    # The refresh token was not revoked
    refreshed = await client.post(
        "/api/v1/auth/refresh", json={"refresh_token": student["refresh_token"]}
    )
    assert refreshed.status_code == 200


@pytest.mark.asyncio
async def test_demo_sign_in(client: AsyncClient, store: InMemoryBookingStore) -> None:
    not_seeded = await client.post("/api/v1/auth/demo", json={"role": "staff"})
    assert not_seeded.status_code == 404

    await seed_demo_data(store)
    response = await client.post("/api/v1/auth/demo", json={"role": "staff"})
    assert response.status_code == 200
    data = response.json()
    assert data["profile"]["full_name"] == "Demo Staff"

    windows = await client.get(
        "/api/v1/availability/me",
        headers={"Authorization": f"Bearer {data['access_token']}"},
    )
    assert len(windows.json()) == 5


@pytest.mark.asyncio
async def test_demo_sign_in_unavailable_when_live(
    client: AsyncClient, store: InMemoryBookingStore
) -> None:
    await seed_demo_data(store)
    store.mode = "live"

    response = await client.post("/api/v1/auth/demo", json={"role": "student"})
    assert response.status_code == 403
