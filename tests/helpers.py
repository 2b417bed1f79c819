"""Shared helpers for the API test suite."""

from datetime import date, time, timedelta
from typing import Any
from uuid import UUID

from httpx import AsyncClient, Response

from app.core.clock import local_now
from app.stores.memory import InMemoryBookingStore

PASSWORD = "s3cret-pass"


class FakeRedis:
    """Dict-backed stand-in for the handful of Redis commands the app uses."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> bool:
        self.data[key] = value
        return True

    def setex(self, key: str, ttl: int, value: str) -> bool:
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    def exists(self, key: str) -> int:
        return int(key in self.data)

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        pass


def today() -> date:
    return local_now().date()


def next_weekday(weekday: int, weeks_ahead: int = 1) -> date:
    """A future date on the given ``date.weekday()`` (0 = Monday)."""
    current = today()
    return current + timedelta(days=(weekday - current.weekday()) % 7 + 7 * weeks_ahead)


def auth(account: dict[str, Any]) -> dict[str, str]:
    return {"Authorization": f"Bearer {account['access_token']}"}


async def sign_up(
    client: AsyncClient,
    email: str,
    role: str,
    full_name: str,
    department: str | None = None,
) -> dict[str, Any]:
    """Register through the API and return the login payload plus ``user_id``."""
    response = await client.post(
        "/api/v1/auth/sign-up",
        json={
            "email": email,
            "password": PASSWORD,
            "confirm_password": PASSWORD,
            "full_name": full_name,
            "role": role,
            "department": department,
        },
    )
    assert response.status_code == 201, response.text
    data = response.json()
    data["user_id"] = data["profile"]["user_id"]
    data["headers"] = auth(data)
    return data


async def add_window(
    client: AsyncClient,
    staff: dict[str, Any],
    day_of_week: int,
    start: str,
    end: str,
) -> Response:
    return await client.post(
        "/api/v1/availability/",
        json={"day_of_week": day_of_week, "start_time": start, "end_time": end},
        headers=staff["headers"],
    )


async def book(
    client: AsyncClient,
    student: dict[str, Any],
    staff: dict[str, Any],
    on_date: date,
    start: str = "10:00",
    end: str = "11:00",
    **extra: Any,
) -> Response:
    """POST a booking and return the raw response."""
    return await client.post(
        "/api/v1/appointments/",
        json={
            "staff_id": staff["user_id"],
            "appointment_date": on_date.isoformat(),
            "start_time": start,
            "end_time": end,
            **extra,
        },
        headers=student["headers"],
    )


async def set_status(
    client: AsyncClient,
    account: dict[str, Any],
    appointment_id: str,
    status: str,
    **extra: Any,
) -> Response:
    return await client.patch(
        f"/api/v1/appointments/{appointment_id}/status",
        json={"status": status, **extra},
        headers=account["headers"],
    )


async def seed_appointment(
    store: InMemoryBookingStore,
    student: dict[str, Any],
    staff: dict[str, Any],
    on_date: date,
    start: time = time(10, 0),
    end: time = time(11, 0),
    status: str = "pending",
    **extra: Any,
) -> dict:
    """Insert an appointment directly, bypassing slot checks."""
    return await store.book_appointment(
        {
            "student_id": UUID(student["user_id"]),
            "staff_id": UUID(staff["user_id"]),
            "appointment_date": on_date,
            "start_time": start,
            "end_time": end,
            "status": status,
            **extra,
        }
    )
