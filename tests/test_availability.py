"""Tests for availability and slot endpoints."""

from datetime import date, timedelta
from uuid import uuid4

import pytest
from httpx import AsyncClient

from tests.helpers import add_window, book, set_status


async def _slots(client: AsyncClient, viewer: dict, staff: dict, on_date: date) -> list[dict]:
    response = await client.get(
        f"/api/v1/availability/staff/{staff['user_id']}/slots",
        params={"date": on_date.isoformat()},
        headers=viewer["headers"],
    )
    assert response.status_code == 200, response.text
    return response.json()["slots"]


@pytest.mark.asyncio
async def test_add_and_list_windows(client: AsyncClient, staff: dict) -> None:
    await add_window(client, staff, 3, "14:00", "16:00")
    created = await add_window(client, staff, 1, "09:00", "12:00")
    assert created.status_code == 201
    data = created.json()
    assert data["day_of_week"] == 1
    assert data["start_time"] == "09:00"
    assert data["is_available"] is True
    assert data["staff_id"] == staff["user_id"]

    listed = (await client.get("/api/v1/availability/me", headers=staff["headers"])).json()
    assert [(w["day_of_week"], w["start_time"]) for w in listed] == [(1, "09:00"), (3, "14:00")]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"day_of_week": 7, "start_time": "09:00", "end_time": "10:00"},
        {"day_of_week": -1, "start_time": "09:00", "end_time": "10:00"},
        {"day_of_week": 1, "start_time": "12:00", "end_time": "09:00"},
        {"day_of_week": 1, "start_time": "09:00", "end_time": "09:00"},
        {"day_of_week": 1, "start_time": "9:00", "end_time": "10:00"},
    ],
)
async def test_invalid_window_rejected(client: AsyncClient, staff: dict, payload: dict) -> None:
    response = await client.post("/api/v1/availability/", json=payload, headers=staff["headers"])
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_student_cannot_manage_availability(client: AsyncClient, student: dict) -> None:
    response = await add_window(client, student, 1, "09:00", "12:00")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_toggle_hides_window_from_students(
    client: AsyncClient, student: dict, staff: dict, monday: date
) -> None:
    window_id = (await client.get("/api/v1/availability/me", headers=staff["headers"])).json()[0]["id"]
    assert len(await _slots(client, student, staff, monday)) == 3

    toggled = await client.patch(
        f"/api/v1/availability/{window_id}/toggle", headers=staff["headers"]
    )
    assert toggled.status_code == 200
    assert toggled.json()["is_available"] is False
    assert await _slots(client, student, staff, monday) == []

    # The owner still sees the hidden window
    listed = (await client.get("/api/v1/availability/me", headers=staff["headers"])).json()
    assert [w["is_available"] for w in listed] == [False]

    blocked = await book(client, student, staff, monday)
    assert blocked.status_code == 422

    restored = await client.patch(
        f"/api/v1/availability/{window_id}/toggle", headers=staff["headers"]
    )
    assert restored.json()["is_available"] is True


@pytest.mark.asyncio
async def test_other_staff_cannot_change_window(
    client: AsyncClient, staff: dict, other_staff: dict, monday: date
) -> None:
    window_id = (await client.get("/api/v1/availability/me", headers=staff["headers"])).json()[0]["id"]

    toggled = await client.patch(
        f"/api/v1/availability/{window_id}/toggle", headers=other_staff["headers"]
    )
    assert toggled.status_code == 403

    deleted = await client.delete(f"/api/v1/availability/{window_id}", headers=other_staff["headers"])
    assert deleted.status_code == 403

    missing = await client.delete(f"/api/v1/availability/{uuid4()}", headers=staff["headers"])
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_delete_window(
    client: AsyncClient, student: dict, staff: dict, monday: date
) -> None:
    window_id = (await client.get("/api/v1/availability/me", headers=staff["headers"])).json()[0]["id"]

    response = await client.delete(f"/api/v1/availability/{window_id}", headers=staff["headers"])
    assert response.status_code == 204
    assert await _slots(client, student, staff, monday) == []


@pytest.mark.asyncio
async def test_overlapping_windows_offer_each_slot_once(
    client: AsyncClient, student: dict, staff: dict, monday: date
) -> None:
    await add_window(client, staff, 1, "10:00", "13:00")

    slots = await _slots(client, student, staff, monday)
    assert [slot["start_time"] for slot in slots] == ["09:00", "10:00", "11:00", "12:00"]


@pytest.mark.asyncio
async def test_pending_booking_also_blocks_slot(
    client: AsyncClient, student: dict, other_student: dict, staff: dict, monday: date
) -> None:
    await book(client, student, staff, monday, start="09:00", end="10:00")

    slots = await _slots(client, other_student, staff, monday)
    assert [slot["start_time"] for slot in slots] == ["10:00", "11:00"]


@pytest.mark.asyncio
async def test_slots_for_unknown_staff(client: AsyncClient, student: dict, monday: date) -> None:
    response = await client.get(
        f"/api/v1/availability/staff/{uuid4()}/slots",
        params={"date": monday.isoformat()},
        headers=student["headers"],
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_slots_require_date(client: AsyncClient, student: dict, staff: dict) -> None:
    response = await client.get(
        f"/api/v1/availability/staff/{staff['user_id']}/slots", headers=student["headers"]
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_weekly_stats(
    client: AsyncClient, student: dict, other_student: dict, staff: dict, monday: date
) -> None:
    await add_window(client, staff, 3, "14:00", "16:00")
    first = (await book(client, student, staff, monday, start="09:00", end="10:00")).json()
    await book(client, other_student, staff, monday, start="10:00", end="11:00")
    await set_status(client, staff, first["id"], "approved")

    sunday = monday - timedelta(days=1)
    response = await client.get(
        "/api/v1/availability/me/weekly-stats",
        params={"week_start": sunday.isoformat()},
        headers=staff["headers"],
    )
    assert response.status_code == 200
    assert response.json() == {
        "week_start": sunday.isoformat(),
        "week_end": (sunday + timedelta(days=6)).isoformat(),
        "total_slots": 2,
        "booked_slots": 2,
        "available_slots": 0,
        "pending_appointments": 1,
    }


@pytest.mark.asyncio
async def test_weekly_stats_defaults_to_current_week(client: AsyncClient, staff: dict) -> None:
    response = await client.get("/api/v1/availability/me/weekly-stats", headers=staff["headers"])
    assert response.status_code == 200
    week_start = date.fromisoformat(response.json()["week_start"])
    # Weeks start on Sunday
    assert week_start.weekday() == 6
