"""Tests for staff reports."""

from datetime import date

import pytest
import pytest_asyncio
from httpx import AsyncClient

from app.services.report_service import default_range
from app.stores.memory import InMemoryBookingStore
from tests.helpers import seed_appointment, sign_up, today

RANGE = {"start": "2030-01-01", "end": "2030-12-31"}


@pytest_asyncio.fixture
async def history(
    store: InMemoryBookingStore, student: dict, other_student: dict, staff: dict, other_staff: dict
) -> None:
    await seed_appointment(store, student, staff, date(2030, 1, 15), status="completed")
    await seed_appointment(store, student, staff, date(2030, 3, 10), status="approved")
    await seed_appointment(store, student, staff, date(2030, 3, 20), status="cancelled")
    await seed_appointment(store, other_student, staff, date(2030, 3, 12), status="pending")
    # Someone else's calendar
    await seed_appointment(store, student, other_staff, date(2030, 2, 1), status="approved")


@pytest.mark.parametrize(
    ("today_", "expected"),
    [
        (date(2024, 3, 15), (date(2023, 10, 1), date(2024, 3, 31))),
        (date(2024, 7, 31), (date(2024, 2, 1), date(2024, 7, 31))),
        (date(2024, 12, 1), (date(2024, 7, 1), date(2024, 12, 31))),
    ],
)
def test_default_range(today_: date, expected: tuple[date, date]) -> None:
    assert default_range(today_) == expected


@pytest.mark.asyncio
async def test_summary(client: AsyncClient, staff: dict, history: None) -> None:
    response = await client.get("/api/v1/reports/summary", params=RANGE, headers=staff["headers"])
    assert response.status_code == 200, response.text
    data = response.json()

    assert data["stats"] == {
        "total": 4,
        "pending": 1,
        "approved": 1,
        "declined": 0,
        "cancelled": 1,
        "completed": 1,
    }
    assert data["monthly"] == [
        {"month": "Jan 2030", "appointments": 1, "students": 1},
        {"month": "Mar 2030", "appointments": 3, "students": 2},
    ]
    assert data["student_activity"] == [
        {
            "student_name": "Alice Student",
            "department": "Computer Science",
            "total_appointments": 3,
            "last_appointment": "2030-03-20",
        },
        {
            "student_name": "Bob Learner",
            "department": "Mathematics",
            "total_appointments": 1,
            "last_appointment": "2030-03-12",
        },
    ]


@pytest.mark.asyncio
async def test_summary_respects_range(client: AsyncClient, staff: dict, history: None) -> None:
    response = await client.get(
        "/api/v1/reports/summary",
        params={"start": "2030-03-01", "end": "2030-03-15"},
        headers=staff["headers"],
    )
    data = response.json()
    assert data["stats"]["total"] == 2
    assert [m["month"] for m in data["monthly"]] == ["Mar 2030"]


@pytest.mark.asyncio
async def test_summary_defaults_to_last_six_months(
    client: AsyncClient, store: InMemoryBookingStore, student: dict, staff: dict
) -> None:
    await seed_appointment(store, student, staff, today(), status="approved")

    response = await client.get("/api/v1/reports/summary", headers=staff["headers"])
    assert response.status_code == 200
    data = response.json()
    start, end = default_range(today())
    assert data["start"] == start.isoformat()
    assert data["end"] == end.isoformat()
    assert data["stats"]["total"] == 1


@pytest.mark.asyncio
async def test_empty_report(client: AsyncClient, staff: dict) -> None:
    data = (
        await client.get("/api/v1/reports/summary", params=RANGE, headers=staff["headers"])
    ).json()
    assert data["stats"]["total"] == 0
    assert data["monthly"] == []
    assert data["student_activity"] == []


@pytest.mark.asyncio
async def test_start_after_end_rejected(client: AsyncClient, staff: dict) -> None:
    response = await client.get(
        "/api/v1/reports/summary",
        params={"start": "2030-06-01", "end": "2030-05-01"},
        headers=staff["headers"],
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_students_cannot_view_reports(client: AsyncClient, student: dict) -> None:
    response = await client.get("/api/v1/reports/summary", headers=student["headers"])
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_student_activity_csv(
    client: AsyncClient, store: InMemoryBookingStore, staff: dict, history: None
) -> None:
    undeclared = await sign_up(client, "gil@university.edu", "student", "Gil Undeclared")
    await seed_appointment(store, undeclared, staff, date(2030, 4, 2), status="approved")

    response = await client.get(
        "/api/v1/reports/student-activity.csv", params=RANGE, headers=staff["headers"]
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"] == (
        f'attachment; filename="appointment-report-{today().isoformat()}.csv"'
    )
    assert response.text.splitlines() == [
        "Student Name,Department,Total Appointments,Last Appointment",
        'Alice Student,Computer Science,3,"Mar 20, 2030"',
        'Bob Learner,Mathematics,1,"Mar 12, 2030"',
        'Gil Undeclared,N/A,1,"Apr 02, 2030"',
    ]
