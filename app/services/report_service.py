"""Reporting aggregator for staff members."""

import calendar
import csv
import io
from collections import Counter
from datetime import date

import structlog

from app.core.exceptions import ValidationException
from app.core.policy import Capability
from app.schemas.appointments import AppointmentStatus
from app.schemas.reports import AppointmentStats, MonthlyData, ReportSummary, StudentActivity
from app.stores.scoped import ScopedStore

logger = structlog.get_logger(__name__)

CSV_HEADER = ["Student Name", "Department", "Total Appointments", "Last Appointment"]


def default_range(today: date) -> tuple[date, date]:
    """First day of the month five months back through the end of this month."""
    year, month = today.year, today.month - 5
    if month < 1:
        year, month = year - 1, month + 12
    last_day = calendar.monthrange(today.year, today.month)[1]
    return date(year, month, 1), today.replace(day=last_day)


def month_label(value: date) -> str:
    return value.strftime("%b %Y")


class ReportService:
    """Aggregate a staff member's appointments over a date range."""

    def __init__(self, store: ScopedStore):
        """Initialize service with the caller's scoped store."""
        self.store = store
        self.session = store.session

    async def _rows(self, start: date, end: date) -> list[dict]:
        self.session.require(Capability.VIEW_REPORTS)
        if start > end:
            raise ValidationException(
                "Report start must not be after its end",
                details={"start": start.isoformat(), "end": end.isoformat()},
            )
        return await self.store.list_appointments(from_date=start, to_date=end)

    @staticmethod
    def appointment_stats(rows: list[dict]) -> AppointmentStats:
        counts = Counter(row["status"] for row in rows)
        return AppointmentStats(
            total=len(rows),
            **{status.value: counts.get(status.value, 0) for status in AppointmentStatus},
        )

    @staticmethod
    def monthly(rows: list[dict]) -> list[MonthlyData]:
        """
        Appointments and distinct students per calendar month.

        Only months with appointments appear, in chronological order.
        """
        buckets: dict[tuple[int, int], list[dict]] = {}
        for row in rows:
            day = row["appointment_date"]
            buckets.setdefault((day.year, day.month), []).append(row)

        return [
            MonthlyData(
                month=month_label(date(year, month, 1)),
                appointments=len(items),
                students=len({str(item["student_id"]) for item in items}),
            )
            for (year, month), items in sorted(buckets.items())
        ]

    async def student_activity(self, rows: list[dict]) -> list[StudentActivity]:
        """Per-student totals, busiest students first."""
        people = await self.store.participants(rows)
        grouped: dict[str, list[dict]] = {}
        for row in rows:
            grouped.setdefault(str(row["student_id"]), []).append(row)

        activity = []
        for student_id, items in grouped.items():
            profile = people.get(student_id, {})
            activity.append(
                StudentActivity(
                    student_name=profile.get("full_name", "Unknown"),
                    department=profile.get("department"),
                    total_appointments=len(items),
                    last_appointment=max(item["appointment_date"] for item in items),
                )
            )
        return sorted(activity, key=lambda item: (-item.total_appointments, item.student_name))

    async def summary(self, start: date, end: date) -> ReportSummary:
        """
        Build the full report for a date range.

        Args:
            start: First appointment date included
            end: Last appointment date included

        Returns:
            Status counts, monthly series and student activity

        Raises:
            ForbiddenException: If the caller is not staff
            ValidationException: If start is after end
        """
        rows = await self._rows(start, end)
        logger.info(
            "report_generated",
            staff_id=str(self.session.user_id),
            start=start.isoformat(),
            end=end.isoformat(),
            appointments=len(rows),
        )
        return ReportSummary(
            start=start,
            end=end,
            stats=self.appointment_stats(rows),
            monthly=self.monthly(rows),
            student_activity=await self.student_activity(rows),
        )

    async def student_activity_csv(self, start: date, end: date) -> str:
        """Render the student activity table as CSV."""
        activity = await self.student_activity(await self._rows(start, end))

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for item in activity:
            writer.writerow(
                [
                    item.student_name,
                    item.department or "N/A",
                    item.total_appointments,
                    item.last_appointment.strftime("%b %d, %Y"),
                ]
            )
        return buffer.getvalue()
