"""Reporting schemas."""

from datetime import date

from pydantic import BaseModel


class AppointmentStats(BaseModel):
    """Appointment counts by status."""

    total: int = 0
    pending: int = 0
    approved: int = 0
    declined: int = 0
    cancelled: int = 0
    completed: int = 0


class MonthlyData(BaseModel):
    """Appointments and distinct students for one calendar month."""

    month: str
    appointments: int
    students: int


class StudentActivity(BaseModel):
    """Appointment activity of one student with the reporting staff member."""

    student_name: str
    department: str | None = None
    total_appointments: int
    last_appointment: date


class ReportSummary(BaseModel):
    """Full report for a date range."""

    start: date
    end: date
    stats: AppointmentStats
    monthly: list[MonthlyData]
    student_activity: list[StudentActivity]
