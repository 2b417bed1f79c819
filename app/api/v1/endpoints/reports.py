"""Reporting endpoints for staff."""

from datetime import date

from fastapi import APIRouter, Query, Response, status

from app.core.clock import local_now
from app.dependencies import UserStore
from app.schemas.reports import ReportSummary
from app.services.report_service import ReportService, default_range

router = APIRouter()


def _resolve_range(start: date | None, end: date | None) -> tuple[date, date]:
    default_start, default_end = default_range(local_now().date())
    return start or default_start, end or default_end


@router.get(
    "/summary",
    response_model=ReportSummary,
    status_code=status.HTTP_200_OK,
    tags=["Reports"],
    summary="Appointment report",
)
async def report_summary(
    store: UserStore,
    start: date | None = Query(
        None, description="Defaults to the first day of the month five months ago"
    ),
    end: date | None = Query(None, description="Defaults to the end of the current month"),
) -> ReportSummary:
    """
    Status counts, monthly series and student activity for the calling staff member.

    Args:
        store: Caller's scoped store
        start: First appointment date included
        end: Last appointment date included

    Returns:
        Report for the range
    """
    service = ReportService(store)
    return await service.summary(*_resolve_range(start, end))


@router.get(
    "/student-activity.csv",
    status_code=status.HTTP_200_OK,
    tags=["Reports"],
    summary="Export student activity as CSV",
    response_class=Response,
)
async def export_student_activity(
    store: UserStore,
    start: date | None = Query(None),
    end: date | None = Query(None),
) -> Response:
    """Download the student activity table."""
    service = ReportService(store)
    content = await service.student_activity_csv(*_resolve_range(start, end))
    filename = f"appointment-report-{local_now().date().isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
