from typing import Any

from fastapi import APIRouter, Depends, status

from app.api.deps import get_report_service
from app.api.models import ReportRequest, ReportStatusUpdate
from app.core.security import Principal, get_current_admin, get_current_principal
from app.services.reports import ReportService
from app.utils.ids import stringify_id

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_report(
  request: ReportRequest,
  principal: Principal = Depends(get_current_principal),  # noqa: B008
  reports: ReportService = Depends(get_report_service),  # noqa: B008
) -> dict[str, Any]:
  """File an abuse report. A second report of the same lesson by the same user is answered as a duplicate."""
  report = await reports.submit(request.lesson_id, reporter_email=principal.email, reporter_name=request.reporter_name or principal.name, reason=request.reason)
  return {"inserted": True, "report": stringify_id(report)}


@router.get("")
async def list_reports(_admin: Principal = Depends(get_current_admin), reports: ReportService = Depends(get_report_service)) -> list[dict[str, Any]]:  # noqa: B008
  return [stringify_id(report) for report in await reports.list_all()]


@router.get("/lesson/{lesson_id}")
async def list_lesson_reports(lesson_id: str, _admin: Principal = Depends(get_current_admin), reports: ReportService = Depends(get_report_service)) -> list[dict[str, Any]]:  # noqa: B008
  return [stringify_id(report) for report in await reports.list_for_lesson(lesson_id)]


@router.patch("/{report_id}")
async def update_report_status(
  report_id: str,
  request: ReportStatusUpdate,
  _admin: Principal = Depends(get_current_admin),  # noqa: B008
  reports: ReportService = Depends(get_report_service),  # noqa: B008
) -> dict[str, Any]:
  return stringify_id(await reports.update_status(report_id, request.status))
