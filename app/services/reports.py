"""Abuse report submission and moderation."""

from __future__ import annotations

import logging
from typing import Any

from app.core.exceptions import DuplicateError, NotFoundError
from app.schema.documents import ReportStatus
from app.storage.documents import DuplicateDocumentError
from app.storage.lessons_repo import LessonsRepository
from app.storage.reports_repo import ReportsRepository
from app.utils.ids import canonical_id

logger = logging.getLogger(__name__)


class ReportService:
  """One report per (lesson, reporter); moderators move reports between states freely."""

  def __init__(self, *, reports: ReportsRepository, lessons: LessonsRepository) -> None:
    self._reports = reports
    self._lessons = lessons

  async def submit(self, lesson_id: str, *, reporter_email: str, reporter_name: str | None, reason: str) -> dict[str, Any]:
    lesson = await self._lessons.get_by_id(lesson_id)
    if lesson is None:
      raise NotFoundError("Lesson", lesson_id)
    lesson_id = str(lesson["_id"])

    key = {"lessonId": lesson_id, "reporterEmail": reporter_email}
    if await self._reports.find(lesson_id, reporter_email) is not None:
      raise DuplicateError("Report", key)

    data = {**key, "lessonTitle": lesson.get("title"), "reporterName": reporter_name, "reason": reason}
    try:
      report = await self._reports.insert(data)
    except DuplicateDocumentError as exc:
      raise DuplicateError("Report", key) from exc

    logger.info("Report submitted report_id=%s lesson_id=%s reporter=%s", report["_id"], lesson_id, reporter_email)
    return report

  async def update_status(self, report_id: str, status: ReportStatus) -> dict[str, Any]:
    report = await self._reports.set_status(report_id, status)
    if report is None:
      raise NotFoundError("Report", report_id)
    logger.info("Report status changed report_id=%s status=%s", report_id, status.value)
    return report

  async def list_all(self) -> list[dict[str, Any]]:
    return await self._reports.list_all()

  async def list_for_lesson(self, lesson_id: str) -> list[dict[str, Any]]:
    canonical = canonical_id(lesson_id)
    if canonical is None:
      return []
    return await self._reports.list_for_lesson(canonical)
