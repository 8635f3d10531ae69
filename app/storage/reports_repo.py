"""Abuse report documents."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from app.schema.documents import ReportStatus
from app.storage.documents import REPORTS, DocumentStore
from app.utils.ids import parse_object_id


class ReportsRepository:
  """Persist reports to the `reports` collection; unique on (lessonId, reporterEmail)."""

  def __init__(self, store: DocumentStore) -> None:
    self._reports = store.collection(REPORTS)

  async def find(self, lesson_id: str, reporter_email: str) -> dict[str, Any] | None:
    return await self._reports.find_one({"lessonId": lesson_id, "reporterEmail": reporter_email})

  async def insert(self, data: dict[str, Any]) -> dict[str, Any]:
    now = datetime.now(UTC)
    document = dict(data)
    document["status"] = ReportStatus.PENDING.value
    document["timestamp"] = now
    document["updatedAt"] = now
    document["_id"] = await self._reports.insert_one(document)
    return document

  async def set_status(self, report_id: str, status: ReportStatus) -> dict[str, Any] | None:
    oid = parse_object_id(report_id)
    if oid is None:
      return None
    return await self._reports.find_one_and_update({"_id": oid}, {"$set": {"status": status.value, "updatedAt": datetime.now(UTC)}})

  async def list_all(self) -> list[dict[str, Any]]:
    return await self._reports.find_many({}, sort=[("timestamp", -1), ("_id", -1)])

  async def list_for_lesson(self, lesson_id: str) -> list[dict[str, Any]]:
    return await self._reports.find_many({"lessonId": lesson_id}, sort=[("timestamp", -1), ("_id", -1)])
