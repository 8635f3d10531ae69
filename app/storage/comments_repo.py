"""Comment documents attached to lessons."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from app.storage.documents import COMMENTS, DocumentStore
from app.utils.ids import parse_object_id


class CommentsRepository:
  """Persist comments to the `comments` collection."""

  def __init__(self, store: DocumentStore) -> None:
    self._comments = store.collection(COMMENTS)

  async def insert(self, data: dict[str, Any]) -> dict[str, Any]:
    document = dict(data)
    document["createdAt"] = datetime.now(UTC)
    document["_id"] = await self._comments.insert_one(document)
    return document

  async def get_by_id(self, comment_id: str) -> dict[str, Any] | None:
    oid = parse_object_id(comment_id)
    if oid is None:
      return None
    return await self._comments.find_one({"_id": oid})

  async def delete(self, comment_id: str) -> bool:
    oid = parse_object_id(comment_id)
    if oid is None:
      return False
    return await self._comments.delete_one({"_id": oid}) > 0

  async def list_for_lesson(self, lesson_id: str) -> list[dict[str, Any]]:
    return await self._comments.find_many({"lessonId": lesson_id}, sort=[("createdAt", -1), ("_id", -1)])
