"""Favorite documents: one per (userEmail, lessonId), carrying a lesson snapshot."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from app.storage.documents import FAVORITES, DocumentStore

SNAPSHOT_FIELDS = {"lessonTitle": "title", "lessonImage": "image", "lessonCategory": "category", "lessonEmotionalTone": "emotionalTone"}


class FavoritesRepository:
  """Persist favorites to the `favorites` collection.

  Uniqueness of (userEmail, lessonId) is enforced by a unique index, so
  `insert` raises DuplicateDocumentError for a second favorite of the same pair.
  """

  def __init__(self, store: DocumentStore) -> None:
    self._favorites = store.collection(FAVORITES)

  async def find(self, user_email: str, lesson_id: str) -> dict[str, Any] | None:
    return await self._favorites.find_one({"userEmail": user_email, "lessonId": lesson_id})

  async def insert(self, user_email: str, lesson: dict[str, Any]) -> dict[str, Any]:
    document: dict[str, Any] = {"userEmail": user_email, "lessonId": str(lesson["_id"]), "createdAt": datetime.now(UTC)}
    for target, source in SNAPSHOT_FIELDS.items():
      document[target] = lesson.get(source)
    document["_id"] = await self._favorites.insert_one(document)
    return document

  async def delete(self, user_email: str, lesson_id: str) -> bool:
    deleted = await self._favorites.delete_one({"userEmail": user_email, "lessonId": lesson_id})
    return deleted > 0

  async def list_for_user(self, user_email: str) -> list[dict[str, Any]]:
    return await self._favorites.find_many({"userEmail": user_email}, sort=[("createdAt", -1), ("_id", -1)])
