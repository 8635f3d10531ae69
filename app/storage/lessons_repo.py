"""Lesson documents: shape, defaults, edits, likes and the favorites counter."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from app.core.exceptions import NotFoundError
from app.storage.counters import increment_floored
from app.storage.documents import LESSONS, DocumentStore
from app.utils.ids import parse_object_id

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "category", "emotionalTone", "image", "privacy", "accessLevel")
LIST_FILTER_FIELDS = ("category", "emotionalTone", "privacy", "accessLevel", "creatorEmail")

_TOGGLE_ATTEMPTS = 3


class LessonsRepository:
  """Persist lessons to the `lessons` collection."""

  def __init__(self, store: DocumentStore) -> None:
    self._lessons = store.collection(LESSONS)

  async def create(self, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a lesson with zeroed derived counters and stamped timestamps."""
    now = datetime.now(UTC)
    document = dict(data)
    document.setdefault("favoritesCount", 0)
    document.setdefault("likes", [])
    document.setdefault("likesCount", len(document["likes"]))
    document["createdAt"] = now
    document["updatedDate"] = now
    document["_id"] = await self._lessons.insert_one(document)
    return document

  async def get_by_id(self, lesson_id: str) -> dict[str, Any] | None:
    oid = parse_object_id(lesson_id)
    if oid is None:
      return None
    return await self._lessons.find_one({"_id": oid})

  async def list_lessons(self, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
    """Return lessons newest first, narrowed by equality on the supported fields."""
    query = {field: value for field, value in (filters or {}).items() if field in LIST_FILTER_FIELDS and value is not None}
    return await self._lessons.find_many(query, sort=[("createdAt", -1), ("_id", -1)])

  async def update(self, lesson_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    """Apply a whitelisted partial edit. Derived counters are never writable here."""
    oid = parse_object_id(lesson_id)
    if oid is None:
      raise NotFoundError("Lesson", lesson_id)

    changes = {field: fields[field] for field in EDITABLE_FIELDS if field in fields}
    dropped = sorted(set(fields) - set(EDITABLE_FIELDS))
    if dropped:
      logger.debug("Ignoring non-editable lesson fields lesson_id=%s fields=%s", lesson_id, dropped)
    changes["updatedDate"] = datetime.now(UTC)

    updated = await self._lessons.find_one_and_update({"_id": oid}, {"$set": changes})
    if updated is None:
      raise NotFoundError("Lesson", lesson_id)
    return updated

  async def delete(self, lesson_id: str) -> dict[str, Any] | None:
    """Remove a lesson and return the document that was removed."""
    oid = parse_object_id(lesson_id)
    if oid is None:
      return None
    return await self._lessons.find_one_and_delete({"_id": oid})

  async def toggle_like(self, lesson_id: str, user_email: str) -> tuple[bool, int]:
    """Flip `user_email` in the like set. Returns (liked, likesCount).

    Each branch is one conditional write that changes the set and the counter
    together, so two concurrent toggles by the same user apply two flips.
    """
    oid = parse_object_id(lesson_id)
    if oid is None:
      raise NotFoundError("Lesson", lesson_id)

    for _ in range(_TOGGLE_ATTEMPTS):
      liked = await self._lessons.find_one_and_update({"_id": oid, "likes": {"$ne": user_email}}, {"$addToSet": {"likes": user_email}, "$inc": {"likesCount": 1}})
      if liked is not None:
        return True, int(liked["likesCount"])

      unliked = await self._lessons.find_one_and_update({"_id": oid, "likes": user_email, "likesCount": {"$gt": 0}}, {"$pull": {"likes": user_email}, "$inc": {"likesCount": -1}})
      if unliked is not None:
        return False, int(unliked["likesCount"])

      # Counter already at zero while the set still holds the email: remove without going negative.
      unliked = await self._lessons.find_one_and_update({"_id": oid, "likes": user_email}, {"$pull": {"likes": user_email}})
      if unliked is not None:
        logger.warning("likesCount was zero with a non-empty like set lesson_id=%s", lesson_id)
        return False, int(unliked.get("likesCount", 0))

      # Nothing matched: the lesson is gone, or a concurrent toggle flipped the state between our writes.
      if await self._lessons.find_one({"_id": oid}) is None:
        raise NotFoundError("Lesson", lesson_id)

    raise RuntimeError(f"Like toggle for lesson {lesson_id} did not settle after {_TOGGLE_ATTEMPTS} attempts.")

  async def adjust_favorites_count(self, lesson_id: str, delta: int) -> bool:
    oid = parse_object_id(lesson_id)
    if oid is None:
      return False
    return await increment_floored(self._lessons, {"_id": oid}, "favoritesCount", delta)
