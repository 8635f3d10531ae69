"""Lesson comments: post, owner-only delete, listing."""

from __future__ import annotations

import logging
from typing import Any

from app.core.exceptions import ForbiddenError, NotFoundError
from app.storage.comments_repo import CommentsRepository
from app.storage.lessons_repo import LessonsRepository
from app.utils.ids import canonical_id

logger = logging.getLogger(__name__)


class CommentService:
  def __init__(self, *, comments: CommentsRepository, lessons: LessonsRepository) -> None:
    self._comments = comments
    self._lessons = lessons

  async def post(self, lesson_id: str, *, user_email: str, user_name: str | None, user_photo: str | None, text: str) -> dict[str, Any]:
    """Attach a comment to an existing lesson. Author fields come from the caller's verified identity."""
    lesson = await self._lessons.get_by_id(lesson_id)
    if lesson is None:
      raise NotFoundError("Lesson", lesson_id)
    lesson_id = str(lesson["_id"])
    comment = await self._comments.insert({"lessonId": lesson_id, "userEmail": user_email, "userName": user_name, "userPhoto": user_photo, "comment": text})
    logger.info("Comment posted comment_id=%s lesson_id=%s", comment["_id"], lesson_id)
    return comment

  async def delete(self, comment_id: str, requesting_email: str) -> None:
    comment = await self._comments.get_by_id(comment_id)
    if comment is None:
      raise NotFoundError("Comment", comment_id)
    if comment.get("userEmail") != requesting_email:
      raise ForbiddenError("Only the comment's author can delete it.")
    if not await self._comments.delete(comment_id):
      raise NotFoundError("Comment", comment_id)
    logger.info("Comment deleted comment_id=%s", comment_id)

  async def list_for_lesson(self, lesson_id: str) -> list[dict[str, Any]]:
    canonical = canonical_id(lesson_id)
    if canonical is None:
      return []
    return await self._comments.list_for_lesson(canonical)
