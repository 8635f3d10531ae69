"""Multi-collection mutations that keep the derived counters in step with their sources.

Every operation performs its authoritative write first (the lesson insert, the
lesson delete, the favorite insert/delete) and only then adjusts the counters
that depend on it. Counter adjustments are individual atomic `$inc` writes with
a zero floor. When a counter step fails after the authoritative write has
landed, the remaining steps are still attempted, the drift is logged on
`app.consistency.drift` with the affected ids and `PartialWriteError` is raised.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from app.core.exceptions import ForbiddenError, NotFoundError, PartialWriteError, drift_logger
from app.storage.documents import DuplicateDocumentError
from app.storage.favorites_repo import FavoritesRepository
from app.storage.lessons_repo import LessonsRepository
from app.storage.users_repo import UsersRepository
from app.utils.ids import canonical_id

logger = logging.getLogger(__name__)

CounterStep = tuple[str, Callable[[], Awaitable[bool]]]


@dataclass(frozen=True)
class FavoriteOutcome:
  """Result of an add-favorite request."""

  added: bool
  favorite: dict[str, Any] | None


@dataclass(frozen=True)
class LikeOutcome:
  """Result of a like toggle."""

  liked: bool
  likes_count: int


class ConsistencyEngine:
  """Coordinate lessons, users and favorites for every mutation that crosses them."""

  def __init__(self, *, lessons: LessonsRepository, users: UsersRepository, favorites: FavoritesRepository) -> None:
    self._lessons = lessons
    self._users = users
    self._favorites = favorites

  async def create_lesson(self, data: dict[str, Any], creator_email: str) -> dict[str, Any]:
    """Insert a lesson owned by `creator_email`, then count it against the author."""
    lesson = await self._lessons.create({**data, "creatorEmail": creator_email})
    lesson_id = str(lesson["_id"])
    logger.info("Lesson created lesson_id=%s creator=%s", lesson_id, creator_email)

    await self._apply_counter_steps(
      "create_lesson",
      entities={"lessonId": lesson_id, "userEmail": creator_email},
      steps=[("user.totalLessonsCreated+1", lambda: self._users.adjust_lesson_count(creator_email, 1))],
    )
    return lesson

  async def delete_lesson(self, lesson_id: str, requester_email: str, *, is_admin: bool = False) -> dict[str, Any]:
    """Delete a lesson owned by the requester (or any lesson for admins) and decrement its author's count."""
    existing = await self._lessons.get_by_id(lesson_id)
    if existing is None:
      raise NotFoundError("Lesson", lesson_id)
    if existing.get("creatorEmail") != requester_email and not is_admin:
      raise ForbiddenError("Only the lesson's creator can delete it.")

    deleted = await self._lessons.delete(lesson_id)
    if deleted is None:
      # Lost a race with another delete of the same lesson.
      raise NotFoundError("Lesson", lesson_id)

    creator_email = deleted.get("creatorEmail")
    logger.info("Lesson deleted lesson_id=%s creator=%s by=%s", lesson_id, creator_email, requester_email)
    if creator_email:
      await self._apply_counter_steps(
        "delete_lesson",
        entities={"lessonId": lesson_id, "userEmail": creator_email},
        steps=[("user.totalLessonsCreated-1", lambda: self._users.adjust_lesson_count(creator_email, -1))],
      )
    return deleted

  async def toggle_like(self, lesson_id: str, user_email: str) -> LikeOutcome:
    liked, likes_count = await self._lessons.toggle_like(lesson_id, user_email)
    return LikeOutcome(liked=liked, likes_count=likes_count)

  async def add_favorite(self, user_email: str, lesson_id: str) -> FavoriteOutcome:
    """Save a lesson for a user. A repeat request is reported as not added and mutates nothing."""
    lesson = await self._lessons.get_by_id(lesson_id)
    if lesson is None:
      raise NotFoundError("Lesson", lesson_id)
    lesson_id = str(lesson["_id"])

    existing = await self._favorites.find(user_email, lesson_id)
    if existing is not None:
      return FavoriteOutcome(added=False, favorite=existing)

    try:
      favorite = await self._favorites.insert(user_email, lesson)
    except DuplicateDocumentError:
      logger.info("Concurrent favorite resolved by unique index user=%s lesson_id=%s", user_email, lesson_id)
      return FavoriteOutcome(added=False, favorite=await self._favorites.find(user_email, lesson_id))

    await self._apply_counter_steps(
      "add_favorite",
      entities={"lessonId": lesson_id, "userEmail": user_email},
      steps=[
        ("lesson.favoritesCount+1", lambda: self._lessons.adjust_favorites_count(lesson_id, 1)),
        ("user.totalLessonsSaved+1", lambda: self._users.adjust_saved_count(user_email, 1)),
      ],
    )
    return FavoriteOutcome(added=True, favorite=favorite)

  async def remove_favorite(self, user_email: str, lesson_id: str) -> bool:
    """Remove a saved lesson. Returns False when nothing was saved, in which case no counter moves."""
    lesson_id = canonical_id(lesson_id)
    if lesson_id is None:
      return False
    if not await self._favorites.delete(user_email, lesson_id):
      return False

    await self._apply_counter_steps(
      "remove_favorite",
      entities={"lessonId": lesson_id, "userEmail": user_email},
      steps=[
        ("lesson.favoritesCount-1", lambda: self._lessons.adjust_favorites_count(lesson_id, -1)),
        ("user.totalLessonsSaved-1", lambda: self._users.adjust_saved_count(user_email, -1)),
      ],
    )
    return True

  async def is_favorited(self, user_email: str, lesson_id: str) -> bool:
    lesson_id = canonical_id(lesson_id)
    if lesson_id is None:
      return False
    return await self._favorites.find(user_email, lesson_id) is not None

  async def list_favorites(self, user_email: str) -> list[dict[str, Any]]:
    return await self._favorites.list_for_user(user_email)

  async def set_premium(self, email: str, value: bool) -> dict[str, Any]:
    user = await self._users.set_premium(email, value)
    logger.info("Premium status changed email=%s is_premium=%s", email, value)
    return user

  async def _apply_counter_steps(self, operation: str, *, entities: dict[str, str], steps: list[CounterStep]) -> None:
    failed: list[str] = []
    for name, step in steps:
      try:
        changed = await step()
      except Exception as exc:  # noqa: BLE001
        failed.append(name)
        drift_logger.error("Counter step failed operation=%s step=%s entities=%s error=%s", operation, name, entities, exc)
        continue
      if not changed:
        logger.warning("Counter step changed nothing operation=%s step=%s entities=%s", operation, name, entities)

    if failed:
      raise PartialWriteError(operation, entities=entities, failed_steps=failed)
