"""User documents keyed by email, including the two per-user derived counters."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from app.core.exceptions import NotFoundError
from app.schema.documents import UserRole
from app.storage.counters import increment_floored
from app.storage.documents import USERS, DocumentStore, DuplicateDocumentError

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("name", "photoURL")


class UsersRepository:
  """Persist users to the `users` collection."""

  def __init__(self, store: DocumentStore) -> None:
    self._users = store.collection(USERS)

  async def upsert_on_login(self, data: dict[str, Any], *, role: UserRole = UserRole.USER) -> tuple[dict[str, Any], bool]:
    """Create the user on first sign-in, otherwise touch `updatedAt` only.

    Returns the stored user and whether this call created it.
    """
    email = data["email"]
    now = datetime.now(UTC)
    defaults = {"email": email, "role": role.value, "isPremium": False, "totalLessonsCreated": 0, "totalLessonsSaved": 0, "createdAt": now}
    defaults.update({field: data[field] for field in PROFILE_FIELDS if data.get(field)})
    update = {"$setOnInsert": defaults, "$set": {"updatedAt": now}}

    try:
      outcome = await self._users.update_one({"email": email}, update, upsert=True)
    except DuplicateDocumentError:
      # Two first sign-ins raced on the unique email index; the loser now matches the winner's row.
      logger.info("Concurrent first login resolved by unique index email=%s", email)
      outcome = await self._users.update_one({"email": email}, update, upsert=True)

    user = await self._users.find_one({"email": email})
    if user is None:
      raise RuntimeError(f"User {email} missing immediately after upsert.")
    return user, outcome.upserted_id is not None

  async def get_by_email(self, email: str) -> dict[str, Any] | None:
    return await self._users.find_one({"email": email})

  async def list_all(self) -> list[dict[str, Any]]:
    return await self._users.find_many({}, sort=[("createdAt", -1)])

  async def set_premium(self, email: str, value: bool) -> dict[str, Any]:
    user = await self._users.find_one_and_update({"email": email}, {"$set": {"isPremium": bool(value), "updatedAt": datetime.now(UTC)}})
    if user is None:
      raise NotFoundError("User", email)
    return user

  async def promote_to_admin(self, email: str) -> dict[str, Any]:
    user = await self._users.find_one_and_update({"email": email}, {"$set": {"role": UserRole.ADMIN.value, "updatedAt": datetime.now(UTC)}})
    if user is None:
      raise NotFoundError("User", email)
    return user

  async def adjust_lesson_count(self, email: str, delta: int) -> bool:
    return await increment_floored(self._users, {"email": email}, "totalLessonsCreated", delta)

  async def adjust_saved_count(self, email: str, delta: int) -> bool:
    return await increment_floored(self._users, {"email": email}, "totalLessonsSaved", delta)
