from typing import Any

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_consistency_engine, get_lessons_repo
from app.api.models import LessonCreateRequest, LessonUpdateRequest
from app.core.database import get_store
from app.core.exceptions import ForbiddenError, NotFoundError
from app.core.security import Principal, get_current_principal, is_admin
from app.services.consistency import ConsistencyEngine
from app.storage.documents import DocumentStore
from app.storage.lessons_repo import LessonsRepository
from app.utils.ids import stringify_id

router = APIRouter()


@router.get("/lessons")
async def list_lessons(
  category: str | None = None,
  emotional_tone: str | None = Query(default=None, alias="emotionalTone"),
  privacy: str | None = None,
  access_level: str | None = Query(default=None, alias="accessLevel"),
  creator_email: str | None = Query(default=None, alias="creatorEmail"),
  lessons: LessonsRepository = Depends(get_lessons_repo),  # noqa: B008
) -> list[dict[str, Any]]:
  """List lessons newest first, optionally filtered by exact field values."""
  filters = {"category": category, "emotionalTone": emotional_tone, "privacy": privacy, "accessLevel": access_level, "creatorEmail": creator_email}
  return [stringify_id(lesson) for lesson in await lessons.list_lessons(filters)]


@router.get("/lessons/{lesson_id}")
async def get_lesson(lesson_id: str, lessons: LessonsRepository = Depends(get_lessons_repo)) -> dict[str, Any]:  # noqa: B008
  lesson = await lessons.get_by_id(lesson_id)
  if lesson is None:
    raise NotFoundError("Lesson", lesson_id)
  return stringify_id(lesson)


@router.post("/lessons", status_code=status.HTTP_201_CREATED)
async def create_lesson(
  request: LessonCreateRequest,
  principal: Principal = Depends(get_current_principal),  # noqa: B008
  engine: ConsistencyEngine = Depends(get_consistency_engine),  # noqa: B008
) -> dict[str, Any]:
  """Create a lesson owned by the caller and count it toward their lesson total."""
  lesson = await engine.create_lesson(request.model_dump(by_alias=True, exclude_none=True), principal.email)
  return stringify_id(lesson)


@router.patch("/lessons/{lesson_id}")
async def update_lesson(
  lesson_id: str,
  request: LessonUpdateRequest,
  principal: Principal = Depends(get_current_principal),  # noqa: B008
  lessons: LessonsRepository = Depends(get_lessons_repo),  # noqa: B008
  store: DocumentStore = Depends(get_store),  # noqa: B008
) -> dict[str, Any]:
  lesson = await lessons.get_by_id(lesson_id)
  if lesson is None:
    raise NotFoundError("Lesson", lesson_id)
  if lesson.get("creatorEmail") != principal.email and not await is_admin(principal, store):
    raise ForbiddenError("Only the lesson's creator can edit it.")

  updated = await lessons.update(lesson_id, request.model_dump(by_alias=True, exclude_unset=True))
  return stringify_id(updated)


@router.patch("/lessons/{lesson_id}/like")
async def toggle_like(
  lesson_id: str,
  principal: Principal = Depends(get_current_principal),  # noqa: B008
  engine: ConsistencyEngine = Depends(get_consistency_engine),  # noqa: B008
) -> dict[str, Any]:
  outcome = await engine.toggle_like(lesson_id, principal.email)
  return {"liked": outcome.liked, "likesCount": outcome.likes_count}


@router.get("/my-lessons")
async def list_my_lessons(principal: Principal = Depends(get_current_principal), lessons: LessonsRepository = Depends(get_lessons_repo)) -> list[dict[str, Any]]:  # noqa: B008
  return [stringify_id(lesson) for lesson in await lessons.list_lessons({"creatorEmail": principal.email})]


@router.delete("/my-lessons/{lesson_id}")
async def delete_my_lesson(
  lesson_id: str,
  principal: Principal = Depends(get_current_principal),  # noqa: B008
  engine: ConsistencyEngine = Depends(get_consistency_engine),  # noqa: B008
  store: DocumentStore = Depends(get_store),  # noqa: B008
) -> dict[str, Any]:
  """Delete one of the caller's lessons (admins may delete any) and decrement the creator's lesson total."""
  admin = await is_admin(principal, store)
  deleted = await engine.delete_lesson(lesson_id, principal.email, is_admin=admin)
  return {"deleted": True, "id": str(deleted["_id"])}
