from typing import Any

from fastapi import APIRouter, Depends

from app.api.deps import get_consistency_engine
from app.api.models import FavoriteRequest
from app.core.exceptions import NotFoundError
from app.core.security import Principal, get_current_principal
from app.services.consistency import ConsistencyEngine
from app.utils.ids import stringify_id

router = APIRouter()


@router.post("")
async def add_favorite(
  request: FavoriteRequest,
  principal: Principal = Depends(get_current_principal),  # noqa: B008
  engine: ConsistencyEngine = Depends(get_consistency_engine),  # noqa: B008
) -> dict[str, Any]:
  """Save a lesson for the caller. Saving twice is reported, not repeated."""
  outcome = await engine.add_favorite(principal.email, request.lesson_id)
  if not outcome.added:
    return {"inserted": False, "message": "Already favorited", "favorite": stringify_id(outcome.favorite)}
  return {"inserted": True, "favorite": stringify_id(outcome.favorite)}


@router.get("")
async def list_favorites(principal: Principal = Depends(get_current_principal), engine: ConsistencyEngine = Depends(get_consistency_engine)) -> list[dict[str, Any]]:  # noqa: B008
  return [stringify_id(favorite) for favorite in await engine.list_favorites(principal.email)]


@router.get("/check/{lesson_id}")
async def check_favorite(lesson_id: str, principal: Principal = Depends(get_current_principal), engine: ConsistencyEngine = Depends(get_consistency_engine)) -> dict[str, bool]:  # noqa: B008
  return {"isFavorited": await engine.is_favorited(principal.email, lesson_id)}


@router.delete("/{lesson_id}")
async def remove_favorite(lesson_id: str, principal: Principal = Depends(get_current_principal), engine: ConsistencyEngine = Depends(get_consistency_engine)) -> dict[str, bool]:  # noqa: B008
  if not await engine.remove_favorite(principal.email, lesson_id):
    raise NotFoundError("Favorite", lesson_id)
  return {"deleted": True}
