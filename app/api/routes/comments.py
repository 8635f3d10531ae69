from typing import Any

from fastapi import APIRouter, Depends, status

from app.api.deps import get_comment_service
from app.api.models import CommentRequest
from app.core.security import Principal, get_current_principal
from app.services.comments import CommentService
from app.utils.ids import stringify_id

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def post_comment(
  request: CommentRequest,
  principal: Principal = Depends(get_current_principal),  # noqa: B008
  comments: CommentService = Depends(get_comment_service),  # noqa: B008
) -> dict[str, Any]:
  comment = await comments.post(request.lesson_id, user_email=principal.email, user_name=principal.name, user_photo=principal.picture, text=request.comment)
  return stringify_id(comment)


@router.get("/{lesson_id}")
async def list_comments(lesson_id: str, comments: CommentService = Depends(get_comment_service)) -> list[dict[str, Any]]:  # noqa: B008
  return [stringify_id(comment) for comment in await comments.list_for_lesson(lesson_id)]


@router.delete("/{comment_id}")
async def delete_comment(comment_id: str, principal: Principal = Depends(get_current_principal), comments: CommentService = Depends(get_comment_service)) -> dict[str, bool]:  # noqa: B008
  """Delete a comment. Only its author may do so."""
  await comments.delete(comment_id, principal.email)
  return {"deleted": True}
