from typing import Any

from fastapi import APIRouter, Depends

from app.api.deps import get_consistency_engine, get_users_repo
from app.api.models import UserLoginRequest
from app.config import get_settings
from app.core.database import get_store
from app.core.exceptions import ForbiddenError, NotFoundError
from app.core.security import Principal, get_current_admin, get_current_principal, is_admin
from app.schema.documents import UserRole
from app.services.consistency import ConsistencyEngine
from app.storage.documents import DocumentStore
from app.storage.users_repo import UsersRepository
from app.utils.ids import stringify_id

router = APIRouter()


async def _require_self_or_admin(email: str, principal: Principal, store: DocumentStore) -> None:
  if email.lower() != principal.email and not await is_admin(principal, store):
    raise ForbiddenError("Only the account owner or an admin can access this user.")


@router.post("/users")
async def login_user(
  request: UserLoginRequest,
  principal: Principal = Depends(get_current_principal),  # noqa: B008
  users: UsersRepository = Depends(get_users_repo),  # noqa: B008
) -> dict[str, Any]:
  """Record the caller on sign-in. Repeat calls only refresh `updatedAt`."""
  superadmin_email = get_settings().superadmin_email
  role = UserRole.ADMIN if superadmin_email and principal.email == superadmin_email else UserRole.USER
  data = {"email": principal.email, "name": request.name or principal.name, "photoURL": request.photo_url or principal.picture}
  user, created = await users.upsert_on_login(data, role=role)
  return {"created": created, "user": stringify_id(user)}


@router.get("/users")
async def list_users(_admin: Principal = Depends(get_current_admin), users: UsersRepository = Depends(get_users_repo)) -> list[dict[str, Any]]:  # noqa: B008
  return [stringify_id(user) for user in await users.list_all()]


@router.get("/users/{email}")
async def get_user(
  email: str,
  principal: Principal = Depends(get_current_principal),  # noqa: B008
  users: UsersRepository = Depends(get_users_repo),  # noqa: B008
  store: DocumentStore = Depends(get_store),  # noqa: B008
) -> dict[str, Any]:
  await _require_self_or_admin(email, principal, store)
  user = await users.get_by_email(email.lower())
  if user is None:
    raise NotFoundError("User", email)
  return stringify_id(user)


@router.patch("/users/premium/{email}")
async def grant_premium(
  email: str,
  principal: Principal = Depends(get_current_principal),  # noqa: B008
  engine: ConsistencyEngine = Depends(get_consistency_engine),  # noqa: B008
  store: DocumentStore = Depends(get_store),  # noqa: B008
) -> dict[str, Any]:
  await _require_self_or_admin(email, principal, store)
  return stringify_id(await engine.set_premium(email.lower(), True))


@router.patch("/users/premium/cancel/{email}")
async def cancel_premium(
  email: str,
  principal: Principal = Depends(get_current_principal),  # noqa: B008
  engine: ConsistencyEngine = Depends(get_consistency_engine),  # noqa: B008
  store: DocumentStore = Depends(get_store),  # noqa: B008
) -> dict[str, Any]:
  await _require_self_or_admin(email, principal, store)
  return stringify_id(await engine.set_premium(email.lower(), False))


@router.patch("/users/update/admin/{email}")
async def promote_user(email: str, _admin: Principal = Depends(get_current_admin), users: UsersRepository = Depends(get_users_repo)) -> dict[str, Any]:  # noqa: B008
  return stringify_id(await users.promote_to_admin(email.lower()))
