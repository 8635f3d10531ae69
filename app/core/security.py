from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated, Any

from app.core.database import get_store
from app.core.firebase import verify_id_token
from app.schema.documents import UserRole
from app.storage.documents import DocumentStore
from app.storage.users_repo import UsersRepository
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.concurrency import run_in_threadpool

# auto_error is off so a missing header answers 401 like an invalid token does.
security_scheme = HTTPBearer(auto_error=False)

_UNAUTHORIZED_DETAIL = "Unauthorized Access!"


@dataclass(frozen=True)
class Principal:
  """Identity proven by a verified bearer token."""

  email: str
  uid: str | None = None
  name: str | None = None
  picture: str | None = None
  claims: dict[str, Any] = field(default_factory=dict)


def _unauthorized() -> HTTPException:
  return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=_UNAUTHORIZED_DETAIL, headers={"WWW-Authenticate": "Bearer"})


async def get_current_principal(token: Annotated[HTTPAuthorizationCredentials | None, Depends(security_scheme)]) -> Principal:
  """Verify the Firebase ID token and return the caller's identity."""
  if token is None or not token.credentials:
    raise _unauthorized()

  decoded_claims = await run_in_threadpool(verify_id_token, token.credentials)
  if not decoded_claims:
    raise _unauthorized()

  email = decoded_claims.get("email")
  if not email:
    # Every ownership check keys on email; a token without one cannot act.
    raise _unauthorized()

  return Principal(email=str(email).lower(), uid=decoded_claims.get("uid"), name=decoded_claims.get("name"), picture=decoded_claims.get("picture"), claims=decoded_claims)


async def is_admin(principal: Principal, store: DocumentStore) -> bool:
  """Resolve the admin role from the stored user record."""
  user = await UsersRepository(store).get_by_email(principal.email)
  return bool(user and user.get("role") == UserRole.ADMIN.value)


async def get_current_admin(principal: Principal = Depends(get_current_principal), store: DocumentStore = Depends(get_store)) -> Principal:  # noqa: B008
  """Require the admin role for moderation and user-management routes."""
  if not await is_admin(principal, store):
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")
  return principal
