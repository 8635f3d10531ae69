from __future__ import annotations

from app.storage.documents import DocumentStore
from fastapi import HTTPException, Request, status


def get_store(request: Request) -> DocumentStore:
  """Dependency returning the document store opened by the lifespan."""
  store = getattr(request.app.state, "store", None)
  if store is None:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Document store is not configured")
  return store
