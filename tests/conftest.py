"""Shared fixtures: an in-memory document store and an HTTP client wired to it."""

from __future__ import annotations

import copy
from collections.abc import Iterator
from typing import Any
from unittest.mock import patch

import pytest
from bson import ObjectId
from httpx import ASGITransport, AsyncClient

from app.core.database import get_store
from app.main import app
from app.storage.documents import DuplicateDocumentError, UpdateOutcome, ensure_indexes

_MISSING = object()


def _compare(value: Any, op: str, operand: Any) -> bool:
  if value is _MISSING or value is None:
    return False
  if op == "$gt":
    return value > operand
  if op == "$gte":
    return value >= operand
  if op == "$lt":
    return value < operand
  raise NotImplementedError(op)


def _matches_condition(value: Any, condition: Any) -> bool:
  if isinstance(condition, dict) and condition and all(key.startswith("$") for key in condition):
    for op, operand in condition.items():
      if op == "$ne":
        if isinstance(value, list):
          if operand in value:
            return False
        elif value == operand:
          return False
      elif not _compare(value, op, operand):
        return False
    return True
  if isinstance(value, list) and not isinstance(condition, list):
    return condition in value
  return value == condition


def _matches(document: dict[str, Any], filter: dict[str, Any]) -> bool:
  return all(_matches_condition(document.get(key, _MISSING), condition) for key, condition in filter.items())


def _apply_update(document: dict[str, Any], update: dict[str, Any], *, inserting: bool) -> None:
  for op, fields in update.items():
    if op == "$setOnInsert":
      if inserting:
        document.update(copy.deepcopy(fields))
    elif op == "$set":
      document.update(copy.deepcopy(fields))
    elif op == "$inc":
      for field, delta in fields.items():
        document[field] = document.get(field, 0) + delta
    elif op == "$addToSet":
      for field, item in fields.items():
        items = document.setdefault(field, [])
        if item not in items:
          items.append(item)
    elif op == "$pull":
      for field, item in fields.items():
        document[field] = [existing for existing in document.get(field, []) if existing != item]
    else:
      raise NotImplementedError(op)


class InMemoryCollection:
  """Dict-backed stand-in for a Motor collection covering the operators the repositories use."""

  def __init__(self, name: str) -> None:
    self.name = name
    self.documents: list[dict[str, Any]] = []
    self.unique_keys: list[tuple[str, ...]] = []

  def _first(self, filter: dict[str, Any]) -> dict[str, Any] | None:
    return next((document for document in self.documents if _matches(document, filter)), None)

  def _check_unique(self, candidate: dict[str, Any], *, ignore: dict[str, Any] | None = None) -> None:
    for fields in self.unique_keys:
      key = tuple(candidate.get(field) for field in fields)
      for document in self.documents:
        if document is ignore:
          continue
        if tuple(document.get(field) for field in fields) == key:
          raise DuplicateDocumentError(f"E11000 duplicate key error collection: {self.name} index: {fields}")

  def _upsert(self, filter: dict[str, Any], update: dict[str, Any]) -> dict[str, Any]:
    document = {key: copy.deepcopy(value) for key, value in filter.items() if not isinstance(value, dict)}
    _apply_update(document, update, inserting=True)
    document.setdefault("_id", ObjectId())
    self._check_unique(document)
    self.documents.append(document)
    return document

  async def find_one(self, filter: dict[str, Any]) -> dict[str, Any] | None:
    return copy.deepcopy(self._first(filter))

  async def find_many(self, filter: dict[str, Any], *, sort: list[tuple[str, int]] | None = None, limit: int = 0) -> list[dict[str, Any]]:
    results = [copy.deepcopy(document) for document in self.documents if _matches(document, filter)]
    for field, direction in reversed(sort or []):
      results.sort(key=lambda document: document.get(field), reverse=direction < 0)
    return results[:limit] if limit else results

  async def insert_one(self, document: dict[str, Any]) -> ObjectId:
    stored = copy.deepcopy(document)
    stored.setdefault("_id", ObjectId())
    self._check_unique(stored)
    self.documents.append(stored)
    return stored["_id"]

  async def update_one(self, filter: dict[str, Any], update: dict[str, Any], *, upsert: bool = False) -> UpdateOutcome:
    document = self._first(filter)
    if document is None:
      if not upsert:
        return UpdateOutcome(matched_count=0, modified_count=0)
      created = self._upsert(filter, update)
      return UpdateOutcome(matched_count=0, modified_count=0, upserted_id=created["_id"])

    before = copy.deepcopy(document)
    candidate = copy.deepcopy(document)
    _apply_update(candidate, update, inserting=False)
    self._check_unique(candidate, ignore=document)
    document.clear()
    document.update(candidate)
    return UpdateOutcome(matched_count=1, modified_count=int(before != document))

  async def find_one_and_update(self, filter: dict[str, Any], update: dict[str, Any], *, upsert: bool = False) -> dict[str, Any] | None:
    document = self._first(filter)
    if document is None:
      return copy.deepcopy(self._upsert(filter, update)) if upsert else None
    _apply_update(document, update, inserting=False)
    return copy.deepcopy(document)

  async def delete_one(self, filter: dict[str, Any]) -> int:
    document = self._first(filter)
    if document is None:
      return 0
    self.documents.remove(document)
    return 1

  async def find_one_and_delete(self, filter: dict[str, Any]) -> dict[str, Any] | None:
    document = self._first(filter)
    if document is None:
      return None
    self.documents.remove(document)
    return document

  async def create_index(self, keys: list[tuple[str, int]], *, unique: bool = False) -> str:
    fields = tuple(field for field, _direction in keys)
    if unique and fields not in self.unique_keys:
      self.unique_keys.append(fields)
    return "_".join(f"{field}_{direction}" for field, direction in keys)


class InMemoryDocumentStore:
  def __init__(self) -> None:
    self.collections: dict[str, InMemoryCollection] = {}
    self.closed = False

  def collection(self, name: str) -> InMemoryCollection:
    if name not in self.collections:
      self.collections[name] = InMemoryCollection(name)
    return self.collections[name]

  async def ping(self) -> None:
    return None

  def close(self) -> None:
    self.closed = True


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
async def store() -> InMemoryDocumentStore:
  document_store = InMemoryDocumentStore()
  await ensure_indexes(document_store)
  return document_store


def _claims_for(token: str) -> dict[str, Any] | None:
  """Test tokens look like `token-<email>`; anything else is rejected."""
  if not token.startswith("token-"):
    return None
  email = token.removeprefix("token-")
  return {"uid": f"uid-{email}", "email": email, "name": email.split("@")[0].title(), "picture": None}


@pytest.fixture
def verified_tokens() -> Iterator[None]:
  with patch("app.core.security.verify_id_token", side_effect=_claims_for):
    yield


@pytest.fixture
def auth_headers():
  def _headers(email: str) -> dict[str, str]:
    return {"Authorization": f"Bearer token-{email}"}

  return _headers


@pytest.fixture
async def async_client(store, verified_tokens):
  app.dependency_overrides[get_store] = lambda: store
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    yield client
  app.dependency_overrides.clear()
