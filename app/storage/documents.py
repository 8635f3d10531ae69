"""Document store contract and its MongoDB (Motor) implementation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.config import DatabaseSettings
from app.utils.db_retry import execute_with_retry

logger = logging.getLogger(__name__)

LESSONS = "lessons"
USERS = "users"
FAVORITES = "favorites"
REPORTS = "reports"
COMMENTS = "comments"

Filter = dict[str, Any]
Update = dict[str, Any]
SortSpec = list[tuple[str, int]]

# Unique indexes carry the Favorite, Report and User uniqueness invariants.
INDEXES: dict[str, list[tuple[SortSpec, bool]]] = {
  USERS: [([("email", 1)], True)],
  LESSONS: [([("creatorEmail", 1)], False), ([("createdAt", -1)], False)],
  FAVORITES: [([("userEmail", 1), ("lessonId", 1)], True), ([("userEmail", 1), ("createdAt", -1)], False), ([("lessonId", 1)], False)],
  REPORTS: [([("lessonId", 1), ("reporterEmail", 1)], True), ([("timestamp", -1)], False)],
  COMMENTS: [([("lessonId", 1), ("createdAt", -1)], False)],
}


class DuplicateDocumentError(Exception):
  """Raised when a write violates a unique index."""


@dataclass(frozen=True)
class UpdateOutcome:
  """Result of a single-document update."""

  matched_count: int
  modified_count: int
  upserted_id: ObjectId | None = None


class DocumentCollection(Protocol):
  """Single-collection operations the repositories rely on."""

  name: str

  async def find_one(self, filter: Filter) -> dict[str, Any] | None:
    """Return the first matching document."""

  async def find_many(self, filter: Filter, *, sort: SortSpec | None = None, limit: int = 0) -> list[dict[str, Any]]:
    """Return all matching documents, optionally sorted and capped."""

  async def insert_one(self, document: dict[str, Any]) -> ObjectId:
    """Insert a document and return its id. Raises DuplicateDocumentError on unique violations."""

  async def update_one(self, filter: Filter, update: Update, *, upsert: bool = False) -> UpdateOutcome:
    """Apply update operators to the first matching document."""

  async def find_one_and_update(self, filter: Filter, update: Update, *, upsert: bool = False) -> dict[str, Any] | None:
    """Apply update operators and return the document as it is after the update."""

  async def delete_one(self, filter: Filter) -> int:
    """Delete the first matching document and return the deleted count."""

  async def find_one_and_delete(self, filter: Filter) -> dict[str, Any] | None:
    """Delete the first matching document and return it."""

  async def create_index(self, keys: SortSpec, *, unique: bool = False) -> str:
    """Ensure an index exists."""


class DocumentStore(Protocol):
  """Handle over a database of named collections."""

  def collection(self, name: str) -> DocumentCollection:
    """Return the named collection."""

  async def ping(self) -> None:
    """Round-trip to the deployment."""

  def close(self) -> None:
    """Release pooled connections."""


class MongoCollection:
  """DocumentCollection backed by a Motor collection."""

  def __init__(self, collection: AsyncIOMotorCollection, *, read_retry_attempts: int) -> None:
    self._collection = collection
    self._read_retry_attempts = read_retry_attempts
    self.name = collection.name

  async def find_one(self, filter: Filter) -> dict[str, Any] | None:
    return await execute_with_retry(operation_name=f"{self.name}.find_one", func=lambda: self._collection.find_one(filter), max_attempts=self._read_retry_attempts)

  async def find_many(self, filter: Filter, *, sort: SortSpec | None = None, limit: int = 0) -> list[dict[str, Any]]:
    async def _read() -> list[dict[str, Any]]:
      cursor = self._collection.find(filter)
      if sort:
        cursor = cursor.sort(sort)
      if limit:
        cursor = cursor.limit(limit)
      return await cursor.to_list(length=None)

    return await execute_with_retry(operation_name=f"{self.name}.find_many", func=_read, max_attempts=self._read_retry_attempts)

  async def insert_one(self, document: dict[str, Any]) -> ObjectId:
    try:
      result = await self._collection.insert_one(document)
    except DuplicateKeyError as exc:
      raise DuplicateDocumentError(str(exc)) from exc
    return result.inserted_id

  async def update_one(self, filter: Filter, update: Update, *, upsert: bool = False) -> UpdateOutcome:
    try:
      result = await self._collection.update_one(filter, update, upsert=upsert)
    except DuplicateKeyError as exc:
      raise DuplicateDocumentError(str(exc)) from exc
    return UpdateOutcome(matched_count=result.matched_count, modified_count=result.modified_count, upserted_id=result.upserted_id)

  async def find_one_and_update(self, filter: Filter, update: Update, *, upsert: bool = False) -> dict[str, Any] | None:
    try:
      return await self._collection.find_one_and_update(filter, update, upsert=upsert, return_document=ReturnDocument.AFTER)
    except DuplicateKeyError as exc:
      raise DuplicateDocumentError(str(exc)) from exc

  async def delete_one(self, filter: Filter) -> int:
    result = await self._collection.delete_one(filter)
    return result.deleted_count

  async def find_one_and_delete(self, filter: Filter) -> dict[str, Any] | None:
    return await self._collection.find_one_and_delete(filter)

  async def create_index(self, keys: SortSpec, *, unique: bool = False) -> str:
    return await self._collection.create_index(keys, unique=unique)


class MongoDocumentStore:
  """DocumentStore over a single MongoDB database."""

  def __init__(self, client: AsyncIOMotorClient, *, database: str, read_retry_attempts: int = 2) -> None:
    self._client = client
    self._database = client[database]
    self._read_retry_attempts = read_retry_attempts
    self._collections: dict[str, MongoCollection] = {}

  def collection(self, name: str) -> MongoCollection:
    if name not in self._collections:
      self._collections[name] = MongoCollection(self._database[name], read_retry_attempts=self._read_retry_attempts)
    return self._collections[name]

  async def ping(self) -> None:
    await self._client.admin.command("ping")

  def close(self) -> None:
    self._client.close()


def build_document_store(settings: DatabaseSettings) -> MongoDocumentStore:
  """Construct the Motor client; every storage call is bounded by `timeoutMS`."""
  if not settings.mongodb_uri:
    raise RuntimeError("Document store is not configured (LESSONS_MONGODB_URI is missing).")

  client = AsyncIOMotorClient(settings.mongodb_uri, tz_aware=True, timeoutMS=settings.mongodb_timeout_ms, appname="lesson-share-api")
  return MongoDocumentStore(client, database=settings.mongodb_db, read_retry_attempts=settings.read_retry_attempts)


async def ensure_indexes(store: DocumentStore) -> None:
  """Create the secondary and unique indexes the repositories depend on."""
  for collection_name, specs in INDEXES.items():
    collection = store.collection(collection_name)
    for keys, unique in specs:
      index_name = await collection.create_index(keys, unique=unique)
      logger.debug("Index ensured collection=%s index=%s unique=%s", collection_name, index_name, unique)
