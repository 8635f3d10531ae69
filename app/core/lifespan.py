import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from app.core.firebase import initialize_firebase
from app.core.logging import _initialize_logging
from app.storage.documents import DocumentStore, build_document_store, ensure_indexes
from fastapi import FastAPI
from pymongo.errors import PyMongoError

INDEX_RETRY_INITIAL_SECONDS = 5.0
INDEX_RETRY_MAX_SECONDS = 60.0


def _log_index_task_failure(task: asyncio.Task[None]) -> None:
  """Log unexpected failures from the index retry task."""
  logger = logging.getLogger("app.core.lifespan")
  if task.cancelled():
    return
  try:
    task.result()
  except Exception as exc:  # noqa: BLE001
    logger.error("Index retry task failed: %s", exc, exc_info=True)


async def _ensure_indexes_until_ready(app: FastAPI, store: DocumentStore) -> None:
  """Keep creating indexes with capped backoff until the store accepts them."""
  logger = logging.getLogger("app.core.lifespan")
  delay = INDEX_RETRY_INITIAL_SECONDS

  while True:
    await asyncio.sleep(delay)
    try:
      await ensure_indexes(store)
    except PyMongoError as exc:
      logger.warning("Index creation still failing; retrying in %.0fs: %s", min(delay * 2, INDEX_RETRY_MAX_SECONDS), exc)
      delay = min(delay * 2, INDEX_RETRY_MAX_SECONDS)
      continue
    app.state.indexes_ready = True
    logger.info("Document store indexes ensured after retry.")
    return


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging, Firebase and the document store; close the store on shutdown."""
  from app.config import get_database_settings, get_settings

  settings = get_settings()
  logger = logging.getLogger("app.core.lifespan")

  try:
    _initialize_logging(settings)
    logger.info("Startup complete - logging verified.")
  except RuntimeError:
    # Log initialization failures but allow the app to continue starting.
    logger.warning("Initial logging setup failed; continuing with default handlers.", exc_info=True)

  initialize_firebase(settings)

  store = None
  try:
    store = build_document_store(get_database_settings())
  except RuntimeError as exc:
    logger.warning("Document store unavailable: %s", exc)

  app.state.indexes_ready = False
  index_task: asyncio.Task[None] | None = None
  if store is not None:
    try:
      await store.ping()
      logger.info("Pinged the document store. Connection is healthy.")
      await ensure_indexes(store)
      app.state.indexes_ready = True
      logger.info("Document store indexes ensured.")
    except PyMongoError as exc:
      # Keep serving; /health reports degraded until the indexes exist.
      logger.error("Document store startup check failed: %s", exc)
      index_task = asyncio.get_running_loop().create_task(_ensure_indexes_until_ready(app, store))
      index_task.add_done_callback(_log_index_task_failure)

  app.state.store = store
  try:
    yield
  finally:
    if index_task is not None and not index_task.done():
      index_task.cancel()
      with contextlib.suppress(asyncio.CancelledError):
        await index_task
      logger.info("Index retry task stopped.")
    if store is not None:
      store.close()
      logger.info("Document store connection closed.")
