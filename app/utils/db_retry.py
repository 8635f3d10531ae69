"""Document store retry logic with retryable vs non-retryable error classification."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from pymongo.errors import AutoReconnect, ConnectionFailure, DuplicateKeyError, ExecutionTimeout, NetworkTimeout, OperationFailure, PyMongoError, ServerSelectionTimeoutError, WriteConcernError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DBFailureClassification:
  """Classification result for a storage failure."""

  def __init__(self, *, retryable: bool, reason: str, code: int | None, category: str) -> None:
    self.retryable = retryable
    self.reason = reason
    self.code = code
    self.category = category


def classify_db_failure(exc: BaseException) -> DBFailureClassification:
  """
  Classify a storage failure as retryable or non-retryable.

  Retryable (transient):
    - network timeouts and dropped connections (AutoReconnect, NetworkTimeout)
    - server selection timeouts while a replica set elects a primary
    - client-side operation timeouts (asyncio.TimeoutError, ExecutionTimeout)

  Non-retryable:
    - duplicate key violations
    - write concern failures
    - other server-side operation failures
    - programming errors
  """
  code = getattr(exc, "code", None)

  if isinstance(exc, DuplicateKeyError):
    return DBFailureClassification(retryable=False, reason="Unique index violation", code=code, category="duplicate_key")

  # NetworkTimeout subclasses AutoReconnect, so it has to be checked first.
  if isinstance(exc, NetworkTimeout):
    return DBFailureClassification(retryable=True, reason="Network timeout", code=code, category="timeout")

  if isinstance(exc, ServerSelectionTimeoutError):
    return DBFailureClassification(retryable=True, reason="No server available before timeout", code=code, category="server_selection")

  if isinstance(exc, AutoReconnect | ConnectionFailure):
    return DBFailureClassification(retryable=True, reason="Transient connection error", code=code, category="connectivity_error")

  if isinstance(exc, ExecutionTimeout | asyncio.TimeoutError):
    return DBFailureClassification(retryable=True, reason="Operation exceeded its time limit", code=code, category="timeout")

  if isinstance(exc, WriteConcernError):
    return DBFailureClassification(retryable=False, reason="Write concern not satisfied", code=code, category="write_concern")

  if isinstance(exc, OperationFailure):
    return DBFailureClassification(retryable=False, reason=f"Operation failed: {exc}", code=code, category="operation_failure")

  if isinstance(exc, AttributeError | TypeError | ValueError | KeyError | IndexError):
    return DBFailureClassification(retryable=False, reason=f"Programming error: {type(exc).__name__}", code=code, category="programming_error")

  if isinstance(exc, PyMongoError):
    return DBFailureClassification(retryable=False, reason="Driver error (unknown cause)", code=code, category="driver_error_unknown")

  return DBFailureClassification(retryable=False, reason=f"Unknown error type: {type(exc).__name__}", code=code, category="unknown_error")


async def execute_with_retry(*, operation_name: str, func: Callable[[], Awaitable[T]], max_attempts: int = 2, initial_backoff_ms: int = 100, max_backoff_ms: int = 2000, jitter: bool = True) -> T:
  """
  Execute a storage read with retry logic for transient failures.

  Only pure reads go through here. Multi-step writes are never retried so a
  partially applied mutation cannot be applied twice.
  """
  attempt = 0

  while True:
    attempt += 1
    try:
      result = await func()
      if attempt > 1:
        logger.info("Storage read succeeded after retry: operation=%s, attempt=%d/%d", operation_name, attempt, max_attempts)
      return result

    except Exception as exc:
      classification = classify_db_failure(exc)
      logger.warning(
        "Storage read failed: operation=%s, attempt=%d/%d, category=%s, code=%s, retryable=%s, reason=%s",
        operation_name,
        attempt,
        max_attempts,
        classification.category,
        classification.code if classification.code is not None else "none",
        classification.retryable,
        classification.reason,
        exc_info=(not classification.retryable),
      )

      if not classification.retryable:
        raise

      if attempt >= max_attempts:
        logger.error("Storage read failed after %d attempts: operation=%s, category=%s - giving up", max_attempts, operation_name, classification.category)
        raise

      backoff_ms = min(initial_backoff_ms * (2 ** (attempt - 1)), max_backoff_ms)
      if jitter:
        jitter_range = backoff_ms * 0.25
        backoff_ms += random.uniform(-jitter_range, jitter_range)

      logger.info("Retrying storage read after backoff: operation=%s, attempt=%d/%d, backoff_ms=%.1f", operation_name, attempt, max_attempts, backoff_ms)
      await asyncio.sleep(backoff_ms / 1000.0)
