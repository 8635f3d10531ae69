"""Atomic derived-counter updates shared by the entity repositories."""

from __future__ import annotations

from app.storage.documents import DocumentCollection, Filter


async def increment_floored(collection: DocumentCollection, key: Filter, field: str, delta: int) -> bool:
  """Apply `$inc` to `field` on the document matching `key`, never letting it drop below zero.

  Returns True when the counter changed. A False result means the target does
  not exist or, for negative deltas, the counter was already at zero.
  """
  if delta == 0:
    return False

  if delta > 0:
    outcome = await collection.update_one(key, {"$inc": {field: delta}})
    return outcome.matched_count > 0

  # The guard lives in the filter so the check and the decrement are one atomic write.
  guarded = {**key, field: {"$gte": -delta}}
  outcome = await collection.update_one(guarded, {"$inc": {field: delta}})
  if outcome.matched_count > 0:
    return True

  # Partially covered decrement (e.g. -3 against 1): clamp to zero.
  clamped = {**key, field: {"$gt": 0}}
  outcome = await collection.update_one(clamped, {"$set": {field: 0}})
  return outcome.modified_count > 0
