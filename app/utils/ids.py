"""Identifier utilities."""

from __future__ import annotations

from bson import ObjectId
from bson.errors import InvalidId


def parse_object_id(value: str | ObjectId | None) -> ObjectId | None:
  """Return an ObjectId for `value`, or None when it is not a valid id."""
  if isinstance(value, ObjectId):
    return value
  if not value:
    return None
  try:
    return ObjectId(value)
  except (InvalidId, TypeError):
    return None


def stringify_id(document: dict | None) -> dict | None:
  """Return a copy of a stored document with `_id` rendered as a string `id`."""
  if document is None:
    return None
  rendered = dict(document)
  raw_id = rendered.pop("_id", None)
  if raw_id is not None:
    rendered["id"] = str(raw_id)
  return rendered


def canonical_id(value: str | ObjectId | None) -> str | None:
  """Return the lowercase hex form of an id, or None when it is not a valid id.

  ObjectId parsing ignores letter case, so ids stored as foreign-key strings are
  always written and matched in this form.
  """
  parsed = parse_object_id(value)
  return str(parsed) if parsed is not None else None
