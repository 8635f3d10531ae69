"""Enumerations shared by the stored documents."""

from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
  """Role stored on a user document."""

  USER = "user"
  ADMIN = "admin"


class ReportStatus(str, Enum):
  """Moderation state of an abuse report."""

  PENDING = "pending"
  IGNORED = "ignored"
  RESOLVED = "resolved"
