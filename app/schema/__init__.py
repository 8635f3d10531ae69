"""Schema package exports."""

from .documents import ReportStatus, UserRole

__all__ = ["ReportStatus", "UserRole"]
