from . import comments, favorites, lessons, payments, reports, users

__all__ = ["comments", "favorites", "lessons", "payments", "reports", "users"]
