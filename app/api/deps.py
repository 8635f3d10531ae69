"""Shared FastAPI dependencies wiring repositories and services to the request's document store."""

from __future__ import annotations

from fastapi import Depends

from app.config import get_settings
from app.core.database import get_store
from app.services.comments import CommentService
from app.services.consistency import ConsistencyEngine
from app.services.payments import CheckoutBridge, build_checkout_bridge
from app.services.reports import ReportService
from app.storage.comments_repo import CommentsRepository
from app.storage.documents import DocumentStore
from app.storage.favorites_repo import FavoritesRepository
from app.storage.lessons_repo import LessonsRepository
from app.storage.reports_repo import ReportsRepository
from app.storage.users_repo import UsersRepository


def get_lessons_repo(store: DocumentStore = Depends(get_store)) -> LessonsRepository:  # noqa: B008
  return LessonsRepository(store)


def get_users_repo(store: DocumentStore = Depends(get_store)) -> UsersRepository:  # noqa: B008
  return UsersRepository(store)


def get_consistency_engine(store: DocumentStore = Depends(get_store)) -> ConsistencyEngine:  # noqa: B008
  return ConsistencyEngine(lessons=LessonsRepository(store), users=UsersRepository(store), favorites=FavoritesRepository(store))


def get_report_service(store: DocumentStore = Depends(get_store)) -> ReportService:  # noqa: B008
  return ReportService(reports=ReportsRepository(store), lessons=LessonsRepository(store))


def get_comment_service(store: DocumentStore = Depends(get_store)) -> CommentService:  # noqa: B008
  return CommentService(comments=CommentsRepository(store), lessons=LessonsRepository(store))


def get_checkout_bridge() -> CheckoutBridge:
  return build_checkout_bridge(get_settings())
