"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from app.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

_DEFAULT_ORIGINS = "http://localhost:5173,http://localhost:5174"


@dataclass(frozen=True)
class Settings:
  """Typed settings for the lesson sharing service."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  log_dir: str | None
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  mongodb_uri: str | None
  mongodb_db: str
  mongodb_timeout_ms: int
  read_retry_attempts: int
  firebase_project_id: str | None
  firebase_service_account_json_path: str | None
  firebase_service_key_b64: str | None
  superadmin_email: str | None
  stripe_secret_key: str | None
  checkout_success_url: str
  checkout_cancel_url: str
  checkout_currency: str


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for document store connectivity."""

  mongodb_uri: str | None
  mongodb_db: str
  mongodb_timeout_ms: int
  read_retry_attempts: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  origins = [origin.strip() for origin in (raw or _DEFAULT_ORIGINS).split(",") if origin.strip()]

  if not origins:
    raise ValueError("LESSONS_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("LESSONS_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  return raw.strip().lower() in {"1", "true", "yes", "on"}


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load storage settings without requiring web-runtime configuration."""
  mongodb_uri = _optional_str(os.getenv("LESSONS_MONGODB_URI")) or _optional_str(os.getenv("MONGODB_URI"))
  mongodb_db = (os.getenv("LESSONS_MONGODB_DB") or "lesson_share").strip()
  mongodb_timeout_ms = _positive_int("LESSONS_MONGODB_TIMEOUT_MS", "5000")
  read_retry_attempts = _positive_int("LESSONS_READ_RETRY_ATTEMPTS", "2")
  return DatabaseSettings(mongodb_uri=mongodb_uri, mongodb_db=mongodb_db, mongodb_timeout_ms=mongodb_timeout_ms, read_retry_attempts=read_retry_attempts)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("LESSONS_ENV", "development").lower()
  debug = _parse_bool(os.getenv("LESSONS_DEBUG"))

  log_max_bytes = _positive_int("LESSONS_LOG_MAX_BYTES", "5242880")  # 5MB
  log_backup_count = int(os.getenv("LESSONS_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("LESSONS_LOG_BACKUP_COUNT must be zero or a positive integer.")

  checkout_currency = (os.getenv("LESSONS_CHECKOUT_CURRENCY") or "usd").strip().lower()
  if len(checkout_currency) != 3:
    raise ValueError("LESSONS_CHECKOUT_CURRENCY must be a three-letter ISO currency code.")

  database = get_database_settings()

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("LESSONS_ALLOWED_ORIGINS")),
    log_dir=_optional_str(os.getenv("LESSONS_LOG_DIR")),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("LESSONS_LOG_HTTP_4XX")),
    mongodb_uri=database.mongodb_uri,
    mongodb_db=database.mongodb_db,
    mongodb_timeout_ms=database.mongodb_timeout_ms,
    read_retry_attempts=database.read_retry_attempts,
    firebase_project_id=_optional_str(os.getenv("FIREBASE_PROJECT_ID")),
    firebase_service_account_json_path=_optional_str(os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON_PATH")),
    firebase_service_key_b64=_optional_str(os.getenv("FB_SERVICE_KEY")),
    superadmin_email=_optional_str((os.getenv("LESSONS_SUPERADMIN_EMAIL") or "").lower()),
    stripe_secret_key=_optional_str(os.getenv("STRIPE_SECRET_KEY")),
    checkout_success_url=(os.getenv("LESSONS_CHECKOUT_SUCCESS_URL") or "http://localhost:5173/payment/success?session_id={CHECKOUT_SESSION_ID}").strip(),
    checkout_cancel_url=(os.getenv("LESSONS_CHECKOUT_CANCEL_URL") or "http://localhost:5173/pricing").strip(),
    checkout_currency=checkout_currency,
  )
