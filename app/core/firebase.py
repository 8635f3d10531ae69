import base64
import binascii
import json
import logging
from typing import Any

import firebase_admin
from app.config import Settings, get_settings
from firebase_admin import auth, credentials

logger = logging.getLogger(__name__)


def _decode_service_key(encoded: str) -> dict[str, Any]:
  """Decode a base64-encoded service-account JSON document."""
  try:
    return json.loads(base64.b64decode(encoded).decode("utf-8"))
  except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as exc:
    raise ValueError("FB_SERVICE_KEY is not base64-encoded service-account JSON.") from exc


def initialize_firebase(settings: Settings | None = None) -> None:
  """Initializes the Firebase Admin SDK.

  Credentials are taken, in order, from the base64 `FB_SERVICE_KEY`, the
  service-account file path, or Application Default Credentials.
  """
  if firebase_admin._apps:
    return

  settings = settings or get_settings()
  options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None

  try:
    if settings.firebase_service_key_b64:
      cred = credentials.Certificate(_decode_service_key(settings.firebase_service_key_b64))
      firebase_admin.initialize_app(cred, options)
    elif settings.firebase_service_account_json_path:
      cred = credentials.Certificate(settings.firebase_service_account_json_path)
      firebase_admin.initialize_app(cred, options)
    elif settings.firebase_project_id:
      # Use default credentials (e.g. Google Application Default Credentials)
      firebase_admin.initialize_app(options=options)
    else:
      logger.warning("No Firebase credentials or project id configured. Firebase Admin SDK not initialized.")
      return
    logger.info("Firebase Admin SDK initialized successfully.")
  except (ValueError, OSError) as e:
    logger.error("Failed to initialize Firebase Admin SDK: %s", e)


def verify_id_token(id_token: str) -> dict[str, Any] | None:
  """Verifies a Firebase ID token. Lazily initializes if needed."""
  if not firebase_admin._apps:
    initialize_firebase()

  try:
    return auth.verify_id_token(id_token)
  except (ValueError, auth.InvalidIdTokenError, auth.ExpiredIdTokenError, auth.RevokedIdTokenError, auth.CertificateFetchError) as e:
    logger.warning("Token verification failed: %s", e)
    return None
