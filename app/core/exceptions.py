import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

drift_logger = logging.getLogger("app.consistency.drift")


class LessonShareError(Exception):
  """Base class for domain failures raised by repositories and services."""


class NotFoundError(LessonShareError):
  """Raised when an entity id or key does not resolve."""

  def __init__(self, entity: str, identifier: str) -> None:
    super().__init__(f"{entity} not found: {identifier}")
    self.entity = entity
    self.identifier = identifier


class DuplicateError(LessonShareError):
  """Raised when a create would violate a uniqueness invariant."""

  def __init__(self, entity: str, key: dict[str, Any]) -> None:
    super().__init__(f"{entity} already exists for {key}")
    self.entity = entity
    self.key = key


class ForbiddenError(LessonShareError):
  """Raised when the verified principal does not own the target entity."""


class PartialWriteError(LessonShareError):
  """A multi-step mutation committed its authoritative write but a derived counter step failed."""

  def __init__(self, operation: str, *, entities: dict[str, str], failed_steps: list[str]) -> None:
    super().__init__(f"{operation} left derived counters unreconciled: {', '.join(failed_steps)}")
    self.operation = operation
    self.entities = entities
    self.failed_steps = failed_steps


class PaymentProviderError(LessonShareError):
  """Raised when the checkout provider rejects or fails a request."""


class PaymentUnavailableError(PaymentProviderError):
  """Raised when no checkout provider is configured."""


def _coerce_json_safe(value: Any) -> Any:
  """Convert unsupported values into JSON-safe primitives for error responses."""
  if value is None or isinstance(value, bool | int | float | str):
    return value
  if isinstance(value, dict):
    return {str(key): _coerce_json_safe(item) for key, item in value.items()}
  if isinstance(value, list | tuple | set):
    return [_coerce_json_safe(item) for item in value]
  if isinstance(value, BaseException):
    message = str(value)
    return f"{type(value).__name__}: {message}" if message else type(value).__name__
  return str(value)


def _error_payload(detail: Any, *, request_id: str | None = None) -> dict[str, Any]:
  payload: dict[str, Any] = {"detail": detail}
  if request_id:
    payload["requestId"] = request_id
  return payload


def _request_id(request: Request) -> str | None:
  return getattr(request.state, "request_id", None)


def _sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
  """Return validation errors without raw input payloads."""
  sanitized: list[dict[str, Any]] = []
  for error in errors:
    scrubbed = {key: value for key, value in error.items() if key != "input"}
    if isinstance(scrubbed.get("ctx"), dict):
      ctx = dict(scrubbed["ctx"])
      ctx.pop("input", None)
      scrubbed["ctx"] = ctx
    sanitized.append(_coerce_json_safe(scrubbed))
  return sanitized


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  """Catch unhandled errors, including storage failures."""
  logger = logging.getLogger("uvicorn.error")
  request_id = _request_id(request)
  logger.error("Global exception request_id=%s path=%s error_type=%s", request_id, request.url.path, type(exc).__name__, exc_info=True)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal Server Error", request_id=request_id))


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  """Log request validation errors without leaking payloads."""
  request_id = _request_id(request)
  sanitized_errors = _sanitize_validation_errors(exc.errors())
  logging.getLogger("uvicorn.error").warning("Request validation failed request_id=%s path=%s method=%s errors=%s", request_id, request.url.path, request.method, sanitized_errors)
  return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_payload(sanitized_errors, request_id=request_id))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
  """Handle HTTPExceptions while hiding 5xx diagnostics from callers."""
  from app.config import get_settings

  request_id = _request_id(request)
  logger = logging.getLogger("uvicorn.error")
  if exc.status_code >= 500:
    logger.error("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=_error_payload("Internal Server Error", request_id=request_id))

  if get_settings().log_http_4xx:
    logger.warning("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail)

  return JSONResponse(status_code=exc.status_code, content=_error_payload(exc.detail, request_id=request_id), headers=exc.headers)


async def not_found_exception_handler(request: Request, exc: NotFoundError) -> JSONResponse:
  return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=_error_payload(f"{exc.entity} not found", request_id=_request_id(request)))


async def forbidden_exception_handler(request: Request, exc: ForbiddenError) -> JSONResponse:
  return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content=_error_payload(str(exc) or "Forbidden", request_id=_request_id(request)))


async def duplicate_exception_handler(request: Request, exc: DuplicateError) -> JSONResponse:
  """Duplicates are idempotent outcomes: answer 200 and report that nothing was written."""
  return JSONResponse(status_code=status.HTTP_200_OK, content={"inserted": False, "duplicate": True, "message": f"{exc.entity} already exists"})


async def partial_write_exception_handler(request: Request, exc: PartialWriteError) -> JSONResponse:
  """Surface a 500 and record the affected entities on the drift logger for reconciliation."""
  request_id = _request_id(request)
  drift_logger.error("Partial write request_id=%s operation=%s entities=%s failed_steps=%s", request_id, exc.operation, exc.entities, exc.failed_steps)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal Server Error", request_id=request_id))


async def payment_exception_handler(request: Request, exc: PaymentProviderError) -> JSONResponse:
  request_id = _request_id(request)
  if isinstance(exc, PaymentUnavailableError):
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=_error_payload("Checkout is not configured", request_id=request_id))
  logging.getLogger("uvicorn.error").error("Checkout provider failure request_id=%s error=%s", request_id, exc)
  return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content=_error_payload("Checkout provider error", request_id=request_id))
