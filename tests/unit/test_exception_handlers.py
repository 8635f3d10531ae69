"""Unit tests for API exception mapping and sanitization behavior."""

from __future__ import annotations

import json
import logging
from types import SimpleNamespace

import pytest

from app.core.exceptions import (
  DuplicateError,
  NotFoundError,
  PartialWriteError,
  PaymentProviderError,
  PaymentUnavailableError,
  _sanitize_validation_errors,
  duplicate_exception_handler,
  not_found_exception_handler,
  partial_write_exception_handler,
  payment_exception_handler,
)


def _request(request_id: str = "req-1"):
  return SimpleNamespace(state=SimpleNamespace(request_id=request_id), url=SimpleNamespace(path="/favorites"), method="POST")


def test_sanitize_validation_errors_removes_input_and_serializes_exception_ctx() -> None:
  """Ensure validation errors stay JSON-serializable and redact raw request payloads."""
  errors = [{"type": "value_error", "loc": ("body",), "msg": "Value error, Unsupported status 'closed'.", "input": {"status": "closed"}, "ctx": {"error": ValueError("Unsupported status 'closed'."), "input": {"status": "closed"}}}]
  sanitized = _sanitize_validation_errors(errors)
  assert "input" not in sanitized[0]
  assert sanitized[0]["ctx"]["error"] == "ValueError: Unsupported status 'closed'."
  assert "input" not in sanitized[0]["ctx"]


@pytest.mark.anyio
async def test_not_found_maps_to_404_with_request_id() -> None:
  response = await not_found_exception_handler(_request(), NotFoundError("Lesson", "abc"))
  assert response.status_code == 404
  assert json.loads(response.body) == {"detail": "Lesson not found", "requestId": "req-1"}


@pytest.mark.anyio
async def test_duplicate_maps_to_idempotent_200() -> None:
  response = await duplicate_exception_handler(_request(), DuplicateError("Report", {"lessonId": "l1", "reporterEmail": "b@y.com"}))
  assert response.status_code == 200
  body = json.loads(response.body)
  assert body["inserted"] is False
  assert body["duplicate"] is True


@pytest.mark.anyio
async def test_partial_write_logs_affected_entities_on_drift_logger(caplog) -> None:
  exc = PartialWriteError("remove_favorite", entities={"lessonId": "l1", "userEmail": "b@y.com"}, failed_steps=["user.totalLessonsSaved-1"])
  with caplog.at_level(logging.ERROR, logger="app.consistency.drift"):
    response = await partial_write_exception_handler(_request(), exc)

  assert response.status_code == 500
  assert json.loads(response.body)["detail"] == "Internal Server Error"
  drift_records = [record for record in caplog.records if record.name == "app.consistency.drift"]
  assert drift_records
  assert "l1" in drift_records[0].getMessage()


@pytest.mark.anyio
async def test_payment_errors_map_to_502_and_503() -> None:
  assert (await payment_exception_handler(_request(), PaymentProviderError("declined"))).status_code == 502
  assert (await payment_exception_handler(_request(), PaymentUnavailableError("off"))).status_code == 503
