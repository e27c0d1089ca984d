"""Unit tests for API exception sanitization behavior."""

from __future__ import annotations

from ocrbase.core.exceptions import _error_payload, _sanitize_validation_errors


def test_sanitize_validation_errors_removes_input_and_serializes_exception_ctx() -> None:
  """Validation errors stay JSON-serializable and never echo raw request payloads."""
  errors = [{"type": "value_error", "loc": ("body", "pageCount"), "msg": "Value error, negative page count.", "input": {"pageCount": -1}, "ctx": {"error": ValueError("negative page count."), "input": -1}}]
  sanitized = _sanitize_validation_errors(errors)
  assert "input" not in sanitized[0]
  assert sanitized[0]["ctx"]["error"] == "ValueError: negative page count."
  assert "input" not in sanitized[0]["ctx"]
  assert sanitized[0]["loc"] == ["body", "pageCount"]


def test_error_payload_includes_request_id_only_when_known() -> None:
  assert _error_payload("Job not found") == {"detail": "Job not found"}
  assert _error_payload("Job not found", request_id="req-1") == {"detail": "Job not found", "requestId": "req-1"}
