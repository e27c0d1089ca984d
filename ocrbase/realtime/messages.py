"""Wire messages exchanged over the job updates channel."""

from __future__ import annotations

from typing import Any

import msgspec


class StatusData(msgspec.Struct, rename="camel", omit_defaults=True):
  status: str
  processing_time_ms: int | None = None


class CompletedData(msgspec.Struct, rename="camel", omit_defaults=True):
  status: str
  markdown_result: str
  processing_time_ms: int | None
  json_result: Any = None


class ErrorData(msgspec.Struct):
  status: str
  error: str


class StatusMessage(msgspec.Struct, tag="status", tag_field="type", rename="camel"):
  job_id: str
  data: StatusData


class CompletedMessage(msgspec.Struct, tag="completed", tag_field="type", rename="camel"):
  job_id: str
  data: CompletedData


class ErrorMessage(msgspec.Struct, tag="error", tag_field="type", rename="camel"):
  job_id: str
  data: ErrorData


JobUpdateMessage = StatusMessage | CompletedMessage | ErrorMessage


class PingMessage(msgspec.Struct, tag="ping", tag_field="type"):
  pass


class PongMessage(msgspec.Struct, tag="pong", tag_field="type"):
  pass


class ConnectionErrorMessage(msgspec.Struct, tag="error", tag_field="type"):
  """Sent before closing a connection that never got subscribed."""

  error: str


class ClientFrame(msgspec.Struct):
  """Any object frame from the peer; extra fields are ignored."""

  type: str


UNAUTHORIZED = "Unauthorized"
JOB_NOT_FOUND = "Job not found"


def build_status_message(job_id: str, status: str, processing_time_ms: int | None = None) -> StatusMessage:
  return StatusMessage(job_id=job_id, data=StatusData(status=status, processing_time_ms=processing_time_ms))


def build_completed_message(job_id: str, *, markdown_result: str, processing_time_ms: int | None, json_result: Any = None) -> CompletedMessage:
  return CompletedMessage(job_id=job_id, data=CompletedData(status="completed", markdown_result=markdown_result, processing_time_ms=processing_time_ms, json_result=json_result))


def build_error_message(job_id: str, error: str) -> ErrorMessage:
  return ErrorMessage(job_id=job_id, data=ErrorData(status="failed", error=error))


def encode_message(message: msgspec.Struct) -> str:
  return msgspec.json.encode(message).decode("utf-8")


def parse_client_message(raw: str | bytes) -> PingMessage | None:
  """Decode a peer frame; anything other than a ping yields None."""
  try:
    frame = msgspec.json.decode(raw, type=ClientFrame)
  except (msgspec.ValidationError, msgspec.DecodeError):
    return None
  # The type field is required here, unlike a bare tagged struct decode.
  if frame.type != "ping":
    return None
  return PingMessage()
