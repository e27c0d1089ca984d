"""Domain models for document parse/extract jobs."""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any, Literal, get_args

JobStatus = Literal["pending", "processing", "extracting", "completed", "failed"]
JobType = Literal["parse", "extract"]

JOB_STATUSES: tuple[str, ...] = get_args(JobStatus)
JOB_TYPES: tuple[str, ...] = get_args(JobType)

TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed"})

# failed -> processing is the retry path, open only after a retryable failure.
# completed -> completed keeps duplicate completions safe.
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
  "pending": frozenset({"processing", "failed"}),
  "processing": frozenset({"processing", "extracting", "completed", "failed"}),
  "extracting": frozenset({"extracting", "completed", "failed"}),
  "failed": frozenset({"processing", "failed"}),
  "completed": frozenset({"completed"}),
}


class JobError(Exception):
  """Base class for job lifecycle errors."""


class JobNotFoundError(JobError):
  """Raised when a mutation targets a job that does not exist."""

  def __init__(self, job_id: str) -> None:
    super().__init__(f"Job {job_id} not found")
    self.job_id = job_id


class JobTransitionError(JobError):
  """Raised when a status change is not allowed by the job state machine."""

  def __init__(self, job_id: str, current: str, target: str) -> None:
    super().__init__(f"Job {job_id} cannot move from {current} to {target}")
    self.job_id = job_id
    self.current = current
    self.target = target


def validate_transition(job_id: str, current: str, target: str, *, retryable: bool = True) -> None:
  """Raise JobTransitionError unless current -> target is a legal move.

  ``retryable`` only matters for a failed job: a failure reported without
  retry is final, so nothing may follow it.
  """
  if current == "failed" and not retryable:
    raise JobTransitionError(job_id, current, target)
  if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
    raise JobTransitionError(job_id, current, target)


@dataclass
class SchemaRecord:
  """Extraction schema attached to an extract job."""

  schema_id: str
  name: str
  json_schema: dict[str, Any]
  description: str | None = None


@dataclass
class JobRecord:
  """Represents one document parse/extract job."""

  job_id: str
  organization_id: str
  user_id: str
  type: JobType
  status: JobStatus
  file_name: str
  file_size: int
  mime_type: str
  api_key_id: str | None = None
  file_key: str | None = None
  source_url: str | None = None
  schema_id: str | None = None
  hints: str | None = None
  llm_provider: str | None = None
  llm_model: str | None = None
  markdown_result: str | None = None
  json_result: Any | None = None
  page_count: int | None = None
  token_count: int | None = None
  error_code: str | None = None
  error_message: str | None = None
  retry_count: int = 0
  retryable: bool = False
  started_at: datetime.datetime | None = None
  completed_at: datetime.datetime | None = None
  processing_time_ms: int | None = None
  created_at: datetime.datetime | None = None
  updated_at: datetime.datetime | None = None
  schema: SchemaRecord | None = None


@dataclass(frozen=True)
class FileInfo:
  file_key: str
  file_name: str
  file_size: int
  mime_type: str


@dataclass(frozen=True)
class LlmUsage:
  prompt_tokens: int = 0
  completion_tokens: int = 0


@dataclass(frozen=True)
class CompleteJobResult:
  """Outputs reported by the worker when a job finishes."""

  markdown_result: str
  page_count: int
  processing_time_ms: int
  json_result: Any | None = None
  token_count: int | None = None
  llm_model: str | None = None
  llm_usage: LlmUsage | None = None


@dataclass(frozen=True)
class StatusUpdate:
  """Optional fields written alongside a status change."""

  started_at: datetime.datetime | None = None
  processing_time_ms: int | None = None
  page_count: int | None = None
  token_count: int | None = None
  llm_provider: str | None = None
  llm_model: str | None = None
