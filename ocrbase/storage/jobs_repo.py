"""Storage interfaces for document jobs."""

from __future__ import annotations

import datetime
from typing import Any, Protocol

from ocrbase.jobs.models import JobRecord, JobStatus


class JobsRepository(Protocol):
  """Repository contract for job persistence."""

  async def create_job(self, record: JobRecord) -> JobRecord:
    """Persist a new job record and return it as stored."""

  async def get_job(self, job_id: str, *, include_schema: bool = False) -> JobRecord | None:
    """Fetch a job by identifier."""

  async def get_job_for_organization(self, job_id: str, organization_id: str) -> JobRecord | None:
    """Fetch a job only when it belongs to the given organization."""

  async def update_job(
    self,
    job_id: str,
    *,
    status: JobStatus | None = None,
    file_key: str | None = None,
    file_name: str | None = None,
    file_size: int | None = None,
    mime_type: str | None = None,
    llm_provider: str | None = None,
    llm_model: str | None = None,
    markdown_result: str | None = None,
    json_result: Any | None = None,
    page_count: int | None = None,
    token_count: int | None = None,
    error_code: str | None = None,
    error_message: str | None = None,
    retry_count: int | None = None,
    retryable: bool | None = None,
    started_at: datetime.datetime | None = None,
    completed_at: datetime.datetime | None = None,
    processing_time_ms: int | None = None,
    clear_error: bool = False,
  ) -> JobRecord | None:
    """Apply partial updates to a job; returns None when the job does not exist.

    None values leave columns untouched. ``clear_error`` resets error_code and
    error_message, which cannot be expressed with None.
    """
