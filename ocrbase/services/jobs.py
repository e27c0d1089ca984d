"""Job store operations: state transitions, usage accounting and notifications."""

from __future__ import annotations

import datetime
import logging

from ocrbase.jobs.models import TERMINAL_STATUSES, CompleteJobResult, FileInfo, JobNotFoundError, JobRecord, JobStatus, JobTransitionError, JobType, StatusUpdate, validate_transition
from ocrbase.realtime.bus import JobEventPublisher
from ocrbase.realtime.messages import JobUpdateMessage, build_completed_message, build_error_message, build_status_message
from ocrbase.services.usage import UsageLedger
from ocrbase.storage.jobs_repo import JobsRepository
from ocrbase.utils.ids import create_id

logger = logging.getLogger(__name__)


def _utc_now() -> datetime.datetime:
  return datetime.datetime.now(datetime.UTC)


class JobService:
  """Sole entry point for driving a job through its lifecycle.

  Every mutation is a durable write first and a best-effort publish second.
  Publishing never raises into the caller and never undoes the write.
  """

  def __init__(self, *, jobs_repo: JobsRepository, usage_ledger: UsageLedger, publisher: JobEventPublisher, validate_transitions: bool = True) -> None:
    self._jobs_repo = jobs_repo
    self._usage_ledger = usage_ledger
    self._publisher = publisher
    self._validate_transitions = validate_transitions

  async def create_job(
    self,
    *,
    organization_id: str,
    user_id: str,
    job_type: JobType,
    file_name: str,
    file_size: int,
    mime_type: str,
    api_key_id: str | None = None,
    file_key: str | None = None,
    source_url: str | None = None,
    schema_id: str | None = None,
    hints: str | None = None,
    llm_provider: str | None = None,
    llm_model: str | None = None,
  ) -> JobRecord:
    """Insert a pending job for a new submission."""
    record = JobRecord(
      job_id=create_id("job"),
      organization_id=organization_id,
      user_id=user_id,
      api_key_id=api_key_id,
      type=job_type,
      status="pending",
      file_name=file_name,
      file_key=file_key,
      file_size=file_size,
      mime_type=mime_type,
      source_url=source_url,
      schema_id=schema_id,
      hints=hints,
      llm_provider=llm_provider,
      llm_model=llm_model,
    )
    created = await self._jobs_repo.create_job(record)
    logger.info("Created %s job %s for organization %s", job_type, created.job_id, organization_id)
    return created

  async def get_job_by_id(self, job_id: str) -> JobRecord | None:
    """Return the job with its schema attached, or None when it does not exist."""
    return await self._jobs_repo.get_job(job_id, include_schema=True)

  async def get_job_for_organization(self, job_id: str, organization_id: str) -> JobRecord | None:
    return await self._jobs_repo.get_job_for_organization(job_id, organization_id)

  async def update_status(self, job_id: str, status: JobStatus, data: StatusUpdate | None = None) -> JobRecord:
    """Move a job to a non-terminal status and broadcast a status message."""
    current = await self._require_job(job_id)
    if self._validate_transitions:
      # Terminal states carry results/errors, so they only go through complete_job/fail_job.
      if status in TERMINAL_STATUSES:
        raise JobTransitionError(job_id, current.status, status)
      validate_transition(job_id, current.status, status, retryable=current.retryable)

    data = data or StatusUpdate()
    updated = await self._jobs_repo.update_job(
      job_id,
      status=status,
      started_at=data.started_at,
      processing_time_ms=data.processing_time_ms,
      page_count=data.page_count,
      token_count=data.token_count,
      llm_provider=data.llm_provider,
      llm_model=data.llm_model,
      # A retry starts clean; the previous attempt's error only describes that attempt.
      clear_error=current.status == "failed",
    )
    if updated is None:
      raise JobNotFoundError(job_id)
    logger.info("Job %s status -> %s", job_id, status)

    self._publish(job_id, build_status_message(job_id, status, data.processing_time_ms))
    return updated

  async def complete_job(self, job_id: str, result: CompleteJobResult) -> JobRecord:
    """Store results, record usage once per job and broadcast the completion.

    Calling this again for the same job rewrites the row and re-publishes,
    but the usage ledger ignores the repeat.
    """
    if self._validate_transitions:
      current = await self._require_job(job_id)
      validate_transition(job_id, current.status, "completed", retryable=current.retryable)

    completed_at = _utc_now()
    updated = await self._jobs_repo.update_job(
      job_id,
      status="completed",
      markdown_result=result.markdown_result,
      json_result=result.json_result,
      page_count=result.page_count,
      token_count=result.token_count,
      llm_model=result.llm_model,
      processing_time_ms=result.processing_time_ms,
      completed_at=completed_at,
    )
    if updated is None:
      raise JobNotFoundError(job_id)
    logger.info("Job %s status -> completed (%s pages, %s ms)", job_id, result.page_count, result.processing_time_ms)

    if updated.api_key_id:
      usage = result.llm_usage
      await self._usage_ledger.record_usage(
        api_key_id=updated.api_key_id,
        job_id=job_id,
        page_count=result.page_count,
        prompt_tokens=usage.prompt_tokens if usage else 0,
        completion_tokens=usage.completion_tokens if usage else 0,
        model=result.llm_model,
        day=completed_at.date(),
      )

    self._publish(job_id, build_completed_message(job_id, markdown_result=result.markdown_result, processing_time_ms=result.processing_time_ms, json_result=result.json_result))
    return updated

  async def fail_job(self, job_id: str, error_code: str, error_message: str, should_retry: bool = False) -> JobRecord:
    """Record a failure; only a non-retryable failure is broadcast."""
    current = await self._require_job(job_id)
    if self._validate_transitions:
      validate_transition(job_id, current.status, "failed", retryable=current.retryable)

    # Every failure counts, including ones that will be retried.
    retry_count = (current.retry_count or 0) + 1
    updated = await self._jobs_repo.update_job(job_id, status="failed", error_code=error_code, error_message=error_message, retry_count=retry_count, retryable=should_retry)
    if updated is None:
      raise JobNotFoundError(job_id)
    logger.info("Job %s status -> failed (code=%s retry=%s attempt=%s)", job_id, error_code, should_retry, retry_count)

    if not should_retry:
      self._publish(job_id, build_error_message(job_id, error_message))
    return updated

  async def update_file_info(self, job_id: str, file_info: FileInfo) -> JobRecord:
    """Store upload metadata; this is not a status change and is not broadcast."""
    updated = await self._jobs_repo.update_job(job_id, file_key=file_info.file_key, file_name=file_info.file_name, file_size=file_info.file_size, mime_type=file_info.mime_type)
    if updated is None:
      raise JobNotFoundError(job_id)
    logger.debug("Updated file info for job %s (key=%s)", job_id, file_info.file_key)
    return updated

  async def _require_job(self, job_id: str) -> JobRecord:
    job = await self._jobs_repo.get_job(job_id)
    if job is None:
      raise JobNotFoundError(job_id)
    return job

  def _publish(self, job_id: str, message: JobUpdateMessage) -> None:
    try:
      self._publisher.publish(job_id, message)
    except Exception:  # noqa: BLE001
      logger.warning("Failed to publish %s update for job %s", type(message).__name__, job_id, exc_info=True)
