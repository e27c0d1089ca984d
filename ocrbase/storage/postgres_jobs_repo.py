"""Postgres-backed repository for document jobs using SQLAlchemy."""

from __future__ import annotations

import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ocrbase.core.database import get_session_factory
from ocrbase.jobs.models import JobRecord, JobStatus, SchemaRecord
from ocrbase.schema.jobs import ExtractionSchema, Job
from ocrbase.storage.jobs_repo import JobsRepository


class PostgresJobsRepository(JobsRepository):
  """Persist jobs to Postgres using SQLAlchemy."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def create_job(self, record: JobRecord) -> JobRecord:
    async with self._session_factory() as session:
      job = Job(
        id=record.job_id,
        organization_id=record.organization_id,
        user_id=record.user_id,
        api_key_id=record.api_key_id,
        type=record.type,
        status=record.status,
        file_name=record.file_name,
        file_key=record.file_key,
        file_size=record.file_size,
        mime_type=record.mime_type,
        source_url=record.source_url,
        schema_id=record.schema_id,
        hints=record.hints,
        llm_provider=record.llm_provider,
        llm_model=record.llm_model,
      )
      session.add(job)
      await session.commit()
      await session.refresh(job)
      return self._model_to_record(job)

  async def get_job(self, job_id: str, *, include_schema: bool = False) -> JobRecord | None:
    async with self._session_factory() as session:
      row = await session.get(Job, job_id)
      if row is None:
        return None
      schema_row = None
      if include_schema and row.schema_id is not None:
        schema_row = await session.get(ExtractionSchema, row.schema_id)
      return self._model_to_record(row, schema_row=schema_row)

  async def get_job_for_organization(self, job_id: str, organization_id: str) -> JobRecord | None:
    async with self._session_factory() as session:
      # Scope by organization in SQL so a foreign job looks exactly like a missing one.
      stmt = select(Job).where(Job.id == job_id, Job.organization_id == organization_id).limit(1)
      row = (await session.execute(stmt)).scalar_one_or_none()
      if row is None:
        return None
      schema_row = None
      if row.schema_id is not None:
        schema_row = await session.get(ExtractionSchema, row.schema_id)
      return self._model_to_record(row, schema_row=schema_row)

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
    values = {
      "status": status,
      "file_key": file_key,
      "file_name": file_name,
      "file_size": file_size,
      "mime_type": mime_type,
      "llm_provider": llm_provider,
      "llm_model": llm_model,
      "markdown_result": markdown_result,
      "json_result": json_result,
      "page_count": page_count,
      "token_count": token_count,
      "error_code": error_code,
      "error_message": error_message,
      "retry_count": retry_count,
      "retryable": retryable,
      "started_at": started_at,
      "completed_at": completed_at,
      "processing_time_ms": processing_time_ms,
    }
    async with self._session_factory() as session:
      row = await session.get(Job, job_id)
      if row is None:
        return None
      for column, value in values.items():
        if value is not None:
          setattr(row, column, value)
      if clear_error:
        row.error_code = None
        row.error_message = None
      await session.commit()
      await session.refresh(row)
      return self._model_to_record(row)

  def _model_to_record(self, row: Job, *, schema_row: ExtractionSchema | None = None) -> JobRecord:
    schema = None
    if schema_row is not None:
      schema = SchemaRecord(schema_id=schema_row.id, name=schema_row.name, json_schema=schema_row.json_schema, description=schema_row.description)
    return JobRecord(
      job_id=row.id,
      organization_id=row.organization_id,
      user_id=row.user_id,
      api_key_id=row.api_key_id,
      type=row.type,
      status=row.status,
      file_name=row.file_name,
      file_key=row.file_key,
      file_size=row.file_size,
      mime_type=row.mime_type,
      source_url=row.source_url,
      schema_id=row.schema_id,
      hints=row.hints,
      llm_provider=row.llm_provider,
      llm_model=row.llm_model,
      markdown_result=row.markdown_result,
      json_result=row.json_result,
      page_count=row.page_count,
      token_count=row.token_count,
      error_code=row.error_code,
      error_message=row.error_message,
      retry_count=row.retry_count,
      retryable=row.retryable,
      started_at=row.started_at,
      completed_at=row.completed_at,
      processing_time_ms=row.processing_time_ms,
      created_at=row.created_at,
      updated_at=row.updated_at,
      schema=schema,
    )
