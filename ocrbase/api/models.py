from __future__ import annotations

import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr
from pydantic.alias_generators import to_camel

from ocrbase.jobs.models import CompleteJobResult, FileInfo, JobRecord, JobStatus, LlmUsage, StatusUpdate


class CamelModel(BaseModel):
  """Base model that speaks camelCase on the wire and accepts snake_case too."""

  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SchemaResponse(CamelModel):
  id: str
  name: str
  description: str | None = None
  json_schema: dict[str, Any]


class JobResponse(CamelModel):
  """Public view of a job row."""

  id: str
  organization_id: str
  user_id: str
  api_key_id: str | None = None
  type: Literal["parse", "extract"]
  status: JobStatus
  file_name: str
  file_key: str | None = None
  file_size: int
  mime_type: str
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
  started_at: datetime.datetime | None = None
  completed_at: datetime.datetime | None = None
  processing_time_ms: int | None = None
  created_at: datetime.datetime | None = None
  updated_at: datetime.datetime | None = None
  extraction_schema: SchemaResponse | None = Field(default=None, alias="schema")

  @classmethod
  def from_record(cls, record: JobRecord) -> JobResponse:
    schema = None
    if record.schema is not None:
      schema = SchemaResponse(id=record.schema.schema_id, name=record.schema.name, description=record.schema.description, json_schema=record.schema.json_schema)
    return cls(
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
      markdown_result=record.markdown_result,
      json_result=record.json_result,
      page_count=record.page_count,
      token_count=record.token_count,
      error_code=record.error_code,
      error_message=record.error_message,
      retry_count=record.retry_count,
      started_at=record.started_at,
      completed_at=record.completed_at,
      processing_time_ms=record.processing_time_ms,
      created_at=record.created_at,
      updated_at=record.updated_at,
      extraction_schema=schema,
    )


class StatusUpdateRequest(CamelModel):
  """Worker report of a status change."""

  status: JobStatus
  started_at: datetime.datetime | None = None
  processing_time_ms: int | None = Field(default=None, ge=0)
  page_count: int | None = Field(default=None, ge=0)
  token_count: int | None = Field(default=None, ge=0)
  llm_provider: StrictStr | None = None
  llm_model: StrictStr | None = None
  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

  def to_update(self) -> StatusUpdate:
    return StatusUpdate(started_at=self.started_at, processing_time_ms=self.processing_time_ms, page_count=self.page_count, token_count=self.token_count, llm_provider=self.llm_provider, llm_model=self.llm_model)


class LlmUsageRequest(CamelModel):
  prompt_tokens: int = Field(default=0, ge=0)
  completion_tokens: int = Field(default=0, ge=0)


class CompleteJobRequest(CamelModel):
  markdown_result: StrictStr
  page_count: int = Field(ge=0)
  processing_time_ms: int = Field(ge=0)
  json_result: Any | None = None
  token_count: int | None = Field(default=None, ge=0)
  llm_model: StrictStr | None = None
  llm_usage: LlmUsageRequest | None = None

  def to_result(self) -> CompleteJobResult:
    usage = None
    if self.llm_usage is not None:
      usage = LlmUsage(prompt_tokens=self.llm_usage.prompt_tokens, completion_tokens=self.llm_usage.completion_tokens)
    return CompleteJobResult(
      markdown_result=self.markdown_result,
      page_count=self.page_count,
      processing_time_ms=self.processing_time_ms,
      json_result=self.json_result,
      token_count=self.token_count,
      llm_model=self.llm_model,
      llm_usage=usage,
    )


class FailJobRequest(CamelModel):
  error_code: StrictStr = Field(min_length=1)
  error_message: StrictStr
  should_retry: bool = False


class FileInfoRequest(CamelModel):
  file_key: StrictStr = Field(min_length=1)
  file_name: StrictStr = Field(min_length=1)
  file_size: int = Field(ge=0)
  mime_type: StrictStr = Field(min_length=1)

  def to_file_info(self) -> FileInfo:
    return FileInfo(file_key=self.file_key, file_name=self.file_name, file_size=self.file_size, mime_type=self.mime_type)


class AcceptedResponse(BaseModel):
  status: Literal["accepted"] = "accepted"
