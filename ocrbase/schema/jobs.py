from __future__ import annotations

import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from ocrbase.core.database import Base
from ocrbase.jobs.models import JOB_STATUSES, JOB_TYPES
from ocrbase.utils.ids import create_id


class ExtractionSchema(Base):
  __tablename__ = "schemas"

  id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: create_id("schema"))
  organization_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  name: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  json_schema: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
  sample_job_id: Mapped[str | None] = mapped_column(String, nullable=True)
  generated_by: Mapped[str | None] = mapped_column(String, nullable=True)
  usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  last_used_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class Job(Base):
  __tablename__ = "jobs"
  __table_args__ = (Index("jobs_organization_id_idx", "organization_id"), Index("jobs_status_idx", "status"), Index("jobs_created_at_idx", "created_at"))

  id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: create_id("job"))
  organization_id: Mapped[str] = mapped_column(String, nullable=False)
  user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  api_key_id: Mapped[str | None] = mapped_column(ForeignKey("api_keys.id", ondelete="SET NULL"), nullable=True, index=True)
  type: Mapped[str] = mapped_column(Enum(*JOB_TYPES, name="job_type"), nullable=False)
  status: Mapped[str] = mapped_column(Enum(*JOB_STATUSES, name="job_status"), nullable=False, default="pending", server_default="pending")
  file_name: Mapped[str] = mapped_column(String, nullable=False)
  file_key: Mapped[str | None] = mapped_column(String, nullable=True)
  file_size: Mapped[int] = mapped_column(Integer, nullable=False)
  mime_type: Mapped[str] = mapped_column(String, nullable=False)
  source_url: Mapped[str | None] = mapped_column(Text, nullable=True)
  schema_id: Mapped[str | None] = mapped_column(ForeignKey("schemas.id", ondelete="SET NULL"), nullable=True)
  hints: Mapped[str | None] = mapped_column(Text, nullable=True)
  llm_provider: Mapped[str | None] = mapped_column(String, nullable=True)
  llm_model: Mapped[str | None] = mapped_column(String, nullable=True)
  markdown_result: Mapped[str | None] = mapped_column(Text, nullable=True)
  json_result: Mapped[Any | None] = mapped_column(JSONB, nullable=True)
  page_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
  token_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
  error_code: Mapped[str | None] = mapped_column(String, nullable=True)
  error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
  retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  retryable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
  started_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  completed_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  processing_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
