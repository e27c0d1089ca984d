from __future__ import annotations

import datetime

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from ocrbase.core.database import Base
from ocrbase.utils.ids import create_id


class UsageEvent(Base):
  __tablename__ = "usage_events"

  id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: create_id("usage_event"))
  api_key_id: Mapped[str] = mapped_column(ForeignKey("api_keys.id", ondelete="CASCADE"), nullable=False, index=True)
  # One billable event per job; duplicate completions hit this constraint.
  job_id: Mapped[str] = mapped_column(ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, unique=True)
  pages: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  prompt_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  completion_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  model: Mapped[str | None] = mapped_column(String, nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ApiKeyUsageDaily(Base):
  __tablename__ = "api_key_usage_daily"

  api_key_id: Mapped[str] = mapped_column(ForeignKey("api_keys.id", ondelete="CASCADE"), primary_key=True)
  day: Mapped[datetime.date] = mapped_column(Date, primary_key=True)
  pages: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  jobs_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  prompt_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  completion_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
