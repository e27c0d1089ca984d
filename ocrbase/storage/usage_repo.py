"""Usage ledger persistence: per-job usage events and per-key daily rollups."""

from __future__ import annotations

import datetime
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ocrbase.core.database import get_session_factory
from ocrbase.schema.usage import ApiKeyUsageDaily, UsageEvent


@dataclass(frozen=True)
class UsageRecord:
  """Billable consumption of one completed job."""

  api_key_id: str
  job_id: str
  pages: int
  prompt_tokens: int
  completion_tokens: int
  model: str | None
  day: datetime.date


class UsageRepository(Protocol):
  """Repository contract for the usage ledger."""

  async def record_usage(self, record: UsageRecord) -> bool:
    """Insert the job's usage event and bump the daily rollup atomically.

    Returns False without touching the rollup when the job already has an event.
    """


@asynccontextmanager
async def _usage_transaction(session: AsyncSession):
  """Open a transaction, or a SAVEPOINT when the session already has one."""
  if session.in_transaction():
    async with session.begin_nested():
      yield
    return
  async with session.begin():
    yield


class PostgresUsageRepository(UsageRepository):
  """Persist usage events and daily rollups to Postgres."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def record_usage(self, record: UsageRecord) -> bool:
    async with self._session_factory() as session:
      return await self._record_usage_with_session(session=session, record=record)

  async def _record_usage_with_session(self, *, session: AsyncSession, record: UsageRecord) -> bool:
    async with _usage_transaction(session):
      # The unique job_id turns a repeated completion into a no-op that returns no row.
      event_stmt = insert(UsageEvent).values(api_key_id=record.api_key_id, job_id=record.job_id, pages=record.pages, prompt_tokens=record.prompt_tokens, completion_tokens=record.completion_tokens, model=record.model)
      event_stmt = event_stmt.on_conflict_do_nothing(index_elements=["job_id"]).returning(UsageEvent.id)
      inserted_id = (await session.execute(event_stmt)).scalar_one_or_none()
      if inserted_id is None:
        return False

      daily_stmt = insert(ApiKeyUsageDaily).values(api_key_id=record.api_key_id, day=record.day, pages=record.pages, jobs_count=1, prompt_tokens=record.prompt_tokens, completion_tokens=record.completion_tokens)
      daily_stmt = daily_stmt.on_conflict_do_update(
        index_elements=["api_key_id", "day"],
        set_={
          "pages": ApiKeyUsageDaily.pages + daily_stmt.excluded.pages,
          "jobs_count": ApiKeyUsageDaily.jobs_count + daily_stmt.excluded.jobs_count,
          "prompt_tokens": ApiKeyUsageDaily.prompt_tokens + daily_stmt.excluded.prompt_tokens,
          "completion_tokens": ApiKeyUsageDaily.completion_tokens + daily_stmt.excluded.completion_tokens,
        },
      )
      await session.execute(daily_stmt)
    return True
