"""Usage ledger: at-most-once billing records for completed jobs."""

from __future__ import annotations

import datetime
import logging

from ocrbase.storage.usage_repo import UsageRecord, UsageRepository

logger = logging.getLogger(__name__)


class UsageLedger:
  """Record per-API-key consumption exactly once per job."""

  def __init__(self, repo: UsageRepository) -> None:
    self._repo = repo

  async def record_usage(self, *, api_key_id: str, job_id: str, page_count: int, prompt_tokens: int = 0, completion_tokens: int = 0, model: str | None = None, day: datetime.date | None = None) -> bool:
    """Create the job's usage event and add it to the (key, day) rollup.

    Returns True when a new event was written. A job that already has an event
    is left untouched and the daily rollup is not incremented again.
    """
    usage_day = day or datetime.datetime.now(datetime.UTC).date()
    record = UsageRecord(api_key_id=api_key_id, job_id=job_id, pages=page_count, prompt_tokens=prompt_tokens, completion_tokens=completion_tokens, model=model, day=usage_day)
    inserted = await self._repo.record_usage(record)
    if not inserted:
      logger.debug("Usage already recorded for job %s; skipping daily rollup.", job_id)
      return False
    logger.info("Recorded usage for job %s (api_key=%s day=%s pages=%s)", job_id, api_key_id, usage_day.isoformat(), page_count)
    return True
