import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI

from ocrbase.config import get_settings
from ocrbase.core.database import create_all_tables, dispose_engine
from ocrbase.core.logging import initialize_logging
from ocrbase.core.security import DatabaseIdentityResolver
from ocrbase.realtime.bus import NotificationBus
from ocrbase.services.jobs import JobService
from ocrbase.services.usage import UsageLedger
from ocrbase.storage.postgres_jobs_repo import PostgresJobsRepository
from ocrbase.storage.usage_repo import PostgresUsageRepository


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Configure logging and wire the job store, usage ledger and notification bus."""
  settings = get_settings()
  logger = logging.getLogger("ocrbase.core.lifespan")
  initialize_logging(settings)

  # The bus lives exactly as long as the process; subscriptions never outlive it.
  bus = NotificationBus()
  app.state.notification_bus = bus
  app.state.job_service = None
  app.state.identity_resolver = None

  if settings.pg_dsn:
    logger.info("Connecting job store to %s", _redact_dsn(settings.pg_dsn))
    if settings.auto_create_tables:
      logger.info("OCRBASE_AUTO_CREATE_TABLES is set; creating missing tables.")
      await create_all_tables()
    usage_ledger = UsageLedger(PostgresUsageRepository())
    app.state.job_service = JobService(jobs_repo=PostgresJobsRepository(), usage_ledger=usage_ledger, publisher=bus, validate_transitions=settings.validate_job_transitions)
    app.state.identity_resolver = DatabaseIdentityResolver(session_cookie_name=settings.session_cookie_name)
  else:
    logger.warning("OCRBASE_PG_DSN is not set; job routes will answer 503 until a database is configured.")

  logger.info("Startup complete (environment=%s, validate_job_transitions=%s).", settings.environment, settings.validate_job_transitions)
  try:
    yield
  finally:
    await dispose_engine()
    logger.info("Shutdown complete.")


def _redact_dsn(raw: str | None) -> str:
  """Redact credentials from a DSN while keeping host/db visible."""
  if not raw:
    return "<unset>"

  parsed = urlparse(raw)
  if not parsed.scheme:
    return "<invalid>"

  user = parsed.username or ""
  host = parsed.hostname or ""
  port = f":{parsed.port}" if parsed.port else ""
  netloc = f"{user}@{host}{port}" if user else f"{host}{port}"
  database = parsed.path.lstrip("/")
  path = f"/{database}" if database else ""
  return f"{parsed.scheme}://{netloc}{path}"
