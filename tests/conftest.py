"""Shared fixtures: in-memory storage fakes, a live bus and the wired job service."""

from __future__ import annotations

import asyncio
import os
import tempfile
from collections.abc import Mapping
from dataclasses import replace

# Settings are read once per process, so pin them before importing the package.
os.environ["OCRBASE_ALLOWED_ORIGINS"] = "http://localhost"
os.environ["OCRBASE_WORKER_SECRET"] = "test-worker-secret"
os.environ["OCRBASE_PG_DSN"] = ""
os.environ["DATABASE_URL"] = ""
os.environ.setdefault("OCRBASE_LOG_DIR", tempfile.mkdtemp(prefix="ocrbase-test-logs-"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from ocrbase.api.deps import get_identity_resolver, get_job_service, get_notification_bus  # noqa: E402
from ocrbase.core.security import Identity, parse_bearer_api_key  # noqa: E402
from ocrbase.jobs.models import JobRecord, SchemaRecord  # noqa: E402
from ocrbase.main import app  # noqa: E402
from ocrbase.realtime.bus import NotificationBus  # noqa: E402
from ocrbase.services.jobs import JobService  # noqa: E402
from ocrbase.services.usage import UsageLedger  # noqa: E402
from ocrbase.storage.usage_repo import UsageRecord  # noqa: E402

WORKER_SECRET = "test-worker-secret"
ORG_A_KEY = "sk_orgAkey000000000000000000000000"
ORG_B_KEY = "sk_orgBkey000000000000000000000000"


class InMemoryJobsRepo:
  """In-memory jobs repository mirroring the Postgres repository contract."""

  def __init__(self) -> None:
    self._jobs: dict[str, JobRecord] = {}
    self._schemas: dict[str, SchemaRecord] = {}

  def seed(self, record: JobRecord) -> JobRecord:
    # Schemas live in their own table; rows only keep schema_id.
    if record.schema is not None:
      self.seed_schema(record.schema)
      record = replace(record, schema=None)
    self._jobs[record.job_id] = record
    return record

  def seed_schema(self, schema: SchemaRecord) -> SchemaRecord:
    self._schemas[schema.schema_id] = schema
    return schema

  def _with_schema(self, record: JobRecord) -> JobRecord:
    if record.schema_id is None:
      return record
    return replace(record, schema=self._schemas.get(record.schema_id))

  async def create_job(self, record: JobRecord) -> JobRecord:
    return self.seed(record)

  async def get_job(self, job_id: str, *, include_schema: bool = False) -> JobRecord | None:
    record = self._jobs.get(job_id)
    if record is None or not include_schema:
      return record
    return self._with_schema(record)

  async def get_job_for_organization(self, job_id: str, organization_id: str) -> JobRecord | None:
    record = self._jobs.get(job_id)
    if record is None or record.organization_id != organization_id:
      return None
    return self._with_schema(record)

  async def update_job(self, job_id: str, *, clear_error: bool = False, **kwargs: object) -> JobRecord | None:
    record = self._jobs.get(job_id)
    if record is None:
      return None

    # Apply partial updates to mimic repository behavior.
    updated = replace(record, **{key: value for key, value in kwargs.items() if value is not None})
    if clear_error:
      updated = replace(updated, error_code=None, error_message=None)
    self._jobs[job_id] = updated
    return updated


class InMemoryUsageRepo:
  """Usage ledger storage with the same unique-job and (key, day) semantics as the tables."""

  def __init__(self) -> None:
    self.events: dict[str, UsageRecord] = {}
    self.daily: dict[tuple[str, object], dict[str, int]] = {}
    self._lock = asyncio.Lock()

  async def record_usage(self, record: UsageRecord) -> bool:
    async with self._lock:
      if record.job_id in self.events:
        return False
      self.events[record.job_id] = record
      # Yield inside the transaction so concurrent callers interleave.
      await asyncio.sleep(0)
      row = self.daily.setdefault((record.api_key_id, record.day), {"pages": 0, "jobs_count": 0, "prompt_tokens": 0, "completion_tokens": 0})
      row["pages"] += record.pages
      row["jobs_count"] += 1
      row["prompt_tokens"] += record.prompt_tokens
      row["completion_tokens"] += record.completion_tokens
      return True


class FakeIdentityResolver:
  """Resolve identities from a fixed API key table and record usage flags."""

  def __init__(self, keys: Mapping[str, Identity]) -> None:
    self._keys = dict(keys)
    self.update_usage_calls: list[bool] = []

  async def resolve(self, *, authorization: str | None, cookies: Mapping[str, str], update_usage: bool = True) -> Identity | None:
    self.update_usage_calls.append(update_usage)
    api_key = parse_bearer_api_key(authorization)
    if api_key is None:
      return None
    return self._keys.get(api_key)


class RecordingSubscriber:
  def __init__(self) -> None:
    self.messages: list[object] = []

  def __call__(self, message: object) -> None:
    self.messages.append(message)


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def jobs_repo() -> InMemoryJobsRepo:
  return InMemoryJobsRepo()


@pytest.fixture
def usage_repo() -> InMemoryUsageRepo:
  return InMemoryUsageRepo()


@pytest.fixture
def bus() -> NotificationBus:
  return NotificationBus()


@pytest.fixture
def job_service(jobs_repo: InMemoryJobsRepo, usage_repo: InMemoryUsageRepo, bus: NotificationBus) -> JobService:
  return JobService(jobs_repo=jobs_repo, usage_ledger=UsageLedger(usage_repo), publisher=bus, validate_transitions=True)


@pytest.fixture
def make_job(jobs_repo: InMemoryJobsRepo):
  """Seed a job directly into the in-memory repository."""

  def _make_job(job_id: str = "job_abc", **overrides: object) -> JobRecord:
    fields: dict[str, object] = {
      "job_id": job_id,
      "organization_id": "org_a",
      "user_id": "user_a",
      "api_key_id": "ak_1",
      "type": "parse",
      "status": "processing",
      "file_name": "invoice.pdf",
      "file_size": 2048,
      "mime_type": "application/pdf",
    }
    fields.update(overrides)
    return jobs_repo.seed(JobRecord(**fields))

  return _make_job


@pytest.fixture
def subscriber() -> RecordingSubscriber:
  return RecordingSubscriber()


@pytest.fixture
def identity_resolver() -> FakeIdentityResolver:
  return FakeIdentityResolver({ORG_A_KEY: Identity(user_id="user_a", organization_id="org_a", api_key_id="ak_1"), ORG_B_KEY: Identity(user_id="user_b", organization_id="org_b", api_key_id="ak_2")})


@pytest.fixture
def client(job_service: JobService, bus: NotificationBus, identity_resolver: FakeIdentityResolver):
  """TestClient with lifespan running and the job store wired to in-memory fakes."""
  app.dependency_overrides[get_job_service] = lambda: job_service
  app.dependency_overrides[get_notification_bus] = lambda: bus
  app.dependency_overrides[get_identity_resolver] = lambda: identity_resolver
  with TestClient(app) as test_client:
    yield test_client
  app.dependency_overrides.clear()
