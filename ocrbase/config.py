"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from ocrbase.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

_DEFAULT_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class Settings:
  """Typed settings for the ocrbase service."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  pg_dsn: str | None
  pg_connect_timeout: int
  log_dir: Path
  log_level: str
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  worker_secret: str | None
  validate_job_transitions: bool
  session_cookie_name: str
  auto_create_tables: bool


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  origins = [origin.strip() for origin in (raw or "").split(",") if origin.strip()]

  if not origins:
    raise ValueError("OCRBASE_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("OCRBASE_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None, *, default: bool = False) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None or raw.strip() == "":
    return default

  return raw.strip().lower() in {"1", "true", "yes", "on"}


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def _pg_dsn() -> str | None:
  # DATABASE_URL is what most hosting providers inject.
  return _optional_str(os.getenv("OCRBASE_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("OCRBASE_ENV", "development").strip().lower()
  debug = _parse_bool(os.getenv("OCRBASE_DEBUG"))

  log_level = os.getenv("OCRBASE_LOG_LEVEL", "INFO").strip().upper()
  if log_level not in _LOG_LEVELS:
    raise ValueError(f"OCRBASE_LOG_LEVEL must be one of {sorted(_LOG_LEVELS)}.")

  log_backup_count = int(os.getenv("OCRBASE_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("OCRBASE_LOG_BACKUP_COUNT must be zero or a positive integer.")

  log_dir_raw = _optional_str(os.getenv("OCRBASE_LOG_DIR"))

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("OCRBASE_ALLOWED_ORIGINS", "http://localhost:3000")),
    pg_dsn=_pg_dsn(),
    pg_connect_timeout=_positive_int("OCRBASE_PG_CONNECT_TIMEOUT", "5"),
    log_dir=Path(log_dir_raw) if log_dir_raw else _DEFAULT_LOG_DIR,
    log_level=log_level,
    log_max_bytes=_positive_int("OCRBASE_LOG_MAX_BYTES", "5242880"),
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("OCRBASE_LOG_HTTP_4XX")),
    worker_secret=_optional_str(os.getenv("OCRBASE_WORKER_SECRET")),
    # Enforced by default; turning it off restores the unchecked write path.
    validate_job_transitions=_parse_bool(os.getenv("OCRBASE_VALIDATE_JOB_TRANSITIONS"), default=True),
    session_cookie_name=os.getenv("OCRBASE_SESSION_COOKIE", "ocrbase.session_token").strip(),
    auto_create_tables=_parse_bool(os.getenv("OCRBASE_AUTO_CREATE_TABLES")),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration like CORS."""
  return DatabaseSettings(debug=_parse_bool(os.getenv("OCRBASE_DEBUG")), pg_dsn=_pg_dsn(), pg_connect_timeout=_positive_int("OCRBASE_PG_CONNECT_TIMEOUT", "5"))
