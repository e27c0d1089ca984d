"""Database initialization helper.

Intended for local/dev environments: creates the configured database when it is
missing, then creates any missing tables from the ORM metadata. Production
schemas are managed outside this repository.
"""

import asyncio
import os
import re
import sys

from sqlalchemy import text
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import create_async_engine

# Add the project root to the path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))


_DB_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


def _validate_database_name(db_name: str) -> str:
  """Validate a PostgreSQL database name used as an identifier.

  The name cannot be passed as a bind parameter for ``CREATE DATABASE``, so it
  is restricted to letters, digits and underscores.
  """
  if not db_name:
    raise ValueError("Target database name is empty.")

  if not _DB_NAME_PATTERN.fullmatch(db_name):
    raise ValueError("Target database name contains invalid characters (allowed: A-Z, a-z, 0-9, _).")

  return db_name


async def create_database_if_not_exists() -> None:
  """Create the configured database if it does not already exist."""
  from ocrbase.config import get_database_settings

  dsn = get_database_settings().pg_dsn
  if not dsn:
    print("Error: OCRBASE_PG_DSN is not set.")
    sys.exit(1)

  url = make_url(dsn)
  target_db = _validate_database_name(url.database or "")

  # Connect to the maintenance database to check/create the target DB.
  postgres_url = url.set(database="postgres")
  if postgres_url.drivername.startswith("postgres") and "+asyncpg" not in postgres_url.drivername:
    postgres_url = postgres_url.set(drivername="postgresql+asyncpg")

  print(f"Connecting to postgres to check for database '{target_db}'...")

  # CREATE DATABASE cannot run inside a transaction.
  engine = create_async_engine(postgres_url, isolation_level="AUTOCOMMIT")

  try:
    async with engine.connect() as conn:
      result = await conn.execute(text("SELECT 1 FROM pg_database WHERE datname = :name"), {"name": target_db})
      exists = result.scalar() == 1

      if not exists:
        print(f"Database '{target_db}' does not exist. Creating...")
        await conn.execute(text(f'CREATE DATABASE "{target_db}"'))
        print(f"Database '{target_db}' created successfully.")
      else:
        print(f"Database '{target_db}' already exists.")
  finally:
    await engine.dispose()


async def main() -> None:
  from ocrbase.core.database import create_all_tables, dispose_engine

  await create_database_if_not_exists()
  try:
    await create_all_tables()
    print("Tables created.")
  finally:
    await dispose_engine()


if __name__ == "__main__":
  asyncio.run(main())
