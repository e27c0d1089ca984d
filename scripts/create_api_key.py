"""Issue an API key for an organization member.

Usage: python scripts/create_api_key.py <organization_id> <user_id> <name>

The raw key is printed once; only its SHA-256 digest is stored.
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))


async def create_api_key(*, organization_id: str, user_id: str, name: str) -> str:
  from ocrbase.core.database import dispose_engine, get_session_factory
  from ocrbase.schema.auth import ApiKey
  from ocrbase.utils.ids import generate_api_key, get_key_prefix, hash_api_key

  session_factory = get_session_factory()
  if session_factory is None:
    print("Error: OCRBASE_PG_DSN is not set.")
    sys.exit(1)

  raw_key = generate_api_key()
  try:
    async with session_factory() as session:
      row = ApiKey(organization_id=organization_id, user_id=user_id, name=name, key_hash=hash_api_key(raw_key), key_prefix=get_key_prefix(raw_key))
      session.add(row)
      await session.commit()
      print(f"Created API key {row.id} ({row.key_prefix}...)")
  finally:
    await dispose_engine()
  return raw_key


if __name__ == "__main__":
  if len(sys.argv) != 4:
    print(__doc__)
    sys.exit(2)
  key = asyncio.run(create_api_key(organization_id=sys.argv[1], user_id=sys.argv[2], name=sys.argv[3]))
  print(key)
