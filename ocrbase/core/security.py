"""Caller identity: API keys first, then browser sessions."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ocrbase.core.database import get_session_factory
from ocrbase.schema.auth import ApiKey, AuthSession
from ocrbase.utils.ids import API_KEY_PREFIX, get_key_prefix, hash_api_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
  """Authenticated caller scoped to one organization."""

  user_id: str
  organization_id: str
  api_key_id: str | None = None


class IdentityResolver(Protocol):
  async def resolve(self, *, authorization: str | None, cookies: Mapping[str, str], update_usage: bool = True) -> Identity | None:
    """Return the caller identity, or None when the credentials are missing or invalid."""


def parse_bearer_api_key(authorization: str | None) -> str | None:
  """Extract an ``sk_`` key from a ``Bearer`` authorization header."""
  if not authorization:
    return None
  scheme, _, rest = authorization.partition(" ")
  if scheme.lower() != "bearer":
    return None
  token = rest.strip()
  if not token or not token.startswith(API_KEY_PREFIX):
    return None
  return token


def parse_session_token(raw_cookie: str | None) -> str | None:
  """Strip the signature suffix from a signed session cookie value."""
  if not raw_cookie:
    return None
  token = raw_cookie.split(".", 1)[0].strip()
  return token or None


class DatabaseIdentityResolver(IdentityResolver):
  """Resolve identities from the api_keys and session tables."""

  def __init__(self, *, session_cookie_name: str, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_cookie_name = session_cookie_name
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def resolve(self, *, authorization: str | None, cookies: Mapping[str, str], update_usage: bool = True) -> Identity | None:
    api_key = parse_bearer_api_key(authorization)
    if api_key is not None:
      identity = await self._resolve_api_key(api_key, update_usage=update_usage)
      if identity is not None:
        return identity
      logger.debug("Ignoring unknown or inactive API key %s...", get_key_prefix(api_key))
    session_token = parse_session_token(cookies.get(self._session_cookie_name))
    if session_token is None:
      return None
    return await self._resolve_session(session_token)

  async def _resolve_api_key(self, api_key: str, *, update_usage: bool) -> Identity | None:
    async with self._session_factory() as session:
      stmt = select(ApiKey).where(ApiKey.key_hash == hash_api_key(api_key)).limit(1)
      row = (await session.execute(stmt)).scalar_one_or_none()
      if row is None or not row.is_active:
        return None
      if update_usage:
        bump = update(ApiKey).where(ApiKey.id == row.id).values(request_count=ApiKey.request_count + 1, last_used_at=datetime.datetime.now(datetime.UTC))
        await session.execute(bump)
        await session.commit()
      return Identity(user_id=row.user_id, organization_id=row.organization_id, api_key_id=row.id)

  async def _resolve_session(self, token: str) -> Identity | None:
    async with self._session_factory() as session:
      now = datetime.datetime.now(datetime.UTC)
      stmt = select(AuthSession).where(AuthSession.token == token, AuthSession.expires_at > now).limit(1)
      row = (await session.execute(stmt)).scalar_one_or_none()
      # A session without an active organization cannot see any jobs.
      if row is None or not row.active_organization_id:
        return None
      return Identity(user_id=row.user_id, organization_id=row.active_organization_id)
