"""Unit tests for API key and session identity resolution."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from ocrbase.core.security import DatabaseIdentityResolver, Identity

COOKIE = "ocrbase.session_token"


def _resolver_with_rows(*rows: object) -> tuple[DatabaseIdentityResolver, AsyncMock]:
  session = AsyncMock()
  results = []
  for row in rows:
    result = MagicMock()
    result.scalar_one_or_none.return_value = row
    results.append(result)
  session.execute.side_effect = results
  factory = MagicMock()
  factory.return_value.__aenter__.return_value = session
  return DatabaseIdentityResolver(session_cookie_name=COOKIE, session_factory=factory), session


@pytest.mark.anyio
async def test_active_api_key_resolves_and_bumps_usage() -> None:
  key_row = SimpleNamespace(id="ak_1", user_id="user_a", organization_id="org_a", is_active=True)
  resolver, session = _resolver_with_rows(key_row, None)

  identity = await resolver.resolve(authorization="Bearer sk_live", cookies={}, update_usage=True)

  assert identity == Identity(user_id="user_a", organization_id="org_a", api_key_id="ak_1")
  assert session.execute.await_count == 2
  session.commit.assert_awaited_once()


@pytest.mark.anyio
async def test_realtime_lookup_leaves_usage_counters_alone() -> None:
  key_row = SimpleNamespace(id="ak_1", user_id="user_a", organization_id="org_a", is_active=True)
  resolver, session = _resolver_with_rows(key_row)

  identity = await resolver.resolve(authorization="Bearer sk_live", cookies={}, update_usage=False)

  assert identity is not None
  assert session.execute.await_count == 1
  session.commit.assert_not_awaited()


@pytest.mark.anyio
async def test_inactive_key_without_session_is_unauthenticated() -> None:
  key_row = SimpleNamespace(id="ak_1", user_id="user_a", organization_id="org_a", is_active=False)
  resolver, _session = _resolver_with_rows(key_row)

  assert await resolver.resolve(authorization="Bearer sk_revoked", cookies={}, update_usage=False) is None


@pytest.mark.anyio
async def test_session_cookie_uses_active_organization() -> None:
  session_row = SimpleNamespace(user_id="user_b", active_organization_id="org_b")
  resolver, session = _resolver_with_rows(session_row)

  identity = await resolver.resolve(authorization=None, cookies={COOKIE: "tok.sig"})

  assert identity == Identity(user_id="user_b", organization_id="org_b")
  assert session.execute.await_count == 1


@pytest.mark.anyio
async def test_session_without_active_organization_is_rejected() -> None:
  session_row = SimpleNamespace(user_id="user_b", active_organization_id=None)
  resolver, _session = _resolver_with_rows(session_row)

  assert await resolver.resolve(authorization=None, cookies={COOKIE: "tok"}) is None


@pytest.mark.anyio
async def test_non_bearer_scheme_without_cookie_skips_database() -> None:
  resolver, session = _resolver_with_rows()

  assert await resolver.resolve(authorization="Basic dXNlcjpwYXNz", cookies={}) is None
  session.execute.assert_not_awaited()
