from __future__ import annotations

import hashlib
import re

import pytest

from ocrbase.core.security import parse_bearer_api_key, parse_session_token
from ocrbase.utils.ids import ID_PREFIXES, create_id, generate_api_key, get_key_prefix, hash_api_key


@pytest.mark.parametrize(("kind", "prefix"), sorted(ID_PREFIXES.items()))
def test_create_id_uses_kind_prefix_and_16_alphanumerics(kind: str, prefix: str) -> None:
  value = create_id(kind)

  assert re.fullmatch(rf"{prefix}_[0-9A-Za-z]{{16}}", value)


def test_create_id_is_unique() -> None:
  assert len({create_id("job") for _ in range(500)}) == 500


def test_generated_api_key_format_and_hash() -> None:
  key = generate_api_key()

  assert re.fullmatch(r"sk_[0-9A-Za-z]{32}", key)
  assert hash_api_key(key) == hashlib.sha256(key.encode()).hexdigest()
  assert get_key_prefix(key) == key[:8]
  assert get_key_prefix(key).startswith("sk_")


@pytest.mark.parametrize(
  ("header", "expected"),
  [
    ("Bearer sk_abc", "sk_abc"),
    ("bearer   sk_abc  ", "sk_abc"),
    ("Basic sk_abc", None),
    ("Bearer pk_abc", None),
    ("Bearer", None),
    ("", None),
    (None, None),
  ],
)
def test_parse_bearer_api_key(header: str | None, expected: str | None) -> None:
  assert parse_bearer_api_key(header) == expected


def test_parse_session_token_drops_signature() -> None:
  assert parse_session_token("tok123.c2lnbmF0dXJl") == "tok123"
  assert parse_session_token("tok123") == "tok123"
  assert parse_session_token("") is None
  assert parse_session_token(None) is None
