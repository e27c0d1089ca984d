"""Prefixed identifiers and API key material."""

from __future__ import annotations

import hashlib
import secrets
import string
from typing import Literal

ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
ID_LENGTH = 16
API_KEY_LENGTH = 32
API_KEY_PREFIX = "sk_"

IdKind = Literal["api_key", "api_key_usage", "job", "organization", "schema", "usage_event"]

ID_PREFIXES: dict[str, str] = {"api_key": "ak", "api_key_usage": "aku", "job": "job", "organization": "org", "schema": "sch", "usage_event": "ue"}


def _random_token(size: int) -> str:
  return "".join(secrets.choice(ALPHABET) for _ in range(size))


def create_id(kind: IdKind) -> str:
  """Return a new identifier such as ``job_3fQ9...`` for the given entity kind."""
  prefix = ID_PREFIXES[kind]
  return f"{prefix}_{_random_token(ID_LENGTH)}"


def generate_api_key() -> str:
  return f"{API_KEY_PREFIX}{_random_token(API_KEY_LENGTH)}"


def hash_api_key(key: str) -> str:
  """Hex SHA-256 digest stored in place of the raw key."""
  return hashlib.sha256(key.encode("utf-8")).hexdigest()


def get_key_prefix(key: str) -> str:
  # Shown in dashboards so users can tell keys apart.
  return key[:8]
