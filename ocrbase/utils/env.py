"""Minimal .env reader used to seed configuration for local runs."""

from __future__ import annotations

import os
from pathlib import Path


def default_env_path() -> Path:
  """Return the .env path at the repository root."""
  return Path(__file__).resolve().parents[2] / ".env"


def _strip_quotes(value: str) -> str:
  if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
    return value[1:-1]
  return value


def read_env_file(path: Path) -> dict[str, str]:
  """Parse KEY=VALUE lines, skipping blanks, comments and malformed entries."""
  if not path.is_file():
    return {}

  values: dict[str, str] = {}
  for raw_line in path.read_text(encoding="utf-8").splitlines():
    line = raw_line.strip()
    if not line or line.startswith("#"):
      continue
    # Accept shell-style exports so the same file can be sourced.
    line = line.removeprefix("export ").lstrip()
    key, sep, value = line.partition("=")
    key = key.strip()
    if not sep or not key:
      continue
    values[key] = _strip_quotes(value.strip())
  return values


def load_env_file(path: Path, *, override: bool = False) -> None:
  """Copy values from a .env file into os.environ."""
  for key, value in read_env_file(path).items():
    if not override and key in os.environ:
      continue
    os.environ[key] = value
