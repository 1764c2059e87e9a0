"""Minimal .env support so local runs pick up ANSWERS_* settings."""

from __future__ import annotations

import os
from pathlib import Path

ENV_FILE_VAR = "ANSWERS_ENV_FILE"


def default_env_path() -> Path:
  """Return ANSWERS_ENV_FILE when set, otherwise the .env beside the package."""
  configured = os.getenv(ENV_FILE_VAR)
  if configured:
    return Path(configured).expanduser()
  return Path(__file__).resolve().parents[2] / ".env"


def parse_env_line(raw_line: str) -> tuple[str, str] | None:
  """Split one `KEY=value` line; blank lines, comments and junk return None."""
  line = raw_line.strip()
  if not line or line.startswith("#"):
    return None
  line = line.removeprefix("export ").lstrip()
  key, sep, value = line.partition("=")
  key = key.strip()
  if not sep or not key:
    return None
  value = value.strip()
  if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
    value = value[1:-1]
  return key, value


def load_env_file(path: Path, *, override: bool = False) -> list[str]:
  """Copy entries from path into os.environ and return the keys that were set.

  Existing variables win unless override is true. A missing file is ignored.
  """
  if not path.is_file():
    return []

  loaded: list[str] = []
  for raw_line in path.read_text(encoding="utf-8").splitlines():
    parsed = parse_env_line(raw_line)
    if parsed is None:
      continue
    key, value = parsed
    if not override and key in os.environ:
      continue
    os.environ[key] = value
    loaded.append(key)
  return loaded
