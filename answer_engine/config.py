"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from answer_engine.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

_SUPPORTED_LLM_PROVIDERS = {"gemini", "openrouter"}


@dataclass(frozen=True)
class Settings:
  """Typed settings for the answer generation service."""

  environment: str
  allowed_origins: tuple[str, ...]
  debug: bool
  log_dir: str
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  firebase_project_id: str | None
  firebase_service_account_json_path: str | None
  llm_provider: str
  llm_model: str | None
  gemini_api_key: str | None
  openrouter_api_key: str | None
  generation_timeout_seconds: float
  generation_temperature: float
  batch_size: int
  target_total: int
  max_document_chars: int
  rate_limit_window_seconds: float
  rate_limit_max_requests: int
  batch_rate_limit_max_requests: int
  progress_poll_interval_seconds: float
  heartbeat_interval_seconds: float


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    raise ValueError("ANSWERS_ALLOWED_ORIGINS must be set to one or more origins.")

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("ANSWERS_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("ANSWERS_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _positive_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive number.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("ANSWERS_ENV", "development").lower()

  # Toggle verbose error output and diagnostics in non-production environments.
  debug = _parse_bool(os.getenv("ANSWERS_DEBUG"))

  log_dir = (os.getenv("ANSWERS_LOG_DIR") or "logs").strip()
  log_max_bytes = _positive_int("ANSWERS_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("ANSWERS_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("ANSWERS_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # Allow opt-in logging of 4xx HTTPExceptions for diagnostics.
  log_http_4xx = _parse_bool(os.getenv("ANSWERS_LOG_HTTP_4XX"))

  llm_provider = (os.getenv("ANSWERS_LLM_PROVIDER") or "gemini").strip().lower()
  if llm_provider not in _SUPPORTED_LLM_PROVIDERS:
    raise ValueError(f"ANSWERS_LLM_PROVIDER must be one of {sorted(_SUPPORTED_LLM_PROVIDERS)}.")

  generation_temperature = float(os.getenv("ANSWERS_GENERATION_TEMPERATURE", "0.7"))
  if not 0.0 <= generation_temperature <= 2.0:
    raise ValueError("ANSWERS_GENERATION_TEMPERATURE must be between 0 and 2.")

  # Small batches keep structured output short enough to avoid truncated JSON from the model.
  batch_size = _positive_int("ANSWERS_BATCH_SIZE", "5")
  target_total = _positive_int("ANSWERS_TARGET_TOTAL", "25")

  return Settings(
    environment=environment,
    allowed_origins=_parse_origins(os.getenv("ANSWERS_ALLOWED_ORIGINS")),
    debug=debug,
    log_dir=log_dir,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=log_http_4xx,
    pg_dsn=_optional_str(os.getenv("ANSWERS_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL")),
    pg_connect_timeout=_positive_int("ANSWERS_PG_CONNECT_TIMEOUT", "5"),
    firebase_project_id=_optional_str(os.getenv("FIREBASE_PROJECT_ID")),
    firebase_service_account_json_path=_optional_str(os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON_PATH")),
    llm_provider=llm_provider,
    llm_model=_optional_str(os.getenv("ANSWERS_LLM_MODEL")),
    gemini_api_key=_optional_str(os.getenv("GEMINI_API_KEY")),
    openrouter_api_key=_optional_str(os.getenv("OPENROUTER_API_KEY")),
    generation_timeout_seconds=_positive_float("ANSWERS_GENERATION_TIMEOUT_SECONDS", "60"),
    generation_temperature=generation_temperature,
    batch_size=batch_size,
    target_total=target_total,
    max_document_chars=_positive_int("ANSWERS_MAX_DOCUMENT_CHARS", "50000"),
    rate_limit_window_seconds=_positive_float("ANSWERS_RATE_LIMIT_WINDOW_SECONDS", "60"),
    rate_limit_max_requests=_positive_int("ANSWERS_RATE_LIMIT_MAX_REQUESTS", "3"),
    # Five batches per chained run, three runs per window.
    batch_rate_limit_max_requests=_positive_int("ANSWERS_BATCH_RATE_LIMIT_MAX_REQUESTS", "15"),
    progress_poll_interval_seconds=_positive_float("ANSWERS_PROGRESS_POLL_INTERVAL_SECONDS", "2"),
    heartbeat_interval_seconds=_positive_float("ANSWERS_HEARTBEAT_INTERVAL_SECONDS", "30"),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration like CORS."""
  # Keep database configuration isolated so migrations don't require unrelated env vars.
  debug = _parse_bool(os.getenv("ANSWERS_DEBUG"))
  pg_connect_timeout = _positive_int("ANSWERS_PG_CONNECT_TIMEOUT", "5")
  pg_dsn = _optional_str(os.getenv("ANSWERS_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))

  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)
