from __future__ import annotations

from answer_engine.config import Settings
from answer_engine.storage.answers_repo import AnswersRepository, StoreUnavailableError
from answer_engine.storage.postgres_answers_repo import PostgresAnswersRepository


def _get_answers_repo(settings: Settings) -> AnswersRepository:
  """Return the answers repository for the configured backend."""
  if not settings.pg_dsn:
    # Surfaces as 503 on request paths and as a failed job in background runs.
    raise StoreUnavailableError("ANSWERS_PG_DSN must be set to store generated answers.")
  return PostgresAnswersRepository()
