"""Shared FastAPI dependencies for the answers service."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from fastapi import Depends

from answer_engine.ai.router import get_configured_model
from answer_engine.config import Settings, get_settings
from answer_engine.jobs.generator import BatchGenerator
from answer_engine.jobs.orchestrator import AnswerJobOrchestrator
from answer_engine.jobs.progress import JobRegistry
from answer_engine.progress.broadcaster import ChangeBroadcaster
from answer_engine.services.answers import get_snapshot
from answer_engine.services.rate_limit import FixedWindowRateLimiter
from answer_engine.storage.answers_repo import AnswersRepository
from answer_engine.storage.factory import _get_answers_repo


def get_answers_repo(settings: Settings = Depends(get_settings)) -> AnswersRepository:  # noqa: B008
  """Dependency returning the configured answers repository."""
  return _get_answers_repo(settings)


@lru_cache(maxsize=1)
def get_job_registry() -> JobRegistry:
  return JobRegistry()


@lru_cache(maxsize=1)
def get_batch_generator() -> BatchGenerator:
  settings = get_settings()
  return BatchGenerator(lambda: get_configured_model(settings), timeout_seconds=settings.generation_timeout_seconds, temperature=settings.generation_temperature)


@lru_cache(maxsize=1)
def get_orchestrator() -> AnswerJobOrchestrator:
  settings = get_settings()
  return AnswerJobOrchestrator(
    repo_provider=lambda: _get_answers_repo(settings),
    generator=get_batch_generator(),
    registry=get_job_registry(),
    target_total=settings.target_total,
    batch_size=settings.batch_size,
  )


@lru_cache(maxsize=1)
def get_rate_limiter() -> FixedWindowRateLimiter:
  settings = get_settings()
  return FixedWindowRateLimiter(window_seconds=settings.rate_limit_window_seconds, max_requests=settings.rate_limit_max_requests)


@lru_cache(maxsize=1)
def get_batch_rate_limiter() -> FixedWindowRateLimiter:
  """Separate bucket for chained batches; a full chained run spends one request per batch."""
  settings = get_settings()
  return FixedWindowRateLimiter(window_seconds=settings.rate_limit_window_seconds, max_requests=settings.batch_rate_limit_max_requests)


def _snapshot_count(snapshot: dict[str, Any]) -> int:
  return int(snapshot["count"])


@lru_cache(maxsize=1)
def get_broadcaster() -> ChangeBroadcaster[dict[str, Any]]:
  settings = get_settings()

  async def fetch(user_id: str) -> dict[str, Any]:
    snapshot = await get_snapshot(_get_answers_repo(settings), user_id)
    return snapshot.wire()

  return ChangeBroadcaster(fetch, _snapshot_count, poll_interval=settings.progress_poll_interval_seconds)
