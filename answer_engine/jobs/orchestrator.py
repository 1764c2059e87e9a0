"""Batch-by-batch generation runs with incremental persistence."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

from answer_engine.ai.errors import GenerationError
from answer_engine.jobs.models import JobRecord
from answer_engine.jobs.progress import JobProgressTracker, JobRegistry
from answer_engine.storage.answers_repo import AnswerDraft, AnswersRepository, StoreUnavailableError

logger = logging.getLogger(__name__)


class BatchSource(Protocol):
  """Anything that can produce one validated batch of drafts."""

  async def generate_batch(self, user_id: str, source_document: str, start_index: int, batch_size: int) -> list[AnswerDraft]: ...


@dataclass(frozen=True)
class RunResult:
  """Summary of a completed run."""

  persisted_count: int
  generation_calls: int


class AnswerJobOrchestrator:
  """Drive purge, generate and save cycles until target_total answers are stored.

  Runs for the same identity are serialized: a second run waits for the first
  to finish, then purges and starts over. Runs for different identities do not
  block each other.
  """

  def __init__(self, *, repo_provider: Callable[[], AnswersRepository], generator: BatchSource, registry: JobRegistry, target_total: int = 25, batch_size: int = 5) -> None:
    if target_total < 1 or batch_size < 1:
      raise ValueError("target_total and batch_size must be positive")
    self._repo_provider = repo_provider
    self._generator = generator
    self._registry = registry
    self._target_total = target_total
    self._batch_size = batch_size
    self._locks: dict[str, asyncio.Lock] = {}
    self._waiters: dict[str, int] = {}

  @property
  def target_total(self) -> int:
    return self._target_total

  @property
  def batch_size(self) -> int:
    return self._batch_size

  @property
  def registry(self) -> JobRegistry:
    return self._registry

  def create_job(self, user_id: str) -> JobRecord:
    """Register a queued job for user_id."""
    return self._registry.create(user_id=user_id, target_total=self._target_total, batch_size=self._batch_size)

  def is_busy(self, user_id: str) -> bool:
    return self._waiters.get(user_id, 0) > 0

  async def _serialized(self, user_id: str, work: Callable[[], Awaitable[RunResult]]) -> RunResult:
    lock = self._locks.setdefault(user_id, asyncio.Lock())
    self._waiters[user_id] = self._waiters.get(user_id, 0) + 1
    try:
      async with lock:
        return await work()
    finally:
      self._waiters[user_id] -= 1
      # Drop idle locks so the map only holds identities with pending runs.
      if self._waiters[user_id] == 0:
        del self._waiters[user_id]
        self._locks.pop(user_id, None)

  async def run(self, job: JobRecord, source_document: str) -> RunResult:
    """Execute one run to completion, raising the first failure."""
    return await self._serialized(job.user_id, lambda: self._run_locked(job, source_document))

  async def _run_locked(self, job: JobRecord, source_document: str) -> RunResult:
    tracker = JobProgressTracker(job_id=job.job_id, registry=self._registry)
    user_id = job.user_id
    persisted = 0
    calls = 0
    batch_index = 0

    tracker.start()
    try:
      repo = self._repo_provider()
      removed = await repo.purge(user_id)
      logger.info("Cleared previous answers job_id=%s user_id=%s removed=%s", job.job_id, user_id, removed)

      while persisted < self._target_total:
        batch_index += 1
        size = min(self._batch_size, self._target_total - persisted)
        start_index = persisted + 1
        calls += 1
        tracker.begin_batch(batch_index=batch_index, start_index=start_index, size=size, generation_calls=calls)

        drafts = await self._generator.generate_batch(user_id, source_document, start_index, size)

        tracker.begin_save(batch_index=batch_index)
        written = await repo.append(user_id, drafts)
        persisted += written
        tracker.complete_batch(batch_index=batch_index, persisted_count=persisted)
        logger.info("Saved batch job_id=%s batch=%s persisted=%s/%s", job.job_id, batch_index, persisted, self._target_total)
    except (GenerationError, StoreUnavailableError) as exc:
      stage = f"Batch {batch_index}" if batch_index else "Purge"
      tracker.fail(message=f"{stage} failed: {exc}")
      raise

    tracker.complete(persisted_count=persisted)
    return RunResult(persisted_count=persisted, generation_calls=calls)

  async def run_job(self, job: JobRecord, source_document: str) -> None:
    """Background entry point that records failures instead of raising them."""
    try:
      result = await self.run(job, source_document)
    except (GenerationError, StoreUnavailableError) as exc:
      logger.warning("Generation job failed job_id=%s user_id=%s error_type=%s error=%s", job.job_id, job.user_id, type(exc).__name__, exc)
      return
    except Exception as exc:  # noqa: BLE001
      # Background tasks have no caller to propagate to; record and log instead.
      self._registry.update(job.job_id, status="error", state="failed", error="Internal error")
      logger.error("Generation job crashed job_id=%s user_id=%s error_type=%s", job.job_id, job.user_id, type(exc).__name__, exc_info=True)
      return

    logger.info("Generation job finished job_id=%s user_id=%s persisted=%s calls=%s", job.job_id, job.user_id, result.persisted_count, result.generation_calls)


def batch_plan(target_total: int, batch_size: int) -> Sequence[tuple[int, int]]:
  """Return (start_index, size) for each batch needed to reach target_total."""
  plan: list[tuple[int, int]] = []
  start = 1
  while start <= target_total:
    size = min(batch_size, target_total - start + 1)
    plan.append((start, size))
    start += size
  return plan
