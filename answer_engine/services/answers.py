"""Answer service operations shared by the HTTP routes."""

import logging

from answer_engine.api.models import (
  AnswerResponse,
  AnswersSnapshot,
  BatchRequest,
  BatchResponse,
  ClearAnswersResponse,
  GenerateAnswersRequest,
  GenerateAnswersResponse,
  JobStatusResponse,
)
from answer_engine.config import Settings
from answer_engine.jobs.generator import BatchGenerator
from answer_engine.jobs.orchestrator import AnswerJobOrchestrator
from answer_engine.jobs.progress import JobRegistry
from answer_engine.services.rate_limit import FixedWindowRateLimiter
from answer_engine.storage.answers_repo import AnswersRepository, number_items
from fastapi import BackgroundTasks, HTTPException, status

logger = logging.getLogger(__name__)

_JOB_NOT_FOUND_MSG = "Job not found."


def _validate_document(document_text: str, settings: Settings) -> str:
  text = document_text.strip()
  if not text:
    raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="document_text must not be blank.")
  if len(text) > settings.max_document_chars:
    raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=f"document_text exceeds {settings.max_document_chars} characters.")
  return text


async def get_snapshot(repo: AnswersRepository, user_id: str) -> AnswersSnapshot:
  """Read the identity's current answers straight from the store."""
  items = await repo.list_answers(user_id)
  return AnswersSnapshot(items=[AnswerResponse.from_item(item) for item in items], count=len(items))


async def clear_answers(repo: AnswersRepository, user_id: str) -> ClearAnswersResponse:
  removed = await repo.purge(user_id)
  logger.info("Cleared answers user_id=%s removed=%s", user_id, removed)
  return ClearAnswersResponse()


def trigger_generation(request: GenerateAnswersRequest, *, user_id: str, settings: Settings, orchestrator: AnswerJobOrchestrator, rate_limiter: FixedWindowRateLimiter, background_tasks: BackgroundTasks) -> GenerateAnswersResponse:
  """Queue a generation run and return before any batch is produced."""
  document_text = _validate_document(request.document_text, settings)
  rate_limiter.enforce(user_id)

  if orchestrator.is_busy(user_id):
    # The new run queues behind the active one and purges when it starts.
    logger.info("Generation already active; queueing user_id=%s", user_id)

  job = orchestrator.create_job(user_id)
  background_tasks.add_task(orchestrator.run_job, job, document_text)
  logger.info("Queued generation job job_id=%s user_id=%s target_total=%s batch_size=%s", job.job_id, user_id, job.target_total, job.batch_size)
  return GenerateAnswersResponse(job_id=job.job_id, status=job.status, target_total=job.target_total, batch_size=job.batch_size)


def get_job_status(registry: JobRegistry, job_id: str, *, user_id: str) -> JobStatusResponse:
  """Return job progress for its owner; other identities see 404."""
  record = registry.get(job_id)
  if record is None or record.user_id != user_id:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG)

  return JobStatusResponse(
    job_id=record.job_id,
    status=record.status,
    state=record.state,
    persisted_count=record.persisted_count,
    target_total=record.target_total,
    batch_index=record.batch_index,
    generation_calls=record.generation_calls,
    error=record.error,
    logs=list(record.logs),
  )


async def generate_single_batch(request: BatchRequest, *, user_id: str, settings: Settings, generator: BatchGenerator, rate_limiter: FixedWindowRateLimiter) -> BatchResponse:
  """Generate one unpersisted batch for a client-driven chained run."""
  document_text = _validate_document(request.document_text, settings)
  # Every batch is a model call, so each one counts against the batch limiter.
  rate_limiter.enforce(user_id)

  batch_size = request.batch_size or settings.batch_size
  drafts = await generator.generate_batch(user_id, document_text, request.start_index, batch_size)
  items = [AnswerResponse.from_item(item) for item in number_items(drafts, start_index=request.start_index)]
  return BatchResponse(items=items, start_index=request.start_index, count=len(items))
