import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from fastapi.responses import StreamingResponse

from answer_engine.api.deps import get_answers_repo, get_batch_generator, get_batch_rate_limiter, get_broadcaster, get_job_registry, get_orchestrator, get_rate_limiter
from answer_engine.api.models import AnswersSnapshot, BatchRequest, BatchResponse, ClearAnswersResponse, GenerateAnswersRequest, GenerateAnswersResponse, JobStatusResponse
from answer_engine.config import Settings, get_settings
from answer_engine.core.security import get_current_identity
from answer_engine.jobs.generator import BatchGenerator
from answer_engine.jobs.orchestrator import AnswerJobOrchestrator
from answer_engine.jobs.progress import JobRegistry
from answer_engine.progress.broadcaster import ChangeBroadcaster
from answer_engine.progress.sse import SSE_HEADERS, stream_answer_events
from answer_engine.services import answers as answer_service
from answer_engine.services.rate_limit import FixedWindowRateLimiter
from answer_engine.storage.answers_repo import AnswersRepository

router = APIRouter()
logger = logging.getLogger("answer_engine.api.routes.answers")


@router.post("/generate", response_model=GenerateAnswersResponse, status_code=status.HTTP_202_ACCEPTED)
async def generate_answers(  # noqa: B008
  request: GenerateAnswersRequest,
  background_tasks: BackgroundTasks,
  user_id: str = Depends(get_current_identity),  # noqa: B008
  settings: Settings = Depends(get_settings),  # noqa: B008
  orchestrator: AnswerJobOrchestrator = Depends(get_orchestrator),  # noqa: B008
  rate_limiter: FixedWindowRateLimiter = Depends(get_rate_limiter),  # noqa: B008
) -> GenerateAnswersResponse:
  """Start a background run that replaces the caller's answers batch by batch."""
  return answer_service.trigger_generation(request, user_id=user_id, settings=settings, orchestrator=orchestrator, rate_limiter=rate_limiter, background_tasks=background_tasks)


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def get_job_status(  # noqa: B008
  job_id: str,
  user_id: str = Depends(get_current_identity),  # noqa: B008
  registry: JobRegistry = Depends(get_job_registry),  # noqa: B008
) -> JobStatusResponse:
  """Fetch progress for a generation run owned by the caller."""
  return answer_service.get_job_status(registry, job_id, user_id=user_id)


@router.post("/clear", response_model=ClearAnswersResponse)
async def clear_answers(  # noqa: B008
  user_id: str = Depends(get_current_identity),  # noqa: B008
  repo: AnswersRepository = Depends(get_answers_repo),  # noqa: B008
) -> ClearAnswersResponse:
  """Delete every answer the caller owns."""
  return await answer_service.clear_answers(repo, user_id)


@router.get("", response_model=AnswersSnapshot)
async def list_answers(  # noqa: B008
  user_id: str = Depends(get_current_identity),  # noqa: B008
  repo: AnswersRepository = Depends(get_answers_repo),  # noqa: B008
) -> AnswersSnapshot:
  """Return the caller's answers in creation order."""
  return await answer_service.get_snapshot(repo, user_id)


@router.get("/stream")
async def stream_answers(  # noqa: B008
  request: Request,
  user_id: str = Depends(get_current_identity),  # noqa: B008
  settings: Settings = Depends(get_settings),  # noqa: B008
  repo: AnswersRepository = Depends(get_answers_repo),  # noqa: B008
  broadcaster: ChangeBroadcaster[dict[str, Any]] = Depends(get_broadcaster),  # noqa: B008
) -> StreamingResponse:
  """Push the caller's answers as Server-Sent Events whenever the count changes."""

  async def fetch(identity: str) -> dict[str, Any]:
    snapshot = await answer_service.get_snapshot(repo, identity)
    return snapshot.wire()

  events = stream_answer_events(user_id, fetch_snapshot=fetch, broadcaster=broadcaster, heartbeat_interval=settings.heartbeat_interval_seconds, is_disconnected=request.is_disconnected)
  return StreamingResponse(events, media_type="text/event-stream", headers=SSE_HEADERS)


@router.post("/batch", response_model=BatchResponse)
async def generate_batch(  # noqa: B008
  request: BatchRequest,
  user_id: str = Depends(get_current_identity),  # noqa: B008
  settings: Settings = Depends(get_settings),  # noqa: B008
  generator: BatchGenerator = Depends(get_batch_generator),  # noqa: B008
  rate_limiter: FixedWindowRateLimiter = Depends(get_batch_rate_limiter),  # noqa: B008
) -> BatchResponse:
  """Generate one batch for a client-driven chained run without storing it."""
  return await answer_service.generate_single_batch(request, user_id=user_id, settings=settings, generator=generator, rate_limiter=rate_limiter)
