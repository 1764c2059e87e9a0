"""Shared fixtures: in-memory store, scripted model and app dependency overrides."""

from __future__ import annotations

import os

# Ensure required settings are available before importing the app.
os.environ.setdefault("ANSWERS_ALLOWED_ORIGINS", "http://localhost")
os.environ.setdefault("ANSWERS_ENV", "test")

from typing import Any  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from answer_engine.api import deps  # noqa: E402
from answer_engine.jobs.generator import BatchGenerator  # noqa: E402
from answer_engine.jobs.orchestrator import AnswerJobOrchestrator  # noqa: E402
from answer_engine.jobs.progress import JobRegistry  # noqa: E402
from answer_engine.progress.broadcaster import ChangeBroadcaster  # noqa: E402
from answer_engine.services.rate_limit import FixedWindowRateLimiter  # noqa: E402
from tests.fakes import TOKENS, FakeModel, InMemoryAnswersRepo  # noqa: E402


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def answers_repo() -> InMemoryAnswersRepo:
  return InMemoryAnswersRepo()


@pytest.fixture
def fake_model() -> FakeModel:
  return FakeModel()


@pytest.fixture
def job_registry() -> JobRegistry:
  return JobRegistry()


@pytest.fixture
def batch_generator(fake_model: FakeModel) -> BatchGenerator:
  return BatchGenerator(lambda: fake_model, timeout_seconds=5.0, temperature=0.7)


@pytest.fixture
def orchestrator(answers_repo: InMemoryAnswersRepo, batch_generator: BatchGenerator, job_registry: JobRegistry) -> AnswerJobOrchestrator:
  return AnswerJobOrchestrator(repo_provider=lambda: answers_repo, generator=batch_generator, registry=job_registry, target_total=25, batch_size=5)


@pytest.fixture
def rate_limiter() -> FixedWindowRateLimiter:
  return FixedWindowRateLimiter(window_seconds=60, max_requests=3)


@pytest.fixture
def batch_rate_limiter() -> FixedWindowRateLimiter:
  return FixedWindowRateLimiter(window_seconds=60, max_requests=5)


@pytest.fixture
def broadcaster(answers_repo: InMemoryAnswersRepo) -> ChangeBroadcaster[dict[str, Any]]:
  from answer_engine.services.answers import get_snapshot

  async def fetch(user_id: str) -> dict[str, Any]:
    return (await get_snapshot(answers_repo, user_id)).wire()

  return ChangeBroadcaster(fetch, lambda snapshot: snapshot["count"], poll_interval=0.01)


@pytest.fixture
def fake_tokens(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
  """Replace Firebase verification with a fixed token table."""

  def _verify(id_token: str) -> dict[str, Any] | None:
    uid = TOKENS.get(id_token)
    return {"uid": uid} if uid else None

  monkeypatch.setattr("answer_engine.core.security.verify_id_token", _verify)
  return TOKENS


@pytest.fixture
async def async_client(fake_tokens, answers_repo, orchestrator, batch_generator, rate_limiter, batch_rate_limiter, job_registry, broadcaster):
  from answer_engine.main import app

  app.dependency_overrides[deps.get_answers_repo] = lambda: answers_repo
  app.dependency_overrides[deps.get_orchestrator] = lambda: orchestrator
  app.dependency_overrides[deps.get_batch_generator] = lambda: batch_generator
  app.dependency_overrides[deps.get_rate_limiter] = lambda: rate_limiter
  app.dependency_overrides[deps.get_batch_rate_limiter] = lambda: batch_rate_limiter
  app.dependency_overrides[deps.get_job_registry] = lambda: job_registry
  app.dependency_overrides[deps.get_broadcaster] = lambda: broadcaster
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    yield client
  app.dependency_overrides.clear()
