"""Async HTTP client for the answers API, including the chained batch loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import httpx

from answer_engine.jobs.orchestrator import batch_plan

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[dict[str, Any]], None]


class ChainedRunError(RuntimeError):
  """A chained run stopped early; items holds what was generated before the failure."""

  def __init__(self, message: str, *, items: list[dict[str, Any]], start_index: int) -> None:
    super().__init__(message)
    self.items = items
    self.start_index = start_index


class AnswersClient:
  """Thin wrapper over the answers endpoints for scripts and tests."""

  def __init__(self, base_url: str, token: str, *, http_client: httpx.AsyncClient | None = None, timeout: float = 120.0) -> None:
    self._base_url = base_url.rstrip("/")
    self._headers = {"authorization": f"Bearer {token}"}
    self._owns_client = http_client is None
    # Never trust environment proxy variables; callers pass an explicit client when they need one.
    self._client = http_client or httpx.AsyncClient(base_url=self._base_url, timeout=timeout, trust_env=False)

  async def __aenter__(self) -> AnswersClient:
    return self

  async def __aexit__(self, *exc_info: object) -> None:
    await self.aclose()

  async def aclose(self) -> None:
    if self._owns_client:
      await self._client.aclose()

  async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
    response = await self._client.request(method, f"{self._base_url}{path}", headers=self._headers, **kwargs)
    response.raise_for_status()
    return response.json()

  async def trigger(self, document_text: str) -> dict[str, Any]:
    """Start a background run; returns the job acknowledgement."""
    return await self._request("POST", "/v1/answers/generate", json={"document_text": document_text})

  async def clear(self) -> dict[str, Any]:
    return await self._request("POST", "/v1/answers/clear")

  async def fetch_snapshot(self) -> dict[str, Any]:
    return await self._request("GET", "/v1/answers")

  async def job_status(self, job_id: str) -> dict[str, Any]:
    return await self._request("GET", f"/v1/answers/jobs/{job_id}")

  async def wait_for_completion(self, job_id: str, *, poll_interval: float = 2.0, timeout: float = 600.0, on_snapshot: SnapshotCallback | None = None) -> dict[str, Any]:
    """Poll the snapshot until the job finishes and return the final snapshot.

    Raises TimeoutError when the job is still running after timeout seconds.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    last_count = -1
    while True:
      job = await self.job_status(job_id)
      snapshot = await self.fetch_snapshot()
      if on_snapshot is not None and snapshot["count"] != last_count:
        on_snapshot(snapshot)
      last_count = snapshot["count"]

      if job["status"] in {"done", "error"}:
        if job["status"] == "error":
          logger.warning("Job finished with error job_id=%s error=%s", job_id, job.get("error"))
        return snapshot

      if loop.time() >= deadline:
        raise TimeoutError(f"Job {job_id} still running after {timeout}s")
      await asyncio.sleep(poll_interval)

  async def generate_batch(self, document_text: str, *, start_index: int, batch_size: int) -> dict[str, Any]:
    payload = {"document_text": document_text, "start_index": start_index, "batch_size": batch_size}
    return await self._request("POST", "/v1/answers/batch", json=payload)

  async def generate_chained(self, document_text: str, *, target_total: int = 25, batch_size: int = 5, on_batch: SnapshotCallback | None = None) -> list[dict[str, Any]]:
    """Request batches one after another until target_total answers are collected.

    Nothing is persisted server-side. Any failure stops the run without resuming.
    """
    items: list[dict[str, Any]] = []
    for start_index, size in batch_plan(target_total, batch_size):
      try:
        batch = await self.generate_batch(document_text, start_index=start_index, batch_size=size)
      except httpx.HTTPError as exc:
        raise ChainedRunError(f"Batch starting at {start_index} failed: {exc}", items=items, start_index=start_index) from exc

      items.extend(batch["items"])
      if on_batch is not None:
        on_batch({"items": list(items), "count": len(items)})

    return items
