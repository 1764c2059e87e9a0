"""Job registry and progress tracking utilities."""

from __future__ import annotations

import time
from collections import OrderedDict
from typing import Any

from answer_engine.jobs.models import JobRecord, JobState, JobStatus
from answer_engine.utils.ids import generate_job_id

MAX_TRACKED_LOGS = 100
MAX_TRACKED_JOBS = 1000


def _now_iso() -> str:
  return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


class JobRegistry:
  """Process-local registry of recent jobs, evicting the oldest beyond max_jobs."""

  def __init__(self, *, max_jobs: int = MAX_TRACKED_JOBS) -> None:
    self._max_jobs = max(max_jobs, 1)
    self._jobs: OrderedDict[str, JobRecord] = OrderedDict()

  def create(self, *, user_id: str, target_total: int, batch_size: int) -> JobRecord:
    """Register a queued job and return it."""
    timestamp = _now_iso()
    record = JobRecord(job_id=generate_job_id(), user_id=user_id, status="queued", state="idle", target_total=target_total, batch_size=batch_size, created_at=timestamp, updated_at=timestamp)
    self._jobs[record.job_id] = record
    while len(self._jobs) > self._max_jobs:
      self._jobs.popitem(last=False)
    return record

  def get(self, job_id: str) -> JobRecord | None:
    return self._jobs.get(job_id)

  def update(self, job_id: str, **fields: Any) -> JobRecord | None:
    """Apply field updates to a tracked job; returns None once it has been evicted."""
    record = self._jobs.get(job_id)
    if record is None:
      return None
    for key, value in fields.items():
      setattr(record, key, value)
    record.updated_at = _now_iso()
    return record

  def __len__(self) -> int:
    return len(self._jobs)


class JobProgressTracker:
  """Track job state transitions and log updates for one run."""

  def __init__(self, *, job_id: str, registry: JobRegistry) -> None:
    self._job_id = job_id
    self._registry = registry
    self._logs: list[str] = []

  def add_logs(self, *messages: str) -> None:
    """Append log lines while preserving the rolling window."""
    self._logs.extend(messages)
    if len(self._logs) > MAX_TRACKED_LOGS:
      self._logs = self._logs[-MAX_TRACKED_LOGS:]

  def _update_job(self, *, status: JobStatus, state: JobState, **fields: Any) -> JobRecord | None:
    return self._registry.update(self._job_id, status=status, state=state, logs=list(self._logs), **fields)

  def start(self) -> JobRecord | None:
    self.add_logs("Purging previous answers.")
    return self._update_job(status="running", state="purging", started_at=_now_iso())

  def begin_batch(self, *, batch_index: int, start_index: int, size: int, generation_calls: int) -> JobRecord | None:
    """Mark a model call as in flight for the given batch; the call counts even if it fails."""
    self.add_logs(f"Generating batch {batch_index}: answers #{start_index} to #{start_index + size - 1}.")
    return self._update_job(status="running", state="generating", batch_index=batch_index, generation_calls=generation_calls)

  def begin_save(self, *, batch_index: int) -> JobRecord | None:
    return self._update_job(status="running", state="saving", batch_index=batch_index)

  def complete_batch(self, *, batch_index: int, persisted_count: int) -> JobRecord | None:
    self.add_logs(f"Saved batch {batch_index}; {persisted_count} answers stored.")
    return self._update_job(status="running", state="generating", batch_index=batch_index, persisted_count=persisted_count)

  def complete(self, *, persisted_count: int) -> JobRecord | None:
    self.add_logs(f"Generation complete with {persisted_count} answers.")
    return self._update_job(status="done", state="complete", persisted_count=persisted_count, completed_at=_now_iso())

  def fail(self, *, message: str) -> JobRecord | None:
    """Set the job to an error state."""
    self.add_logs(message)
    return self._update_job(status="error", state="failed", error=message, completed_at=_now_iso())

  @property
  def logs(self) -> list[str]:
    """Return a copy of the tracked logs."""
    return list(self._logs)
