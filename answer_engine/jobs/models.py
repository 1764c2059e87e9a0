"""Domain models for background answer generation jobs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

JobStatus = Literal["queued", "running", "done", "error"]
JobState = Literal["idle", "purging", "generating", "saving", "complete", "failed"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"done", "error"})


@dataclass
class JobRecord:
  """Represents one generation run for an identity."""

  job_id: str
  user_id: str
  status: JobStatus
  state: JobState
  target_total: int
  batch_size: int
  created_at: str
  updated_at: str
  batch_index: int = 0
  persisted_count: int = 0
  generation_calls: int = 0
  error: str | None = None
  logs: list[str] = field(default_factory=list)
  started_at: str | None = None
  completed_at: str | None = None

  @property
  def is_terminal(self) -> bool:
    return self.status in TERMINAL_STATUSES
