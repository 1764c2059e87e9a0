from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr

from answer_engine.jobs.models import JobState, JobStatus
from answer_engine.storage.answers_repo import AnswerItem


class AnswerResponse(BaseModel):
  """One STAR answer as exposed to clients."""

  id: StrictInt = Field(ge=1, description="1-based position within the caller's ordered answers.")
  category: StrictStr
  prompt: StrictStr
  situation: StrictStr
  task: StrictStr
  action: StrictStr
  result: StrictStr
  full_text: StrictStr = Field(alias="fullText")
  model_config = ConfigDict(populate_by_name=True)

  @classmethod
  def from_item(cls, item: AnswerItem) -> AnswerResponse:
    return cls(id=item.id, category=item.category, prompt=item.prompt, situation=item.situation, task=item.task, action=item.action, result=item.result, full_text=item.full_text)


class AnswersSnapshot(BaseModel):
  """Ordered answers for one identity at a point in time."""

  items: list[AnswerResponse]
  count: StrictInt = Field(ge=0)

  def wire(self) -> dict:
    """Return the JSON-ready form used by both HTTP and SSE payloads."""
    return self.model_dump(mode="json", by_alias=True)


class GenerateAnswersRequest(BaseModel):
  """Request payload for starting a background generation run."""

  document_text: StrictStr = Field(min_length=1, description="Career document text the answers are drawn from.")
  model_config = ConfigDict(extra="forbid")


class GenerateAnswersResponse(BaseModel):
  """Acknowledgement returned before generation starts."""

  job_id: StrictStr
  status: JobStatus
  target_total: StrictInt
  batch_size: StrictInt


class JobStatusResponse(BaseModel):
  """Status payload for a background generation job."""

  job_id: StrictStr
  status: JobStatus
  state: JobState
  persisted_count: StrictInt = Field(ge=0)
  target_total: StrictInt
  batch_index: StrictInt = Field(ge=0)
  generation_calls: StrictInt = Field(ge=0, description="Model calls made so far; one per batch.")
  error: StrictStr | None = None
  logs: list[StrictStr] = Field(default_factory=list)


class ClearAnswersResponse(BaseModel):
  success: Literal[True] = True


class BatchRequest(BaseModel):
  """Request payload for one client-driven batch."""

  document_text: StrictStr = Field(min_length=1)
  start_index: StrictInt = Field(default=1, ge=1)
  batch_size: StrictInt | None = Field(default=None, ge=1, le=10, description="Defaults to the server batch size.")
  model_config = ConfigDict(extra="forbid")


class BatchResponse(BaseModel):
  """One generated batch, numbered from start_index and not persisted."""

  items: list[AnswerResponse]
  start_index: StrictInt
  count: StrictInt


class HealthResponse(BaseModel):
  status: StrictStr
  version: StrictStr
