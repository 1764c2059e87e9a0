"""Storage interfaces for generated STAR answers."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

STAR_SECTIONS = ("situation", "task", "action", "result")


class StoreUnavailableError(RuntimeError):
  """Raised when the answer store cannot complete an operation."""


@dataclass(frozen=True)
class AnswerDraft:
  """One generated answer before it is persisted."""

  category: str
  prompt: str
  situation: str
  task: str
  action: str
  result: str
  full_text: str | None = None

  def resolved_full_text(self) -> str:
    """Return the full narrative, composing it from the sections when absent."""
    if self.full_text and self.full_text.strip():
      return self.full_text
    return "\n\n".join(getattr(self, section) for section in STAR_SECTIONS)


@dataclass(frozen=True)
class AnswerItem:
  """A persisted answer with its 1-based display position."""

  id: int
  category: str
  prompt: str
  situation: str
  task: str
  action: str
  result: str
  full_text: str


def number_items(drafts: Sequence[AnswerDraft], *, start_index: int = 1) -> list[AnswerItem]:
  """Attach contiguous display ids starting at start_index."""
  return [
    AnswerItem(
      id=start_index + offset,
      category=draft.category,
      prompt=draft.prompt,
      situation=draft.situation,
      task=draft.task,
      action=draft.action,
      result=draft.result,
      full_text=draft.resolved_full_text(),
    )
    for offset, draft in enumerate(drafts)
  ]


class AnswersRepository(Protocol):
  """Repository contract for answer persistence."""

  async def purge(self, user_id: str) -> int:
    """Delete every answer owned by user_id and return the number removed."""

  async def append(self, user_id: str, drafts: Sequence[AnswerDraft]) -> int:
    """Insert one batch atomically in submission order and return the number written."""

  async def list_answers(self, user_id: str) -> list[AnswerItem]:
    """Return the identity's answers in creation order with display ids 1..n."""

  async def count(self, user_id: str) -> int:
    """Return how many answers the identity currently has."""
