"""Single-batch STAR answer generation with strict output validation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from answer_engine.ai.errors import GenerationFailedError, GenerationMalformedError, GenerationTimeoutError
from answer_engine.ai.prompts import build_batch_prompt
from answer_engine.ai.providers.base import AIModel
from answer_engine.ai.schema import REQUIRED_ANSWER_KEYS, answer_batch_schema
from answer_engine.storage.answers_repo import AnswerDraft

logger = logging.getLogger(__name__)


def _coerce_drafts(payload: Any, *, batch_size: int) -> list[AnswerDraft]:
  """Validate a decoded model payload and convert it into drafts."""
  if not isinstance(payload, dict):
    raise GenerationMalformedError("Model output is not a JSON object.")

  answers = payload.get("answers")
  if not isinstance(answers, list):
    raise GenerationMalformedError("Model output is missing the 'answers' list.")

  if len(answers) != batch_size:
    raise GenerationMalformedError(f"Model returned {len(answers)} answers; expected {batch_size}.")

  drafts: list[AnswerDraft] = []
  for position, answer in enumerate(answers, start=1):
    if not isinstance(answer, dict):
      raise GenerationMalformedError(f"Answer {position} is not an object.")

    missing = [key for key in REQUIRED_ANSWER_KEYS if not isinstance(answer.get(key), str) or not answer[key].strip()]
    if missing:
      raise GenerationMalformedError(f"Answer {position} is missing required fields: {', '.join(missing)}.")

    full_text = answer.get("fullAnswer")
    drafts.append(
      AnswerDraft(
        category=answer["competency"].strip(),
        prompt=answer["question"].strip(),
        situation=answer["situation"].strip(),
        task=answer["task"].strip(),
        action=answer["action"].strip(),
        result=answer["result"].strip(),
        full_text=full_text.strip() if isinstance(full_text, str) and full_text.strip() else None,
      )
    )

  return drafts


class BatchGenerator:
  """Produce exactly one validated batch of answers per call.

  Each call makes one model request bounded by timeout_seconds. Failures are
  raised as GenerationError subclasses and are never retried here.
  """

  def __init__(self, model_factory: Callable[[], AIModel], *, timeout_seconds: float = 60.0, temperature: float | None = 0.7) -> None:
    self._model_factory = model_factory
    self._model: AIModel | None = None
    self._timeout_seconds = timeout_seconds
    self._temperature = temperature

  def _resolve_model(self) -> AIModel:
    if self._model is None:
      try:
        self._model = self._model_factory()
      except ValueError as exc:
        raise GenerationFailedError(f"Model is not configured: {exc}") from exc
    return self._model

  async def generate_batch(self, user_id: str, source_document: str, start_index: int, batch_size: int) -> list[AnswerDraft]:
    """Generate answers numbered start_index..start_index+batch_size-1."""
    prompt = build_batch_prompt(source_document, start_index=start_index, batch_size=batch_size)
    schema = answer_batch_schema(batch_size)
    model = self._resolve_model()

    logger.info("Generating batch user_id=%s model=%s start_index=%s batch_size=%s", user_id, model.name, start_index, batch_size)
    try:
      response = await asyncio.wait_for(model.generate_structured(prompt, schema, temperature=self._temperature), timeout=self._timeout_seconds)
    except TimeoutError as exc:
      logger.warning("Batch generation timed out user_id=%s start_index=%s timeout=%ss", user_id, start_index, self._timeout_seconds)
      raise GenerationTimeoutError(f"Model did not respond within {self._timeout_seconds}s.") from exc
    except ValueError as exc:
      # Providers raise ValueError for unparseable response text.
      raise GenerationMalformedError(str(exc)) from exc
    except Exception as exc:  # noqa: BLE001
      logger.warning("Batch generation failed user_id=%s start_index=%s error_type=%s", user_id, start_index, type(exc).__name__)
      raise GenerationFailedError(f"Model call failed: {type(exc).__name__}") from exc

    drafts = _coerce_drafts(response.content, batch_size=batch_size)
    if response.usage:
      logger.debug("Batch usage user_id=%s start_index=%s usage=%s", user_id, start_index, response.usage)
    return drafts
