from __future__ import annotations

import asyncio
from typing import Any

import pytest

from answer_engine.ai.errors import GenerationFailedError, GenerationMalformedError, GenerationTimeoutError
from answer_engine.ai.prompts import build_batch_prompt
from answer_engine.ai.providers.base import AIModel, StructuredModelResponse
from answer_engine.jobs.generator import BatchGenerator

from tests.fakes import FakeModel, make_answer


class SlowModel(AIModel):
  name = "slow-model"

  async def generate_structured(self, prompt: str, schema: dict[str, Any], *, temperature: float | None = None) -> StructuredModelResponse:
    await asyncio.sleep(5)
    return StructuredModelResponse(content={"answers": []})


@pytest.mark.anyio
async def test_returns_validated_drafts_for_requested_range(batch_generator: BatchGenerator, fake_model: FakeModel) -> None:
  drafts = await batch_generator.generate_batch("alice", "Led a migration.", 6, 5)

  assert [draft.category for draft in drafts] == [f"Competency {index}" for index in range(6, 11)]
  assert drafts[0].prompt == "Tell me about time 6."
  assert fake_model.calls == 1
  assert fake_model.temperatures == [0.7]
  assert "START NUMBERING FROM ID #6 AND END AT ID #10" in fake_model.prompts[0]


@pytest.mark.anyio
async def test_full_text_falls_back_to_joined_sections(batch_generator: BatchGenerator, fake_model: FakeModel) -> None:
  fake_model.overrides[1] = {"answers": [make_answer(1), make_answer(2, fullAnswer="Complete narrative.")]}

  drafts = await batch_generator.generate_batch("alice", "doc", 1, 2)

  assert drafts[0].resolved_full_text() == "Situation 1\n\nTask 1\n\nAction 1\n\nResult 1"
  assert drafts[1].resolved_full_text() == "Complete narrative."


@pytest.mark.anyio
@pytest.mark.parametrize(
  "payload",
  [
    ["not", "an", "object"],
    {"items": []},
    {"answers": "nope"},
    {"answers": [make_answer(1)] * 4},
    {"answers": [make_answer(1)] * 6},
    {"answers": [make_answer(index) for index in range(1, 5)] + [make_answer(5, result="   ")]},
    {"answers": [make_answer(index) for index in range(1, 5)] + ["text"]},
  ],
)
async def test_malformed_payloads_are_rejected(batch_generator: BatchGenerator, fake_model: FakeModel, payload: Any) -> None:
  fake_model.overrides[1] = payload

  with pytest.raises(GenerationMalformedError):
    await batch_generator.generate_batch("alice", "doc", 1, 5)

  assert fake_model.calls == 1


@pytest.mark.anyio
async def test_unparseable_model_output_is_malformed(batch_generator: BatchGenerator, fake_model: FakeModel) -> None:
  fake_model.overrides[1] = ValueError("Gemini returned invalid JSON: Unterminated string")

  with pytest.raises(GenerationMalformedError):
    await batch_generator.generate_batch("alice", "doc", 1, 5)


@pytest.mark.anyio
async def test_provider_errors_fail_without_retry(batch_generator: BatchGenerator, fake_model: FakeModel) -> None:
  fake_model.overrides[1] = ConnectionError("connection reset")

  with pytest.raises(GenerationFailedError):
    await batch_generator.generate_batch("alice", "doc", 1, 5)

  assert fake_model.calls == 1


@pytest.mark.anyio
async def test_slow_model_times_out() -> None:
  generator = BatchGenerator(lambda: SlowModel(), timeout_seconds=0.01)

  with pytest.raises(GenerationTimeoutError):
    await generator.generate_batch("alice", "doc", 1, 5)


@pytest.mark.anyio
async def test_unconfigured_model_is_a_generation_failure() -> None:
  def _factory() -> AIModel:
    raise ValueError("GEMINI_API_KEY environment variable is required")

  generator = BatchGenerator(_factory)

  with pytest.raises(GenerationFailedError):
    await generator.generate_batch("alice", "doc", 1, 5)


def test_prompt_is_deterministic_and_names_the_range() -> None:
  first = build_batch_prompt("  Built a data platform.  ", start_index=11, batch_size=5)
  second = build_batch_prompt("Built a data platform.", start_index=11, batch_size=5)

  assert first == second
  assert "GENERATE ONLY 5 ANSWERS" in first
  assert "START NUMBERING FROM ID #11 AND END AT ID #15" in first
  assert "Career Document:\nBuilt a data platform." in first


@pytest.mark.parametrize(("start_index", "batch_size"), [(0, 5), (1, 0)])
def test_prompt_rejects_invalid_ranges(start_index: int, batch_size: int) -> None:
  with pytest.raises(ValueError):
    build_batch_prompt("doc", start_index=start_index, batch_size=batch_size)
