"""OpenRouter provider implementation using the openai SDK."""

from __future__ import annotations

import json
from typing import Any, Final

from openai import AsyncOpenAI

from answer_engine.ai.json_parser import parse_json_with_fallback
from answer_engine.ai.providers.base import AIModel, Provider, StructuredModelResponse

_OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class OpenRouterModel(AIModel):
  """OpenRouter model client with structured output support."""

  def __init__(self, name: str, api_key: str | None = None, base_url: str | None = None) -> None:
    self.name: str = name
    if not api_key:
      raise ValueError("OPENROUTER_API_KEY environment variable is required")
    # Retries stay off; a failed batch fails the job instead of being resent.
    self._client = AsyncOpenAI(api_key=api_key, base_url=base_url or _OPENROUTER_BASE_URL, max_retries=0)

  async def generate_structured(self, prompt: str, schema: dict[str, Any], *, temperature: float | None = None) -> StructuredModelResponse:
    """Generate structured JSON output using a strict json_schema response format."""
    kwargs: dict[str, Any] = {}
    if temperature is not None:
      kwargs["temperature"] = temperature

    response = await self._client.chat.completions.create(
      model=self.name,
      messages=[
        {"role": "system", "content": "You output valid JSON only, with no markdown formatting."},
        {"role": "user", "content": prompt},
      ],
      response_format={"type": "json_schema", "json_schema": {"name": "answer_batch", "schema": schema}},
      **kwargs,
    )

    content = response.choices[0].message.content or ""
    usage = None
    if response.usage:
      usage = {
        "prompt_tokens": response.usage.prompt_tokens,
        "completion_tokens": response.usage.completion_tokens,
        "total_tokens": response.usage.total_tokens,
      }

    try:
      parsed = parse_json_with_fallback(content)
    except json.JSONDecodeError as e:
      raise ValueError(f"OpenRouter returned invalid JSON: {e}") from e
    return StructuredModelResponse(content=parsed, usage=usage)


class OpenRouterProvider(Provider):
  """OpenRouter provider."""

  _DEFAULT_MODEL: Final[str] = "google/gemini-2.0-flash-001"
  _AVAILABLE_MODELS: Final[set[str]] = {
    "google/gemini-2.0-flash-001",
    "openai/gpt-4o-mini",
    "openai/gpt-4o",
    "anthropic/claude-3.5-sonnet",
  }

  def __init__(self, api_key: str | None = None, base_url: str | None = None) -> None:
    self.name: str = "openrouter"
    self._api_key = api_key
    self._base_url = base_url

  def get_model(self, model: str | None = None) -> AIModel:
    """Return an OpenRouter model client."""
    model_name = model or self._DEFAULT_MODEL
    if model_name not in self._AVAILABLE_MODELS:
      raise ValueError(f"Unsupported OpenRouter model '{model_name}'.")
    return OpenRouterModel(model_name, api_key=self._api_key, base_url=self._base_url)
