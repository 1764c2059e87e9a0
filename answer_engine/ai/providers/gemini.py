"""Gemini provider implementation using the google-genai SDK."""

from __future__ import annotations

import json
from typing import Any, Final

from google import genai

from answer_engine.ai.json_parser import parse_json_with_fallback
from answer_engine.ai.providers.base import AIModel, Provider, StructuredModelResponse


class GeminiModel(AIModel):
  """Gemini model client with structured output support."""

  def __init__(self, name: str, api_key: str | None = None) -> None:
    self.name: str = name
    if not api_key:
      raise ValueError("GEMINI_API_KEY environment variable is required")
    self._client = genai.Client(api_key=api_key)

  async def generate_structured(self, prompt: str, schema: dict[str, Any], *, temperature: float | None = None) -> StructuredModelResponse:
    """Generate structured JSON output using Gemini's JSON mode."""
    # Use a plain dict for config to avoid pydantic validation errors on JSON Schema
    config: dict[str, Any] = {"response_mime_type": "application/json", "response_json_schema": schema}
    if temperature is not None:
      config["temperature"] = temperature

    response = await self._client.aio.models.generate_content(model=self.name, contents=prompt, config=config)

    usage = None
    if response.usage_metadata:
      usage = {
        "prompt_tokens": response.usage_metadata.prompt_token_count or 0,
        "completion_tokens": response.usage_metadata.candidates_token_count or 0,
        "total_tokens": response.usage_metadata.total_token_count or 0,
      }

    try:
      content = parse_json_with_fallback(response.text or "")
    except json.JSONDecodeError as e:
      raise ValueError(f"Gemini returned invalid JSON: {e}") from e
    return StructuredModelResponse(content=content, usage=usage)


class GeminiProvider(Provider):
  """Gemini provider."""

  _DEFAULT_MODEL: Final[str] = "gemini-2.0-flash"
  _AVAILABLE_MODELS: Final[set[str]] = {
    "gemini-2.5-pro",
    "gemini-2.5-flash",
    "gemini-2.0-flash",
    "gemini-flash-latest",
  }

  def __init__(self, api_key: str | None = None) -> None:
    self.name: str = "gemini"
    self._api_key = api_key

  def get_model(self, model: str | None = None) -> AIModel:
    """Return a Gemini model client."""
    model_name = model or self._DEFAULT_MODEL
    if model_name not in self._AVAILABLE_MODELS:
      raise ValueError(f"Unsupported Gemini model '{model_name}'.")
    return GeminiModel(model_name, api_key=self._api_key)
