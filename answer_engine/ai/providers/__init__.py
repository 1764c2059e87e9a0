"""Provider implementations."""

from answer_engine.ai.providers.base import AIModel, Provider, StructuredModelResponse
from answer_engine.ai.providers.gemini import GeminiModel, GeminiProvider
from answer_engine.ai.providers.openrouter import OpenRouterModel, OpenRouterProvider

__all__ = [
  "AIModel",
  "Provider",
  "StructuredModelResponse",
  "GeminiModel",
  "GeminiProvider",
  "OpenRouterModel",
  "OpenRouterProvider",
]
