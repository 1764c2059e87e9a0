"""Base interfaces for AI providers and models."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class StructuredModelResponse:
  """Structured model response structure."""

  content: Any
  usage: dict[str, int] | None = None


class AIModel(ABC):
  """Abstract base class for AI models."""

  name: str

  @abstractmethod
  async def generate_structured(self, prompt: str, schema: dict[str, Any], *, temperature: float | None = None) -> StructuredModelResponse:
    """Generate structured output that conforms to the provided JSON schema.

    Raises ValueError when the response text is not parseable JSON.
    """


class Provider(ABC):
  """Abstract base class for AI providers."""

  name: str

  @abstractmethod
  def get_model(self, model: str | None = None) -> AIModel:
    """Return the model client for the provider."""
