"""Error types raised while producing answer batches."""

from __future__ import annotations


class GenerationError(RuntimeError):
  """Base class for batch generation failures."""


class GenerationMalformedError(GenerationError):
  """The model responded, but the payload was unusable."""


class GenerationTimeoutError(GenerationError):
  """The model did not respond within the configured bound."""


class GenerationFailedError(GenerationError):
  """The model call itself failed (network, quota, provider error)."""
