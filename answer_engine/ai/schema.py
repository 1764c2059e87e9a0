"""JSON schema describing one batch of model output."""

from __future__ import annotations

from typing import Any

# Model-facing keys; the generator maps competency/question/fullAnswer onto stored fields.
REQUIRED_ANSWER_KEYS: tuple[str, ...] = ("competency", "question", "situation", "task", "action", "result")


def answer_batch_schema(batch_size: int) -> dict[str, Any]:
  """Return the structured-output schema for a batch of exactly batch_size answers."""
  item_properties: dict[str, Any] = {
    "id": {"type": "integer"},
    "competency": {"type": "string", "description": "Behavioral competency demonstrated, e.g. Leadership"},
    "question": {"type": "string", "description": "Interview question this answer responds to"},
    "situation": {"type": "string"},
    "task": {"type": "string"},
    "action": {"type": "string"},
    "result": {"type": "string"},
    "fullAnswer": {"type": "string", "description": "The complete answer as one narrative"},
  }
  return {
    "type": "object",
    "properties": {
      "answers": {
        "type": "array",
        "minItems": batch_size,
        "maxItems": batch_size,
        "items": {"type": "object", "properties": item_properties, "required": list(REQUIRED_ANSWER_KEYS)},
      }
    },
    "required": ["answers"],
  }
