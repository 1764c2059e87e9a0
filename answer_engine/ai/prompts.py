"""Prompt construction for STAR answer batches."""

from __future__ import annotations

_PREAMBLE = (
  "You are an expert career coach specializing in behavioral interviews. "
  "Analyze the following career document and generate behavioral interview answers "
  "in STAR format (Situation, Task, Action, Result)."
)

_INSTRUCTIONS = (
  "1. Extract key experiences, projects, and achievements from the document",
  "2. For each experience, create a behavioral interview answer that follows the STAR format",
  (
    "3. Cover a wide range of behavioral competencies: leadership, teamwork, problem-solving, conflict resolution, "
    "communication, adaptability, time management, decision-making, innovation, and customer focus"
  ),
  "4. Make each answer specific, quantifiable, and impactful",
  (
    "5. Provide detailed, in-depth answers of roughly 300-400 words each. "
    "Elaborate significantly on the Action and Result sections."
  ),
  "6. Give every answer a competency, the interview question it answers, and the four STAR sections",
)


def build_batch_prompt(source_document: str, *, start_index: int, batch_size: int) -> str:
  """Return the prompt for one batch covering ids start_index..start_index+batch_size-1.

  The output depends only on its arguments so a retried batch sends the same text.
  """
  if start_index < 1:
    raise ValueError("start_index must be >= 1")
  if batch_size < 1:
    raise ValueError("batch_size must be >= 1")

  end_index = start_index + batch_size - 1
  range_rule = (
    f"7. GENERATE ONLY {batch_size} ANSWERS. START NUMBERING FROM ID #{start_index} "
    f"AND END AT ID #{end_index}. The first answer is ID {start_index}, the second {start_index + 1}, and so on."
  )
  instructions = "\n".join((*_INSTRUCTIONS, range_rule))
  return f"{_PREAMBLE}\n\nCareer Document:\n{source_document.strip()}\n\nInstructions:\n{instructions}"
