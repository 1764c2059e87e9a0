import logging
import os
import subprocess
import sys

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("entrypoint")


def _truthy(raw: str | None) -> bool:
  return (raw or "").strip().lower() in {"1", "true", "yes", "on"}


def main() -> None:
  """Optionally apply migrations, then replace this process with uvicorn."""
  if _truthy(os.getenv("ANSWERS_AUTO_APPLY_MIGRATIONS")):
    logger.info("Applying migrations before startup...")
    subprocess.run([sys.executable, "-m", "alembic", "upgrade", "head"], check=True)
  else:
    logger.info("Starting application (run alembic upgrade head in deploy pipeline)...")

  port = os.getenv("PORT", "8080")
  # execvp keeps uvicorn as the signal-receiving process.
  os.execvp("uvicorn", ["uvicorn", "answer_engine.main:app", "--host", "0.0.0.0", "--port", port, "--no-server-header"])


if __name__ == "__main__":
  main()
