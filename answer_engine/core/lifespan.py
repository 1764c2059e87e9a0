import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from answer_engine.core.database import dispose_engine
from answer_engine.core.firebase import initialize_firebase
from answer_engine.core.logging import _initialize_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging and Firebase on startup; stop pollers and close the pool on shutdown."""
  from answer_engine.api.deps import get_broadcaster
  from answer_engine.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("answer_engine.core.lifespan")

  try:
    _initialize_logging(settings)
    logger.info("Startup complete - logging verified.")
  except RuntimeError:
    # Keep serving with the default handlers when the log directory is unusable.
    logger.warning("Logging setup failed; continuing with default handlers.", exc_info=True)

  initialize_firebase()
  if not settings.pg_dsn:
    logger.warning("ANSWERS_PG_DSN is not set; answer endpoints will fail until it is configured.")

  yield

  await get_broadcaster().close()
  await dispose_engine()
  logger.info("Shutdown complete.")
