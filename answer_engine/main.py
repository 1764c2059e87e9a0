from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from answer_engine import __version__
from answer_engine.ai.errors import GenerationError
from answer_engine.api.models import HealthResponse
from answer_engine.api.routes import answers
from answer_engine.config import get_settings
from answer_engine.core.exceptions import (
  generation_exception_handler,
  global_exception_handler,
  http_exception_handler,
  rate_limited_exception_handler,
  request_validation_exception_handler,
  store_unavailable_exception_handler,
)
from answer_engine.core.lifespan import lifespan
from answer_engine.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from answer_engine.services.rate_limit import RateLimitedError
from answer_engine.storage.answers_repo import StoreUnavailableError

settings = get_settings()

app = FastAPI(title="answer-engine", version=__version__, lifespan=lifespan, docs_url="/docs" if settings.debug else None, redoc_url=None, openapi_url="/openapi.json" if settings.debug else None)

app.add_middleware(
  CORSMiddleware,
  allow_origins=list(settings.allowed_origins),
  allow_credentials=True,
  allow_methods=["GET", "POST", "OPTIONS"],
  allow_headers=["content-type", "authorization"],
  expose_headers=["content-length", "retry-after", "x-request-id"],
)

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
app.add_exception_handler(RateLimitedError, rate_limited_exception_handler)
app.add_exception_handler(GenerationError, generation_exception_handler)
app.add_exception_handler(StoreUnavailableError, store_unavailable_exception_handler)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.get("/health", response_model=HealthResponse, include_in_schema=False)
async def health_check() -> HealthResponse:
  """Return a simple health status."""
  return HealthResponse(status="ok", version=__version__)


app.include_router(answers.router, prefix="/v1/answers", tags=["answers"])
