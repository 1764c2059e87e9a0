from __future__ import annotations

import json

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from answer_engine.ai.errors import GenerationMalformedError
from answer_engine.core.exceptions import (
  _sanitize_validation_errors,
  generation_exception_handler,
  global_exception_handler,
  http_exception_handler,
  rate_limited_exception_handler,
  store_unavailable_exception_handler,
)
from answer_engine.services.rate_limit import RateLimitedError
from answer_engine.storage.answers_repo import StoreUnavailableError


def _request(path: str = "/v1/answers/generate", request_id: str | None = "req-1") -> Request:
  scope = {"type": "http", "method": "POST", "path": path, "query_string": b"", "headers": [], "state": {}}
  if request_id:
    scope["state"]["request_id"] = request_id
  return Request(scope)


def _body(response) -> dict:
  return json.loads(response.body)


def test_validation_errors_drop_raw_input() -> None:
  errors = [{"type": "missing", "loc": ("body", "document_text"), "msg": "Field required", "input": {"secret": "resume"}, "ctx": {"input": "resume", "limit": 3}}]

  sanitized = _sanitize_validation_errors(errors)

  assert sanitized == [{"type": "missing", "loc": ["body", "document_text"], "msg": "Field required", "ctx": {"limit": 3}}]


@pytest.mark.anyio
async def test_rate_limited_handler_sets_retry_after() -> None:
  response = await rate_limited_exception_handler(_request(), RateLimitedError(retry_after_ms=12_300))

  assert response.status_code == 429
  assert response.headers["retry-after"] == "13"
  assert _body(response) == {"detail": {"error": "RATE_LIMITED", "retry_after_ms": 12_300}, "requestId": "req-1"}


@pytest.mark.anyio
async def test_generation_handler_hides_model_details() -> None:
  response = await generation_exception_handler(_request(), GenerationMalformedError("expected 5 answers, got 2"))

  assert response.status_code == 502
  assert _body(response)["detail"] == "Generation failed"


@pytest.mark.anyio
async def test_store_unavailable_handler_returns_503() -> None:
  response = await store_unavailable_exception_handler(_request(), StoreUnavailableError("boom"))

  assert response.status_code == 503
  assert _body(response)["detail"] == "Answer store unavailable"


@pytest.mark.anyio
async def test_http_exception_handler_keeps_headers() -> None:
  exc = HTTPException(status_code=401, detail="Invalid or expired token", headers={"WWW-Authenticate": "Bearer"})

  response = await http_exception_handler(_request(request_id=None), exc)

  assert response.status_code == 401
  assert response.headers["www-authenticate"] == "Bearer"
  assert _body(response) == {"detail": "Invalid or expired token"}


@pytest.mark.anyio
async def test_server_side_http_exception_is_masked() -> None:
  response = await http_exception_handler(_request(), HTTPException(status_code=500, detail="connection string leaked"))

  assert response.status_code == 500
  assert _body(response)["detail"] == "Internal Server Error"


@pytest.mark.anyio
async def test_global_handler_returns_generic_500() -> None:
  response = await global_exception_handler(_request(), KeyError("user_id"))

  assert response.status_code == 500
  assert _body(response) == {"detail": "Internal Server Error", "requestId": "req-1"}
