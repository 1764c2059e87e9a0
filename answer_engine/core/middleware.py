import logging
import re
import time
from typing import Any

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from answer_engine.utils.ids import generate_request_id

logger = logging.getLogger("answer_engine.core.middleware")

REQUEST_ID_HEADER = "x-request-id"
_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{8,64}$")
# Probes hit these constantly; keep them out of INFO logs.
_QUIET_PATHS = frozenset({"/health"})


def _incoming_request_id(scope: Scope) -> str:
  """Reuse a well-formed caller-supplied id so client and server logs line up."""
  supplied = Headers(scope=scope).get(REQUEST_ID_HEADER)
  if supplied and _SAFE_REQUEST_ID.match(supplied):
    return supplied
  return generate_request_id()


class RequestLoggingMiddleware:
  """Log method, path, status and latency per request; bodies are never read.

  Pure ASGI so Server-Sent Event responses pass through chunk by chunk. For
  streams the latency line is written when the client disconnects.
  """

  def __init__(self, app: ASGIApp) -> None:
    self.app = app

  async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
    if scope["type"] != "http":
      await self.app(scope, receive, send)
      return

    request_id = _incoming_request_id(scope)
    scope.setdefault("state", {})["request_id"] = request_id

    path = scope.get("path", "")
    level = logging.DEBUG if path in _QUIET_PATHS else logging.INFO
    method = scope.get("method", "UNKNOWN")
    logger.log(level, "Incoming request request_id=%s %s %s", request_id, method, path)

    start_time = time.perf_counter()
    status_code = 0
    streaming = False

    async def send_wrapper(message: Message) -> None:
      nonlocal status_code, streaming
      if message["type"] == "http.response.start":
        status_code = message["status"]
        headers = MutableHeaders(scope=message)
        headers.setdefault(REQUEST_ID_HEADER, request_id)
        streaming = headers.get("content-type", "").startswith("text/event-stream")
      await send(message)

    try:
      await self.app(scope, receive, send_wrapper)
    finally:
      elapsed_ms = (time.perf_counter() - start_time) * 1000
      kind = "Stream closed" if streaming else "Response"
      logger.log(level, "%s request_id=%s status=%s (took %.2fms)", kind, request_id, status_code, elapsed_ms)


class SecurityHeadersMiddleware:
  """Strip server fingerprints and forbid MIME sniffing on every response."""

  def __init__(self, app: ASGIApp) -> None:
    self.app = app

  async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
    if scope["type"] != "http":
      await self.app(scope, receive, send)
      return

    async def send_wrapper(message: dict[str, Any]) -> None:
      if message["type"] == "http.response.start":
        headers = MutableHeaders(scope=message)
        for name in ("x-powered-by", "server"):
          if name in headers:
            del headers[name]
        headers["x-content-type-options"] = "nosniff"
      await send(message)

    await self.app(scope, receive, send_wrapper)
