"""Server-Sent Events framing and the answers progress stream."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from answer_engine.progress.broadcaster import ChangeBroadcaster

logger = logging.getLogger(__name__)

SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"}


def format_sse(event: str, data: Any) -> str:
  """Frame one event as `event: <name>` plus a single-line JSON `data:` field."""
  return f"event: {event}\ndata: {json.dumps(data, separators=(',', ':'))}\n\n"


async def stream_answer_events(
  identity: str,
  *,
  fetch_snapshot: Callable[[str], Awaitable[dict[str, Any]]],
  broadcaster: ChangeBroadcaster[dict[str, Any]],
  heartbeat_interval: float,
  is_disconnected: Callable[[], Awaitable[bool]] | None = None,
) -> AsyncIterator[str]:
  """Yield initial, update and heartbeat frames until the client goes away."""
  last_seen = None
  try:
    initial = await fetch_snapshot(identity)
  except Exception as exc:  # noqa: BLE001
    # Subscribers still get updates; the next change will carry the full snapshot.
    logger.warning("Initial snapshot failed user_id=%s error_type=%s", identity, type(exc).__name__)
  else:
    last_seen = broadcaster.fingerprint(initial)
    yield format_sse("initial", initial)

  subscription = broadcaster.subscribe(identity, last_seen=last_seen)
  loop = asyncio.get_running_loop()
  next_heartbeat = loop.time() + heartbeat_interval
  try:
    while True:
      if is_disconnected is not None and await is_disconnected():
        break

      timeout = max(next_heartbeat - loop.time(), 0.0)
      try:
        snapshot = await asyncio.wait_for(subscription.queue.get(), timeout=timeout)
      except TimeoutError:
        next_heartbeat = loop.time() + heartbeat_interval
        yield format_sse("heartbeat", {})
        continue

      yield format_sse("update", snapshot)
  finally:
    broadcaster.unsubscribe(subscription)
    logger.debug("Subscriber left user_id=%s dropped=%s", identity, subscription.dropped)
