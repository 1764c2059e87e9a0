from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from answer_engine.progress.broadcaster import ChangeBroadcaster, Subscription
from answer_engine.progress.sse import format_sse, stream_answer_events
from answer_engine.services.answers import get_snapshot
from tests.fakes import InMemoryAnswersRepo, make_draft


def _parse(frame: str) -> tuple[str, Any]:
  event_line, data_line = frame.strip().split("\n")
  return event_line.removeprefix("event: "), json.loads(data_line.removeprefix("data: "))


def _stream(repo: InMemoryAnswersRepo, broadcaster: ChangeBroadcaster[dict[str, Any]], *, heartbeat_interval: float = 5.0):
  async def fetch(user_id: str) -> dict[str, Any]:
    return (await get_snapshot(repo, user_id)).wire()

  return stream_answer_events("alice", fetch_snapshot=fetch, broadcaster=broadcaster, heartbeat_interval=heartbeat_interval)


def test_format_sse_frames_event_and_single_line_json() -> None:
  assert format_sse("update", {"items": [], "count": 0}) == 'event: update\ndata: {"items":[],"count":0}\n\n'
  assert format_sse("heartbeat", {}) == "event: heartbeat\ndata: {}\n\n"


async def _next_frame(events):
  return await events.__anext__()


@pytest.mark.anyio
async def test_stream_sends_initial_then_updates_only_on_count_change(answers_repo: InMemoryAnswersRepo, broadcaster) -> None:
  answers_repo.seed("alice", [make_draft(1)])
  events = _stream(answers_repo, broadcaster, heartbeat_interval=0.3)

  event, data = _parse(await events.__anext__())
  assert event == "initial"
  assert data["count"] == 1
  assert data["items"][0]["fullText"] == "S\n\nT\n\nA\n\nR"

  answers_repo.seed("alice", [make_draft(index) for index in range(2, 6)])
  event, data = _parse(await asyncio.wait_for(events.__anext__(), timeout=1))
  assert event == "update"
  assert data["count"] == 5
  assert [item["id"] for item in data["items"]] == [1, 2, 3, 4, 5]

  # The count is unchanged, so the next frame is a heartbeat rather than a repeated update.
  event, _ = _parse(await asyncio.wait_for(events.__anext__(), timeout=1))
  assert event == "heartbeat"

  await events.aclose()


@pytest.mark.anyio
async def test_heartbeat_is_sent_while_idle(answers_repo: InMemoryAnswersRepo, broadcaster) -> None:
  events = _stream(answers_repo, broadcaster, heartbeat_interval=0.05)

  assert _parse(await events.__anext__())[0] == "initial"
  event, data = _parse(await asyncio.wait_for(events.__anext__(), timeout=1))
  assert event == "heartbeat"
  assert data == {}

  await events.aclose()


@pytest.mark.anyio
async def test_poller_is_shared_and_released_with_last_subscriber(answers_repo: InMemoryAnswersRepo, broadcaster) -> None:
  first = _stream(answers_repo, broadcaster)
  second = _stream(answers_repo, broadcaster)
  await first.__anext__()
  await second.__anext__()
  # Subscriptions register when the stream resumes past the initial frame.
  pending = [asyncio.create_task(_next_frame(first)), asyncio.create_task(_next_frame(second))]
  await asyncio.sleep(0.02)

  assert broadcaster.channel_count() == 1
  assert broadcaster.subscriber_count("alice") == 2
  assert broadcaster.has_poller("alice")

  for task in pending:
    task.cancel()
  await asyncio.gather(*pending, return_exceptions=True)
  await first.aclose()
  await second.aclose()

  assert broadcaster.channel_count() == 0
  assert not broadcaster.has_poller("alice")


@pytest.mark.anyio
async def test_poll_failures_are_skipped() -> None:
  calls = 0

  async def flaky_fetch(user_id: str) -> dict[str, Any]:
    nonlocal calls
    calls += 1
    if calls == 1:
      raise ConnectionError("database went away")
    return {"items": [], "count": 3}

  broadcaster: ChangeBroadcaster[dict[str, Any]] = ChangeBroadcaster(flaky_fetch, lambda snapshot: snapshot["count"], poll_interval=0.01)
  subscription = broadcaster.subscribe("alice", last_seen=0)

  snapshot = await asyncio.wait_for(subscription.queue.get(), timeout=1)

  assert snapshot["count"] == 3
  assert calls >= 2
  broadcaster.unsubscribe(subscription)
  await broadcaster.close()


@pytest.mark.anyio
async def test_subscriber_already_up_to_date_gets_no_redundant_push() -> None:
  async def fetch(user_id: str) -> dict[str, Any]:
    return {"items": [], "count": 4}

  broadcaster: ChangeBroadcaster[dict[str, Any]] = ChangeBroadcaster(fetch, lambda snapshot: snapshot["count"], poll_interval=0.01)
  current = broadcaster.subscribe("alice", last_seen=4)
  stale = broadcaster.subscribe("alice", last_seen=2)
  await asyncio.sleep(0.05)

  assert current.queue.empty()
  assert stale.queue.qsize() == 1
  await broadcaster.close()
  assert broadcaster.channel_count() == 0


@pytest.mark.anyio
async def test_full_queue_drops_oldest_snapshot() -> None:
  subscription: Subscription[int] = Subscription(key="alice", last_seen=None, queue=asyncio.Queue(maxsize=2))

  for value in (1, 2, 3):
    subscription.offer(value)

  assert subscription.dropped == 1
  assert [subscription.queue.get_nowait(), subscription.queue.get_nowait()] == [2, 3]
