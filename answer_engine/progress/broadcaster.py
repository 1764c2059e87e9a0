"""Poll-and-diff fan-out of per-key snapshots to live subscribers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

SnapshotT = TypeVar("SnapshotT")

DEFAULT_QUEUE_SIZE = 8


@dataclass(eq=False)
class Subscription(Generic[SnapshotT]):
  """One subscriber's delivery queue and the last fingerprint it was sent."""

  key: str
  last_seen: Hashable | None
  queue: asyncio.Queue[SnapshotT] = field(default_factory=lambda: asyncio.Queue(maxsize=DEFAULT_QUEUE_SIZE))
  dropped: int = 0

  def offer(self, snapshot: SnapshotT) -> None:
    """Enqueue without blocking, discarding the oldest pending snapshot when full."""
    if self.queue.full():
      try:
        self.queue.get_nowait()
        self.dropped += 1
      except asyncio.QueueEmpty:
        pass
    self.queue.put_nowait(snapshot)


@dataclass(eq=False)
class _Channel(Generic[SnapshotT]):
  subscriptions: set[Subscription[SnapshotT]] = field(default_factory=set)
  task: asyncio.Task[None] | None = None


class ChangeBroadcaster(Generic[SnapshotT]):
  """Share one polling task per key among all of that key's subscribers.

  The poller re-reads the snapshot every poll_interval seconds and offers it to
  each subscriber whose last seen fingerprint differs. It starts with the first
  subscriber and is cancelled when the last one leaves. State is process-local.
  """

  def __init__(self, fetch: Callable[[str], Awaitable[SnapshotT]], fingerprint: Callable[[SnapshotT], Hashable], *, poll_interval: float = 2.0, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
    if poll_interval <= 0:
      raise ValueError("poll_interval must be positive")
    self._fetch = fetch
    self._fingerprint = fingerprint
    self._poll_interval = poll_interval
    self._queue_size = max(queue_size, 1)
    self._channels: dict[str, _Channel[SnapshotT]] = {}

  def fingerprint(self, snapshot: SnapshotT) -> Hashable:
    return self._fingerprint(snapshot)

  def subscribe(self, key: str, *, last_seen: Hashable | None = None) -> Subscription[SnapshotT]:
    """Register a subscriber for key, starting the shared poller if needed."""
    subscription: Subscription[SnapshotT] = Subscription(key=key, last_seen=last_seen, queue=asyncio.Queue(maxsize=self._queue_size))
    channel = self._channels.get(key)
    if channel is None:
      channel = _Channel()
      self._channels[key] = channel
    channel.subscriptions.add(subscription)
    if channel.task is None or channel.task.done():
      channel.task = asyncio.create_task(self._poll_loop(key, channel), name=f"answers-poller:{key}")
      logger.debug("Started poller key=%s", key)
    return subscription

  def unsubscribe(self, subscription: Subscription[SnapshotT]) -> None:
    """Remove a subscriber and tear the channel down when it was the last one."""
    channel = self._channels.get(subscription.key)
    if channel is None:
      return
    channel.subscriptions.discard(subscription)
    if channel.subscriptions:
      return
    del self._channels[subscription.key]
    if channel.task is not None and not channel.task.done():
      channel.task.cancel()
    logger.debug("Stopped poller key=%s", subscription.key)

  async def _poll_loop(self, key: str, channel: _Channel[SnapshotT]) -> None:
    while True:
      await asyncio.sleep(self._poll_interval)
      try:
        snapshot = await self._fetch(key)
      except asyncio.CancelledError:
        raise
      except Exception as exc:  # noqa: BLE001
        # A failed read skips this tick; the next tick retries.
        logger.warning("Progress poll failed key=%s error_type=%s", key, type(exc).__name__)
        continue

      current = self._fingerprint(snapshot)
      for subscription in list(channel.subscriptions):
        if subscription.last_seen != current:
          subscription.last_seen = current
          subscription.offer(snapshot)

  def channel_count(self) -> int:
    return len(self._channels)

  def subscriber_count(self, key: str) -> int:
    channel = self._channels.get(key)
    return len(channel.subscriptions) if channel else 0

  def has_poller(self, key: str) -> bool:
    channel = self._channels.get(key)
    return channel is not None and channel.task is not None and not channel.task.done()

  async def close(self) -> None:
    """Cancel every poller; used at application shutdown."""
    tasks = [channel.task for channel in self._channels.values() if channel.task is not None]
    self._channels.clear()
    for task in tasks:
      task.cancel()
    if tasks:
      await asyncio.gather(*tasks, return_exceptions=True)
