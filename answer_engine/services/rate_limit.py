"""Fixed-window request limiting per identity."""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass

_PRUNE_THRESHOLD = 10_000


class RateLimitedError(RuntimeError):
  """Raised when an identity exceeds its request allowance."""

  def __init__(self, retry_after_ms: int) -> None:
    super().__init__(f"Rate limited; retry after {retry_after_ms}ms")
    self.retry_after_ms = retry_after_ms

  @property
  def retry_after_seconds(self) -> int:
    """Whole seconds for the Retry-After header, rounded up."""
    return max(1, math.ceil(self.retry_after_ms / 1000))


@dataclass
class RateBucket:
  """Request count for one identity inside the current window."""

  count: int
  window_reset_at: float


@dataclass(frozen=True)
class RateDecision:
  """Outcome of a single rate limit check."""

  allowed: bool
  retry_after_ms: int = 0


class FixedWindowRateLimiter:
  """Allow up to max_requests per identity in each fixed window.

  State is process-local; separate workers each keep their own buckets.
  """

  def __init__(self, *, window_seconds: float = 60.0, max_requests: int = 3, clock: Callable[[], float] = time.monotonic) -> None:
    if window_seconds <= 0:
      raise ValueError("window_seconds must be positive")
    if max_requests <= 0:
      raise ValueError("max_requests must be positive")
    self._window_seconds = window_seconds
    self._max_requests = max_requests
    self._clock = clock
    self._buckets: dict[str, RateBucket] = {}

  @property
  def window_seconds(self) -> float:
    return self._window_seconds

  @property
  def max_requests(self) -> int:
    return self._max_requests

  def check_and_consume(self, identity: str) -> RateDecision:
    """Record one request for identity and decide whether it may proceed."""
    now = self._clock()
    bucket = self._buckets.get(identity)

    # A missing or expired bucket opens a fresh window with this request counted.
    if bucket is None or now >= bucket.window_reset_at:
      if len(self._buckets) >= _PRUNE_THRESHOLD:
        self._prune(now)
      self._buckets[identity] = RateBucket(count=1, window_reset_at=now + self._window_seconds)
      return RateDecision(allowed=True)

    if bucket.count < self._max_requests:
      bucket.count += 1
      return RateDecision(allowed=True)

    remaining_ms = math.ceil((bucket.window_reset_at - now) * 1000)
    window_ms = math.ceil(self._window_seconds * 1000)
    return RateDecision(allowed=False, retry_after_ms=min(window_ms, max(1, remaining_ms)))

  def enforce(self, identity: str) -> None:
    """Consume one request or raise RateLimitedError."""
    decision = self.check_and_consume(identity)
    if not decision.allowed:
      raise RateLimitedError(decision.retry_after_ms)

  def _prune(self, now: float) -> None:
    expired = [identity for identity, bucket in self._buckets.items() if now >= bucket.window_reset_at]
    for identity in expired:
      del self._buckets[identity]
