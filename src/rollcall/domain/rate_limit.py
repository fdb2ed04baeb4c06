"""Per-key token bucket throttling."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


@dataclass(slots=True)
class _Bucket:
    tokens: float
    refilled_at: float


@dataclass(frozen=True, slots=True)
class RateLimitInfo:
    limit: int
    remaining: int
    reset_at: float


class TokenBucketLimiter:
    """Allow ``capacity`` requests per ``window_seconds`` for every key.

    Tokens refill continuously at ``capacity / window_seconds`` per second. The
    clock is any monotonic callable returning seconds, injected so tests can
    drive time explicitly.
    """

    def __init__(
        self,
        capacity: int,
        window_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity <= 0:
            msg = "capacity must be positive"
            raise ValueError(msg)
        if window_seconds <= 0:
            msg = "window_seconds must be positive"
            raise ValueError(msg)
        self.capacity = capacity
        self.window_seconds = window_seconds
        self._clock = clock
        self._buckets: dict[str, _Bucket] = {}
        self._lock = threading.Lock()

    @property
    def refill_rate(self) -> float:
        return self.capacity / self.window_seconds

    def acquire(self, key: str) -> bool:
        """Consume one token for ``key``; ``False`` when the budget is exhausted."""

        with self._lock:
            bucket = self._refill(key)
            if bucket.tokens < 1:
                return False
            bucket.tokens -= 1
            return True

    def retry_after(self, key: str) -> float:
        """Seconds until ``key`` has a whole token again."""

        with self._lock:
            bucket = self._refill(key)
            return max(0.0, (1 - bucket.tokens) / self.refill_rate)

    def info(self, key: str) -> RateLimitInfo:
        with self._lock:
            bucket = self._refill(key)
            missing = self.capacity - bucket.tokens
            return RateLimitInfo(
                limit=self.capacity,
                remaining=int(bucket.tokens),
                reset_at=bucket.refilled_at + missing / self.refill_rate,
            )

    def reset(self, key: str) -> None:
        with self._lock:
            self._buckets.pop(key, None)

    def prune(self) -> int:
        """Forget buckets that have been full for a whole window."""

        now = self._clock()
        with self._lock:
            idle = [
                key
                for key, bucket in self._buckets.items()
                if now - bucket.refilled_at > self.window_seconds
                and bucket.tokens + (now - bucket.refilled_at) * self.refill_rate >= self.capacity
            ]
            for key in idle:
                del self._buckets[key]
        return len(idle)

    def _refill(self, key: str) -> _Bucket:
        now = self._clock()
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = _Bucket(tokens=float(self.capacity), refilled_at=now)
            self._buckets[key] = bucket
            return bucket
        elapsed = max(0.0, now - bucket.refilled_at)
        bucket.tokens = min(float(self.capacity), bucket.tokens + elapsed * self.refill_rate)
        bucket.refilled_at = now
        return bucket
