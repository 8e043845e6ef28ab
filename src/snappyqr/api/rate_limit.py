"""Per-client upload rate limiting.

Fixed-start sliding window: a client's window opens on its first upload
and resets once ``window_seconds`` have passed. The table is bounded:
expired entries are dropped as they are met, and when ``max_keys`` is
reached the least recently seen client is evicted.
"""

from __future__ import annotations

import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable

from fastapi import Request


@dataclass
class RateLimitEntry:
    window_start: float
    count: int


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int


class SlidingWindowRateLimiter:
    """Thread-safe request counter keyed by client identity."""

    def __init__(
        self,
        limit: int = 5,
        window_seconds: float = 60,
        *,
        max_keys: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if max_keys < 1:
            raise ValueError("max_keys must be >= 1")
        self.limit = limit
        self.window_seconds = window_seconds
        self.max_keys = max_keys
        self._clock = clock
        self._entries: OrderedDict[str, RateLimitEntry] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _expired(self, entry: RateLimitEntry, now: float) -> bool:
        return now - entry.window_start >= self.window_seconds

    def _evict(self, now: float) -> None:
        # Oldest-seen first; stop at the first live entry
        while self._entries:
            key, entry = next(iter(self._entries.items()))
            if not self._expired(entry, now) and len(self._entries) < self.max_keys:
                break
            del self._entries[key]

    def hit(self, key: str) -> RateLimitDecision:
        """Count one request for ``key`` and decide whether it may proceed."""
        with self._lock:
            now = self._clock()
            entry = self._entries.pop(key, None)
            if entry is None or self._expired(entry, now):
                entry = RateLimitEntry(window_start=now, count=0)

            self._evict(now)

            if entry.count >= self.limit:
                self._entries[key] = entry
                retry_after = math.ceil(entry.window_start + self.window_seconds - now)
                return RateLimitDecision(allowed=False, remaining=0, retry_after=max(retry_after, 1))

            entry.count += 1
            self._entries[key] = entry
            return RateLimitDecision(allowed=True, remaining=self.limit - entry.count, retry_after=0)

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()


def client_key(request: Request) -> str:
    """Identify the caller: first X-Forwarded-For hop, else the peer address."""
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "anonymous"
