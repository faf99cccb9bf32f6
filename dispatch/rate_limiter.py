"""
Purpose: Per-rider request throttling for ride submission.
What it does:
- Sliding window: at most max_requests calls per key in the last window_seconds
- check(key) records the call or raises RateLimitExceeded
- State lives on the instance; inject one limiter per service

Rule: No knowledge of rides or pools. Keys are opaque strings.
"""

import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict

logger = logging.getLogger(__name__)


class RateLimitExceeded(Exception):
    """Raised when a key has used up its window."""

    def __init__(self, key: str, retry_after_seconds: float):
        super().__init__(f"Too many requests for {key}, retry in {retry_after_seconds:.0f}s")
        self.key = key
        self.retry_after_seconds = retry_after_seconds


class SlidingWindowRateLimiter:

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests <= 0:
            raise ValueError("max_requests must be > 0")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def _trim(self, hits: Deque[float], now: float) -> None:
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

    def check(self, key: str) -> None:
        now = self.clock()
        with self._lock:
            hits = self._hits.setdefault(key, deque())
            self._trim(hits, now)

            if len(hits) >= self.max_requests:
                retry_after = self.window_seconds - (now - hits[0])
                logger.warning("Rate limit hit for %s (%d requests)", key, len(hits))
                raise RateLimitExceeded(key, retry_after)

            hits.append(now)

    def remaining(self, key: str) -> int:
        now = self.clock()
        with self._lock:
            hits = self._hits.get(key)
            if not hits:
                return self.max_requests
            self._trim(hits, now)
            return self.max_requests - len(hits)

    def prune(self) -> int:
        """
        Forget keys with no calls left in the window. Returns how many were dropped.
        """
        now = self.clock()
        with self._lock:
            for hits in self._hits.values():
                self._trim(hits, now)
            empty = [key for key, hits in self._hits.items() if not hits]
            for key in empty:
                del self._hits[key]
        return len(empty)
