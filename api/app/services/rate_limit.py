"""In-process rate limiting keyed by client identity (usually the IP address).

Counters live in this process rather than in Redis. The limiter must work when
no Redis is configured, and it takes an injectable clock and an explicit
``sweep()`` so window expiry can be driven deterministically. With several
workers each process enforces its own limit.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass
class _Window:
    started_at: float
    count: int


class RateLimiter:
    """
    Fixed-window request counter.

    Each key gets ``limit`` requests per ``window_seconds``; the window opens on
    the key's first request. ``clock`` returns monotonic seconds and is injected
    so tests can drive time explicitly. Expired windows are dropped by
    ``sweep()``, which ``hit()`` also runs once per window.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def hit(self, key: str) -> tuple[bool, int]:
        """
        Record one request for ``key``.

        Returns:
            Tuple of (allowed, retry_after)
            - allowed: False once the key has used up its window
            - retry_after: Whole seconds until the window resets (0 when allowed)
        """
        with self._lock:
            now = self._clock()
            if now - self._last_sweep >= self.window_seconds:
                self._sweep_locked(now)

            window = self._windows.get(key)
            if window is None or now - window.started_at >= self.window_seconds:
                self._windows[key] = _Window(started_at=now, count=1)
                return True, 0

            if window.count >= self.limit:
                remaining = self.window_seconds - (now - window.started_at)
                return False, max(1, math.ceil(remaining))

            window.count += 1
            return True, 0

    def remaining(self, key: str) -> int:
        """Requests left for ``key`` in its current window, without consuming one."""
        with self._lock:
            window = self._windows.get(key)
            if window is None or self._clock() - window.started_at >= self.window_seconds:
                return self.limit
            return max(0, self.limit - window.count)

    def sweep(self) -> int:
        """Drop expired windows. Returns the number of keys evicted."""
        with self._lock:
            return self._sweep_locked(self._clock())

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def _sweep_locked(self, now: float) -> int:
        expired = [
            key
            for key, window in self._windows.items()
            if now - window.started_at >= self.window_seconds
        ]
        for key in expired:
            del self._windows[key]
        self._last_sweep = now
        if expired:
            logger.debug(f"Rate limiter evicted {len(expired)} expired window(s)")
        return len(expired)
