"""In-process fixed-window rate limiter."""

import threading
import time
from collections.abc import Callable


class RateLimiter:
    """Allow ``limit`` hits per key within each ``window_seconds`` window.

    State is per process; a multi-worker deployment needs a shared store.
    """

    def __init__(
        self,
        limit: int = 5,
        window_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (window reset time, count)
        self._hits: dict[str, tuple[float, int]] = {}

    def check(self, key: str) -> bool:
        """Count a hit for ``key``; False once the key is over its limit."""
        now = self._clock()
        with self._lock:
            self._prune(now)
            reset_at, count = self._hits.get(key, (now + self.window_seconds, 0))
            if count >= self.limit:
                return False
            self._hits[key] = (reset_at, count + 1)
            return True

    def _prune(self, now: float) -> None:
        expired = [k for k, (reset_at, _) in self._hits.items() if reset_at <= now]
        for key in expired:
            del self._hits[key]

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
