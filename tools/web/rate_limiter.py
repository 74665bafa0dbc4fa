"""Sliding-window request limiter for search providers."""

import threading
import time
from dataclasses import dataclass
from typing import Callable

from utils.errors import ErrorCode, SearchError


@dataclass(frozen=True)
class RateLimit:
    max_requests: int
    window_s: float


class RateLimiter:
    """
    Tracks request timestamps per provider and refuses requests beyond the
    configured window. Providers without a limit are always allowed.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._limits: dict[str, RateLimit] = {}
        self._requests: dict[str, list[float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def set_limit(self, provider: str, max_requests: int, window_s: float) -> None:
        with self._lock:
            self._limits[provider] = RateLimit(max_requests=max_requests, window_s=window_s)
            self._requests[provider] = []

    def _prune(self, provider: str, limit: RateLimit, now: float) -> list[float]:
        timestamps = [t for t in self._requests.get(provider, []) if now - t < limit.window_s]
        self._requests[provider] = timestamps
        return timestamps

    def try_acquire(self, provider: str) -> bool:
        """Record a request if the provider is under its limit."""
        with self._lock:
            limit = self._limits.get(provider)
            if limit is None:
                return True
            now = self._clock()
            timestamps = self._prune(provider, limit, now)
            if len(timestamps) >= limit.max_requests:
                return False
            timestamps.append(now)
            return True

    def acquire(self, provider: str) -> None:
        """
        Raises:
            SearchError: with SEARCH_LIMIT_EXCEEDED when the window is full
        """
        if not self.try_acquire(provider):
            limit = self._limits[provider]
            raise SearchError(
                f"Rate limit exceeded for {provider}",
                ErrorCode.SEARCH_LIMIT_EXCEEDED,
                {"provider": provider, "max_requests": limit.max_requests, "window_s": limit.window_s},
            )

    def remaining(self, provider: str) -> int | None:
        """Requests left in the current window, or None when unlimited."""
        with self._lock:
            limit = self._limits.get(provider)
            if limit is None:
                return None
            timestamps = self._prune(provider, limit, self._clock())
            return max(0, limit.max_requests - len(timestamps))
