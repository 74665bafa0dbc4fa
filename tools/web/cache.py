"""Thread-safe TTL cache for search results."""

import hashlib
import threading
from datetime import datetime, timedelta, timezone
from typing import Any

from .contracts import Candidate


class SearchCache:
    """
    In-memory search result cache with TTL (Time To Live).

    Entries are keyed by a sha256 digest of (provider, query, limit) so the
    same query issued with a different limit is cached separately.
    """

    def __init__(self, ttl_seconds: int = 3600, max_entries: int = 512):
        """
        Args:
            ttl_seconds: Time to live in seconds for cached entries
            max_entries: Oldest entries are evicted beyond this size
        """
        self._cache: dict[str, tuple[list[Candidate], datetime]] = {}
        self._lock = threading.Lock()
        self._ttl = timedelta(seconds=ttl_seconds)
        self._max_entries = max_entries

    @staticmethod
    def make_key(provider: str, query: str, limit: int) -> str:
        raw = f"{provider}|{query.strip().lower()}|{limit}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]

    def get(self, provider: str, query: str, limit: int) -> list[Candidate] | None:
        """Return cached candidates, or None when missing or expired."""
        key = self.make_key(provider, query, limit)
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            value, expiry = entry
            if datetime.now(timezone.utc) < expiry:
                return list(value)
            del self._cache[key]
            return None

    def set(self, provider: str, query: str, limit: int, value: list[Candidate]) -> None:
        key = self.make_key(provider, query, limit)
        with self._lock:
            if key not in self._cache and len(self._cache) >= self._max_entries:
                oldest = min(self._cache, key=lambda k: self._cache[k][1])
                del self._cache[oldest]
            self._cache[key] = (list(value), datetime.now(timezone.utc) + self._ttl)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {"entries": len(self._cache), "ttl_seconds": int(self._ttl.total_seconds())}

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
