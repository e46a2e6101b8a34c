"""In-memory cache for embedding vectors with time-based expiry."""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, List, Optional

DEFAULT_TTL_SECONDS = 24 * 60 * 60


def normalize_key(text: str) -> str:
    """Collapse whitespace runs and trim; case is preserved."""
    return " ".join(text.split())


class EmbeddingEntry:
    """A single cached vector."""

    __slots__ = ("key", "vector", "created_at")

    def __init__(self, key: str, vector: List[float], created_at: float):
        self.key = key
        self.vector = vector
        self.created_at = created_at

    def is_expired(self, now: float, ttl: float) -> bool:
        return now - self.created_at > ttl


class VectorCache:
    """
    Process-wide cache of embedding vectors keyed by normalized text.

    Entries older than ``ttl_seconds`` are treated as absent. They are purged
    lazily by :meth:`get` or in bulk by :meth:`sweep`; there is no size-based
    eviction.

    Operations on the same key are serialized through lock striping: each key
    hashes onto one of ``stripes`` locks, so a lookup never returns a vector
    that another thread is expiring.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        stripes: int = 64,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, EmbeddingEntry] = {}
        self._locks = [threading.Lock() for _ in range(max(1, stripes))]
        self._stats_lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def _lock_for(self, key: str) -> threading.Lock:
        return self._locks[hash(key) % len(self._locks)]

    def get(self, text: str) -> Optional[List[float]]:
        """Return a copy of the cached vector for *text*, or None if absent or expired."""
        key = normalize_key(text)
        with self._lock_for(key):
            entry = self._entries.get(key)
            if entry is not None and entry.is_expired(self._clock(), self.ttl_seconds):
                del self._entries[key]
                entry = None

        with self._stats_lock:
            if entry is None:
                self._misses += 1
            else:
                self._hits += 1
        return list(entry.vector) if entry is not None else None

    def set(self, text: str, vector: List[float]) -> None:
        """Store *vector* for *text*, replacing any previous entry."""
        key = normalize_key(text)
        entry = EmbeddingEntry(key, list(vector), self._clock())
        with self._lock_for(key):
            self._entries[key] = entry

    def sweep(self) -> int:
        """Remove all expired entries. Returns the number removed."""
        removed = 0
        for key in list(self._entries.keys()):
            with self._lock_for(key):
                entry = self._entries.get(key)
                # re-check under the lock; the entry may have been refreshed
                if entry is not None and entry.is_expired(self._clock(), self.ttl_seconds):
                    del self._entries[key]
                    removed += 1
        return removed

    def clear(self) -> None:
        """Drop every entry and reset statistics."""
        for lock in self._locks:
            lock.acquire()
        try:
            self._entries.clear()
        finally:
            for lock in self._locks:
                lock.release()
        with self._stats_lock:
            self._hits = 0
            self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, text: object) -> bool:
        return isinstance(text, str) and self.get(text) is not None

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache stats
        """
        with self._stats_lock:
            hits, misses = self._hits, self._misses
        total_requests = hits + misses
        hit_rate = hits / total_requests if total_requests > 0 else 0.0

        return {
            "hits": hits,
            "misses": misses,
            "total_requests": total_requests,
            "hit_rate": hit_rate,
            "cache_size": len(self._entries),
        }
