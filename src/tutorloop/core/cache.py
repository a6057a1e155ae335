"""
Cache Module: Session Cache

Capacity-bounded, recency-ordered in-memory store of conversation sessions.
Sessions evicted here are not lost; they are rehydrated from the durable
session store on the next reference.
"""

import logging
import threading
from collections import OrderedDict
from typing import Any, Callable, Dict, Generic, Hashable, Optional, TypeVar

from ..models.context import Session

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

EvictionHook = Callable[[Any, Any], None]


class LRUCache(Generic[K, V]):
    """
    In-memory LRU (Least Recently Used) cache.

    Features:
    - Fixed capacity; inserting a new key at capacity evicts exactly one entry
    - ``get`` promotes the entry to most recently used
    - Thread-safe operations, all O(1)
    - Hit/miss/eviction statistics
    - Optional eviction hook (e.g. to flush state before it leaves memory)

    Example:
        cache = LRUCache(capacity=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)   # evicts "b"
    """

    def __init__(self, capacity: int = 500, on_evict: Optional[EvictionHook] = None):
        """
        Initialize LRU cache.

        Args:
            capacity: Maximum number of entries
            on_evict: Called with (key, value) after an entry is evicted
        """
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")

        self._lock = threading.Lock()
        # Oldest entry first, most recently used last
        self._cache: OrderedDict[K, V] = OrderedDict()
        self._capacity = capacity
        self._on_evict = on_evict

        # Statistics
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        """
        Get a value, marking it most recently used.

        Returns:
            Cached value, or ``default`` on a miss
        """
        with self._lock:
            if key not in self._cache:
                self._misses += 1
                return default

            self._cache.move_to_end(key)
            self._hits += 1
            return self._cache[key]

    def set(self, key: K, value: V) -> None:
        """Insert or overwrite a value, evicting the least recently used entry if full."""
        evicted = None
        with self._lock:
            if key in self._cache:
                self._cache[key] = value
                self._cache.move_to_end(key)
                return

            if len(self._cache) >= self._capacity:
                evicted = self._cache.popitem(last=False)
                self._evictions += 1

            self._cache[key] = value

        if evicted is not None:
            logger.debug(f"Evicted least recently used entry: {evicted[0]}")
            if self._on_evict is not None:
                self._on_evict(*evicted)

    def has(self, key: K) -> bool:
        """Membership test. Does not change recency."""
        with self._lock:
            return key in self._cache

    def delete(self, key: K) -> None:
        """Remove a key if present; no-op otherwise."""
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
        logger.info(f"Cleared {count} cache entries")

    def keys(self) -> list[K]:
        """Keys from least to most recently used."""
        with self._lock:
            return list(self._cache.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, key: object) -> bool:
        return self.has(key)  # type: ignore[arg-type]

    def stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary with hit rate, size, and other metrics
        """
        with self._lock:
            total_requests = self._hits + self._misses
            hit_rate = (self._hits / total_requests) if total_requests > 0 else 0.0

            return {
                "backend": "in_memory_lru",
                "size": len(self._cache),
                "capacity": self._capacity,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": hit_rate,
                "evictions": self._evictions,
            }


class SessionCache(LRUCache[str, Session]):
    """LRU cache of sessions keyed by session id."""

    def __init__(self, capacity: int = 500, on_evict: Optional[EvictionHook] = None):
        super().__init__(capacity=capacity, on_evict=on_evict)
