"""Bounded in-memory memoization cache with expiry after last access.

Used for every per-pattern result in the package (compiled patterns, replacement
template checks, glob translations). Entries are pure functions of their key, so
dropping one at any time only costs a recomputation.
"""

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Generic, TypeVar

from rxguard import prometheus as prom
from rxguard.utils import get_int_env


logger = logging.getLogger(__name__)

K = TypeVar('K', bound=Hashable)
V = TypeVar('V')

DEFAULT_MAX_SIZE = get_int_env('RXGUARD_CACHE_MAX_SIZE', 1000)
DEFAULT_TTL_SECONDS = get_int_env('RXGUARD_CACHE_TTL_SECONDS', 30 * 60)


@dataclass
class CacheStats:
    """Counters for one cache instance"""

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0

    def to_dict(self) -> dict:
        return {
            'hits': self.hits,
            'misses': self.misses,
            'evictions': self.evictions,
            'expirations': self.expirations,
        }


class TTLCache(Generic[K, V]):
    """
    Thread-safe LRU cache whose entries also expire a fixed time after their last access.

    Values are computed outside the lock, so two threads missing on the same key may
    both compute it; the later store wins. Callers only ever see fully built values.

    Example:
        >>> cache = TTLCache[str, int]('lengths', max_size=2, ttl_seconds=60)
        >>> cache.get_or_compute('abc', len)
        3
    """

    def __init__(
        self,
        name: str,
        max_size: int | None = None,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.max_size = max_size if max_size is not None else DEFAULT_MAX_SIZE
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else DEFAULT_TTL_SECONDS
        if self.max_size < 1:
            raise ValueError(f'max_size must be positive, got {self.max_size}')
        self._clock = clock
        # key -> (value, last access time); order is least recently used first
        self._entries: OrderedDict[K, tuple[V, float]] = OrderedDict()
        self._lock = threading.RLock()
        self.stats = CacheStats()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: K) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not self._is_expired(entry[1], self._clock())

    def _is_expired(self, accessed_at: float, now: float) -> bool:
        return self.ttl_seconds > 0 and now - accessed_at >= self.ttl_seconds

    def get(self, key: K) -> V | None:
        """Return the cached value, or None on a miss (absent or expired)."""
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is None:
                self.stats.misses += 1
                prom.record_cache_lookup(self.name, hit=False)
                return None

            value, accessed_at = entry
            if self._is_expired(accessed_at, now):
                del self._entries[key]
                self.stats.expirations += 1
                self.stats.misses += 1
                prom.record_cache_lookup(self.name, hit=False)
                return None

            self._entries[key] = (value, now)
            self._entries.move_to_end(key)
            self.stats.hits += 1
            prom.record_cache_lookup(self.name, hit=True)
            return value

    def put(self, key: K, value: V) -> None:
        with self._lock:
            now = self._clock()
            self._entries[key] = (value, now)
            self._entries.move_to_end(key)
            self._evict(now)

    def _evict(self, now: float) -> None:
        """Drop expired entries from the cold end, then trim to capacity."""
        while self._entries:
            key, (_, accessed_at) = next(iter(self._entries.items()))
            if not self._is_expired(accessed_at, now):
                break
            del self._entries[key]
            self.stats.expirations += 1

        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)
            self.stats.evictions += 1

    def get_or_compute(self, key: K, compute: Callable[[K], V]) -> V:
        """Return the cached value for ``key``, computing and storing it on a miss."""
        value = self.get(key)
        if value is not None:
            return value

        logger.debug(f'[{self.name}] cache miss, computing entry')
        value = compute(key)
        self.put(key, value)
        return value

    def clear(self) -> int:
        """Drop every entry. Returns the number of entries removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def info(self) -> dict:
        with self._lock:
            return {
                'name': self.name,
                'size': len(self._entries),
                'max_size': self.max_size,
                'ttl_seconds': self.ttl_seconds,
                **self.stats.to_dict(),
            }
