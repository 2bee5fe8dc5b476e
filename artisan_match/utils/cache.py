"""
Bounded in-memory caches for embeddings and search results.

Both caches are owned by the component that constructs them, so tests can
build isolated instances. All mutation happens under a lock.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import Any, Callable, Generic, Hashable, Optional, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass
class CacheStats:
    """Point-in-time cache statistics."""

    size: int
    max_size: int
    hits: int
    misses: int
    evictions: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["hit_rate"] = round(self.hit_rate, 4)
        return data


class LRUCache(Generic[K, V]):
    """
    Strict least-recently-used cache with a maximum entry count.

    A get() counts as a use. Inserting a new key at capacity evicts the
    least-recently-used entry first, so len() never exceeds max_size.
    """

    def __init__(self, max_size: int):
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self.max_size = max_size
        self._data: OrderedDict[K, V] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: K) -> Optional[V]:
        with self._lock:
            if key not in self._data:
                self._misses += 1
                return None
            self._data.move_to_end(key)
            self._hits += 1
            return self._data[key]

    def put(self, key: K, value: V) -> None:
        with self._lock:
            if key in self._data:
                self._data.move_to_end(key)
                self._data[key] = value
                return

            if len(self._data) >= self.max_size:
                self._data.popitem(last=False)
                self._evictions += 1
            self._data[key] = value

    def __contains__(self, key: object) -> bool:
        # Membership checks do not touch recency or statistics
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def keys(self) -> list[K]:
        """Keys from least to most recently used."""
        with self._lock:
            return list(self._data.keys())

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._data),
                max_size=self.max_size,
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
            )


class TTLCache(LRUCache[K, V]):
    """LRU cache whose entries also expire ttl_seconds after insertion."""

    def __init__(
        self,
        max_size: int,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(max_size)
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._inserted_at: dict[K, float] = {}

    def get(self, key: K) -> Optional[V]:
        with self._lock:
            if key not in self._data:
                self._misses += 1
                return None

            if self._clock() - self._inserted_at[key] > self.ttl_seconds:
                del self._data[key]
                del self._inserted_at[key]
                self._misses += 1
                self._evictions += 1
                return None

            self._data.move_to_end(key)
            self._hits += 1
            return self._data[key]

    def put(self, key: K, value: V) -> None:
        with self._lock:
            if key in self._data:
                self._data.move_to_end(key)
            elif len(self._data) >= self.max_size:
                evicted, _ = self._data.popitem(last=False)
                self._inserted_at.pop(evicted, None)
                self._evictions += 1
            self._data[key] = value
            self._inserted_at[key] = self._clock()

    def clear(self) -> None:
        with self._lock:
            self._inserted_at.clear()
        super().clear()
