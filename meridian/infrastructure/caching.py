"""
In-memory value cache for fetched documents.

Entries are keyed by target identity and validated against the revision tag
reported by the backing store. An entry is only returned while it is younger
than the configured TTL and while its revision matches the requested one.
"""

import threading
import time
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Optional, TypeVar

from .exceptions import InvalidReferenceError


T = TypeVar('T')

Clock = Callable[[], float]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheKey:
    """Cache key: logical target identity plus store-reported revision."""
    target_id: str
    revision: str = ""

    def __post_init__(self):
        if not isinstance(self.target_id, str) or not self.target_id.strip():
            raise InvalidReferenceError("Cache key target id cannot be empty", reference=repr(self.target_id))
        if self.revision is None:
            object.__setattr__(self, 'revision', "")

    def __str__(self) -> str:
        return f"{self.target_id}|{self.revision}"


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Cache entry with insertion metadata."""
    key: CacheKey
    value: T
    inserted_at: float

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        """Check if entry is older than the TTL."""
        return (now - self.inserted_at) > ttl_seconds


@dataclass
class CacheStats:
    """Counters describing cache effectiveness."""
    hits: int = 0
    misses: int = 0
    expired: int = 0
    stale: int = 0
    evictions: int = 0


class ValueCache(Generic[T]):
    """
    Time and revision bounded in-memory cache.

    There is no single-flight coordination: concurrent misses on the same key
    each fetch independently and the last ``put`` wins. The lock only guards
    the underlying dictionary.
    """

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        max_size: int = 1000,
        clock: Optional[Clock] = None,
        name: str = "cache"
    ):
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self.name = name
        self._clock: Clock = clock or time.monotonic
        self._entries: Dict[str, CacheEntry[T]] = {}
        self._lock = threading.Lock()
        self.stats = CacheStats()

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0 and self.max_size > 0

    def get(self, key: CacheKey) -> Optional[T]:
        """
        Get a cached value.

        Returns:
            The cached value, or None on a miss (absent, expired or stale)
        """
        if not self.enabled:
            return None

        now = self._clock()
        with self._lock:
            entry = self._entries.get(key.target_id)
            if entry is None:
                self.stats.misses += 1
                return None

            if entry.is_expired(now, self.ttl_seconds):
                del self._entries[key.target_id]
                self.stats.expired += 1
                self.stats.misses += 1
                logger.debug(f"{self.name}: expired entry for {key.target_id}")
                return None

            if entry.key.revision != key.revision:
                # superseded by a newer revision in the store
                del self._entries[key.target_id]
                self.stats.stale += 1
                self.stats.misses += 1
                logger.debug(
                    f"{self.name}: revision changed for {key.target_id} "
                    f"({entry.key.revision!r} -> {key.revision!r})"
                )
                return None

            self.stats.hits += 1
            return entry.value

    def put(self, key: CacheKey, value: T) -> T:
        """Store a value, replacing any entry for the same target. Returns ``value``."""
        if not self.enabled:
            return value

        entry = CacheEntry(key=key, value=value, inserted_at=self._clock())
        with self._lock:
            self._entries.pop(key.target_id, None)
            self._entries[key.target_id] = entry
            while len(self._entries) > self.max_size:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                self.stats.evictions += 1
        return value

    def invalidate(self, target_id: str) -> bool:
        """Remove the entry of a target. Returns True if something was removed."""
        with self._lock:
            return self._entries.pop(target_id, None) is not None

    def purge_expired(self) -> int:
        """Drop all expired entries. Returns the number of removed entries."""
        now = self._clock()
        with self._lock:
            expired = [
                target_id for target_id, entry in self._entries.items()
                if entry.is_expired(now, self.ttl_seconds)
            ]
            for target_id in expired:
                del self._entries[target_id]
        if expired:
            logger.debug(f"{self.name}: purged {len(expired)} expired entries")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        with self._lock:
            entry = self._entries.get(key.target_id)
        return entry is not None and entry.key.revision == key.revision
