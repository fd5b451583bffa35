"""In-memory response cache.

Short-lived, capacity-bounded store for the payloads of idempotent
read-style calls. Expiry is checked on read; eviction is FIFO by insertion
order once the entry count exceeds the cap.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from hustleai.domain.interfaces.cache import CacheService
from hustleai.domain.models.common import CacheKey

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITEMS = 50
DEFAULT_TTL_SECONDS = 30.0


@dataclass
class CacheEntry:
    """Internal representation of a cache entry with expiry."""
    value: Any
    inserted_at: float
    expiry_time: float


class ResponseCache(CacheService):
    """FIFO-evicting TTL cache."""

    def __init__(
        self,
        max_items: int = DEFAULT_MAX_ITEMS,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self.max_items = max_items
        self.ttl = ttl
        self._clock = clock
        logger.info(f"ResponseCache initialized (ttl={ttl}s, max={max_items})")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def _evict_overflow(self) -> None:
        # Dicts keep insertion order, so the first key is the oldest insert
        while len(self._entries) > self.max_items:
            oldest_key = next(iter(self._entries))
            del self._entries[oldest_key]
            logger.debug(f"Evicted oldest cache entry: {oldest_key}")

    def get(self, key: CacheKey) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            logger.debug(f"Cache miss for key: {key}")
            return None
        if self._clock() >= entry.expiry_time:
            logger.debug(f"Cache entry expired for key: {key}")
            del self._entries[key]
            return None
        logger.debug(f"Cache hit for key: {key}")
        return entry.value

    def set(self, key: CacheKey, value: Any, ttl: Optional[float] = None) -> None:
        """Stores a payload, replacing any entry under the same key.

        A replaced entry moves to the back of the eviction order.
        """
        now = self._clock()
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(
            value=value,
            inserted_at=now,
            expiry_time=now + (ttl if ttl is not None else self.ttl),
        )
        self._evict_overflow()
        logger.debug(f"Stored item in cache: key={key}")

    def delete(self, key: CacheKey) -> None:
        if self._entries.pop(key, None) is not None:
            logger.debug(f"Deleted item from cache: key={key}")

    def clear(self) -> None:
        self._entries.clear()
        logger.info("Cleared response cache.")
