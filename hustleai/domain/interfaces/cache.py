"""Interface for the response cache.

Defines the contract for storing and retrieving responses of idempotent
read-style calls.
"""

import abc
from typing import Any, Optional

from ..models.common import CacheKey


class CacheService(abc.ABC):
    """Abstract Base Class for caching operations."""

    @abc.abstractmethod
    def get(self, key: CacheKey) -> Optional[Any]:
        """Retrieves an item if present and not expired.

        Args:
            key: The cache key to retrieve.

        Returns:
            The cached payload, or None on a miss.
        """
        pass

    @abc.abstractmethod
    def set(self, key: CacheKey, value: Any, ttl: Optional[float] = None) -> None:
        """Stores an item.

        Args:
            key: The cache key to store the item under.
            value: The payload to store.
            ttl: Time-to-live in seconds (uses the default if None).
        """
        pass

    @abc.abstractmethod
    def delete(self, key: CacheKey) -> None:
        pass

    @abc.abstractmethod
    def clear(self) -> None:
        pass
