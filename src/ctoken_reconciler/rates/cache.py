"""TTL-based caching for oracle quotes."""

import time
from collections.abc import Hashable
from typing import Any


class CacheEntry:
    """
    Cache entry with TTL support.

    Parameters
    ----------
    value : Any
        Cached value
    ttl : float
        Time-to-live in seconds
    created_at : float | None
        Creation timestamp. Uses current time if None.

    """

    def __init__(self, value: Any, ttl: float, created_at: float | None = None) -> None:
        self.value = value
        self.ttl = ttl
        self.created_at = created_at or time.monotonic()

    def is_expired(self) -> bool:
        """
        Check if cache entry has expired.

        Returns
        -------
        bool
            True if expired, False otherwise

        """
        return (time.monotonic() - self.created_at) > self.ttl


class RateCache:
    """
    In-memory cache for oracle quotes with TTL.

    Historical quotes never change once a block is final, so they can be
    kept for a long time; keys are any hashable value such as
    ``(contract_address, block_timestamp)``.

    Parameters
    ----------
    default_ttl : float
        Default time-to-live in seconds for cache entries

    """

    def __init__(self, default_ttl: float = 24 * 3600) -> None:
        self.default_ttl = default_ttl
        self._cache: dict[Hashable, CacheEntry] = {}

    def get(self, key: Hashable) -> Any | None:
        """
        Get cached value if it exists and hasn't expired.

        Parameters
        ----------
        key : Hashable
            Cache key

        Returns
        -------
        Any | None
            Cached value if found and valid, None otherwise

        """
        entry = self._cache.get(key)

        if entry is None:
            return None

        if entry.is_expired():
            del self._cache[key]
            return None

        return entry.value

    def set(self, key: Hashable, value: Any, ttl: float | None = None) -> None:
        """
        Store value in cache with TTL.

        Parameters
        ----------
        key : Hashable
            Cache key
        value : Any
            Value to cache
        ttl : float | None
            Time-to-live in seconds. Uses default_ttl if None.

        """
        self._cache[key] = CacheEntry(value, ttl or self.default_ttl)

    def clear(self) -> None:
        """Clear all cached entries."""
        self._cache.clear()

    def cleanup_expired(self) -> int:
        """
        Remove all expired entries from cache.

        Returns
        -------
        int
            Number of entries removed

        """
        expired_keys = [key for key, entry in self._cache.items() if entry.is_expired()]
        for key in expired_keys:
            del self._cache[key]
        return len(expired_keys)

    def __len__(self) -> int:
        return len(self._cache)
