"""In-process rate limit storage."""

import asyncio
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable

from admission.app.core.logging import get_logger
from admission.app.storage.base import RateLimitStorage
from admission.app.storage.models import StorageEntry

logger = get_logger(__name__)


@dataclass
class _StoredEntry:
    """Internal slot with TTL tracking."""

    entry: StorageEntry
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        if self.expires_at is None:
            return False
        return now > self.expires_at


class InMemoryStorage(RateLimitStorage):
    """In-memory storage with TTL support and an LRU bound.

    Entries are kept by reference, so whoever holds an entry returned by
    ``get`` sees later in-place updates made through the same object.
    Suitable for single-instance deployments; data is lost on restart.

    Memory optimization:
    - Uses OrderedDict for LRU cache behavior
    - Limits max entries to prevent unbounded memory growth
    - Evicts the oldest 20% of entries when the limit is exceeded
    """

    DEFAULT_MAX_ENTRIES = 10000

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory storage.

        Args:
            max_entries: Maximum number of entries to keep (LRU eviction)
            clock: Time source used for TTL expiry
        """
        super().__init__()
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._clock = clock
        self._data: OrderedDict[str, _StoredEntry] = OrderedDict()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._data)

    def _enforce_lru_limit(self) -> None:
        if len(self._data) <= self._max_entries:
            return
        remove_count = max(1, int(self._max_entries * 0.2))
        for _ in range(remove_count):
            self._data.popitem(last=False)
        logger.debug(f"Evicted {remove_count} least recently used entries")

    async def get(self, key: str) -> StorageEntry | None:
        self._validate_key(key)
        async with self._lock:
            slot = self._data.get(key)
            if slot is None:
                return None
            if slot.is_expired(self._clock()):
                del self._data[key]
                return None
            self._data.move_to_end(key)
            return slot.entry

    async def set(self, key: str, entry: StorageEntry, ttl: float | None = None) -> None:
        self._validate_key(key)
        async with self._lock:
            expires_at = self._clock() + ttl if ttl is not None and ttl > 0 else None
            self._data[key] = _StoredEntry(entry=entry, expires_at=expires_at)
            self._data.move_to_end(key)
            self._enforce_lru_limit()

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._data.pop(key, None)

    async def clear(self) -> None:
        """Remove every entry."""
        async with self._lock:
            self._data.clear()

    async def cleanup_expired(self) -> int:
        """Remove all expired entries.

        Returns:
            Number of entries removed.
        """
        async with self._lock:
            now = self._clock()
            expired_keys = [
                key for key, slot in self._data.items() if slot.is_expired(now)
            ]
            for key in expired_keys:
                del self._data[key]
            return len(expired_keys)
