"""Storage contract shared by every rate limit rule."""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator

from admission.app.storage.locking import KeyedLock
from admission.app.storage.models import StorageEntry


class RateLimitStorage(ABC):
    """Abstract base class for rate limit storage backends.

    Keys are opaque non-empty strings chosen by the caller. A ``set`` is
    visible to the next ``get`` on the same backend. ``get`` and ``set`` alone
    are not atomic together; a rule wraps each read-modify-write of a key in
    ``locked(key)``.

    Backends may drop an entry once its TTL passes. Rules treat a missing
    entry exactly like a freshly initialized one.
    """

    def __init__(self) -> None:
        self._keyed_lock = KeyedLock()

    @abstractmethod
    async def get(self, key: str) -> StorageEntry | None:
        """Retrieve the entry stored under key.

        Args:
            key: Rule-scoped storage key.

        Returns:
            The stored entry, or None if absent or expired.

        Raises:
            StorageUnavailableError: If the backend cannot be read.
        """
        pass

    @abstractmethod
    async def set(self, key: str, entry: StorageEntry, ttl: float | None = None) -> None:
        """Store an entry under key.

        Args:
            key: Rule-scoped storage key.
            entry: Entry to persist.
            ttl: Optional time-to-live in seconds; None keeps it until evicted.

        Raises:
            StorageUnavailableError: If the backend cannot be written.
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove the entry stored under key, if any."""
        pass

    @asynccontextmanager
    async def locked(self, key: str) -> AsyncIterator[None]:
        """Hold the critical section for key.

        Every user of this storage object that enters ``locked`` for the same
        key is serialized. Backends shared between processes extend this with
        a lock held on the backend itself.

        Raises:
            StorageUnavailableError: If a backend lock cannot be taken.
        """
        self._validate_key(key)
        async with self._keyed_lock.hold(key):
            yield

    async def close(self) -> None:
        """Release backend resources. No-op by default."""
        return None

    @staticmethod
    def _validate_key(key: str) -> None:
        if not key:
            raise ValueError("Storage key must be a non-empty string")
