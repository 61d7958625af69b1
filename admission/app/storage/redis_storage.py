"""Redis-backed rate limit storage.

Shares rule state across host processes. Entries are stored as JSON
strings with a millisecond TTL so sub-second horizons survive. The per-key
critical section is a Redis lock, so hosts on different processes or
machines serialize on the server rather than on their own event loop.
"""

import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import redis
import redis.asyncio as aioredis

from admission.app.core.logging import get_logger
from admission.app.exceptions import StorageUnavailableError
from admission.app.storage.base import RateLimitStorage
from admission.app.storage.models import StorageEntry

logger = get_logger(__name__)

# Interval between attempts while another host holds a key lock
LOCK_RETRY_SLEEP_SECONDS = 0.005


class RedisStorage(RateLimitStorage):
    """Redis-based storage implementation.

    Example:
        >>> storage = RedisStorage(redis_url="redis://localhost:6379/0")
        >>> async with storage.locked("FixedWindowRule_abc"):
        ...     await storage.set("FixedWindowRule_abc", StorageEntry(), ttl=120)
    """

    def __init__(
        self,
        redis_client: Optional[Any] = None,
        redis_url: str = "redis://localhost:6379/0",
        key_prefix: str = "",
        lock_timeout: float = 5.0,
        lock_blocking_timeout: float = 5.0,
    ) -> None:
        """Initialize Redis storage.

        Args:
            redis_client: Optional Redis client instance
            redis_url: Redis connection URL, used when no client is given
            key_prefix: Namespace prepended to every storage key
            lock_timeout: Seconds after which a key lock left by a dead
                holder expires on the server
            lock_blocking_timeout: Seconds to wait for a key lock before
                giving up
        """
        super().__init__()
        self._redis = redis_client
        self._redis_url = redis_url
        self._key_prefix = key_prefix
        self._lock_timeout = lock_timeout
        self._lock_blocking_timeout = lock_blocking_timeout

    def _get_client(self) -> Any:
        if self._redis is None:
            self._redis = aioredis.from_url(self._redis_url, decode_responses=True)
        return self._redis

    def _full_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    def _lock_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}:lock"

    async def get(self, key: str) -> StorageEntry | None:
        self._validate_key(key)
        try:
            raw = await self._get_client().get(self._full_key(key))
        except redis.RedisError as e:
            logger.error(f"Redis read failed: {e}")
            raise StorageUnavailableError("get", key) from e

        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            return StorageEntry.from_dict(data)
        except (ValueError, TypeError) as e:
            # A corrupt slot is treated like an absent one; the next set repairs it.
            logger.warning(f"Discarding unreadable rate limit entry: {e}")
            return None

    async def set(self, key: str, entry: StorageEntry, ttl: float | None = None) -> None:
        self._validate_key(key)
        payload = json.dumps(entry.to_dict())
        px = max(1, int(ttl * 1000)) if ttl is not None and ttl > 0 else None
        try:
            await self._get_client().set(self._full_key(key), payload, px=px)
        except redis.RedisError as e:
            logger.error(f"Redis write failed: {e}")
            raise StorageUnavailableError("set", key) from e

    async def delete(self, key: str) -> None:
        try:
            await self._get_client().delete(self._full_key(key))
        except redis.RedisError as e:
            logger.error(f"Redis delete failed: {e}")
            raise StorageUnavailableError("delete", key) from e

    @asynccontextmanager
    async def locked(self, key: str) -> AsyncIterator[None]:
        # Tasks of this process queue locally first, so only one of them
        # polls the server lock at a time.
        async with super().locked(key):
            lock = self._get_client().lock(
                self._lock_key(key),
                timeout=self._lock_timeout,
                sleep=LOCK_RETRY_SLEEP_SECONDS,
                blocking_timeout=self._lock_blocking_timeout,
            )
            try:
                acquired = await lock.acquire()
            except redis.RedisError as e:
                logger.error(f"Redis lock failed: {e}")
                raise StorageUnavailableError("lock", key) from e
            if not acquired:
                logger.error("Timed out waiting for Redis key lock")
                raise StorageUnavailableError(
                    "lock", key, detail="Rate limit storage lock not acquired in time"
                )

            try:
                yield
            except BaseException:
                await self._release(lock, key, raise_errors=False)
                raise
            await self._release(lock, key, raise_errors=True)

    async def _release(self, lock: Any, key: str, raise_errors: bool) -> None:
        try:
            await lock.release()
        except redis.RedisError as e:
            # LockNotOwnedError here means the section outlived lock_timeout
            logger.error(f"Redis lock release failed: {e}")
            if raise_errors:
                raise StorageUnavailableError("unlock", key) from e

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
