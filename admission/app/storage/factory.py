"""Storage backend selection."""

from admission.app.core.config import Settings, settings as default_settings
from admission.app.core.logging import get_logger
from admission.app.storage.base import RateLimitStorage
from admission.app.storage.memory import InMemoryStorage
from admission.app.storage.redis_storage import RedisStorage

logger = get_logger(__name__)


def create_storage(
    backend: str | None = None,
    settings: Settings | None = None,
) -> RateLimitStorage:
    """Create the storage shared by every rule of one host.

    Args:
        backend: 'memory', 'redis', or None to follow settings.redis_enabled
        settings: Settings to read, defaults to the global instance

    Returns:
        A RateLimitStorage instance. Construct it once and pass it to each rule.
    """
    settings = settings or default_settings

    if backend is None:
        use_redis = settings.redis_enabled
    elif backend in ("memory", "redis"):
        use_redis = backend == "redis"
    else:
        raise ValueError(f"Unknown storage backend: {backend}")

    if use_redis:
        logger.info("Using Redis rate limit storage")
        return RedisStorage(
            redis_url=settings.redis_url,
            key_prefix=settings.redis_key_prefix,
            lock_timeout=settings.redis_lock_timeout_seconds,
            lock_blocking_timeout=settings.redis_lock_blocking_timeout_seconds,
        )

    logger.debug("Using in-memory rate limit storage")
    return InMemoryStorage(max_entries=settings.memory_storage_max_entries)
