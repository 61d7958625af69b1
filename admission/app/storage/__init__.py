"""Rate limit storage backends."""

from admission.app.storage.base import RateLimitStorage
from admission.app.storage.factory import create_storage
from admission.app.storage.memory import InMemoryStorage
from admission.app.storage.models import StorageEntry
from admission.app.storage.redis_storage import RedisStorage

__all__ = [
    "StorageEntry",
    "RateLimitStorage",
    "InMemoryStorage",
    "RedisStorage",
    "create_storage",
]
