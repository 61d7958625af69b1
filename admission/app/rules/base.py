"""Base class shared by every rate limit rule."""

import time
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Callable, Tuple

from fastapi import status

from admission.app.core.config import settings
from admission.app.core.logging import get_log_context, get_logger, hash_identity
from admission.app.exceptions import InvalidRuleConfigError
from admission.app.rules.models import EvaluationResult
from admission.app.storage.base import RateLimitStorage
from admission.app.storage.models import StorageEntry

logger = get_logger(__name__)

# Entries never live shorter than this in the backing store
MIN_ENTRY_TTL_SECONDS = 1.0


def to_seconds(value: float | timedelta, name: str) -> float:
    """Normalize a duration to positive float seconds.

    Raises:
        InvalidRuleConfigError: If the duration is not positive.
    """
    seconds = value.total_seconds() if isinstance(value, timedelta) else float(value)
    if seconds <= 0:
        raise InvalidRuleConfigError(f"{name} must be positive, got {seconds}")
    return seconds


class RateLimitRule(ABC):
    """Abstract base class for rate limit rules.

    A rule holds immutable configuration and a reference to the shared
    storage. It never caches entries between calls: every evaluation reads
    the entry, decides, and writes it back while holding the per-key lock.

    Subclasses implement ``_apply`` (the policy) and ``horizon`` (how long an
    entry stays meaningful, used to size its TTL).
    """

    def __init__(
        self,
        storage: RateLimitStorage,
        clock: Callable[[], float] = time.time,
        ttl_multiplier: float | None = None,
    ):
        """Initialize the rule.

        Args:
            storage: Storage shared with other rules
            clock: Time source returning epoch seconds
            ttl_multiplier: Entry TTL as a multiple of the rule horizon,
                defaults to settings.storage_ttl_multiplier
        """
        self._storage = storage
        self._clock = clock
        multiplier = ttl_multiplier if ttl_multiplier is not None else settings.storage_ttl_multiplier
        if multiplier <= 0:
            raise InvalidRuleConfigError("ttl_multiplier must be positive")
        self._ttl_multiplier = multiplier

    @property
    def storage(self) -> RateLimitStorage:
        return self._storage

    @property
    def rule_type(self) -> str:
        return type(self).__name__

    @property
    @abstractmethod
    def horizon(self) -> float:
        """Seconds after which an untouched entry no longer affects decisions."""
        pass

    @property
    def entry_ttl(self) -> float:
        return max(MIN_ENTRY_TTL_SECONDS, self.horizon * self._ttl_multiplier)

    def cache_key(self, identity: str) -> str:
        """Return the rule-scoped storage key for an identity.

        Hosts sharing storage with these rules must derive keys the same way.
        """
        if not identity:
            raise ValueError("Identity key must be a non-empty string")
        return f"{self.rule_type}_{identity}"

    def denial_response(self) -> int:
        """Recommended HTTP status for a denied request."""
        return status.HTTP_429_TOO_MANY_REQUESTS

    async def evaluate(self, identity: str) -> EvaluationResult:
        """Decide whether a request from identity may proceed.

        Args:
            identity: Caller identity key extracted by the host

        Returns:
            EvaluationResult with the decision and the entry consulted

        Raises:
            StorageUnavailableError: If the storage backend fails
        """
        key = self.cache_key(identity)
        async with self._storage.locked(key):
            now = self._clock()
            entry = await self._storage.get(key)
            result, changed = self._apply(entry, now)
            if changed:
                await self._storage.set(key, result.entry, ttl=self.entry_ttl)

        if not result.allowed:
            logger.info(
                "Request denied",
                extra=get_log_context(
                    rule=self.rule_type,
                    cache_key=f"{self.rule_type}_{hash_identity(identity)}",
                    retry_after=result.retry_after_seconds,
                ),
            )
        return result

    @abstractmethod
    def _apply(self, entry: StorageEntry | None, now: float) -> Tuple[EvaluationResult, bool]:
        """Apply the policy to the current entry.

        Args:
            entry: Stored entry, or None when the key has no state yet
            now: Current time in epoch seconds

        Returns:
            The evaluation result and whether its entry must be persisted
        """
        pass

    def _result(self, allowed: bool, entry: StorageEntry, retry_after: float = 0.0) -> EvaluationResult:
        return EvaluationResult(
            allowed=allowed,
            entry=entry,
            retry_after=max(0.0, retry_after) if not allowed else 0.0,
            rule=self.rule_type,
        )
