"""Token bucket rule.

The bucket holds up to ``capacity`` tokens and gains ``refill_amount`` tokens
per ``refill_interval``. Refill is continuous: elapsed time is converted to a
fractional number of periods on every call and the refill timestamp always
moves to now, so nothing is lost between calls even when the interval is far
shorter than the clock's call spacing. Each admitted request consumes one
token.
"""

import time
from datetime import timedelta
from typing import Callable, Tuple

from admission.app.exceptions import InvalidRuleConfigError
from admission.app.rules.base import RateLimitRule, to_seconds
from admission.app.rules.models import EvaluationResult
from admission.app.storage.base import RateLimitStorage
from admission.app.storage.models import StorageEntry

# Tokens consumed by one request
REQUEST_COST = 1.0


class TokenBucketRule(RateLimitRule):
    """Burst-tolerant rule backed by a continuously refilled token bucket."""

    def __init__(
        self,
        storage: RateLimitStorage,
        capacity: float,
        refill_amount: float,
        refill_interval: float | timedelta,
        clock: Callable[[], float] = time.time,
        ttl_multiplier: float | None = None,
    ):
        """Initialize the rule.

        Args:
            storage: Storage shared with other rules
            capacity: Maximum tokens held by the bucket
            refill_amount: Tokens added per refill_interval
            refill_interval: Refill period in seconds or as a timedelta;
                sub-millisecond periods are allowed
            clock: Time source returning epoch seconds
            ttl_multiplier: Entry TTL as a multiple of the full refill time
        """
        super().__init__(storage, clock=clock, ttl_multiplier=ttl_multiplier)
        if capacity <= 0:
            raise InvalidRuleConfigError(f"capacity must be positive, got {capacity}")
        if refill_amount <= 0:
            raise InvalidRuleConfigError(f"refill_amount must be positive, got {refill_amount}")
        self._capacity = float(capacity)
        self._refill_amount = float(refill_amount)
        self._refill_interval = to_seconds(refill_interval, "refill_interval")

    @property
    def capacity(self) -> float:
        return self._capacity

    @property
    def refill_amount(self) -> float:
        return self._refill_amount

    @property
    def refill_interval(self) -> float:
        return self._refill_interval

    @property
    def horizon(self) -> float:
        # Time for an empty bucket to fill up again
        return self._capacity / self._refill_amount * self._refill_interval

    def _apply(self, entry: StorageEntry | None, now: float) -> Tuple[EvaluationResult, bool]:
        if entry is None:
            entry = StorageEntry(count=0, tokens=self._capacity, last_access_time=now, last_refill_time=now)
        if entry.tokens is None:
            entry.tokens = self._capacity

        elapsed = max(0.0, now - entry.last_refill_time)
        periods = elapsed / self._refill_interval
        entry.tokens = min(self._capacity, entry.tokens + periods * self._refill_amount)
        entry.last_refill_time = now

        if entry.tokens >= REQUEST_COST:
            entry.tokens -= REQUEST_COST
            entry.last_access_time = now
            return self._result(True, entry), True

        # Persist the refill bookkeeping even though the request is denied
        retry_after = (REQUEST_COST - entry.tokens) / self._refill_amount * self._refill_interval
        return self._result(False, entry, retry_after), True
