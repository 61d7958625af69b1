"""Minimum interval (single slot) rule."""

import time
from datetime import timedelta
from typing import Callable, Tuple

from admission.app.rules.base import RateLimitRule, to_seconds
from admission.app.rules.models import EvaluationResult
from admission.app.storage.base import RateLimitStorage
from admission.app.storage.models import StorageEntry


class MinimumIntervalRule(RateLimitRule):
    """Admit one request per ``interval``; only the last admission time is tracked."""

    def __init__(
        self,
        storage: RateLimitStorage,
        interval: float | timedelta,
        clock: Callable[[], float] = time.time,
        ttl_multiplier: float | None = None,
    ):
        super().__init__(storage, clock=clock, ttl_multiplier=ttl_multiplier)
        self._interval = to_seconds(interval, "interval")

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def horizon(self) -> float:
        return self._interval

    def _apply(self, entry: StorageEntry | None, now: float) -> Tuple[EvaluationResult, bool]:
        if entry is None:
            # No prior admission: behave as if the last one happened at the epoch
            entry = StorageEntry(count=0, last_access_time=0.0, last_refill_time=0.0)

        elapsed = now - entry.last_access_time
        if elapsed < self._interval:
            return self._result(False, entry, self._interval - elapsed), False

        entry.last_access_time = now
        return self._result(True, entry), True
