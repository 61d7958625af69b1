"""Fixed window request-count rule."""

import time
from datetime import timedelta
from typing import Callable, Tuple

from admission.app.exceptions import InvalidRuleConfigError
from admission.app.rules.base import RateLimitRule, to_seconds
from admission.app.rules.models import EvaluationResult
from admission.app.storage.base import RateLimitStorage
from admission.app.storage.models import StorageEntry


class FixedWindowRule(RateLimitRule):
    """Admit at most ``max_requests`` per window.

    The window starts at the first request and resets completely once it has
    elapsed; leftover time is not carried over (no sliding).
    """

    def __init__(
        self,
        storage: RateLimitStorage,
        max_requests: int,
        window: float | timedelta,
        clock: Callable[[], float] = time.time,
        ttl_multiplier: float | None = None,
    ):
        """Initialize the rule.

        Args:
            storage: Storage shared with other rules
            max_requests: Requests admitted per window
            window: Window length in seconds or as a timedelta
            clock: Time source returning epoch seconds
            ttl_multiplier: Entry TTL as a multiple of the window
        """
        super().__init__(storage, clock=clock, ttl_multiplier=ttl_multiplier)
        if isinstance(max_requests, bool) or int(max_requests) != max_requests or max_requests < 1:
            raise InvalidRuleConfigError(f"max_requests must be a positive integer, got {max_requests}")
        self._max_requests = int(max_requests)
        self._window = to_seconds(window, "window")

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window(self) -> float:
        return self._window

    @property
    def horizon(self) -> float:
        return self._window

    def _apply(self, entry: StorageEntry | None, now: float) -> Tuple[EvaluationResult, bool]:
        if entry is None:
            entry = StorageEntry(count=0, last_access_time=now, last_refill_time=now)

        if now - entry.last_access_time >= self._window:
            entry.count = 0
            entry.last_access_time = now

        if entry.count >= self._max_requests:
            elapsed = now - entry.last_access_time
            return self._result(False, entry, self._window - elapsed), False

        entry.count += 1
        return self._result(True, entry), True
