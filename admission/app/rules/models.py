"""Rule evaluation data models."""

import math
from dataclasses import dataclass

from admission.app.storage.models import StorageEntry


@dataclass
class EvaluationResult:
    """Outcome of one rule evaluation.

    A denial is an expected outcome, not an error: it is reported here with
    ``allowed=False`` and an advisory ``retry_after`` in seconds.
    """
    allowed: bool
    entry: StorageEntry
    retry_after: float = 0.0
    rule: str | None = None

    @property
    def retry_after_seconds(self) -> int:
        """Retry delay rendered for a Retry-After header (whole seconds, rounded up)."""
        if self.allowed:
            return 0
        if self.retry_after <= 0:
            return 0
        # Round away float noise first so 60.0000000001 stays 60; any real
        # wait still reports at least one second
        return max(1, math.ceil(round(self.retry_after, 9)))
