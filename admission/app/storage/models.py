"""Rate limit storage data models.

This module contains the dataclass persisted for every rule-scoped key.
"""

import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional


@dataclass
class StorageEntry:
    """State for one rule-scoped key.

    The shape is shared by every rule; the meaning of each field depends on the
    rule that owns the key:

    - count: requests admitted in the current window (fixed window)
    - tokens: remaining bucket capacity (token bucket only)
    - last_access_time: window start / last admitted request (epoch seconds)
    - last_refill_time: last refill bookkeeping instant (token bucket only)
    """
    count: int = 0
    tokens: Optional[float] = None
    last_access_time: float = field(default_factory=time.time)
    last_refill_time: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StorageEntry":
        """Build an entry from a serialized mapping, ignoring unknown fields."""
        tokens = data.get("tokens")
        return cls(
            count=int(data.get("count", 0)),
            tokens=float(tokens) if tokens is not None else None,
            last_access_time=float(data.get("last_access_time", 0.0)),
            last_refill_time=float(data.get("last_refill_time", 0.0)),
        )
