"""Admission control: per-identity rate limit rules for request gating."""

from admission.app.exceptions import (
    AdmissionException,
    InvalidRuleConfigError,
    MissingIdentityError,
    StorageUnavailableError,
)
from admission.app.rules import (
    EvaluationResult,
    FixedWindowRule,
    MinimumIntervalRule,
    RateLimitRule,
    Region,
    RegionDelegator,
    TokenBucketRule,
    build_rule,
)
from admission.app.storage import (
    InMemoryStorage,
    RateLimitStorage,
    RedisStorage,
    StorageEntry,
    create_storage,
)

__all__ = [
    "AdmissionException",
    "InvalidRuleConfigError",
    "MissingIdentityError",
    "StorageUnavailableError",
    "EvaluationResult",
    "RateLimitRule",
    "FixedWindowRule",
    "MinimumIntervalRule",
    "TokenBucketRule",
    "Region",
    "RegionDelegator",
    "build_rule",
    "StorageEntry",
    "RateLimitStorage",
    "InMemoryStorage",
    "RedisStorage",
    "create_storage",
]
