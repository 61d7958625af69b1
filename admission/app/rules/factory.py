"""Build rules from settings."""

from admission.app.core.config import Settings, settings as default_settings
from admission.app.rules.base import RateLimitRule
from admission.app.rules.fixed_window import FixedWindowRule
from admission.app.rules.minimum_interval import MinimumIntervalRule
from admission.app.rules.token_bucket import TokenBucketRule
from admission.app.storage.base import RateLimitStorage

RULE_KINDS = ("fixed_window", "minimum_interval", "token_bucket")


def build_rule(
    kind: str,
    storage: RateLimitStorage,
    settings: Settings | None = None,
) -> RateLimitRule:
    """Construct a rule of the given kind from configured defaults.

    Args:
        kind: One of RULE_KINDS
        storage: Storage shared with other rules
        settings: Settings to read, defaults to the global instance

    Raises:
        ValueError: If kind is unknown
    """
    settings = settings or default_settings
    ttl_multiplier = settings.storage_ttl_multiplier

    if kind == "fixed_window":
        return FixedWindowRule(
            storage,
            max_requests=settings.rate_limit_max_requests,
            window=settings.rate_limit_window_seconds,
            ttl_multiplier=ttl_multiplier,
        )
    if kind == "minimum_interval":
        return MinimumIntervalRule(
            storage,
            interval=settings.min_interval_seconds,
            ttl_multiplier=ttl_multiplier,
        )
    if kind == "token_bucket":
        return TokenBucketRule(
            storage,
            capacity=settings.token_bucket_capacity,
            refill_amount=settings.token_bucket_refill_amount,
            refill_interval=settings.token_bucket_refill_interval_seconds,
            ttl_multiplier=ttl_multiplier,
        )
    raise ValueError(f"Unknown rule kind: {kind} (expected one of {', '.join(RULE_KINDS)})")
