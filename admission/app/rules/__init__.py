"""Rate limit rules and the region delegator."""

from admission.app.rules.base import RateLimitRule
from admission.app.rules.factory import RULE_KINDS, build_rule
from admission.app.rules.fixed_window import FixedWindowRule
from admission.app.rules.minimum_interval import MinimumIntervalRule
from admission.app.rules.models import EvaluationResult
from admission.app.rules.region import Region, RegionDelegator, token_classifier
from admission.app.rules.token_bucket import TokenBucketRule

__all__ = [
    "EvaluationResult",
    "RateLimitRule",
    "FixedWindowRule",
    "MinimumIntervalRule",
    "TokenBucketRule",
    "Region",
    "RegionDelegator",
    "token_classifier",
    "RULE_KINDS",
    "build_rule",
]
