"""Region-aware rule delegation.

Routes each request to one of two rules based on a classification of the
caller identity. The delegator keeps no state: exactly one underlying rule is
consulted per request and its result is returned unchanged.
"""

from enum import Enum
from typing import Callable, Optional

from admission.app.core.config import settings
from admission.app.core.logging import get_logger
from admission.app.exceptions import InvalidRuleConfigError
from admission.app.rules.base import RateLimitRule
from admission.app.rules.models import EvaluationResult

logger = get_logger(__name__)


class Region(str, Enum):
    PRIMARY = "primary"
    OTHER = "other"


Classifier = Callable[[str], Region]


def token_classifier(primary_token: str) -> Classifier:
    """Build the default classifier: one designated token is primary, the rest other."""

    def classify(identity: str) -> Region:
        return Region.PRIMARY if identity == primary_token else Region.OTHER

    return classify


class RegionDelegator:
    """Compose a primary-region rule and a rule for every other caller."""

    def __init__(
        self,
        primary_rule: RateLimitRule,
        other_rule: RateLimitRule,
        classifier: Optional[Classifier] = None,
        primary_token: Optional[str] = None,
    ):
        """Initialize the delegator.

        Args:
            primary_rule: Rule applied to identities classified as primary
            other_rule: Rule applied to every other identity
            classifier: Maps an identity to a Region; defaults to matching
                primary_token
            primary_token: Identity routed to primary_rule by the default
                classifier, defaults to settings.region_primary_token

        Raises:
            InvalidRuleConfigError: If both rules would share storage slots
        """
        if (
            type(primary_rule) is type(other_rule)
            and primary_rule.storage is other_rule.storage
        ):
            raise InvalidRuleConfigError(
                f"Both region rules are {primary_rule.rule_type} on the same storage; "
                "their entries would collide"
            )
        self._rules = {Region.PRIMARY: primary_rule, Region.OTHER: other_rule}
        if classifier is None:
            classifier = token_classifier(primary_token or settings.region_primary_token)
        self._classifier = classifier

    @property
    def primary_rule(self) -> RateLimitRule:
        return self._rules[Region.PRIMARY]

    @property
    def other_rule(self) -> RateLimitRule:
        return self._rules[Region.OTHER]

    def classify(self, identity: str) -> Region:
        # Accepts plain labels from custom classifiers; unknown labels raise ValueError
        return Region(self._classifier(identity))

    def rule_for(self, identity: str) -> RateLimitRule:
        return self._rules[self.classify(identity)]

    async def evaluate(self, identity: str) -> EvaluationResult:
        rule = self.rule_for(identity)
        logger.debug(f"Delegating to {rule.rule_type}")
        return await rule.evaluate(identity)

    def denial_response(self) -> int:
        return self.primary_rule.denial_response()
