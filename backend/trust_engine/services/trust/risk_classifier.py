"""
Risk Label Classifier.

WHAT THIS DOES:
Maps a settled SignalBundle to one of four labels. Starts from YELLOW and
evaluates the rules below in order; the first rule that matches decides.

RULES (fixed priority):
1. manipulated AND manipulation_confidence > 0.7              → RED
2. all claims verified AND NOT manipulated                     → GREEN
   (text / audio / url additionally need authenticity > 0.7)
3. any disputed claim
   OR (manipulated AND manipulation_confidence > 0.5)
   OR authenticity_confidence < 0.5                            → ORANGE
4. otherwise                                                   → YELLOW

RED is checked before GREEN: confidently manipulated content stays RED even
when every claim in it checks out. Zero claims never count as "all
verified".

USAGE:
    label = classify_risk(bundle)
"""

import logging
from dataclasses import dataclass
from typing import Callable

from trust_engine.models.schemas import ContentType, RiskLabel
from trust_engine.services.signals.models import SignalBundle

logger = logging.getLogger(__name__)

RED_MANIPULATION_THRESHOLD = 0.7
ORANGE_MANIPULATION_THRESHOLD = 0.5
GREEN_AUTHENTICITY_THRESHOLD = 0.7
LOW_AUTHENTICITY_THRESHOLD = 0.5

# Arms whose authenticity is derived from claim verdicts
CLAIM_DERIVED_TYPES = frozenset({ContentType.TEXT, ContentType.AUDIO, ContentType.URL})


@dataclass(frozen=True)
class RiskRule:
    name: str
    label: RiskLabel
    matches: Callable[[SignalBundle], bool]


def _confident_manipulation(bundle: SignalBundle) -> bool:
    return bundle.manipulated and bundle.manipulation_confidence > RED_MANIPULATION_THRESHOLD


def _fully_verified(bundle: SignalBundle) -> bool:
    if not bundle.all_claims_verified or bundle.manipulated:
        return False
    if bundle.content_type in CLAIM_DERIVED_TYPES:
        return bundle.authenticity_confidence > GREEN_AUTHENTICITY_THRESHOLD
    return True


def _warning_signs(bundle: SignalBundle) -> bool:
    return (
        bundle.disputed_count > 0
        or (bundle.manipulated and bundle.manipulation_confidence > ORANGE_MANIPULATION_THRESHOLD)
        or bundle.authenticity_confidence < LOW_AUTHENTICITY_THRESHOLD
    )


RISK_RULES: tuple[RiskRule, ...] = (
    RiskRule("confident_manipulation", RiskLabel.RED, _confident_manipulation),
    RiskRule("fully_verified", RiskLabel.GREEN, _fully_verified),
    RiskRule("warning_signs", RiskLabel.ORANGE, _warning_signs),
)

DEFAULT_RULE = "no_decisive_signal"


class RiskClassifier:
    """
    First-match rule evaluation over a SignalBundle.

    Pipeline position:
    SignalBundle → [RiskClassifier] → RiskLabel
    """

    def __init__(self, rules: tuple[RiskRule, ...] = RISK_RULES):
        self.rules = rules

    def evaluate(self, bundle: SignalBundle) -> tuple[RiskLabel, str]:
        """Return (label, name of the rule that fired)."""
        for rule in self.rules:
            if rule.matches(bundle):
                return rule.label, rule.name
        return RiskLabel.YELLOW, DEFAULT_RULE

    def classify(self, bundle: SignalBundle) -> RiskLabel:
        label, rule = self.evaluate(bundle)
        logger.info(f"Risk label {label.value} (rule: {rule})")
        return label

    def explain(self, bundle: SignalBundle) -> str:
        """Name of the rule that decides the label, for logs and summaries."""
        return self.evaluate(bundle)[1]


def classify_risk(bundle: SignalBundle) -> RiskLabel:
    return RiskClassifier().classify(bundle)
