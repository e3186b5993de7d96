"""
Trust Score Calculator.

WHAT THIS DOES:
Turns a settled SignalBundle into three bounded sub-scores (0-100):
- source_integrity:     how much of the content was verified, plus source count
- content_authenticity: manipulation signal minus a penalty for disputed claims
- trust_explainability: weighted blend of the two plus average claim confidence

FORMULAS:
    verification_rate   = verified / max(1, total)
    source_integrity    = round(verification_rate × 80 + min(20, sources × 5))
    content_authenticity = round(max(0, base + manipulation_confidence × boost
                                         − disputed_rate × penalty))
        where base = 20 if manipulated else 80
    trust_explainability = round(si × w1 + ca × w2 + avg_claim_confidence × 100 × w3)

The boost / penalty / weights differ per content type. They come from
SCORING_PROFILES and are kept as constants on purpose: changing any of them
changes labels users see.

EXAMPLE (text, 4/4 verified, 3 sources, not manipulated, confidence 0.8):
    source_integrity     = round(1.0 × 80 + 15) = 95
    content_authenticity = round(80 + 0.8 × 30 − 0) = 104 → clamped 100
    trust_explainability = round(95 × 0.4 + 100 × 0.4 + 80 × 0.2) = 94

Pure and deterministic: no randomness, no clock.

USAGE:
    scores = calculate_scores(bundle)
"""

import logging
import math
from dataclasses import dataclass

from trust_engine.models.schemas import ContentType, TrustScores, clamp
from trust_engine.services.signals.models import SignalBundle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringProfile:
    """Per-content-type constants for the score formulas."""
    manipulation_boost: float
    dispute_penalty: float
    integrity_weight: float
    authenticity_weight: float
    confidence_weight: float


# Claim-derived arms lean on source integrity, media arms on detection.
_CLAIM_PROFILE = ScoringProfile(
    manipulation_boost=30,
    dispute_penalty=20,
    integrity_weight=0.4,
    authenticity_weight=0.4,
    confidence_weight=0.2,
)
_MEDIA_PROFILE = ScoringProfile(
    manipulation_boost=20,
    dispute_penalty=30,
    integrity_weight=0.3,
    authenticity_weight=0.4,
    confidence_weight=0.3,
)

SCORING_PROFILES: dict[ContentType, ScoringProfile] = {
    ContentType.TEXT: _CLAIM_PROFILE,
    ContentType.URL: _CLAIM_PROFILE,
    ContentType.AUDIO: _CLAIM_PROFILE,
    ContentType.IMAGE: _MEDIA_PROFILE,
    ContentType.VIDEO: _MEDIA_PROFILE,
}

# Each source adds this much integrity, up to SOURCE_BONUS_CAP
POINTS_PER_SOURCE = 5
SOURCE_BONUS_CAP = 20


def round_half_up(value: float) -> int:
    """Round x.5 away from zero for non-negative values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def _bounded(value: float) -> int:
    return round_half_up(clamp(value, 0.0, 100.0))


class TrustScoreCalculator:
    """
    Computes TrustScores from a SignalBundle.

    Pipeline position:
    SignalCollector → SignalBundle → [TrustScoreCalculator] → TrustScores
    """

    def __init__(self, profiles: dict[ContentType, ScoringProfile] | None = None):
        self.profiles = profiles or SCORING_PROFILES

    def source_integrity(self, bundle: SignalBundle) -> int:
        source_bonus = min(SOURCE_BONUS_CAP, len(bundle.sources) * POINTS_PER_SOURCE)
        return _bounded(bundle.verification_rate * 80 + source_bonus)

    def content_authenticity(self, bundle: SignalBundle) -> int:
        profile = self.profiles[bundle.content_type]
        base = 20 if bundle.manipulated else 80
        manipulation_confidence = clamp(bundle.manipulation_confidence)
        raw = (
            base
            + manipulation_confidence * profile.manipulation_boost
            - bundle.disputed_rate * profile.dispute_penalty
        )
        return _bounded(max(0.0, raw))

    def trust_explainability(
        self,
        bundle: SignalBundle,
        source_integrity: int,
        content_authenticity: int,
    ) -> int:
        profile = self.profiles[bundle.content_type]
        average_confidence = clamp(bundle.average_claim_confidence)
        return _bounded(
            source_integrity * profile.integrity_weight
            + content_authenticity * profile.authenticity_weight
            + average_confidence * 100 * profile.confidence_weight
        )

    def score(self, bundle: SignalBundle) -> TrustScores:
        """
        Compute all three scores.

        Returns:
            TrustScores with every field an integer in [0, 100]
        """
        integrity = self.source_integrity(bundle)
        authenticity = self.content_authenticity(bundle)
        explainability = self.trust_explainability(bundle, integrity, authenticity)

        logger.info(
            f"Scores ({bundle.content_type.value}): integrity={integrity}, "
            f"authenticity={authenticity}, explainability={explainability}"
        )
        return TrustScores(
            source_integrity=integrity,
            content_authenticity=authenticity,
            trust_explainability=explainability,
        )


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

def calculate_scores(bundle: SignalBundle) -> TrustScores:
    """Score a bundle with the default profiles."""
    return TrustScoreCalculator().score(bundle)
