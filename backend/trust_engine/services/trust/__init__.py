# Trust Scoring Services
#
# Everything that turns raw content into a verdict:
# - What claims were made (ClaimExtractor)
# - Whether each claim holds up (ClaimVerifier)
# - How trustworthy the content is overall (TrustScoreCalculator)
# - Which risk label it gets (RiskClassifier)
from trust_engine.services.trust.claim_extractor import ClaimExtractor, extract_claims
from trust_engine.services.trust.claim_verifier import ClaimVerifier, VerifiedClaim
from trust_engine.services.trust.risk_classifier import RiskClassifier, classify_risk
from trust_engine.services.trust.score_calculator import (
    SCORING_PROFILES,
    TrustScoreCalculator,
    calculate_scores,
)

__all__ = [
    "ClaimExtractor",
    "extract_claims",
    "ClaimVerifier",
    "VerifiedClaim",
    "RiskClassifier",
    "classify_risk",
    "SCORING_PROFILES",
    "TrustScoreCalculator",
    "calculate_scores",
]
