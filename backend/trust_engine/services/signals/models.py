"""
Signal Bundle — everything collected for one request.

Built once by the SignalCollector after every concurrent call has settled,
then read (never written) by the scorer, the classifier and the assembler.
Request scoped; never shared or persisted.
"""

from dataclasses import dataclass

from trust_engine.models.schemas import Claim, ContentType, Source, Verdict


@dataclass(frozen=True)
class SignalBundle:
    """Aggregate of all signals for one piece of content."""

    content_type: ContentType
    claims: tuple[Claim, ...] = ()

    # Manipulation / deepfake signal
    manipulated: bool = False
    manipulation_confidence: float = 0.5
    # False when the detector failed: "unknown", not "safe"
    manipulation_known: bool = True

    # How confident we are the content is authentic (0-1)
    authenticity_confidence: float = 0.5

    # De-duplicated, relevance-first
    sources: tuple[Source, ...] = ()

    # Transcript, OCR text or page text
    auxiliary_text: str = ""
    event_labels: tuple[str, ...] = ()
    url_threats: tuple[str, ...] = ()

    degraded_signals: tuple[str, ...] = ()
    primary_signal_available: bool = True

    # Reasons collected along the way (fact-check explanations, page notes)
    notes: tuple[str, ...] = ()

    # =========================================================================
    # DERIVED COUNTS
    # =========================================================================

    @property
    def total_claims(self) -> int:
        return len(self.claims)

    @property
    def verified_count(self) -> int:
        return sum(1 for claim in self.claims if claim.verdict is Verdict.VERIFIED)

    @property
    def disputed_count(self) -> int:
        return sum(1 for claim in self.claims if claim.verdict is Verdict.DISPUTED)

    @property
    def unverified_count(self) -> int:
        return sum(1 for claim in self.claims if claim.verdict is Verdict.UNVERIFIED)

    @property
    def verification_rate(self) -> float:
        return self.verified_count / max(1, self.total_claims)

    @property
    def disputed_rate(self) -> float:
        return self.disputed_count / max(1, self.total_claims)

    @property
    def average_claim_confidence(self) -> float:
        """Mean claim confidence; 0 when there are no claims."""
        if not self.claims:
            return 0.0
        return sum(claim.confidence for claim in self.claims) / len(self.claims)

    @property
    def all_claims_verified(self) -> bool:
        """True only if there is at least one claim and every claim is VERIFIED."""
        return bool(self.claims) and self.verified_count == self.total_claims

    @property
    def is_degraded(self) -> bool:
        return bool(self.degraded_signals)
