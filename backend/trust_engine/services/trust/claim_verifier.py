"""
Claim Verifier Service.

WHAT THIS DOES:
Resolves each extracted claim to a verdict (VERIFIED / DISPUTED / UNVERIFIED)
and a confidence, by asking the fact-check collaborator and parsing its
free-text answer.

VERDICT MAPPING:
    fact-checker says    →  Verdict       default confidence
    "True"               →  VERIFIED      0.7
    "False"              →  DISPUTED      0.7
    "Misleading"         →  UNVERIFIED    0.7
    "Uncertain"          →  UNVERIFIED    0.3
A confidence reported by the fact-checker replaces the default (clamped).

FAILURE HANDLING:
If the fact-checker raises, times out, or returns text the parser can only
answer with its declared default, the claim resolves to UNVERIFIED with
confidence 0.3. A failure is never treated as VERIFIED, and one claim's
failure never affects its siblings.

USAGE:
    verifier = ClaimVerifier(fact_checker)
    claims = await verifier.verify_all(["The Eiffel Tower is 330 metres tall."])
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from trust_engine.models.schemas import (
    Claim,
    FactCheckPayload,
    FactCheckVerdict,
    Source,
    Verdict,
)
from trust_engine.services.collaborators.base import BaseFactChecker, call_collaborator
from trust_engine.services.structured_output import (
    ParseStage,
    StructuredOutputParser,
    truncate_at_sentence,
)

logger = logging.getLogger(__name__)

# Fixed low-confidence default for anything we could not verify
UNVERIFIED_CONFIDENCE = 0.3

# Default confidence when the fact-checker reached a decision but gave no number
DECIDED_CONFIDENCE = 0.7

# Credibility assigned to evidence cited by the fact-checker
EVIDENCE_CREDIBILITY = 0.8

# Heuristic explanations are cut to this length at a sentence boundary
HEURISTIC_EXPLANATION_CHARS = 300

_VERDICT_MAP = {
    FactCheckVerdict.TRUE: Verdict.VERIFIED,
    FactCheckVerdict.FALSE: Verdict.DISPUTED,
    FactCheckVerdict.MISLEADING: Verdict.UNVERIFIED,
    FactCheckVerdict.UNCERTAIN: Verdict.UNVERIFIED,
}

# Keyword classes for the heuristic stage, checked in this order.
# Disputing language wins over hedging, hedging wins over confirming.
_HEURISTIC_KEYWORDS = (
    (FactCheckVerdict.FALSE, ("false", "incorrect", "inaccurate", "debunked", "fabricated", "not true", "untrue")),
    (FactCheckVerdict.MISLEADING, ("misleading", "partially", "out of context", "exaggerated")),
    (FactCheckVerdict.UNCERTAIN, ("uncertain", "unverified", "unclear", "insufficient", "cannot be verified")),
    (FactCheckVerdict.TRUE, ("true", "accurate", "correct", "confirmed", "verified")),
)

_URL = re.compile(r"https?://[^\s\"'<>)\]]+")


def heuristic_fact_check(raw: str) -> Optional[FactCheckPayload]:
    """
    Keyword-based fallback when the fact-checker's answer isn't JSON.

    Looks for verdict words in fixed precedence (first class that matches
    wins) and keeps a sentence-trimmed explanation and any URLs mentioned.
    """
    lowered = raw.lower()
    for verdict, keywords in _HEURISTIC_KEYWORDS:
        if any(re.search(rf"\b{re.escape(keyword)}\b", lowered) for keyword in keywords):
            evidence = [{"source": url.rstrip(".,;")} for url in dict.fromkeys(_URL.findall(raw))]
            return FactCheckPayload(
                verdict=verdict,
                explanation=truncate_at_sentence(raw, HEURISTIC_EXPLANATION_CHARS),
                evidence=evidence,
            )
    return None


@dataclass(frozen=True)
class VerifiedClaim:
    """A verified claim plus the evidence sources the fact-checker cited."""
    claim: Claim
    evidence: list[Source] = field(default_factory=list)
    explanation: str = ""
    degraded: bool = False


def unverified_claim(text: str, explanation: str = "Unable to verify") -> VerifiedClaim:
    """The documented default for a claim that could not be checked."""
    return VerifiedClaim(
        claim=Claim(text=text, verdict=Verdict.UNVERIFIED, confidence=UNVERIFIED_CONFIDENCE),
        explanation=explanation,
        degraded=True,
    )


class ClaimVerifier:
    """
    Verifies claims against the fact-check collaborator.

    Pipeline position:
    Text → ClaimExtractor → [ClaimVerifier] → SignalBundle → ...
    """

    def __init__(self, fact_checker: BaseFactChecker, timeout: Optional[float] = None):
        self.fact_checker = fact_checker
        self.timeout = timeout
        self.parser = StructuredOutputParser(
            FactCheckPayload,
            heuristic=heuristic_fact_check,
            name="fact_check",
        )

    async def verify_with_evidence(self, claim: str) -> VerifiedClaim:
        """
        Verify one claim, keeping the fact-checker's cited evidence.

        Never raises.
        """
        outcome = await call_collaborator(
            "fact_check",
            self.fact_checker.fact_check(claim),
            default="",
            timeout=self.timeout,
        )
        if outcome.degraded:
            return unverified_claim(claim)

        result = self.parser.parse(outcome.value)
        if result.stage is ParseStage.DEFAULT or result.value is None:
            return unverified_claim(claim)

        payload = result.value
        verdict = _VERDICT_MAP[payload.verdict]
        if payload.confidence is not None:
            confidence = payload.confidence
        elif payload.verdict is FactCheckVerdict.UNCERTAIN:
            confidence = UNVERIFIED_CONFIDENCE
        else:
            confidence = DECIDED_CONFIDENCE

        evidence = [
            Source(
                url=item.source,
                title=item.title or item.source,
                credibility=EVIDENCE_CREDIBILITY,
            )
            for item in payload.evidence
            if item.source.startswith(("http://", "https://"))
        ]

        return VerifiedClaim(
            claim=Claim(text=claim, verdict=verdict, confidence=confidence),
            evidence=evidence,
            explanation=payload.explanation,
        )

    async def verify(self, claim: str) -> Claim:
        """
        Verify a single claim.

        Example:
            claim = await verifier.verify("Water boils at 100C at sea level.")
            # Claim(text=..., verdict=Verdict.VERIFIED, confidence=0.7)
        """
        verified = await self.verify_with_evidence(claim)
        return verified.claim

    async def verify_all_with_evidence(self, claims: list[str]) -> list[VerifiedClaim]:
        """Verify claims concurrently, preserving input order."""
        if not claims:
            return []

        results = await asyncio.gather(
            *(self.verify_with_evidence(claim) for claim in claims),
            return_exceptions=True,
        )

        verified = []
        for claim, result in zip(claims, results):
            if isinstance(result, BaseException):
                logger.error(f"Unexpected error verifying claim '{claim[:50]}': {result}")
                verified.append(unverified_claim(claim))
            else:
                verified.append(result)

        counts = {verdict: 0 for verdict in Verdict}
        for item in verified:
            counts[item.claim.verdict] += 1
        logger.info(
            f"Verified {len(verified)} claims: "
            f"{counts[Verdict.VERIFIED]} verified, "
            f"{counts[Verdict.DISPUTED]} disputed, "
            f"{counts[Verdict.UNVERIFIED]} unverified"
        )
        return verified

    async def verify_all(self, claims: list[str]) -> list[Claim]:
        """
        Verify claims concurrently and return them in input order.

        Args:
            claims: Claim strings from the ClaimExtractor

        Returns:
            One Claim per input, same order
        """
        return [item.claim for item in await self.verify_all_with_evidence(claims)]
