"""
Presentation Assembler.

WHAT THIS DOES:
Turns SignalBundle + TrustScores + RiskLabel into the one UnifiedResult the
caller sees:
- oneLineDescription (≤160 chars, ends with "…" if clipped)
- summary and educationalInsight
- 3 to 8 unique sources
- the scores and the label, unchanged

HOW:
1. Ask the presentation generator for the text (free text → Parser)
2. If the generator failed or its output couldn't be parsed, write the
   text locally from the bundle counts instead
3. Sources = generated sources (http/https only), then bundle sources,
   de-duplicated by URL (first wins), capped at 8, padded up to 3 from
   FALLBACK_SOURCES

The scores and the label are never touched here.

USAGE:
    assembler = PresentationAssembler(collaborators.presentation_generator)
    result = await assembler.assemble(bundle, scores, label)
"""

import logging
from typing import Iterable, Optional

from trust_engine.config import Settings, get_settings
from trust_engine.models.schemas import (
    ContentType,
    PresentationPayload,
    RiskLabel,
    Source,
    TrustScores,
    UnifiedResult,
)
from trust_engine.services.collaborators.base import BasePresentationGenerator, call_collaborator
from trust_engine.services.signals.models import SignalBundle
from trust_engine.services.structured_output import StructuredOutputParser

logger = logging.getLogger(__name__)

MAX_SOURCES = 8
MIN_SOURCES = 3
ONE_LINE_MAX_CHARS = 160
ELLIPSIS = "…"

# Used to reach the source floor; established fact-checking organisations
FALLBACK_SOURCES: tuple[Source, ...] = (
    Source(url="https://www.snopes.com", title="Snopes - Fact Checking", credibility=0.95),
    Source(url="https://www.factcheck.org", title="FactCheck.org - Nonpartisan Analysis", credibility=0.93),
    Source(url="https://www.politifact.com", title="PolitiFact - Truth-O-Meter", credibility=0.91),
    Source(url="https://www.reuters.com/fact-check", title="Reuters Fact Check", credibility=0.92),
)

_HEADLINES = {
    RiskLabel.GREEN: "The claims in this {kind} were verified by independent sources.",
    RiskLabel.YELLOW: "This {kind} could not be fully verified; treat it with some caution.",
    RiskLabel.ORANGE: "This {kind} shows warning signs such as disputed claims or weak authenticity.",
    RiskLabel.RED: "This {kind} shows strong signs of manipulation or deception.",
}

_INSIGHTS = {
    RiskLabel.GREEN: (
        "Even well-supported content can be taken out of context. Check the date "
        "and the original source before sharing."
    ),
    RiskLabel.YELLOW: (
        "When a claim can't be confirmed, look for the same information from two "
        "independent, reputable outlets before relying on it."
    ),
    RiskLabel.ORANGE: (
        "Disputed claims often mix true details with false conclusions. Read past the "
        "headline and compare with established fact-checkers."
    ),
    RiskLabel.RED: (
        "Manipulated media is designed to provoke a fast reaction. Pause, look for "
        "visual or audio inconsistencies, and search for the original."
    ),
}

_CONTENT_NOUNS = {
    ContentType.TEXT: "text",
    ContentType.URL: "page",
    ContentType.IMAGE: "image",
    ContentType.VIDEO: "video",
    ContentType.AUDIO: "audio clip",
}


# =============================================================================
# HELPERS
# =============================================================================

def clip_one_line(text: str, max_chars: int = ONE_LINE_MAX_CHARS) -> str:
    """Collapse whitespace and clip to max_chars, ending with an ellipsis if clipped."""
    text = " ".join(text.split())
    if len(text) <= max_chars:
        return text
    return text[:max_chars - len(ELLIPSIS)].rstrip() + ELLIPSIS


def select_sources(*groups: Iterable[Source]) -> list[Source]:
    """
    Merge source groups in priority order.

    De-duplicates by URL (first occurrence wins), caps at MAX_SOURCES and
    pads from FALLBACK_SOURCES up to MIN_SOURCES.
    """
    selected = []
    seen = set()
    for group in groups:
        for source in group:
            if source.url in seen or len(selected) >= MAX_SOURCES:
                continue
            seen.add(source.url)
            selected.append(source)

    for fallback in FALLBACK_SOURCES:
        if len(selected) >= MIN_SOURCES:
            break
        if fallback.url not in seen:
            seen.add(fallback.url)
            selected.append(fallback)
    return selected


def _is_http_url(url: str) -> bool:
    return url.startswith(("http://", "https://"))


def describe_signals(bundle: SignalBundle, scores: TrustScores, label: RiskLabel) -> dict:
    """Plain summary of the bundle handed to the presentation generator."""
    return {
        "contentType": bundle.content_type.value,
        "label": label.value,
        "scores": scores.model_dump(by_alias=True),
        "claims": [
            {"text": claim.text, "verdict": claim.verdict.value, "confidence": round(claim.confidence, 2)}
            for claim in bundle.claims
        ],
        "manipulated": bundle.manipulated,
        "manipulationConfidence": round(bundle.manipulation_confidence, 2),
        "manipulationKnown": bundle.manipulation_known,
        "urlThreats": list(bundle.url_threats),
        "eventLabels": list(bundle.event_labels),
        "degradedSignals": list(bundle.degraded_signals),
        "notes": list(bundle.notes[:5]),
    }


def synthesize_summary(bundle: SignalBundle, label: RiskLabel) -> tuple[str, str, str]:
    """
    Local (one_line, summary, insight) built from bundle counts.

    Used when the presentation generator fails or can't be parsed.
    """
    kind = _CONTENT_NOUNS[bundle.content_type]
    one_line = _HEADLINES[label].format(kind=kind)

    if bundle.total_claims:
        parts = [
            f"We examined {bundle.total_claims} claim(s): {bundle.verified_count} verified, "
            f"{bundle.disputed_count} disputed, {bundle.unverified_count} could not be verified."
        ]
    else:
        parts = ["No checkable factual claims were found."]

    if not bundle.manipulation_known:
        parts.append("Manipulation checks were unavailable, so authenticity is unknown.")
    elif bundle.manipulated:
        parts.append(
            f"Manipulation signals were detected (confidence {bundle.manipulation_confidence:.0%})."
        )
    else:
        parts.append("No signs of manipulation were detected.")

    if bundle.url_threats:
        parts.append(f"The URL is flagged for: {', '.join(bundle.url_threats)}.")

    return one_line, " ".join(parts), _INSIGHTS[label]


def worst_case_result(reason: str) -> UnifiedResult:
    """
    The pre-defined result used when no usable analysis could be produced.

    RED, zero scores, fallback sources.
    """
    return UnifiedResult(
        label=RiskLabel.RED,
        one_line_description="We could not analyze this content, so treat it with caution.",
        summary=f"The analysis could not be completed: {reason}. No trust signals were available.",
        educational_insight=(
            "If content can't be checked, don't share it until you can confirm it "
            "through a trusted, independent source."
        ),
        sources=list(FALLBACK_SOURCES[:MIN_SOURCES]),
        scores=TrustScores(source_integrity=0, content_authenticity=0, trust_explainability=0),
    )


class PresentationAssembler:
    """
    Builds the final UnifiedResult.

    Pipeline position:
    SignalBundle + TrustScores + RiskLabel → [PresentationAssembler] → UnifiedResult
    """

    def __init__(
        self,
        generator: BasePresentationGenerator,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.generator = generator
        self.timeout = settings.collaborator_timeout_seconds
        self.parser = StructuredOutputParser(PresentationPayload, name="presentation")

    async def _generate(
        self,
        bundle: SignalBundle,
        scores: TrustScores,
        label: RiskLabel,
    ) -> Optional[PresentationPayload]:
        candidates = [source.model_dump() for source in bundle.sources[:MAX_SOURCES]]
        outcome = await call_collaborator(
            "presentation",
            self.generator.generate_presentation(describe_signals(bundle, scores, label), candidates),
            default="",
            timeout=self.timeout,
        )
        if outcome.degraded:
            return None
        result = self.parser.parse(outcome.value)
        return result.value if result.ok else None

    async def assemble(
        self,
        bundle: SignalBundle,
        scores: TrustScores,
        label: RiskLabel,
    ) -> UnifiedResult:
        """
        Build the UnifiedResult.

        Never raises for collaborator or parse failures; falls back to
        locally written text.
        """
        one_line, summary, insight = synthesize_summary(bundle, label)
        generated_sources = []

        payload = await self._generate(bundle, scores, label)
        if payload is None:
            logger.warning("Presentation generation unavailable; using local summary")
        else:
            one_line = payload.one_line_description.strip() or one_line
            summary = payload.summary.strip() or summary
            insight = payload.educational_insight.strip() or insight
            generated_sources = [
                Source(url=item.url, title=item.title or item.url, credibility=item.credibility)
                for item in payload.sources
                if _is_http_url(item.url)
            ]

        sources = select_sources(generated_sources, bundle.sources)
        logger.info(f"Assembled {label.value} result with {len(sources)} sources")

        return UnifiedResult(
            label=label,
            one_line_description=clip_one_line(one_line),
            summary=summary,
            educational_insight=insight,
            sources=sources,
            scores=scores,
        )
