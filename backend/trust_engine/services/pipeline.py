"""
Trust Pipeline — Orchestrates one full analysis.

WHAT THIS DOES:
Turns submitted content into a UnifiedResult. This is the "brain" that
ties collection, scoring, labelling and presentation together.

PIPELINE STAGES:
1. Collect: SignalCollector fans out to collaborators, returns a settled bundle
2. Score: TrustScoreCalculator (pure)
3. Label: RiskClassifier (pure, first-match rules)
4. Assemble: PresentationAssembler builds the UnifiedResult

Scoring and labelling only ever see a fully settled bundle.

FAILURE CONTRACT:
analyze never raises. If the primary signal for the content type is
unusable (e.g. audio that couldn't be transcribed), or anything unexpected
goes wrong, the caller gets the pre-defined worst-case result: RED, zero
scores, explanatory text.

USAGE:
    pipeline = TrustPipeline(collaborators)
    result = await pipeline.run(TextContent(text="..."))

    # or, from synchronous code:
    result = analyze("text", {"text": "..."}, collaborators)
"""

import asyncio
import logging
import time
from typing import Optional

from trust_engine.config import Settings, get_settings
from trust_engine.models.content import ContentVariant, build_content
from trust_engine.models.schemas import ContentType, UnifiedResult
from trust_engine.services.collaborators.base import Collaborators
from trust_engine.services.collaborators.defaults import build_default_collaborators
from trust_engine.services.presentation import PresentationAssembler, worst_case_result
from trust_engine.services.signals.collector import SignalCollector
from trust_engine.services.trust.risk_classifier import RiskClassifier
from trust_engine.services.trust.score_calculator import TrustScoreCalculator

logger = logging.getLogger(__name__)

_PRIMARY_SIGNAL_FAILURES = {
    ContentType.AUDIO: "the audio could not be transcribed",
    ContentType.VIDEO: "no signal could be extracted from the video",
    ContentType.IMAGE: "no signal could be extracted from the image",
    ContentType.URL: "the URL could not be checked or fetched",
    ContentType.TEXT: "the text could not be analyzed",
}


class TrustPipeline:
    """
    Main pipeline for trust assessment.

    Collaborators are passed in explicitly; the pipeline holds no global
    clients and no state between requests.
    """

    def __init__(self, collaborators: Collaborators, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.collector = SignalCollector(collaborators, settings)
        self.calculator = TrustScoreCalculator()
        self.classifier = RiskClassifier()
        self.assembler = PresentationAssembler(collaborators.presentation_generator, settings)

    async def run(self, content: ContentVariant) -> UnifiedResult:
        """
        Analyze one piece of content.

        Args:
            content: One of the five content variants

        Returns:
            UnifiedResult (the worst-case result on failure, never an exception)
        """
        start_time = time.time()
        try:
            bundle = await self.collector.collect(content)

            if not bundle.primary_signal_available:
                reason = _PRIMARY_SIGNAL_FAILURES[bundle.content_type]
                logger.warning(f"Primary signal unavailable: {reason}")
                return worst_case_result(reason)

            scores = self.calculator.score(bundle)
            label, rule = self.classifier.evaluate(bundle)
            logger.info(f"Label {label.value} from rule '{rule}'")

            result = await self.assembler.assemble(bundle, scores, label)
        except Exception as e:
            logger.error(f"Analysis failed ({type(e).__name__}: {e}); returning worst-case result")
            return worst_case_result("an unexpected error occurred during analysis")

        logger.info(f"Analysis complete in {time.time() - start_time:.2f}s: {result.label.value}")
        return result


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

async def analyze_content(
    content_type: str,
    payload: dict,
    collaborators: Optional[Collaborators] = None,
    settings: Optional[Settings] = None,
) -> UnifiedResult:
    """
    Analyze a (content type, payload) pair.

    Uses the default collaborators when none are given; those are closed
    before returning. Collaborators passed in are left open for the caller.

    Example:
        result = await analyze_content("url", {"url": "https://example.com"})
    """
    owns_collaborators = collaborators is None
    try:
        content = build_content(content_type, payload)
        if owns_collaborators:
            collaborators = build_default_collaborators(settings)
        pipeline = TrustPipeline(collaborators, settings)
    except Exception as e:
        logger.error(f"Could not start analysis for '{content_type}': {e}")
        if owns_collaborators and collaborators is not None:
            await collaborators.aclose()
        return worst_case_result(str(e).rstrip(".") or "the request could not be read")

    try:
        return await pipeline.run(content)
    finally:
        if owns_collaborators:
            await collaborators.aclose()


def analyze(
    content_type: str,
    payload: dict,
    collaborators: Optional[Collaborators] = None,
    settings: Optional[Settings] = None,
) -> UnifiedResult:
    """
    Synchronous entry point. Internally concurrent.

    Must not be called from inside a running event loop; use
    analyze_content there instead.

    Each call runs in its own event loop. Leave collaborators as None to get
    fresh default clients that are closed when the call returns; clients
    passed in must not be tied to a single loop.
    """
    return asyncio.run(analyze_content(content_type, payload, collaborators, settings))
