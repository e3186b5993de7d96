"""
Signal Collector Service.

WHAT THIS DOES:
Fans a piece of content out to every collaborator its content type needs,
waits for all of them to settle, and folds the results into one
SignalBundle.

SIGNALS PER CONTENT TYPE:
- text:  claims → fact-check, web grounding on the first 500 chars
- url:   safety lookup + page fetch + web grounding (parallel),
         then claims from the page text → fact-check
- image: OCR + manipulation detection (parallel),
         then claims from the OCR text → fact-check, web grounding
- video: transcription + event labels + manipulation detection (parallel),
         then claims from the transcript → fact-check, reverse-search grounding
- audio: transcription,
         then claims from the transcript → fact-check, reverse-search grounding

FAILURE HANDLING:
Every collaborator call goes through call_collaborator, so a failure
degrades that one signal to its documented default:
    web grounding          → no hits
    manipulation detection → not manipulated, confidence 0.5, flagged unknown
    transcription / OCR    → ""
    url safety             → unknown (not safe, no threats, confidence 0.5)
    page fetch             → empty snapshot
    event labels           → none
Calls inside a stage are joined wait-all (no fail-fast). The bundle is only
built after everything has settled.

USAGE:
    collector = SignalCollector(collaborators)
    bundle = await collector.collect(TextContent(text="..."))
"""

import asyncio
import logging
from typing import Iterable, Optional

from trust_engine.config import Settings, get_settings
from trust_engine.models.content import (
    AudioContent,
    ContentVariant,
    ImageContent,
    TextContent,
    UnsupportedContentError,
    UrlContent,
    VideoContent,
)
from trust_engine.models.schemas import (
    Claim,
    ContentType,
    ManipulationPayload,
    PageSnapshot,
    Source,
    UrlSafety,
    Verdict,
    WebHit,
    clamp,
)
from trust_engine.services.collaborators.base import (
    CollaboratorOutcome,
    Collaborators,
    call_collaborator,
)
from trust_engine.services.signals.models import SignalBundle
from trust_engine.services.structured_output import ParseStage, StructuredOutputParser
from trust_engine.services.trust.claim_extractor import ClaimExtractor
from trust_engine.services.trust.claim_verifier import ClaimVerifier, VerifiedClaim

logger = logging.getLogger(__name__)

# Credibility given to a plain web-search hit
WEB_HIT_CREDIBILITY = 0.7

# Reverse-search queries are built from this many claims
REVERSE_QUERY_CLAIMS = 3

UNKNOWN_SAFETY = UrlSafety(is_safe=False, threats=[], confidence=0.5)


# =============================================================================
# PURE HELPERS
# =============================================================================

def claim_authenticity(claims: Iterable[Claim]) -> tuple[bool, float]:
    """
    Authenticity derived from claim verdicts.

    Returns:
        (manipulated, confidence) where
        confidence = clamp((verified - disputed) / max(1, total) × 0.5 + 0.5)
        manipulated = disputed > verified
    """
    verdicts = [claim.verdict for claim in claims]
    verified = verdicts.count(Verdict.VERIFIED)
    disputed = verdicts.count(Verdict.DISPUTED)
    confidence = clamp((verified - disputed) / max(1, len(verdicts)) * 0.5 + 0.5)
    return disputed > verified, confidence


def verdict_confidence(manipulated: bool, authenticity: float) -> float:
    """Confidence in a claim-derived verdict: 1 - authenticity when manipulated."""
    return clamp(1.0 - authenticity) if manipulated else authenticity


def estimate_reputation(page: PageSnapshot) -> float:
    """
    Rough reputation of a fetched page from its transport signals.

    0.5 baseline, +0.2 for HTTPS, +0.05 per security header (max +0.2),
    -0.3 for an error status.
    """
    score = 0.5
    if page.uses_https:
        score += 0.2
    score += min(0.2, 0.05 * len(page.security_headers))
    if page.status >= 400:
        score -= 0.3
    return clamp(score)


def build_reverse_queries(
    claims: list[str],
    transcript: str,
    max_queries: int,
    max_chars: int,
) -> list[str]:
    """
    Search queries for spoken content: the transcript head plus the first
    three claims, de-duplicated case-insensitively.
    """
    candidates = [transcript[:max_chars]] + [claim[:max_chars] for claim in claims[:REVERSE_QUERY_CLAIMS]]
    queries = []
    seen = set()
    for query in candidates:
        query = " ".join(query.split())
        if not query or query.lower() in seen:
            continue
        seen.add(query.lower())
        queries.append(query)
    return queries[:max_queries]


def merge_sources(candidates: Iterable[tuple[Source, Optional[float]]]) -> tuple[Source, ...]:
    """
    De-duplicate sources by URL (first wins), then order relevance-first.

    Candidates without a relevance keep their insertion order after the
    ranked ones (the sort is stable).
    """
    seen = set()
    unique = []
    for source, relevance in candidates:
        if source.url in seen:
            continue
        seen.add(source.url)
        unique.append((source, relevance))
    unique.sort(key=lambda item: (item[1] is None, -(item[1] or 0.0)))
    return tuple(source for source, _ in unique)


def hits_to_candidates(hits: list[WebHit]) -> list[tuple[Source, Optional[float]]]:
    candidates = []
    for rank, hit in enumerate(hits):
        if not hit.url:
            continue
        relevance = hit.relevance if hit.relevance is not None else max(0.0, 100.0 - 10.0 * rank)
        source = Source(url=hit.url, title=hit.title or hit.url, credibility=WEB_HIT_CREDIBILITY)
        candidates.append((source, relevance))
    return candidates


class SignalCollector:
    """
    Collects every signal for one piece of content.

    Pipeline position:
    Content → [SignalCollector] → SignalBundle → scorer / classifier / assembler
    """

    def __init__(self, collaborators: Collaborators, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.collaborators = collaborators
        self.timeout = settings.collaborator_timeout_seconds
        self.grounding_query_max_chars = settings.grounding_query_max_chars
        self.max_reverse_queries = settings.max_reverse_queries
        self.extractor = ClaimExtractor(max_claims=settings.max_claims)
        self.verifier = ClaimVerifier(collaborators.fact_checker, timeout=self.timeout)
        self.manipulation_parser = StructuredOutputParser(ManipulationPayload, name="manipulation")
        self._handlers = {
            TextContent: self._collect_text,
            UrlContent: self._collect_url,
            ImageContent: self._collect_image,
            VideoContent: self._collect_video,
            AudioContent: self._collect_audio,
        }

    async def collect(self, content: ContentVariant) -> SignalBundle:
        """
        Collect all signals for the content.

        Raises:
            UnsupportedContentError: content is not one of the five variants
        """
        handler = self._handlers.get(type(content))
        if handler is None:
            raise UnsupportedContentError(f"Unsupported content variant: {type(content).__name__}")

        logger.info(f"Collecting signals for {content.content_type.value} content")
        bundle = await handler(content)
        logger.info(
            f"Signals collected: {bundle.total_claims} claims, {len(bundle.sources)} sources, "
            f"degraded={list(bundle.degraded_signals) or 'none'}"
        )
        return bundle

    # =========================================================================
    # SHARED STEPS
    # =========================================================================

    async def _call(self, name: str, call, default) -> CollaboratorOutcome:
        return await call_collaborator(name, call, default, timeout=self.timeout)

    async def _ground(self, queries: list[str]) -> tuple[list[tuple[Source, Optional[float]]], bool]:
        """
        Run web grounding for every query concurrently.

        Returns:
            (source candidates in query order, True if any query degraded)
        """
        if not queries:
            return [], False
        outcomes = await asyncio.gather(*(
            self._call("web_ground", self.collaborators.web_grounder.web_ground(query), [])
            for query in queries
        ))
        candidates = []
        for outcome in outcomes:
            candidates.extend(hits_to_candidates(list(outcome.value)))
        return candidates, any(outcome.degraded for outcome in outcomes)

    async def _verify(self, claims: list[str]) -> list[VerifiedClaim]:
        return await self.verifier.verify_all_with_evidence(claims)

    async def _detect(
        self,
        media: bytes,
        content_type: ContentType,
        mime_type: str,
    ) -> Optional[ManipulationPayload]:
        """Manipulation detection; None means unknown."""
        outcome = await self._call(
            "manipulation_detection",
            self.collaborators.manipulation_detector.detect_manipulation(media, content_type, mime_type),
            "",
        )
        if outcome.degraded:
            return None
        result = self.manipulation_parser.parse(outcome.value)
        if result.stage is ParseStage.DEFAULT:
            return None
        return result.value

    async def _claims_and_grounding(
        self,
        text: str,
    ) -> tuple[list[VerifiedClaim], list[tuple[Source, Optional[float]]], bool]:
        """Extract claims from text, then verify them and ground the text head concurrently."""
        claims = self.extractor.extract(text)
        head = " ".join(text.split())[:self.grounding_query_max_chars]
        queries = [head] if head else []
        verified, (candidates, grounding_degraded) = await asyncio.gather(
            self._verify(claims),
            self._ground(queries),
        )
        return verified, candidates, grounding_degraded

    def _bundle(
        self,
        content_type: ContentType,
        verified: list[VerifiedClaim],
        candidates: list[tuple[Source, Optional[float]]],
        degraded: list[str],
        **fields,
    ) -> SignalBundle:
        """Assemble the bundle, folding in fact-check evidence and notes."""
        evidence = [(source, None) for item in verified for source in item.evidence]
        notes = [item.explanation for item in verified if item.explanation and not item.degraded]
        notes.extend(fields.pop("notes", []))
        if any(item.degraded for item in verified):
            degraded = degraded + ["fact_check"]
        return SignalBundle(
            content_type=content_type,
            claims=tuple(item.claim for item in verified),
            sources=merge_sources(candidates + evidence),
            degraded_signals=tuple(degraded),
            notes=tuple(notes),
            **fields,
        )

    @staticmethod
    def _media_authenticity(detection: Optional[ManipulationPayload]) -> tuple[bool, float, float, bool]:
        """(manipulated, manipulation_confidence, authenticity_confidence, known)"""
        if detection is None:
            return False, 0.5, 0.5, False
        confidence = clamp(detection.confidence)
        authenticity = 1.0 - confidence if detection.is_manipulated else confidence
        return detection.is_manipulated, confidence, authenticity, True

    # =========================================================================
    # PER-ARM COLLECTION
    # =========================================================================

    async def _collect_text(self, content: TextContent) -> SignalBundle:
        text = content.text or ""
        verified, candidates, grounding_degraded = await self._claims_and_grounding(text)

        manipulated, confidence = claim_authenticity(item.claim for item in verified)
        degraded = ["web_grounding"] if grounding_degraded else []
        return self._bundle(
            ContentType.TEXT, verified, candidates, degraded,
            manipulated=manipulated,
            manipulation_confidence=verdict_confidence(manipulated, confidence),
            authenticity_confidence=confidence,
            auxiliary_text=text,
            primary_signal_available=True,
        )

    async def _collect_url(self, content: UrlContent) -> SignalBundle:
        url = content.url.strip()
        inspector = self.collaborators.url_inspector

        safety, page, (candidates, grounding_degraded) = await asyncio.gather(
            self._call("url_safety", inspector.check_safety(url), UNKNOWN_SAFETY),
            self._call("page_fetch", inspector.fetch_page(url), PageSnapshot()),
            self._ground([url] if url else []),
        )

        snapshot = page.value
        page_text = " ".join(part for part in (snapshot.title, snapshot.description, snapshot.text) if part)
        claims = self.extractor.extract(page_text)
        verified = await self._verify(claims)

        claims_manipulated, claim_confidence = claim_authenticity(item.claim for item in verified)
        threats = list(safety.value.threats)
        flagged = not safety.value.is_safe and bool(threats)
        authenticity = claim_confidence
        notes = []
        if not page.degraded:
            reputation = estimate_reputation(snapshot)
            authenticity = (claim_confidence + reputation) / 2
            notes.append(f"Page reputation estimated at {reputation:.2f}")
        if flagged:
            authenticity = min(authenticity, 1.0 - safety.value.confidence)
            notes.append(f"URL flagged for: {', '.join(threats)}")

        # Threat verdict first, then the page's own claims
        manipulated = flagged or claims_manipulated
        if flagged:
            manipulation_confidence = safety.value.confidence
        elif claims_manipulated:
            manipulation_confidence = verdict_confidence(True, claim_confidence)
        else:
            manipulation_confidence = clamp(authenticity)

        degraded = [
            name for name, failed in (
                ("url_safety", safety.degraded),
                ("page_fetch", page.degraded),
                ("web_grounding", grounding_degraded),
            ) if failed
        ]
        primary = not (safety.degraded and page.degraded and grounding_degraded)
        return self._bundle(
            ContentType.URL, verified, candidates, degraded,
            manipulated=manipulated,
            manipulation_confidence=manipulation_confidence,
            manipulation_known=not safety.degraded or claims_manipulated,
            authenticity_confidence=clamp(authenticity),
            auxiliary_text=page_text,
            url_threats=tuple(threats),
            primary_signal_available=primary,
            notes=notes,
        )

    async def _collect_image(self, content: ImageContent) -> SignalBundle:
        ocr, detection = await asyncio.gather(
            self._call("ocr", self.collaborators.text_extractor.extract_text(content.data, content.mime_type), ""),
            self._detect(content.data, ContentType.IMAGE, content.mime_type),
        )
        text = ocr.value.strip()
        verified, candidates, grounding_degraded = await self._claims_and_grounding(text)

        manipulated, confidence, authenticity, known = self._media_authenticity(detection)
        degraded = [
            name for name, failed in (
                ("ocr", ocr.degraded),
                ("manipulation_detection", not known),
                ("web_grounding", grounding_degraded),
            ) if failed
        ]
        notes = [detection.explanation] if detection is not None and detection.explanation else []
        return self._bundle(
            ContentType.IMAGE, verified, candidates, degraded,
            manipulated=manipulated,
            manipulation_confidence=confidence,
            manipulation_known=known,
            authenticity_confidence=authenticity,
            auxiliary_text=text,
            primary_signal_available=not ocr.degraded or known,
            notes=notes,
        )

    async def _collect_video(self, content: VideoContent) -> SignalBundle:
        labeler = self.collaborators.event_labeler
        if labeler is not None:
            events_call = self._call("event_labels", labeler.label_events(content.data, content.mime_type), [])
        else:
            events_call = _absent([])

        transcript, events, detection = await asyncio.gather(
            self._call("transcription", self.collaborators.transcriber.transcribe(content.data, content.mime_type), ""),
            events_call,
            self._detect(content.data, ContentType.VIDEO, content.mime_type),
        )
        text = transcript.value.strip()
        verified, candidates, grounding_degraded = await self._spoken_claims(text)

        manipulated, confidence, authenticity, known = self._media_authenticity(detection)
        degraded = [
            name for name, failed in (
                ("transcription", transcript.degraded),
                ("event_labels", events.degraded),
                ("manipulation_detection", not known),
                ("web_grounding", grounding_degraded),
            ) if failed
        ]
        labels_available = labeler is not None and not events.degraded
        notes = [detection.explanation] if detection is not None and detection.explanation else []
        return self._bundle(
            ContentType.VIDEO, verified, candidates, degraded,
            manipulated=manipulated,
            manipulation_confidence=confidence,
            manipulation_known=known,
            authenticity_confidence=authenticity,
            auxiliary_text=text,
            event_labels=tuple(str(label) for label in events.value),
            primary_signal_available=not transcript.degraded or labels_available or known,
            notes=notes,
        )

    async def _collect_audio(self, content: AudioContent) -> SignalBundle:
        transcript = await self._call(
            "transcription",
            self.collaborators.transcriber.transcribe(content.data, content.mime_type),
            "",
        )
        text = transcript.value.strip()
        verified, candidates, grounding_degraded = await self._spoken_claims(text)

        manipulated, confidence = claim_authenticity(item.claim for item in verified)
        degraded = [
            name for name, failed in (
                ("transcription", transcript.degraded),
                ("web_grounding", grounding_degraded),
            ) if failed
        ]
        return self._bundle(
            ContentType.AUDIO, verified, candidates, degraded,
            manipulated=manipulated,
            manipulation_confidence=verdict_confidence(manipulated, confidence),
            authenticity_confidence=confidence,
            auxiliary_text=text,
            primary_signal_available=bool(text),
        )

    async def _spoken_claims(self, transcript: str):
        """Claims plus reverse-search grounding for a transcript."""
        if not transcript:
            return [], [], False
        claims = self.extractor.extract(transcript)
        queries = build_reverse_queries(
            claims,
            transcript,
            max_queries=self.max_reverse_queries,
            max_chars=self.grounding_query_max_chars,
        )
        verified, (candidates, grounding_degraded) = await asyncio.gather(
            self._verify(claims),
            self._ground(queries),
        )
        return verified, candidates, grounding_degraded


async def _absent(value) -> CollaboratorOutcome:
    """Outcome for an optional collaborator that isn't configured."""
    return CollaboratorOutcome(value=value)
