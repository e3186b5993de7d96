"""
Collaborator Interfaces — abstract base classes for every external analysis call.

WHAT THIS IS:
The engine never talks to a model or an HTTP API directly. It talks to
collaborators: small objects with one async method each. Concrete adapters
(OpenAI, Google Custom Search, httpx page fetch) implement these; tests pass
AsyncMock fakes.

WHY ABSTRACT CLASSES:
- Swap backends without touching the engine
- Substitute fakes in tests (no network, no API keys)
- No module-level client singletons: everything is passed in

THE BOUNDARY:
Collaborators are allowed to raise and to hang. call_collaborator() is the
single place where that is turned into a CollaboratorOutcome carrying the
documented degraded default, so nothing above the adapter boundary uses
exceptions for expected partial failure.

USAGE:
    outcome = await call_collaborator(
        "web_ground",
        collaborators.web_grounder.web_ground(query),
        default=[],
        timeout=30.0,
    )
    hits = outcome.value   # [] if the call failed
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from typing import Awaitable, Generic, Optional, TypeVar

from trust_engine.models.schemas import ContentType, PageSnapshot, UrlSafety, WebHit

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CollaboratorOutcome(Generic[T]):
    """
    Result of one collaborator call.

    value is always usable: either what the collaborator returned or the
    degraded default that replaced it.
    """
    value: T
    degraded: bool = False
    error: Optional[str] = None


async def call_collaborator(
    name: str,
    call: Awaitable[T],
    default: T,
    timeout: Optional[float] = None,
) -> CollaboratorOutcome[T]:
    """
    Await a collaborator call, converting any failure to the default.

    Args:
        name: Signal name used in logs and degraded-signal lists
        call: The awaitable returned by the collaborator method
        default: Documented neutral value used on failure
        timeout: Call-level timeout in seconds (None = no limit)

    Returns:
        CollaboratorOutcome with degraded=True if the call raised or timed out
    """
    try:
        if timeout is None:
            value = await call
        else:
            value = await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Collaborator '{name}' timed out after {timeout}s; using default")
        return CollaboratorOutcome(value=default, degraded=True, error="timeout")
    except Exception as e:
        logger.warning(f"Collaborator '{name}' failed ({type(e).__name__}: {e}); using default")
        return CollaboratorOutcome(value=default, degraded=True, error=str(e) or type(e).__name__)

    if value is None:
        logger.warning(f"Collaborator '{name}' returned nothing; using default")
        return CollaboratorOutcome(value=default, degraded=True, error="empty response")
    return CollaboratorOutcome(value=value)


# =============================================================================
# MEDIA COLLABORATORS
# =============================================================================

class BaseTranscriber(ABC):
    """Speech to text for audio and video."""

    @abstractmethod
    async def transcribe(self, media: bytes, mime_type: str) -> str:
        """Return the transcript (may be empty)."""
        pass


class BaseTextExtractor(ABC):
    """OCR for images."""

    @abstractmethod
    async def extract_text(self, image: bytes, mime_type: str) -> str:
        """Return the visible text in the image (may be empty)."""
        pass


class BaseManipulationDetector(ABC):
    """
    Manipulation / deepfake detection.

    Returns free text expected to be JSON of the form
    {"isManipulated": bool, "confidence": float, "explanation": str}.
    """

    @abstractmethod
    async def detect_manipulation(
        self,
        media: bytes,
        content_type: ContentType,
        mime_type: str,
    ) -> str:
        pass


class BaseEventLabeler(ABC):
    """Labels notable events / scenes in a video."""

    @abstractmethod
    async def label_events(self, video: bytes, mime_type: str) -> list[str]:
        pass


# =============================================================================
# TEXT COLLABORATORS
# =============================================================================

class BaseFactChecker(ABC):
    """
    Fact-checks a single claim.

    Returns free text expected to be JSON matching FactCheckPayload:
    {"verdict": "True|False|Misleading|Uncertain", "confidence": 0.8,
     "explanation": "...", "evidence": [{"source": url, ...}]}
    """

    @abstractmethod
    async def fact_check(self, claim: str) -> str:
        pass


class BaseWebGrounder(ABC):
    """Web search used to ground content in independent sources."""

    @abstractmethod
    async def web_ground(self, query: str) -> list[WebHit]:
        """
        Search the web for a query.

        Returns:
            Hits in provider rank order (relevance 0-100 when known)
        """
        pass


class BasePresentationGenerator(ABC):
    """
    Writes the human-facing text of the final result.

    Returns free text expected to be JSON matching PresentationPayload.
    """

    @abstractmethod
    async def generate_presentation(
        self,
        signals: dict,
        candidate_sources: list[dict],
    ) -> str:
        """
        Args:
            signals: Plain summary of the collected signals (label, scores, counts)
            candidate_sources: Sources the generator may cite (url/title/credibility)
        """
        pass


# =============================================================================
# URL COLLABORATORS
# =============================================================================

class BaseUrlInspector(ABC):
    """Safety lookup and page fetch for submitted URLs."""

    @abstractmethod
    async def check_safety(self, url: str) -> UrlSafety:
        pass

    @abstractmethod
    async def fetch_page(self, url: str) -> PageSnapshot:
        pass


@dataclass
class Collaborators:
    """
    Every collaborator one analysis may need, passed in explicitly.

    event_labeler is optional: without it, video has no event labels.
    """
    fact_checker: BaseFactChecker
    web_grounder: BaseWebGrounder
    presentation_generator: BasePresentationGenerator
    transcriber: BaseTranscriber
    text_extractor: BaseTextExtractor
    manipulation_detector: BaseManipulationDetector
    url_inspector: BaseUrlInspector
    event_labeler: Optional[BaseEventLabeler] = None

    async def aclose(self):
        """
        Close every collaborator that holds a client.

        Collaborators sharing one client are closed once. A failing close is
        logged and the rest still run.
        """
        closed = set()
        for field in fields(self):
            collaborator = getattr(self, field.name)
            close = getattr(collaborator, "close", None)
            resource = id(getattr(collaborator, "client", collaborator))
            if close is None or resource in closed:
                continue
            closed.add(resource)
            try:
                await close()
            except Exception as e:
                logger.warning(f"Closing collaborator '{field.name}' failed: {e}")
