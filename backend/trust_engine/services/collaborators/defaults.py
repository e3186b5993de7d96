"""
Default collaborator wiring.

Builds the production Collaborators bundle: one shared AsyncOpenAI client
for every generative collaborator, Google Custom Search for grounding and
httpx for URL inspection. No event labeler is configured by default.
"""

import logging
from typing import Optional

from openai import AsyncOpenAI

from trust_engine.config import Settings, get_settings
from trust_engine.services.collaborators.base import Collaborators
from trust_engine.services.collaborators.openai_backend import (
    OpenAIFactChecker,
    OpenAIManipulationDetector,
    OpenAIPresentationGenerator,
    OpenAITextExtractor,
    OpenAITranscriber,
)
from trust_engine.services.collaborators.url_inspector import HttpUrlInspector
from trust_engine.services.collaborators.web_search import GoogleSearchGrounder

logger = logging.getLogger(__name__)


def build_default_collaborators(settings: Optional[Settings] = None) -> Collaborators:
    """
    Wire the default adapters from settings.

    Example:
        collaborators = build_default_collaborators()
        result = await analyze_content("text", {"text": "..."}, collaborators)
    """
    settings = settings or get_settings()
    client = AsyncOpenAI(
        api_key=settings.openai_api_key,
        timeout=settings.collaborator_timeout_seconds,
    )

    if not settings.google_search_api_key or not settings.google_search_engine_id:
        logger.warning("Google Custom Search is not configured; web grounding is disabled")

    return Collaborators(
        fact_checker=OpenAIFactChecker(client=client, model=settings.fact_check_model),
        web_grounder=GoogleSearchGrounder(
            api_key=settings.google_search_api_key,
            engine_id=settings.google_search_engine_id,
            max_results=settings.web_search_max_results,
        ),
        presentation_generator=OpenAIPresentationGenerator(client=client, model=settings.presentation_model),
        transcriber=OpenAITranscriber(client=client, model=settings.transcription_model),
        text_extractor=OpenAITextExtractor(client=client, model=settings.vision_model),
        manipulation_detector=OpenAIManipulationDetector(client=client, model=settings.vision_model),
        url_inspector=HttpUrlInspector(web_risk_api_key=settings.web_risk_api_key),
    )
