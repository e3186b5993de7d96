"""
Shared fixtures: settings without a .env and AsyncMock collaborators.

Every collaborator is an AsyncMock specced on its abstract base class, with
a well-behaved default answer. Tests override individual return values or
side effects to simulate failures.
"""

import json

import pytest
from unittest.mock import AsyncMock

from trust_engine.config import Settings
from trust_engine.models.schemas import PageSnapshot, UrlSafety
from trust_engine.services.collaborators.base import (
    BaseEventLabeler,
    BaseFactChecker,
    BaseManipulationDetector,
    BasePresentationGenerator,
    BaseTextExtractor,
    BaseTranscriber,
    BaseUrlInspector,
    BaseWebGrounder,
    Collaborators,
)


def fact_check_json(verdict: str = "True", confidence=0.9, evidence=None, explanation: str = "Checked.") -> str:
    """Build a fact-checker answer as JSON text."""
    payload = {"verdict": verdict, "explanation": explanation, "evidence": evidence or []}
    if confidence is not None:
        payload["confidence"] = confidence
    return json.dumps(payload)


def presentation_json(**overrides) -> str:
    payload = {
        "oneLineDescription": "Generated one-liner.",
        "summary": "Generated summary.",
        "educationalInsight": "Generated insight.",
        "sources": [],
    }
    payload.update(overrides)
    return json.dumps(payload)


@pytest.fixture
def settings():
    """Settings independent of any local .env file."""
    return Settings(
        _env_file=None,
        openai_api_key="test-key",
        collaborator_timeout_seconds=1.0,
        max_claims=5,
        grounding_query_max_chars=500,
        max_reverse_queries=6,
    )


@pytest.fixture
def collaborators():
    """Collaborators that all succeed with neutral answers."""
    fact_checker = AsyncMock(spec=BaseFactChecker)
    fact_checker.fact_check.return_value = fact_check_json()

    web_grounder = AsyncMock(spec=BaseWebGrounder)
    web_grounder.web_ground.return_value = []

    presentation_generator = AsyncMock(spec=BasePresentationGenerator)
    presentation_generator.generate_presentation.return_value = presentation_json()

    transcriber = AsyncMock(spec=BaseTranscriber)
    transcriber.transcribe.return_value = ""

    text_extractor = AsyncMock(spec=BaseTextExtractor)
    text_extractor.extract_text.return_value = ""

    manipulation_detector = AsyncMock(spec=BaseManipulationDetector)
    manipulation_detector.detect_manipulation.return_value = json.dumps(
        {"isManipulated": False, "confidence": 0.9, "explanation": "No artifacts found."}
    )

    url_inspector = AsyncMock(spec=BaseUrlInspector)
    url_inspector.check_safety.return_value = UrlSafety(is_safe=True, threats=[], confidence=0.9)
    url_inspector.fetch_page.return_value = PageSnapshot(
        final_url="https://news.example.org/story",
        status=200,
        title="City council story",
        text="",
        uses_https=True,
        security_headers=["strict-transport-security", "content-security-policy"],
    )

    return Collaborators(
        fact_checker=fact_checker,
        web_grounder=web_grounder,
        presentation_generator=presentation_generator,
        transcriber=transcriber,
        text_extractor=text_extractor,
        manipulation_detector=manipulation_detector,
        url_inspector=url_inspector,
    )


@pytest.fixture
def event_labeler():
    labeler = AsyncMock(spec=BaseEventLabeler)
    labeler.label_events.return_value = ["crowd", "speech"]
    return labeler
