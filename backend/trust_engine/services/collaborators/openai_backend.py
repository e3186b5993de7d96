"""
OpenAI-backed collaborators.

WHAT THIS DOES:
Implements the generative collaborators on top of the OpenAI API:
- OpenAIFactChecker            → fact_check(claim)              (chat, JSON mode)
- OpenAIPresentationGenerator  → generate_presentation(...)     (chat, JSON mode)
- OpenAITextExtractor          → extract_text(image)            (vision)
- OpenAIManipulationDetector   → detect_manipulation(image)     (vision, JSON mode)
- OpenAITranscriber            → transcribe(audio / video)      (speech-to-text)

These return raw model text where the engine expects free text. JSON mode
makes valid JSON likely, not guaranteed, so the engine still runs every
answer through the StructuredOutputParser.

Errors are NOT caught here. The engine's call_collaborator boundary turns
them into degraded defaults.

USAGE:
    client = AsyncOpenAI(api_key=settings.openai_api_key)
    checker = OpenAIFactChecker(client=client)
    raw = await checker.fact_check("The Great Wall is visible from space.")
"""

import base64
import json
import logging
from typing import Optional

from openai import AsyncOpenAI

from trust_engine.config import get_settings
from trust_engine.models.content import UnsupportedContentError
from trust_engine.models.schemas import ContentType
from trust_engine.services.collaborators.base import (
    BaseFactChecker,
    BaseManipulationDetector,
    BasePresentationGenerator,
    BaseTextExtractor,
    BaseTranscriber,
)

logger = logging.getLogger(__name__)


FACT_CHECK_PROMPT = """You are a professional fact-checker. Verify the claim you are given with accuracy and neutrality.

STEPS:
1. Consider what reliable, diverse sources say about the claim
2. Look for corroboration and for conflicts
3. Decide on a verdict: "True", "False", "Misleading", or "Uncertain"
4. Explain the verdict briefly, summarizing the evidence
5. Cite sources with full URLs

OUTPUT FORMAT (JSON):
{
  "verdict": "True" | "False" | "Misleading" | "Uncertain",
  "confidence": 0.0-1.0,
  "explanation": "Why you reached this verdict",
  "evidence": [
    {"source": "https://...", "title": "Page title", "snippet": "Relevant quote"}
  ]
}

If you cannot find evidence either way, answer "Uncertain"."""


PRESENTATION_PROMPT = """You are a misinformation analyst writing for a general audience.
You are given the results of an automated analysis and a list of candidate sources.

RULES:
1. Do not contradict the label or the scores; explain them
2. oneLineDescription: a single sentence, at most 160 characters
3. summary: 2-4 sentences on what was checked and what was found
4. educationalInsight: one practical tip for spotting this kind of content
5. sources: pick from the candidate sources; only add others if you are sure the URL exists

OUTPUT FORMAT (JSON):
{
  "oneLineDescription": "...",
  "summary": "...",
  "educationalInsight": "...",
  "sources": [{"url": "https://...", "title": "...", "credibility": 0.0-1.0}]
}"""


OCR_PROMPT = """Extract all readable text from this image exactly as it appears.
Return only the text, with no commentary. If there is no text, return an empty response."""


MANIPULATION_PROMPT = """You are a digital forensics analyst. Decide whether this image has been
manipulated or synthetically generated (edited regions, compositing, AI generation, deepfake faces).

Look for: inconsistent lighting and shadows, warped edges, mismatched resolution or noise,
unnatural skin, hands or text, and cloned regions.

OUTPUT FORMAT (JSON):
{
  "isManipulated": true | false,
  "confidence": 0.0-1.0,
  "explanation": "What you saw"
}

confidence is how sure you are of your isManipulated answer."""


def _client_from_settings() -> AsyncOpenAI:
    settings = get_settings()
    return AsyncOpenAI(api_key=settings.openai_api_key)


def _image_data_url(image: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(image).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


class _OpenAIAdapter:
    """Holds the AsyncOpenAI client; adapters may share one."""

    client: AsyncOpenAI

    async def close(self):
        """Close the OpenAI client."""
        await self.client.close()


class OpenAIFactChecker(_OpenAIAdapter, BaseFactChecker):
    """Fact-checks claims with a chat model in JSON mode."""

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        self.client = client or _client_from_settings()
        self.model = model or get_settings().fact_check_model

    async def fact_check(self, claim: str) -> str:
        logger.info(f"Fact-checking claim: '{claim[:60]}'")
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": FACT_CHECK_PROMPT},
                {"role": "user", "content": f"Claim: \"{claim}\""},
            ],
            response_format={"type": "json_object"},
            temperature=0.1,  # Low temperature for consistent verdicts
        )
        return response.choices[0].message.content or ""


class OpenAIPresentationGenerator(_OpenAIAdapter, BasePresentationGenerator):
    """Writes the one-liner, summary and educational insight."""

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        self.client = client or _client_from_settings()
        self.model = model or get_settings().presentation_model

    async def generate_presentation(self, signals: dict, candidate_sources: list[dict]) -> str:
        user_content = (
            f"ANALYSIS RESULTS:\n{json.dumps(signals, indent=2)}\n\n"
            f"CANDIDATE SOURCES:\n{json.dumps(candidate_sources, indent=2)}"
        )
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": PRESENTATION_PROMPT},
                {"role": "user", "content": user_content},
            ],
            response_format={"type": "json_object"},
            temperature=0.3,
        )
        return response.choices[0].message.content or ""


class OpenAITextExtractor(_OpenAIAdapter, BaseTextExtractor):
    """OCR through a vision-capable chat model."""

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        self.client = client or _client_from_settings()
        self.model = model or get_settings().vision_model

    async def extract_text(self, image: bytes, mime_type: str) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": OCR_PROMPT},
                        {"type": "image_url", "image_url": {"url": _image_data_url(image, mime_type)}},
                    ],
                },
            ],
            temperature=0.0,
        )
        text = response.choices[0].message.content or ""
        logger.info(f"OCR extracted {len(text)} chars")
        return text


class OpenAIManipulationDetector(_OpenAIAdapter, BaseManipulationDetector):
    """
    Image manipulation detection through a vision model.

    Only still images are supported; video and audio raise
    UnsupportedContentError, which the engine records as an unknown
    manipulation signal.
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        self.client = client or _client_from_settings()
        self.model = model or get_settings().vision_model

    async def detect_manipulation(self, media: bytes, content_type: ContentType, mime_type: str) -> str:
        if content_type is not ContentType.IMAGE:
            raise UnsupportedContentError(f"Manipulation detection is not available for {content_type.value}")

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": MANIPULATION_PROMPT},
                        {"type": "image_url", "image_url": {"url": _image_data_url(media, mime_type)}},
                    ],
                },
            ],
            response_format={"type": "json_object"},
            temperature=0.1,
        )
        return response.choices[0].message.content or ""


class OpenAITranscriber(_OpenAIAdapter, BaseTranscriber):
    """Speech-to-text for audio and the audio track of video files."""

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        self.client = client or _client_from_settings()
        self.model = model or get_settings().transcription_model

    async def transcribe(self, media: bytes, mime_type: str) -> str:
        extension = mime_type.split("/")[-1].split(";")[0] or "wav"
        transcription = await self.client.audio.transcriptions.create(
            model=self.model,
            file=(f"upload.{extension}", media, mime_type),
        )
        logger.info(f"Transcribed {len(media)} bytes into {len(transcription.text)} chars")
        return transcription.text
