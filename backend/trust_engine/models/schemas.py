"""
Pydantic schemas for the trust assessment engine.

These define the shape of data that flows between the engine and its
collaborators, and the shape of the single result the engine hands back.
The UnifiedResult is the core output of the entire system.

FLOW OVERVIEW:
==============
1. Caller submits content (text, url, image, video, audio)
2. Collaborators return raw signals → WebHit[], FactCheckPayload, ...
3. Engine verifies claims → Claim[]
4. Engine scores and labels → TrustScores + RiskLabel
5. Presentation Assembler produces the UnifiedResult
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

# Used when a collaborator omits the value or sends null
DEFAULT_MANIPULATION_CONFIDENCE = 0.5
DEFAULT_SUGGESTED_CREDIBILITY = 0.8


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp a value into [low, high]."""
    return max(low, min(high, value))


def _as_unit_interval(value, default=None):
    """
    Accept 0-1 or 0-100 style confidences, returning a value in [0, 1].

    null becomes default.
    """
    if value is None:
        return default
    value = float(value)
    if value > 1.0:
        value = value / 100.0
    return clamp(value)


# =============================================================================
# ENUMS
# =============================================================================

class Verdict(str, Enum):
    """Outcome of verifying a single claim."""
    VERIFIED = "VERIFIED"
    DISPUTED = "DISPUTED"
    UNVERIFIED = "UNVERIFIED"


class ContentType(str, Enum):
    """The five kinds of content the engine accepts."""
    TEXT = "text"
    URL = "url"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


class RiskLabel(str, Enum):
    """
    Four-level risk classification.

    Totally ordered by severity: RED > ORANGE > YELLOW > GREEN.
    """
    GREEN = "GREEN"
    YELLOW = "YELLOW"
    ORANGE = "ORANGE"
    RED = "RED"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {
    RiskLabel.GREEN: 0,
    RiskLabel.YELLOW: 1,
    RiskLabel.ORANGE: 2,
    RiskLabel.RED: 3,
}


class FactCheckVerdict(str, Enum):
    """Verdict vocabulary used by the fact-check collaborator."""
    TRUE = "True"
    FALSE = "False"
    MISLEADING = "Misleading"
    UNCERTAIN = "Uncertain"


# =============================================================================
# CORE SCHEMAS
# =============================================================================
#
# WHEN USED:
# - Claim: Created by ClaimExtractor (text), completed by ClaimVerifier
# - Source: Produced by web grounding / fact-check evidence / fallback list
# - TrustScores: Computed by TrustScoreCalculator, never set directly
# - UnifiedResult: Built once per request by PresentationAssembler
#

class Claim(BaseModel):
    """
    A single extracted factual statement with its verification outcome.

    Immutable once verified. Ordering across a request follows extraction
    order, never re-sorted.
    """
    model_config = ConfigDict(frozen=True)

    text: str = Field(description="The claim text itself")
    verdict: Verdict = Field(default=Verdict.UNVERIFIED)
    confidence: float = Field(
        ge=0, le=1,
        description="Confidence in the verdict (0-1)"
    )


class Source(BaseModel):
    """A reference the user can follow to check the assessment."""
    model_config = ConfigDict(frozen=True)

    url: str
    title: str
    credibility: float = Field(ge=0, le=1, description="Source credibility (0-1)")


class WebHit(BaseModel):
    """
    A raw web-grounding hit.

    USED BY: Web grounding collaborators
    NOTE: relevance is on a 0-100 scale; None when the provider gave none.
    """
    model_config = ConfigDict(frozen=True)

    url: str
    title: str = ""
    snippet: str = ""
    relevance: float | None = None

    @field_validator("relevance")
    @classmethod
    def _clamp_relevance(cls, value):
        if value is None:
            return value
        return clamp(float(value), 0.0, 100.0)


class TrustScores(BaseModel):
    """Three bounded sub-scores, each an integer in [0, 100]."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    source_integrity: int = Field(ge=0, le=100)
    content_authenticity: int = Field(ge=0, le=100)
    trust_explainability: int = Field(ge=0, le=100)


class UnifiedResult(BaseModel):
    """
    The sole externally visible artifact of the engine.

    Constructed once per request and never mutated afterwards.
    Serialises with camelCase keys (model_dump(by_alias=True)).
    """
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    label: RiskLabel
    one_line_description: str = Field(max_length=160)
    summary: str
    educational_insight: str
    sources: list[Source] = Field(min_length=3, max_length=8)
    scores: TrustScores

    @model_validator(mode="after")
    def _sources_unique(self):
        urls = [source.url for source in self.sources]
        if len(urls) != len(set(urls)):
            raise ValueError("sources must not contain duplicate URLs")
        return self


# =============================================================================
# COLLABORATOR OUTPUT SCHEMAS
# =============================================================================
#
# Free text returned by generative collaborators is parsed into these shapes
# by the StructuredOutputParser. Keys are accepted in both camelCase and
# snake_case because model output is inconsistent about it.
#

class FactCheckEvidence(BaseModel):
    """One evidence item cited by the fact-checker."""
    source: str
    title: str = ""
    snippet: str = ""


class FactCheckPayload(BaseModel):
    """
    Structured fact-check answer.

    Example:
        {"verdict": "False", "confidence": 0.8,
         "explanation": "...", "evidence": [{"source": "https://..."}]}
    """
    model_config = ConfigDict(frozen=True)

    verdict: FactCheckVerdict
    confidence: float | None = None
    explanation: str = ""
    evidence: list[FactCheckEvidence] = Field(default_factory=list)

    @field_validator("verdict", mode="before")
    @classmethod
    def _normalize_verdict(cls, value):
        if isinstance(value, str):
            lookup = {member.value.lower(): member for member in FactCheckVerdict}
            return lookup.get(value.strip().lower(), value)
        return value

    @field_validator("confidence", mode="before")
    @classmethod
    def _normalize_confidence(cls, value):
        return _as_unit_interval(value)


class ManipulationPayload(BaseModel):
    """Structured manipulation / deepfake detection answer."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    is_manipulated: bool
    confidence: float = DEFAULT_MANIPULATION_CONFIDENCE
    explanation: str = ""

    @field_validator("confidence", mode="before")
    @classmethod
    def _normalize_confidence(cls, value):
        return _as_unit_interval(value, DEFAULT_MANIPULATION_CONFIDENCE)


class PresentationSource(BaseModel):
    """A source suggested by the presentation generator (not yet trusted)."""
    url: str
    title: str = ""
    credibility: float = DEFAULT_SUGGESTED_CREDIBILITY

    @field_validator("credibility", mode="before")
    @classmethod
    def _normalize_credibility(cls, value):
        return _as_unit_interval(value, DEFAULT_SUGGESTED_CREDIBILITY)


class PresentationPayload(BaseModel):
    """
    Presentation fields generated for the final result.

    Only the one-liner is required; a missing summary or insight is filled
    in locally by the assembler.
    """
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    one_line_description: str = Field(min_length=1)
    summary: str = ""
    educational_insight: str = ""
    sources: list[PresentationSource] = Field(default_factory=list)


# =============================================================================
# URL INSPECTION SCHEMAS
# =============================================================================

class UrlSafety(BaseModel):
    """Result of a URL threat lookup."""
    model_config = ConfigDict(frozen=True)

    is_safe: bool
    threats: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.5, ge=0, le=1)


class PageSnapshot(BaseModel):
    """What we could learn by fetching a URL."""
    model_config = ConfigDict(frozen=True)

    final_url: str = ""
    status: int = 0
    title: str = ""
    description: str = ""
    text: str = ""
    uses_https: bool = False
    security_headers: list[str] = Field(default_factory=list)
