# Content variants and engine schemas
from trust_engine.models.content import (
    AudioContent,
    ContentVariant,
    ImageContent,
    TextContent,
    UnsupportedContentError,
    UrlContent,
    VideoContent,
    build_content,
)
from trust_engine.models.schemas import (
    Claim,
    ContentType,
    RiskLabel,
    Source,
    TrustScores,
    UnifiedResult,
    Verdict,
    WebHit,
)

__all__ = [
    "AudioContent",
    "ContentVariant",
    "ImageContent",
    "TextContent",
    "UnsupportedContentError",
    "UrlContent",
    "VideoContent",
    "build_content",
    "Claim",
    "ContentType",
    "RiskLabel",
    "Source",
    "TrustScores",
    "UnifiedResult",
    "Verdict",
    "WebHit",
]
