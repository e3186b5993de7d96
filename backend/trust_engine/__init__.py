"""
Trust Engine — multi-signal trust assessment for text, URLs, images, video and audio.

USAGE:
    from trust_engine import analyze

    result = analyze("text", {"text": "The Eiffel Tower is 330 metres tall."})
    print(result.label, result.one_line_description)
    print(result.model_dump(by_alias=True))
"""

from trust_engine.services.pipeline import TrustPipeline, analyze, analyze_content

__all__ = [
    "TrustPipeline",
    "analyze",
    "analyze_content",
]
