"""
Collaborators — every external analysis call the engine depends on.

COMPONENTS:
- Base*: abstract interfaces the engine is written against
- Collaborators: the bundle passed into collect / analyze
- call_collaborator / CollaboratorOutcome: the failure boundary
- OpenAI*, GoogleSearchGrounder, HttpUrlInspector: default adapters

USAGE:
    from trust_engine.services.collaborators import build_default_collaborators

    collaborators = build_default_collaborators()
"""

# Interfaces and the failure boundary
from trust_engine.services.collaborators.base import (
    BaseEventLabeler,
    BaseFactChecker,
    BaseManipulationDetector,
    BasePresentationGenerator,
    BaseTextExtractor,
    BaseTranscriber,
    BaseUrlInspector,
    BaseWebGrounder,
    CollaboratorOutcome,
    Collaborators,
    call_collaborator,
)

# Default adapters
from trust_engine.services.collaborators.defaults import build_default_collaborators
from trust_engine.services.collaborators.openai_backend import (
    OpenAIFactChecker,
    OpenAIManipulationDetector,
    OpenAIPresentationGenerator,
    OpenAITextExtractor,
    OpenAITranscriber,
)
from trust_engine.services.collaborators.url_inspector import HttpUrlInspector
from trust_engine.services.collaborators.web_search import GoogleSearchGrounder

__all__ = [
    # Interfaces
    "BaseEventLabeler",
    "BaseFactChecker",
    "BaseManipulationDetector",
    "BasePresentationGenerator",
    "BaseTextExtractor",
    "BaseTranscriber",
    "BaseUrlInspector",
    "BaseWebGrounder",
    # Boundary
    "CollaboratorOutcome",
    "Collaborators",
    "call_collaborator",
    # Adapters
    "build_default_collaborators",
    "OpenAIFactChecker",
    "OpenAIManipulationDetector",
    "OpenAIPresentationGenerator",
    "OpenAITextExtractor",
    "OpenAITranscriber",
    "HttpUrlInspector",
    "GoogleSearchGrounder",
]
