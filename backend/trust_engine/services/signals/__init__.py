# Signal collection
#
# SignalCollector fans content out to its collaborators and returns one
# settled SignalBundle per request.
from trust_engine.services.signals.collector import SignalCollector
from trust_engine.services.signals.models import SignalBundle

__all__ = [
    "SignalCollector",
    "SignalBundle",
]
