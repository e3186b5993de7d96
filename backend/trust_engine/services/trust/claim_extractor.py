"""
Claim Extractor Service.

WHAT THIS DOES:
Breaks a block of text (an article, a transcript, OCR output) into a short
list of sentences that look like checkable factual claims.
This is the first step of every claim-derived signal.

WHY THIS MATTERS:
You can't fact-check a paragraph — you fact-check individual statements.
Keeping the list short (max 5) bounds the number of fact-check calls per
request, which is where most of the latency and cost goes.

HOW IT DECIDES:
A sentence is kept if it is longer than 20 characters and contains a
fact-bearing marker:
- copulas: is / are / was / were / has / have
- reporting verbs: claim(s) / report(s) / according to / said / states
- quantities: percent, %, four-digit years, numbers

EXAMPLE:
    Text: "Wow. The Eiffel Tower is 330 metres tall. It was finished in 1889!"

    Extracted claims:
    1. "The Eiffel Tower is 330 metres tall."
    2. "It was finished in 1889!"

This is deterministic and involves no model call.

USAGE:
    extractor = ClaimExtractor()
    claims = extractor.extract(text)
"""

import logging
import re

logger = logging.getLogger(__name__)

DEFAULT_MAX_CLAIMS = 5

# Shorter input can't hold a factual statement worth checking
MIN_TEXT_CHARS = 10

# Sentences must be strictly longer than this
MIN_SENTENCE_CHARS = 20

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")

_FACT_MARKERS = re.compile(
    r"\b(?:is|are|was|were|has|have)\b"
    r"|\b(?:claims?|reports?|said|states)\b"
    r"|\baccording to\b"
    r"|\bpercent\b|%"
    r"|\b\d{4}\b"
    r"|\d",
    re.IGNORECASE,
)


def split_sentences(text: str) -> list[str]:
    """Collapse whitespace and split on '.', '!' or '?' followed by whitespace."""
    collapsed = " ".join(text.split())
    if not collapsed:
        return []
    return [s.strip() for s in _SENTENCE_BOUNDARY.split(collapsed) if s.strip()]


def is_fact_bearing(sentence: str) -> bool:
    """True if the sentence is long enough and carries a fact-bearing marker."""
    return len(sentence) > MIN_SENTENCE_CHARS and bool(_FACT_MARKERS.search(sentence))


class ClaimExtractor:
    """
    Extracts candidate factual claims from free text.

    Pipeline position:
    Text → [ClaimExtractor] → claim strings → ClaimVerifier → ...
    """

    def __init__(self, max_claims: int = DEFAULT_MAX_CLAIMS):
        self.max_claims = max(0, max_claims)

    def extract(self, text: str | None) -> list[str]:
        """
        Extract up to max_claims fact-bearing sentences, in order of appearance.

        Args:
            text: Any free text (may be empty)

        Returns:
            De-duplicated claim strings. Empty for short or empty text.
        """
        if not text or len(text.strip()) < MIN_TEXT_CHARS:
            return []

        claims = []
        seen = set()
        for sentence in split_sentences(text):
            if sentence in seen or not is_fact_bearing(sentence):
                continue
            seen.add(sentence)
            claims.append(sentence)
            if len(claims) >= self.max_claims:
                break

        logger.info(f"Extracted {len(claims)} claims from text ({len(text)} chars)")
        return claims


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

def extract_claims(text: str | None, max_claims: int = DEFAULT_MAX_CLAIMS) -> list[str]:
    """
    Extract claims from text.

    Example:
        claims = extract_claims("Officials said 40 percent of voters stayed home.")
        # ["Officials said 40 percent of voters stayed home."]
    """
    return ClaimExtractor(max_claims=max_claims).extract(text)
