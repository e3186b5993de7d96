"""
Tests for the trust score calculator.

Expected numbers below are worked by hand from the formulas in the module
docstring of score_calculator.
"""

import random

import pytest

from trust_engine.models.schemas import Claim, ContentType, Source, Verdict
from trust_engine.services.signals.models import SignalBundle
from trust_engine.services.trust.score_calculator import (
    SCORING_PROFILES,
    TrustScoreCalculator,
    calculate_scores,
    round_half_up,
)


def claims(verdict: Verdict, count: int, confidence: float) -> tuple[Claim, ...]:
    return tuple(
        Claim(text=f"Claim {i} was reported.", verdict=verdict, confidence=confidence)
        for i in range(count)
    )


def sources(count: int) -> tuple[Source, ...]:
    return tuple(
        Source(url=f"https://example.org/{i}", title=f"Source {i}", credibility=0.7)
        for i in range(count)
    )


# =============================================================================
# WORKED EXAMPLES
# =============================================================================

def test_text_all_verified():
    bundle = SignalBundle(
        content_type=ContentType.TEXT,
        claims=claims(Verdict.VERIFIED, 4, 0.8),
        manipulated=False,
        manipulation_confidence=0.8,
        sources=sources(3),
    )

    scores = calculate_scores(bundle)

    assert scores.source_integrity == 95
    assert scores.content_authenticity == 100, "104 must clamp to 100"
    assert scores.trust_explainability == 94


def test_image_confidently_manipulated():
    bundle = SignalBundle(
        content_type=ContentType.IMAGE,
        manipulated=True,
        manipulation_confidence=0.9,
    )

    scores = calculate_scores(bundle)

    assert scores.source_integrity == 0
    assert scores.content_authenticity == 38
    assert scores.trust_explainability == 15


def test_video_with_disputed_claims():
    bundle = SignalBundle(
        content_type=ContentType.VIDEO,
        claims=claims(Verdict.DISPUTED, 2, 0.7),
        manipulated=False,
        manipulation_confidence=0.5,
        sources=sources(2),
    )

    scores = calculate_scores(bundle)

    assert scores.source_integrity == 10
    assert scores.content_authenticity == 60
    assert scores.trust_explainability == 48


def test_source_bonus_is_capped():
    bundle = SignalBundle(content_type=ContentType.TEXT, sources=sources(8))
    assert TrustScoreCalculator().source_integrity(bundle) == 20


def test_authenticity_floor_is_zero():
    bundle = SignalBundle(
        content_type=ContentType.IMAGE,
        claims=claims(Verdict.DISPUTED, 3, 0.9),
        manipulated=True,
        manipulation_confidence=0.0,
    )
    # 20 + 0 - 30 would be negative
    assert TrustScoreCalculator().content_authenticity(bundle) == 0


def test_every_content_type_has_a_profile():
    assert set(SCORING_PROFILES) == set(ContentType)


# =============================================================================
# ROUNDING AND BOUNDS
# =============================================================================

@pytest.mark.parametrize("value,expected", [(0.5, 1), (2.5, 3), (94.49, 94), (94.5, 95), (0.0, 0)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_scores_are_bounded_and_deterministic():
    rng = random.Random(42)
    calculator = TrustScoreCalculator()
    verdicts = list(Verdict)

    for _ in range(300):
        bundle = SignalBundle(
            content_type=rng.choice(list(ContentType)),
            claims=tuple(
                Claim(text=f"Claim {i} is here.", verdict=rng.choice(verdicts), confidence=rng.random())
                for i in range(rng.randint(0, 6))
            ),
            manipulated=rng.random() < 0.5,
            manipulation_confidence=rng.random(),
            sources=sources(rng.randint(0, 8)),
        )

        first = calculator.score(bundle)
        second = calculator.score(bundle)

        assert first == second
        for value in (first.source_integrity, first.content_authenticity, first.trust_explainability):
            assert isinstance(value, int)
            assert 0 <= value <= 100
