"""
Tests for the claim verifier.

The fact-checker is an AsyncMock; its answers are JSON text (or not) the
same way a model's would be.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock

from conftest import fact_check_json
from trust_engine.models.schemas import Verdict
from trust_engine.services.collaborators.base import BaseFactChecker
from trust_engine.services.trust.claim_verifier import ClaimVerifier

CLAIM = "The Eiffel Tower is 330 metres tall."


def make_verifier(answer=None, side_effect=None, timeout=1.0) -> ClaimVerifier:
    fact_checker = AsyncMock(spec=BaseFactChecker)
    if side_effect is not None:
        fact_checker.fact_check.side_effect = side_effect
    else:
        fact_checker.fact_check.return_value = answer
    return ClaimVerifier(fact_checker, timeout=timeout)


# =============================================================================
# VERDICT MAPPING
# =============================================================================

@pytest.mark.asyncio
@pytest.mark.parametrize(
    "verdict,confidence,expected_verdict,expected_confidence",
    [
        ("True", 0.9, Verdict.VERIFIED, 0.9),
        ("True", None, Verdict.VERIFIED, 0.7),
        ("False", None, Verdict.DISPUTED, 0.7),
        ("Misleading", None, Verdict.UNVERIFIED, 0.7),
        ("Uncertain", None, Verdict.UNVERIFIED, 0.3),
        ("false", 85, Verdict.DISPUTED, 0.85),
    ],
)
async def test_verdict_mapping(verdict, confidence, expected_verdict, expected_confidence):
    verifier = make_verifier(fact_check_json(verdict, confidence))

    claim = await verifier.verify(CLAIM)

    assert claim.text == CLAIM
    assert claim.verdict is expected_verdict
    assert claim.confidence == pytest.approx(expected_confidence)


@pytest.mark.asyncio
async def test_heuristic_answer_is_used():
    verifier = make_verifier("After checking, this claim is false.")

    claim = await verifier.verify(CLAIM)

    assert claim.verdict is Verdict.DISPUTED
    assert claim.confidence == 0.7


# =============================================================================
# FAILURES
# =============================================================================

@pytest.mark.asyncio
async def test_collaborator_error_gives_unverified():
    verifier = make_verifier(side_effect=RuntimeError("model unavailable"))

    claim = await verifier.verify(CLAIM)

    assert claim.verdict is Verdict.UNVERIFIED
    assert claim.confidence == 0.3


@pytest.mark.asyncio
async def test_unparseable_answer_gives_unverified():
    verifier = make_verifier("I'd rather not say.")

    claim = await verifier.verify(CLAIM)

    assert claim.verdict is Verdict.UNVERIFIED
    assert claim.confidence == 0.3


@pytest.mark.asyncio
async def test_timeout_gives_unverified():
    async def slow(claim):
        await asyncio.sleep(1)
        return fact_check_json("True")

    verifier = make_verifier(side_effect=slow, timeout=0.01)

    claim = await verifier.verify(CLAIM)

    assert claim.verdict is Verdict.UNVERIFIED
    assert claim.confidence == 0.3


@pytest.mark.asyncio
async def test_every_call_failing_never_raises():
    verifier = make_verifier(side_effect=ConnectionError("offline"))
    claims = [f"Claim number {i} is checkable." for i in range(5)]

    results = await verifier.verify_all(claims)

    assert [(c.verdict, c.confidence) for c in results] == [(Verdict.UNVERIFIED, 0.3)] * 5


# =============================================================================
# CONCURRENCY AND ORDER
# =============================================================================

@pytest.mark.asyncio
async def test_one_failure_does_not_affect_siblings():
    async def answer(claim):
        if "boom" in claim:
            raise RuntimeError("boom")
        if "false" in claim:
            return fact_check_json("False", 0.8)
        return fact_check_json("True", 0.9)

    verifier = make_verifier(side_effect=answer)
    claims = ["first claim is true", "second boom claim", "third claim is false"]

    results = await verifier.verify_all(claims)

    assert [c.text for c in results] == claims
    assert [c.verdict for c in results] == [Verdict.VERIFIED, Verdict.UNVERIFIED, Verdict.DISPUTED]


@pytest.mark.asyncio
async def test_claims_are_checked_concurrently():
    claims = [f"Claim {i} was reported." for i in range(4)]
    started = 0
    all_started = asyncio.Event()

    async def answer(claim):
        nonlocal started
        started += 1
        if started == len(claims):
            all_started.set()
        # Only returns if every call is in flight at the same time
        await asyncio.wait_for(all_started.wait(), timeout=0.5)
        return fact_check_json("True")

    verifier = make_verifier(side_effect=answer, timeout=1.0)

    results = await verifier.verify_all(claims)

    assert all(c.verdict is Verdict.VERIFIED for c in results)


@pytest.mark.asyncio
async def test_verify_all_empty():
    verifier = make_verifier(fact_check_json())

    assert await verifier.verify_all([]) == []
    verifier.fact_checker.fact_check.assert_not_awaited()


# =============================================================================
# EVIDENCE
# =============================================================================

@pytest.mark.asyncio
async def test_evidence_sources_are_kept():
    answer = fact_check_json(
        "False",
        0.8,
        evidence=[
            {"source": "https://example.org/record", "title": "Official record", "snippet": "..."},
            {"source": "not a url", "title": "Ignored"},
        ],
    )
    verifier = make_verifier(answer)

    verified = await verifier.verify_with_evidence(CLAIM)

    assert [s.url for s in verified.evidence] == ["https://example.org/record"]
    assert verified.evidence[0].title == "Official record"
    assert not verified.degraded


@pytest.mark.asyncio
async def test_failed_claim_is_marked_degraded():
    verifier = make_verifier(side_effect=RuntimeError("down"))

    verified = await verifier.verify_with_evidence(CLAIM)

    assert verified.degraded
    assert verified.evidence == []
