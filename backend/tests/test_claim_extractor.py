"""
Tests for the heuristic claim extractor.
"""

from trust_engine.services.trust.claim_extractor import (
    ClaimExtractor,
    extract_claims,
    is_fact_bearing,
    split_sentences,
)


def test_extracts_fact_bearing_sentences_in_order():
    text = "Wow. The Eiffel Tower is 330 metres tall. It was finished in 1889!"

    assert extract_claims(text) == [
        "The Eiffel Tower is 330 metres tall.",
        "It was finished in 1889!",
    ]


def test_short_text_yields_no_claims():
    assert extract_claims("Hi there") == []
    assert extract_claims("") == []
    assert extract_claims(None) == []


def test_text_without_fact_markers_yields_no_claims():
    text = "I love sunny afternoons by the lake. What a lovely day outside today!"
    assert extract_claims(text) == []


def test_claims_are_capped_at_five():
    text = " ".join(f"Fact number {i} is important for everyone." for i in range(8))
    claims = extract_claims(text)

    assert len(claims) == 5
    assert claims[0] == "Fact number 0 is important for everyone."
    assert claims[-1] == "Fact number 4 is important for everyone."


def test_custom_cap():
    text = " ".join(f"Fact number {i} is important for everyone." for i in range(8))
    assert len(ClaimExtractor(max_claims=2).extract(text)) == 2


def test_duplicates_are_removed():
    sentence = "The bridge was closed for repairs in 2019."
    text = f"{sentence} {sentence} {sentence} Officials said it reopened last spring."

    assert extract_claims(text) == [sentence, "Officials said it reopened last spring."]


def test_reporting_verbs_and_quantities_are_fact_bearing():
    assert is_fact_bearing("Roughly forty percent of voters stayed home.")
    assert is_fact_bearing("According to officials the road closed early.")
    assert is_fact_bearing("Prices rose 12% over the previous quarter.")


def test_short_sentences_are_not_claims():
    # Has a copula but is not longer than 20 characters
    assert not is_fact_bearing("It is 5 o'clock now.")


def test_split_sentences_collapses_whitespace():
    assert split_sentences("One  is\nhere.   Two is   there!") == ["One is here.", "Two is there!"]


def test_extraction_is_pure():
    text = "The river is 100 km long. The city has 40 parks in total."
    assert extract_claims(text) == extract_claims(text)
