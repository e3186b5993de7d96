"""
Tests for the structured output parser and its repair steps.

Run with: pytest tests/test_structured_output.py -v
"""

import json
import random

import pytest

from trust_engine.models.schemas import FactCheckPayload, FactCheckVerdict, PresentationPayload
from trust_engine.services.structured_output import (
    REPAIR_STEPS,
    ParseResult,
    ParseStage,
    StructuredOutputParser,
    close_truncated_json,
    collapse_quote_runs,
    convert_single_quoted_strings,
    extract_json_span,
    normalize_curly_quotes,
    quote_bare_keys,
    remove_trailing_commas,
    strip_control_characters,
    strip_wrappers,
    to_json_text,
    truncate_at_sentence,
)
from trust_engine.services.trust.claim_verifier import heuristic_fact_check


# =============================================================================
# REPAIR STEPS
# =============================================================================

def test_normalize_curly_quotes_outside_strings():
    assert normalize_curly_quotes("{“a”: “b”}") == '{"a": "b"}'
    assert normalize_curly_quotes("{‘a’: 1}") == "{'a': 1}"


def test_normalize_curly_quotes_leaves_string_contents():
    text = '{"quote": "he said “hi” and it’s fine"}'
    assert normalize_curly_quotes(text) == text


def test_strip_control_characters():
    assert strip_control_characters('{"a":\t"b\nc"}') == '{"a": "b c"}'
    assert strip_control_characters("\x00{}\x7f") == " {} "


def test_convert_single_quoted_strings():
    assert convert_single_quoted_strings("{'a': 'b'}") == '{"a": "b"}'


def test_convert_single_quoted_strings_escapes_inner_double_quotes():
    assert convert_single_quoted_strings("{'a': 'say \"hi\"'}") == '{"a": "say \\"hi\\""}'
    assert json.loads(convert_single_quoted_strings("{'a': 'say \"hi\"'}")) == {"a": 'say "hi"'}


def test_convert_single_quoted_strings_ignores_apostrophes_in_double_quoted_strings():
    text = '{"a": "it\'s fine"}'
    assert convert_single_quoted_strings(text) == text


def test_collapse_quote_runs():
    assert collapse_quote_runs('{"""a""": 1}') == '{"a": 1}'
    assert collapse_quote_runs('{""a"": 1}') == '{"a": 1}'
    assert collapse_quote_runs('{"a\\": 1}') == '{"a": 1}'
    assert collapse_quote_runs('{\\"a\\": \\"b\\"}') == '{"a": "b"}'


def test_collapse_quote_runs_keeps_empty_strings():
    text = '{"a": "", "b": ""}'
    assert collapse_quote_runs(text) == text


def test_quote_bare_keys():
    assert quote_bare_keys('{a: 1, b_c: "x"}') == '{"a": 1, "b_c": "x"}'


def test_quote_bare_keys_leaves_string_contents():
    text = '{"a": "x, y: z"}'
    assert quote_bare_keys(text) == text


def test_remove_trailing_commas():
    assert remove_trailing_commas("[1,2,]") == "[1,2]"
    assert json.loads(remove_trailing_commas('{"a": [1, 2,], }')) == {"a": [1, 2]}


def test_remove_trailing_commas_leaves_string_contents():
    text = '{"a": "x,]"}'
    assert remove_trailing_commas(text) == text


def test_close_truncated_json():
    assert close_truncated_json('{"a": {"b": [1, 2') == '{"a": {"b": [1, 2]}}'
    assert close_truncated_json('{"a": "hel') == '{"a": "hel"}'
    assert close_truncated_json('{"a": 1,') == '{"a": 1}'
    assert close_truncated_json('{"a":') == '{"a": null}'


def test_close_truncated_json_leaves_balanced_text():
    text = '{"a": "{ not a brace"}'
    assert close_truncated_json(text) == text


IDEMPOTENCE_CORPUS = [
    "{“a”: ‘b’}",
    "{a: 1,}",
    "{'a': 'b',}",
    '{"a": "x\ny"}',
    '{""a"": 1}',
    '{"a": [1, 2',
    '```json\n{"a": 1}\n```',
    "plain text",
    "",
]


@pytest.mark.parametrize("step", REPAIR_STEPS, ids=lambda step: step.__name__)
def test_repair_steps_are_idempotent(step):
    for sample in IDEMPOTENCE_CORPUS:
        once = step(sample)
        assert step(once) == once, f"{step.__name__} not idempotent on {sample!r}"


def test_repair_step_order():
    assert [step.__name__ for step in REPAIR_STEPS] == [
        "normalize_curly_quotes",
        "strip_control_characters",
        "convert_single_quoted_strings",
        "collapse_quote_runs",
        "quote_bare_keys",
        "remove_trailing_commas",
        "close_truncated_json",
    ]


# =============================================================================
# STAGE 1 HELPERS
# =============================================================================

def test_strip_wrappers_and_extract_span():
    text = strip_wrappers('Here you go:\n```json\n{"a": {"b": 1}}\n```\nThanks!')
    assert extract_json_span(text) == '{"a": {"b": 1}}'


def test_extract_span_without_closing_brace_runs_to_end():
    assert extract_json_span('prefix {"a": 1') == '{"a": 1'
    assert extract_json_span("no braces here") is None


# =============================================================================
# PARSER STAGES
# =============================================================================

@pytest.fixture
def fact_parser():
    return StructuredOutputParser(FactCheckPayload, heuristic=heuristic_fact_check, name="fact_check")


@pytest.fixture
def presentation_parser():
    return StructuredOutputParser(PresentationPayload, name="presentation")


def test_strict_stage(fact_parser):
    result = fact_parser.parse('{"verdict": "True", "confidence": 0.9, "explanation": "ok"}')

    assert result.stage is ParseStage.STRICT
    assert result.ok and not result.degraded
    assert result.value.verdict is FactCheckVerdict.TRUE
    assert result.value.confidence == 0.9


def test_strict_stage_with_fences_and_prose(fact_parser):
    raw = 'Sure! ```json\n{"verdict": "False", "explanation": "Debunked."}\n``` Hope this helps.'
    result = fact_parser.parse(raw)

    assert result.stage is ParseStage.STRICT
    assert result.value.verdict is FactCheckVerdict.FALSE


def test_normalized_stage_for_malformed_presentation(presentation_parser):
    raw = "{oneLineDescription: 'ok', sources: [{url: 'https://example.org/a', title: 'A'}],}"
    result = presentation_parser.parse(raw)

    assert result.stage is ParseStage.NORMALIZED
    assert result.value.one_line_description == "ok"
    assert result.value.sources[0].url == "https://example.org/a"


def test_normalized_stage_for_truncated_object(fact_parser):
    result = fact_parser.parse('{"verdict": "False", "explanation": "The claim is wro')

    assert result.stage is ParseStage.NORMALIZED
    assert result.value.verdict is FactCheckVerdict.FALSE
    assert result.value.explanation == "The claim is wro"


def test_normalized_stage_for_smart_quotes(fact_parser):
    result = fact_parser.parse("{“verdict”: “Misleading”, “confidence”: 60}")

    assert result.stage is ParseStage.NORMALIZED
    assert result.value.verdict is FactCheckVerdict.MISLEADING
    assert result.value.confidence == pytest.approx(0.6)


def test_normalized_stage_keeps_apostrophes_in_single_quoted_values(presentation_parser):
    result = presentation_parser.parse("{oneLineDescription: 'It's fine', sources: []}")

    assert result.stage is ParseStage.NORMALIZED
    assert result.value.one_line_description == "It's fine"


def test_normalized_stage_for_missing_commas(fact_parser):
    result = fact_parser.parse('{"verdict": "False" "confidence": 0.8 "explanation": "Debunked."}')

    assert result.stage is ParseStage.NORMALIZED
    assert result.value.verdict is FactCheckVerdict.FALSE
    assert result.value.confidence == 0.8


def test_heuristic_stage(fact_parser):
    result = fact_parser.parse("I think this claim is false, see https://example.org/x.")

    assert result.stage is ParseStage.HEURISTIC
    assert result.ok
    assert result.value.verdict is FactCheckVerdict.FALSE
    assert result.value.evidence[0].source == "https://example.org/x"


def test_heuristic_precedence_disputing_wins(fact_parser):
    result = fact_parser.parse("Parts are true but the main point is incorrect.")
    assert result.value.verdict is FactCheckVerdict.FALSE


def test_heuristic_explanation_is_truncated(fact_parser):
    raw = "This is misleading. " + "More detail follows here. " * 40
    result = fact_parser.parse(raw)

    assert result.stage is ParseStage.HEURISTIC
    assert len(result.value.explanation) <= 300
    assert result.value.explanation.endswith(".")


def test_default_stage(fact_parser):
    result = fact_parser.parse("no idea")

    assert result.stage is ParseStage.DEFAULT
    assert result.degraded and not result.ok
    assert result.value is None
    assert result.failure.reason == "no JSON object found"
    assert result.failure.raw_excerpt == "no idea"


def test_default_stage_returns_declared_default():
    default = PresentationPayload(one_line_description="fallback")
    parser = StructuredOutputParser(PresentationPayload, default=default)

    result = parser.parse('{"summary": "missing the one-liner"}')

    assert result.stage is ParseStage.DEFAULT
    assert result.value is default


@pytest.mark.parametrize("raw", ["", "   \n\t", None])
def test_empty_input_goes_straight_to_default(fact_parser, raw):
    result = fact_parser.parse(raw)

    assert result.stage is ParseStage.DEFAULT
    assert result.failure.reason == "empty input"


def test_parser_never_raises_on_malformed_corpus(fact_parser, presentation_parser):
    corpus = [
        "{", "}", "{{{{", "}}}}{", '"', "'", "{'a", '{"a": "\\', "[" * 5000 + "{",
        '{"verdict": }', '{"verdict": "Maybe"}', "{verdict: True}", "```", "```json```",
        '{"oneLineDescription": ""}', '{"sources": "not a list"}', "{" * 3000,
    ]
    rng = random.Random(1234)
    alphabet = list('{}[]":,\' abc1\\\n“”’')
    for _ in range(500):
        corpus.append("".join(rng.choice(alphabet) for _ in range(rng.randint(0, 60))))

    for raw in corpus:
        for parser in (fact_parser, presentation_parser):
            result = parser.parse(raw)
            assert isinstance(result, ParseResult)
            if result.stage is not ParseStage.DEFAULT:
                assert isinstance(result.value, parser.schema)


# =============================================================================
# ROUND TRIP
# =============================================================================

def test_round_trip_fact_check(fact_parser):
    payload = FactCheckPayload(
        verdict=FactCheckVerdict.FALSE,
        confidence=0.8,
        explanation="Contradicted by the official record.",
        evidence=[{"source": "https://example.org/record", "title": "Record", "snippet": "..."}],
    )
    result = fact_parser.parse(to_json_text(payload))

    assert result.stage is ParseStage.STRICT
    assert result.value == payload


def test_round_trip_presentation_uses_camel_case(presentation_parser):
    payload = PresentationPayload(
        one_line_description="Mostly accurate.",
        summary="Two of two claims checked out.",
        educational_insight="Check the date.",
        sources=[{"url": "https://example.org", "title": "Example", "credibility": 0.7}],
    )
    text = to_json_text(payload)

    assert "oneLineDescription" in text
    assert presentation_parser.parse(text).value == payload


# =============================================================================
# TRUNCATION
# =============================================================================

def test_truncate_at_sentence():
    assert truncate_at_sentence("Short.", 100) == "Short."
    assert truncate_at_sentence("First sentence. Second sentence is longer.", 20) == "First sentence."


def test_truncate_without_sentence_boundary_adds_ellipsis():
    result = truncate_at_sentence("no sentence boundary here at all", 12)

    assert len(result) <= 12
    assert result.endswith("…")
