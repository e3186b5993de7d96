"""
Structured Output Parser.

WHAT THIS DOES:
Recovers a typed value (a pydantic model) from free-form text that is
*supposed* to be JSON but frequently is not. Generative models wrap JSON in
code fences, add prose around it, use smart quotes, leave trailing commas,
forget to quote keys, or stop mid-object.

WHY THIS MATTERS:
Every collaborator that "returns JSON" is really returning text. If one bad
response could raise, a single flaky model call would fail the whole request.
This parser never raises: it returns either a validated value or the
caller's declared default tagged as degraded.

FALLBACK CHAIN (each stage only runs if the previous one failed):
1. strict      — strip fences/prose, take first '{' .. last '}', json + schema
2. normalized  — run REPAIR_STEPS over the span, retry strict parse;
                 if that still fails, hand the untouched span to json_repair
3. heuristic   — schema-specific keyword extraction (only if declared)
4. default     — the caller's declared default, tagged degraded

The schema validation is the real correctness gate. The brace search is an
outermost-span heuristic, not a tokenizer.

USAGE:
    parser = StructuredOutputParser(PresentationPayload, name="presentation")
    result = parser.parse(model_text)
    if result.ok:
        payload = result.value
"""

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, TypeVar

from json_repair import repair_json
from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

# How much of the raw text to keep on a ParseFailure (for logs)
RAW_EXCERPT_CHARS = 200


class ParseStage(str, Enum):
    """Which stage of the fallback chain produced the value."""
    STRICT = "strict"
    NORMALIZED = "normalized"
    HEURISTIC = "heuristic"
    DEFAULT = "default"


@dataclass(frozen=True)
class ParseFailure:
    """Why nothing structured could be recovered."""
    reason: str
    raw_excerpt: str = ""


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    """
    Result of parsing: a value plus the stage that produced it.

    When every stage failed, value is the declared default (possibly None)
    and failure explains why.
    """

    value: T | None
    stage: ParseStage
    failure: ParseFailure | None = None

    @property
    def ok(self) -> bool:
        """True if a value was recovered from the text (stages 1-3)."""
        return self.failure is None

    @property
    def degraded(self) -> bool:
        """True if the declared default was substituted."""
        return self.stage is ParseStage.DEFAULT


# =============================================================================
# STRING LITERAL SEGMENTATION
# =============================================================================
#
# Most repairs must only touch JSON *structure*, never the contents of a
# string value ("a, b: c" is not a bare key). The text is split into code
# segments and double-quoted literal segments; repairs map over the code.
#

def _segments(text: str) -> list[tuple[str, str]]:
    """
    Split text into ("code" | "string" | "open", chunk) segments.

    "open" marks a trailing string literal that was never closed.
    """
    segments = []
    buf = []
    in_string = False
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if in_string:
            buf.append(ch)
            if ch == "\\" and i + 1 < n:
                buf.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                segments.append(("string", "".join(buf)))
                buf = []
                in_string = False
        elif ch == '"':
            if buf:
                segments.append(("code", "".join(buf)))
            buf = [ch]
            in_string = True
        else:
            buf.append(ch)
        i += 1
    if buf:
        segments.append(("open" if in_string else "code", "".join(buf)))
    return segments


def _map_code(text: str, transform: Callable[[str], str]) -> str:
    """Apply transform to everything outside double-quoted string literals."""
    return "".join(
        transform(chunk) if kind == "code" else chunk
        for kind, chunk in _segments(text)
    )


# =============================================================================
# STAGE 1 HELPERS
# =============================================================================

_FENCE = re.compile(r"```[A-Za-z]*")


def strip_wrappers(text: str) -> str:
    """Remove code-fence markers and surrounding whitespace."""
    return _FENCE.sub("", text).strip()


def extract_json_span(text: str) -> str | None:
    """
    Outermost object span: first '{' to last '}'.

    If there is no closing brace after the opening one, the span runs to the
    end of the text (a truncated object). Returns None if there is no '{'.
    """
    start = text.find("{")
    if start == -1:
        return None
    end = text.rfind("}")
    if end < start:
        return text[start:]
    return text[start:end + 1]


# =============================================================================
# STAGE 2: REPAIR STEPS
# =============================================================================
#
# Each step is a pure, idempotent str -> str function. They run in the
# order listed in REPAIR_STEPS.
#

_CURLY_DOUBLE = re.compile("[“”„‟″]")
_CURLY_SINGLE = re.compile("[‘’‚‛′]")


def normalize_curly_quotes(text: str) -> str:
    """Smart quotes used as JSON delimiters become straight quotes."""
    def _straighten(chunk: str) -> str:
        return _CURLY_SINGLE.sub("'", _CURLY_DOUBLE.sub('"', chunk))
    return _map_code(text, _straighten)


_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def strip_control_characters(text: str) -> str:
    """Control characters (raw newlines/tabs in values included) become spaces."""
    return _CONTROL_CHARS.sub(" ", text)


_UNESCAPED_DOUBLE = re.compile(r'(?<!\\)"')


def convert_single_quoted_strings(text: str) -> str:
    """'value' outside double-quoted strings becomes "value"."""
    out = []
    i = 0
    n = len(text)
    in_double = False
    while i < n:
        ch = text[i]
        if in_double:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_double = False
            i += 1
            continue
        if ch == '"':
            in_double = True
            out.append(ch)
            i += 1
            continue
        if ch == "'":
            j = i + 1
            inner = []
            while j < n and text[j] != "'":
                if text[j] == "\\" and j + 1 < n:
                    inner.append("'" if text[j + 1] == "'" else text[j:j + 2])
                    j += 2
                    continue
                inner.append(text[j])
                j += 1
            if j >= n:
                # Unterminated: leave the rest alone
                out.append(text[i:])
                break
            out.append('"' + _UNESCAPED_DOUBLE.sub('\\\\"', "".join(inner)) + '"')
            i = j + 1
            continue
        out.append(ch)
        i += 1
    return "".join(out)


_QUOTE_RUN = re.compile(r'(?<!\\)"{3,}')
_DOUBLED_TOKEN = re.compile(r'""([A-Za-z_][\w \-]*)""')
_HALF_ESCAPED_KEY = re.compile(r'(?<!\\)"([A-Za-z_][\w\-]*)\\"(\s*:)')


def collapse_quote_runs(text: str) -> str:
    """
    Collapse doubled or escaped quote runs.

    Runs of three or more quotes become one, ""key"" becomes "key", a key
    closed by an escaped quote ("key\\": 1) is repaired, and an object
    escaped once too often ({\\"a\\": 1}) is unescaped.
    """
    text = _QUOTE_RUN.sub('"', text)
    text = _DOUBLED_TOKEN.sub(r'"\1"', text)
    text = _HALF_ESCAPED_KEY.sub(r'"\1"\2', text)
    if '\\"' in text and '"' not in text.replace('\\"', ""):
        text = text.replace('\\"', '"')
    return text


_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_\-]*)(\s*:)")


def quote_bare_keys(text: str) -> str:
    """{key: 1} → {"key": 1}"""
    return _map_code(text, lambda chunk: _BARE_KEY.sub(r'\1"\2"\3', chunk))


_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


def remove_trailing_commas(text: str) -> str:
    """[1, 2,] → [1, 2]"""
    return _map_code(text, lambda chunk: _TRAILING_COMMA.sub(r"\1", chunk))


def close_truncated_json(text: str) -> str:
    """
    Close an object that stopped mid-way.

    Terminates an unterminated string, drops a dangling separator, and
    appends the missing closers in nesting order.
    """
    segments = _segments(text)
    stack = []
    for kind, chunk in segments:
        if kind != "code":
            continue
        for ch in chunk:
            if ch in "{[":
                stack.append(ch)
            elif ch == "}" and stack and stack[-1] == "{":
                stack.pop()
            elif ch == "]" and stack and stack[-1] == "[":
                stack.pop()

    unterminated = bool(segments) and segments[-1][0] == "open"
    if not stack and not unterminated:
        return text

    body = text + '"' if unterminated else text.rstrip()
    if body.endswith(","):
        body = body[:-1]
    elif body.endswith(":"):
        body += " null"
    return body + "".join("}" if opener == "{" else "]" for opener in reversed(stack))


REPAIR_STEPS: tuple[Callable[[str], str], ...] = (
    normalize_curly_quotes,
    strip_control_characters,
    convert_single_quoted_strings,
    collapse_quote_runs,
    quote_bare_keys,
    remove_trailing_commas,
    close_truncated_json,
)


def repair_json_text(text: str) -> str:
    """Run every repair step in order."""
    for step in REPAIR_STEPS:
        text = step(text)
    return text


# =============================================================================
# STAGE 3 HELPERS
# =============================================================================

_SENTENCE_END = re.compile(r"[.!?](?=\s|$)")


def truncate_at_sentence(text: str, max_chars: int) -> str:
    """
    Trim text to at most max_chars, preferring a sentence boundary.

    Falls back to a word boundary with an ellipsis if no sentence ends
    within the limit.
    """
    text = " ".join(text.split())
    if len(text) <= max_chars:
        return text
    window = text[:max_chars]
    ends = [m.end() for m in _SENTENCE_END.finditer(window)]
    if ends:
        return window[:ends[-1]]
    clipped = text[:max_chars - 1]
    if " " in clipped:
        clipped = clipped.rsplit(" ", 1)[0]
    return clipped.rstrip() + "…"


# =============================================================================
# PARSER
# =============================================================================

class StructuredOutputParser(Generic[T]):
    """
    Parses model text into a declared pydantic schema without ever raising.

    Args:
        schema: The pydantic model the text should describe
        default: Value returned (tagged degraded) when every stage fails
        heuristic: Optional keyword-based extractor used as stage 3
        name: Label used in logs (defaults to the schema name)
    """

    def __init__(
        self,
        schema: type[T],
        default: T | None = None,
        heuristic: Callable[[str], T | None] | None = None,
        name: str | None = None,
    ):
        self.schema = schema
        self.default = default
        self.heuristic = heuristic
        self.name = name or schema.__name__

    def parse(self, raw: str | None) -> ParseResult[T]:
        """
        Run the fallback chain over raw model text.

        Example:
            parser = StructuredOutputParser(FactCheckPayload)
            result = parser.parse('```json\\n{"verdict": "True",}\\n```')
            # result.stage == ParseStage.NORMALIZED
        """
        if not raw or not raw.strip():
            return self._fallback("empty input", "")

        text = strip_wrappers(raw)
        span = extract_json_span(text)

        if span is not None:
            value = self._validate(span)
            if value is not None:
                return self._success(value, ParseStage.STRICT)

            candidates = [span]
            tail = text[text.find("{"):]
            if tail != span:
                candidates.append(tail)
            for repair in (repair_json_text, self._library_repair):
                for candidate in candidates:
                    value = self._validate(repair(candidate))
                    if value is not None:
                        return self._success(value, ParseStage.NORMALIZED)

        if self.heuristic is not None:
            value = self._run_heuristic(raw)
            if value is not None:
                return self._success(value, ParseStage.HEURISTIC)

        reason = "no JSON object found" if span is None else "JSON did not match schema after repair"
        return self._fallback(reason, raw)

    def _library_repair(self, candidate: str) -> str:
        """json_repair over the original span, for what the explicit steps cannot fix."""
        try:
            return repair_json(candidate)
        except Exception as e:
            logger.debug(f"[{self.name}] json_repair gave up ({type(e).__name__}: {e})")
            return ""

    def _validate(self, candidate: str) -> T | None:
        try:
            data = json.loads(candidate)
        except (ValueError, RecursionError):
            return None
        if not isinstance(data, dict):
            return None
        try:
            return self.schema.model_validate(data)
        except ValueError:
            return None

    def _run_heuristic(self, raw: str) -> T | None:
        try:
            value = self.heuristic(raw)
        except ValueError as e:
            logger.warning(f"[{self.name}] heuristic extraction failed: {e}")
            return None
        if value is not None and not isinstance(value, self.schema):
            return None
        return value

    def _success(self, value: T, stage: ParseStage) -> ParseResult[T]:
        if stage is ParseStage.STRICT:
            logger.debug(f"[{self.name}] parsed at stage '{stage.value}'")
        else:
            logger.info(f"[{self.name}] parsed at stage '{stage.value}'")
        return ParseResult(value=value, stage=stage)

    def _fallback(self, reason: str, raw: str) -> ParseResult[T]:
        logger.warning(f"[{self.name}] parse failed ({reason}); using declared default")
        return ParseResult(
            value=self.default,
            stage=ParseStage.DEFAULT,
            failure=ParseFailure(reason=reason, raw_excerpt=raw[:RAW_EXCERPT_CHARS]),
        )


def to_json_text(value: BaseModel) -> str:
    """Serialise a schema value back to JSON text (inverse of parse)."""
    return value.model_dump_json(by_alias=True)
