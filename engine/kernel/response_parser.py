"""
Generation response parser.

Turns raw LLM text into a normalized GeneratedPair. Generation output is not
guaranteed to be valid JSON, so parsing is tolerant:

  1. trim
  2. strip an enclosing ``` / ```json fence
  3. drop any preamble before the first "{"
  4. collapse double-escaped sequences
  5. decode the first JSON object (trailing text ignored)
  6. require sourceCode and previewMarkup
  7-8. substitute placeholders for empty fields

If step 5 fails, both string fields are pulled out with a regex before
giving up with MalformedResponse.
"""

from __future__ import annotations

import json
import logging
import re

from engine.kernel.errors import GenerationError, IncompleteResponse, MalformedResponse
from engine.kernel.types import EMPTY_MARKUP, EMPTY_SOURCE, GeneratedPair

logger = logging.getLogger(__name__)

# Accepted key names, canonical first. swiftCode/previewHtml are what older
# prompts asked for.
SOURCE_KEYS = ("sourceCode", "swiftCode")
MARKUP_KEYS = ("previewMarkup", "previewHtml")

_FENCE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?\s*```$", re.DOTALL | re.IGNORECASE)

# "\\n" → "\n" etc. Only a run of exactly two backslashes collapses; longer runs
# are already valid JSON (e.g. an escaped backslash followed by an escaped quote).
_DOUBLE_ESCAPE = re.compile(r'(?<!\\)\\\\(?=[nrtbf"])')
# "\'" and "\&" are not JSON escapes; keep the bare character.
_INVALID_ESCAPE = re.compile(r"(?<!\\)\\(['&])")

_decoder = json.JSONDecoder(strict=False)


def _field_pattern(key: str) -> re.Pattern[str]:
    return re.compile(r'"' + re.escape(key) + r'"\s*:\s*"((?:[^"\\]|\\.)*)"', re.DOTALL)


_FIELD_PATTERNS: dict[str, re.Pattern[str]] = {key: _field_pattern(key) for key in SOURCE_KEYS + MARKUP_KEYS}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_response(raw: str) -> GeneratedPair:
    """
    Parse raw generation output into a normalized pair.

    Raises:
        MalformedResponse: text is not a JSON object and fallback extraction failed
        IncompleteResponse: JSON object lacks sourceCode or previewMarkup
    """
    text = clean_response_text(raw)

    try:
        obj, _ = _decoder.raw_decode(text)
    except json.JSONDecodeError as e:
        logger.warning("Direct JSON parse failed (%s), attempting regex extraction", e.msg)
        pair = extract_fields(text)
        if pair is None:
            raise MalformedResponse() from e
        logger.info("Regex extraction recovered both fields")
        return pair

    if not isinstance(obj, dict):
        raise MalformedResponse(f"Expected a JSON object, got {type(obj).__name__}.")

    source = _first_present(obj, SOURCE_KEYS)
    markup = _first_present(obj, MARKUP_KEYS)
    if source is None or markup is None:
        logger.error("Parsed response missing fields; keys=%s", sorted(obj))
        raise IncompleteResponse()
    if not isinstance(source, str) or not isinstance(markup, str):
        raise IncompleteResponse("Invalid response structure from AI. sourceCode and previewMarkup must be strings.")

    return normalize_pair(source, markup)


def parse_outcome(raw: str) -> GeneratedPair | GenerationError:
    """Tagged variant of parse_response: returns the error instead of raising it."""
    try:
        return parse_response(raw)
    except GenerationError as e:
        return e


def clean_response_text(raw: str) -> str:
    """Steps 1-4: trim, unfence, drop preamble, collapse double escapes."""
    text = raw.strip()

    match = _FENCE.match(text)
    if match:
        text = match.group(1).strip()

    if not text.startswith("{"):
        start = text.find("{")
        if start != -1:
            text = text[start:]

    text = _DOUBLE_ESCAPE.sub(r"\\", text)
    text = _INVALID_ESCAPE.sub(r"\1", text)
    return text


def extract_fields(text: str) -> GeneratedPair | None:
    """
    Best-effort regex extraction of both string fields.

    Tolerates escaped quotes inside the values. Returns None unless both
    fields are found.
    """
    source = _extract(text, SOURCE_KEYS)
    markup = _extract(text, MARKUP_KEYS)
    if source is None or markup is None:
        return None
    return normalize_pair(source, markup)


def normalize_pair(source: str, markup: str) -> GeneratedPair:
    """Steps 7-8: never propagate empty fields."""
    if not markup.strip():
        markup = EMPTY_MARKUP
    if not source.strip():
        source = EMPTY_SOURCE
    return GeneratedPair(source_code=source, preview_markup=markup)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _first_present(obj: dict, keys: tuple[str, ...]):
    for key in keys:
        if obj.get(key) is not None:
            return obj[key]
    return None


def _extract(text: str, keys: tuple[str, ...]) -> str | None:
    for key in keys:
        match = _FIELD_PATTERNS[key].search(text)
        if match:
            return _decode_string(match.group(1))
    return None


def _decode_string(body: str) -> str:
    try:
        return json.loads(f'"{body}"', strict=False)
    except json.JSONDecodeError:
        # Invalid escapes inside the value; undo the common ones by hand.
        return body.replace('\\"', '"').replace("\\n", "\n").replace("\\t", "\t").replace("\\\\", "\\")
