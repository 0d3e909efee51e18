"""Structured response parser: extract, parse, then default.

Completion providers return free text. Even when told to answer with JSON
only, they wrap it in Markdown fences, add a sentence before it, or trail off
with a remark. The parser runs three explicit phases:

1. extract_json_span(): strip code fences and locate the greedy outermost
   {...} or [...] span.
2. json.loads() the span. Broken JSON is NOT repaired.
3. Validate against a LenientModel schema, which substitutes defaults for
   every missing or malformed field.

Only phases 1 and 2 can fail (NoStructuredPayloadError, InvalidJsonError).
"""

import json
import re
from enum import Enum
from typing import Any, Optional

from forkai.parsing.coercion import LenientModel
from forkai.utils.errors import InvalidJsonError, NoStructuredPayloadError
from forkai.utils.logger import logger


class Shape(str, Enum):
    OBJECT = "object"
    ARRAY = "array"


_FENCE_PATTERNS = (re.compile(r"```json\s*", re.IGNORECASE), re.compile(r"```\s*"))

_SPAN_PATTERNS = {
    Shape.OBJECT: re.compile(r"\{.*\}", re.DOTALL),
    Shape.ARRAY: re.compile(r"\[.*\]", re.DOTALL),
}


def strip_code_fences(raw_text: str) -> str:
    """Remove Markdown code-fence markers (```json and ```)."""
    text = raw_text
    for pattern in _FENCE_PATTERNS:
        text = pattern.sub("", text)
    return text.strip()


def extract_json_span(raw_text: str, shape: Shape) -> str:
    """Return the outermost JSON object or array span found in raw_text.

    Raises:
        NoStructuredPayloadError: If no span of the requested shape exists.
    """
    cleaned = strip_code_fences(raw_text or "")
    match = _SPAN_PATTERNS[shape].search(cleaned)
    if not match:
        preview = cleaned[:120].replace("\n", " ")
        raise NoStructuredPayloadError(f"No JSON {shape.value} found in generated text: {preview!r}")
    return match.group()


def load_json_span(span: str) -> Any:
    """Parse an extracted span.

    Raises:
        InvalidJsonError: If the span is not valid JSON.
    """
    try:
        return json.loads(span)
    except json.JSONDecodeError as e:
        raise InvalidJsonError(f"Generated JSON is invalid: {e.msg} (line {e.lineno}, column {e.colno})") from e


def parse(
    raw_text: str,
    shape: Shape,
    schema: type[LenientModel],
    context: Optional[dict] = None,
):
    """Parse generated text into schema instances.

    Args:
        raw_text: Text returned by the completion provider.
        shape: Shape.OBJECT for a single entity, Shape.ARRAY for a list.
        schema: LenientModel subclass describing the entity.
        context: Request-level defaults (e.g. {"servings": 2}) used when a field is missing.

    Returns:
        A schema instance for Shape.OBJECT, a list of instances for Shape.ARRAY.
        Array elements that are not JSON objects are dropped.

    Raises:
        NoStructuredPayloadError: No span of the requested shape.
        InvalidJsonError: Span is not valid JSON.
    """
    payload = load_json_span(extract_json_span(raw_text, shape))

    if shape is Shape.ARRAY:
        entities = [schema.model_validate(item, context=context) for item in payload if isinstance(item, dict)]
        dropped = len(payload) - len(entities)
        if dropped:
            logger.debug(f"Dropped {dropped} non-object element(s) from generated {schema.__name__} list")
        return entities

    return schema.model_validate(payload, context=context)
