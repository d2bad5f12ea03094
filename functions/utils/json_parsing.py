"""Tagged parsing of generative model output.

Model responses are parsed into either a StructuredResponse (valid JSON of
the expected shape) or a RawResponse (the original text plus the reason it
was not usable). Callers branch on the type instead of catching
JSONDecodeError themselves.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Union

_FENCED_OBJECT = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```")
_FENCED_ARRAY = re.compile(r"```(?:json)?\s*(\[[\s\S]*?\])\s*```")


@dataclass(frozen=True)
class StructuredResponse:
    """Response that parsed to JSON of the expected shape."""

    value: Any
    raw_text: str


@dataclass(frozen=True)
class RawResponse:
    """Response that could not be used as structured data."""

    text: str
    reason: str


ParsedResponse = Union[StructuredResponse, RawResponse]


def _strip_fences(text: str) -> str:
    content = text.strip()
    if content.startswith("```json"):
        content = content[7:]
    if content.startswith("```"):
        content = content[3:]
    if content.endswith("```"):
        content = content[:-3]
    return content.strip()


def _parse(text: str, fenced: "re.Pattern[str]", expected: type) -> ParsedResponse:
    if not isinstance(text, str) or not text.strip():
        return RawResponse(text=text or "", reason="empty response")

    match = fenced.search(text)
    candidate = match.group(1) if match else _strip_fences(text)

    try:
        value = json.loads(candidate)
    except json.JSONDecodeError as e:
        return RawResponse(text=text, reason=f"invalid JSON: {e}")

    if not isinstance(value, expected):
        return RawResponse(
            text=text,
            reason=f"expected {expected.__name__}, got {type(value).__name__}"
        )
    return StructuredResponse(value=value, raw_text=text)


def parse_json_object(text: str) -> ParsedResponse:
    """Parse a response expected to hold a JSON object."""
    return _parse(text, _FENCED_OBJECT, dict)


def parse_json_array(text: str) -> ParsedResponse:
    """Parse a response expected to hold a JSON array."""
    return _parse(text, _FENCED_ARRAY, list)
