# ABOUTME: Recovery parser turning raw language-model text into a list of JSON objects
# ABOUTME: Handles code fences, wrapper objects, stray prose, and responses truncated mid-array

import json
import re
from typing import Any

from mining_intel.extraction.base import ResponseParseError
from mining_intel.utils.logging import get_logger

logger = get_logger(__name__)

_FENCED_BLOCK = re.compile(r"```[\w-]*[ \t]*\n?(.*?)(?:```)?\Z", re.DOTALL)

# An array whose first item is an object, e.g. the list inside a wrapper object
_OBJECT_ARRAY = re.compile(r"\[\s*\{")

WRAPPER_KEYS = ["leaders", "assets", "data"]

PREVIEW_LENGTH = 150


class _NoArray(Exception):
    """Internal signal that a parse stage produced nothing usable."""


def strip_code_fence(text: str) -> str:
    """Return the body when the whole response is one fenced code block, else the trimmed text.

    An opening fence without a closing one (truncated output) still counts. Backticks
    inside an unfenced response are left alone.
    """
    stripped = text.strip()
    match = _FENCED_BLOCK.match(stripped)
    if not match:
        return stripped
    return match.group(1).strip()


def _unwrap(value: Any, key: str | None) -> list[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        candidates = [*WRAPPER_KEYS, key] if key and key not in WRAPPER_KEYS else WRAPPER_KEYS
        for candidate in candidates:
            if isinstance(value.get(candidate), list):
                return value[candidate]
    return []


def _find_balanced(text: str, start: int, opener: str, closer: str) -> int | None:
    """Return the index of the closer matching text[start], ignoring brackets inside strings."""
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if escaped:
            escaped = False
            continue
        if in_string:
            if char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return index
    return None


def _parse_first_array(text: str) -> list[Any]:
    start = text.find("[")
    if start < 0:
        raise _NoArray
    end = _find_balanced(text, start, "[", "]")
    if end is None:
        raise _NoArray
    try:
        value = json.loads(text[start : end + 1])
    except json.JSONDecodeError as e:
        raise _NoArray from e
    if not isinstance(value, list) or any(not isinstance(item, dict) for item in value):
        raise _NoArray
    return value


def salvage_objects(text: str) -> list[dict[str, Any]]:
    """Recover every complete top-level JSON object from possibly truncated text.

    Scans left to right; each '{' at depth 0 opens a candidate that ends where the
    depth returns to 0. Candidates that fail to parse are skipped. An object left open
    at the end of the text is discarded, but when it holds an array of objects (a
    wrapper like {"leaders": [...] cut off mid-array) the scan continues in that array.
    """
    objects: list[dict[str, Any]] = []
    index = 0
    while index < len(text):
        if text[index] != "{":
            index += 1
            continue
        end = _find_balanced(text, index, "{", "}")
        if end is None:
            inner = _OBJECT_ARRAY.search(text, index + 1)
            if inner is None:
                break
            index = inner.end() - 1
            continue
        try:
            value = json.loads(text[index : end + 1])
        except json.JSONDecodeError:
            value = None
        if isinstance(value, dict):
            objects.append(value)
        index = end + 1
    return objects


def parse_records(text: str | None, key: str | None = None) -> list[dict[str, Any]]:
    """Parse a model response into a list of JSON objects.

    Tries, in order: strict JSON on the unfenced text (a bare array, or an array under
    a known wrapper key), the first balanced ``[...]`` span in the text, and finally
    object-by-object salvage for output cut off mid-array.

    Args:
        text: Raw model response
        key: Caller-specific wrapper key tried after the standard ones

    Returns:
        Parsed objects; an empty list when the model genuinely answered with no records

    Raises:
        ResponseParseError: If the text is empty or no object can be recovered
    """
    if not text or not text.strip():
        raise ResponseParseError("Failed to parse LLM response: empty response")

    body = strip_code_fence(text)

    try:
        parsed = json.loads(body)
    except json.JSONDecodeError as strict_error:
        try:
            items = _parse_first_array(body)
            logger.debug("Parsed array span from response", count=len(items))
            return items
        except _NoArray:
            pass

        salvaged = salvage_objects(body)
        if salvaged:
            logger.warning("Salvaged objects from malformed response", count=len(salvaged), chars=len(text))
            return salvaged

        preview = text[:PREVIEW_LENGTH]
        raise ResponseParseError(
            f"Failed to parse LLM response: {strict_error}. Preview: {preview}", preview=preview
        ) from strict_error

    return [item for item in _unwrap(parsed, key) if isinstance(item, dict)]
