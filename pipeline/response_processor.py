"""Response Processor: raw provider text -> sanitized, shape-checked value."""

import json
import logging
from typing import Any, Optional, Union

from exceptions import MalformedResponseError, ShapeMismatchError
from schemas.sections import SectionKind
from schemas.shape import Shape, json_kind

from .sanitizers import Normalizer, sanitize

logger = logging.getLogger(__name__)


def strip_code_fence(text: str) -> str:
    """Remove a wrapping ```json ... ``` (or bare ```) fence if present."""
    text = text.strip()
    if "```json" in text:
        start = text.find("```json") + 7
        end = text.find("```", start)
        return text[start:end if end != -1 else None].strip()
    if text.startswith("```"):
        start = text.find("\n") + 1 if "\n" in text else 3
        end = text.rfind("```")
        return text[start:end if end >= start else None].strip()
    return text


def parse_json(text: str) -> Any:
    """Parse a JSON payload, falling back to the first embedded object or array.

    Raises:
        MalformedResponseError: If no JSON value can be read
    """
    cleaned = strip_code_fence(text or "")
    if not cleaned:
        raise MalformedResponseError("Empty response from model", raw_text=text or "")
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        first_error = e

    # Prose around the payload: decode from the first bracket and ignore the tail
    decoder = json.JSONDecoder()
    for bracket in ("{", "["):
        position = cleaned.find(bracket)
        if position == -1:
            continue
        try:
            value, _ = decoder.raw_decode(cleaned[position:])
            logger.debug("Recovered JSON embedded at offset %d", position)
            return value
        except json.JSONDecodeError:
            continue
    raise MalformedResponseError(f"Response is not valid JSON: {first_error}", raw_text=text) from first_error


def process_response(
    raw_text: str,
    shape: Shape,
    section_key: Optional[Union[str, SectionKind]] = None,
    normalizers: Optional[dict] = None,
) -> Any:
    """Parse, shape-check and sanitize a provider response.

    Args:
        raw_text: Text returned by the provider
        shape: Declared output shape of the section
        section_key: Section being generated (error messages only)
        normalizers: Field normalizer table; the default table when None

    Returns:
        The sanitized value

    Raises:
        MalformedResponseError: If the text is not JSON
        ShapeMismatchError: If the top-level kind disagrees with ``shape``
    """
    value = parse_json(raw_text)
    expected, actual = shape.kind, json_kind(value)
    if expected in ("object", "array") and expected != actual:
        key = section_key.value if isinstance(section_key, SectionKind) else section_key
        raise ShapeMismatchError(expected, actual, section_key=key)
    return sanitize(value, normalizers)


def process_text(raw_text: str, normalizer: Optional[Normalizer] = None) -> str:
    """Plain-text responses (single fields, summaries): strip fences and formatting only."""
    text = strip_code_fence(raw_text or "")
    text = sanitize(text)
    if normalizer is not None:
        text = normalizer(text)
    return text.strip() if isinstance(text, str) else text


def process_items(
    raw_text: str,
    section_key: Optional[Union[str, SectionKind]] = None,
    normalizers: Optional[dict] = None,
) -> list:
    """Parse a reply that should be an array; a lone object is wrapped into one.

    Raises:
        MalformedResponseError: If the text is not JSON
        ShapeMismatchError: If the reply is neither an object nor an array
    """
    value = parse_json(raw_text)
    if isinstance(value, dict):
        logger.debug("Wrapping single object reply into a list")
        value = [value]
    if not isinstance(value, list):
        key = section_key.value if isinstance(section_key, SectionKind) else section_key
        raise ShapeMismatchError("array", json_kind(value), section_key=key)
    return sanitize(value, normalizers)


def process_single(
    raw_text: str,
    section_key: Optional[Union[str, SectionKind]] = None,
    normalizers: Optional[dict] = None,
) -> dict:
    """Parse a reply that should be one object; the first element of an array is taken."""
    value = parse_json(raw_text)
    if isinstance(value, list):
        value = value[0] if value else {}
    if not isinstance(value, dict):
        key = section_key.value if isinstance(section_key, SectionKind) else section_key
        raise ShapeMismatchError("object", json_kind(value), section_key=key)
    return sanitize(value, normalizers)
