"""Extract a JSON array of records from free-form model output."""

from __future__ import annotations

import json
import logging
import re
from json import JSONDecodeError
from typing import Any

LOGGER = logging.getLogger(__name__)

_FENCED_JSON_RE = re.compile(r"```json[ \t]*\r?\n?(.*?)```", re.DOTALL | re.IGNORECASE)
_WRAPPER_KEYS: tuple[str, ...] = ("papers", "results", "records", "items", "data")


def parse_json_array(text: Any) -> list[dict[str, Any]]:
    """Return the records in a model response, or [] when none can be parsed.

    Fenced ```json blocks are tried last-to-first, since a model that corrects
    itself puts the authoritative answer at the end. Without a parsable block
    the slice between the first ``[`` and the last ``]`` is tried. Never raises.
    """
    if not isinstance(text, str) or not text.strip():
        return []

    for block in reversed(_FENCED_JSON_RE.findall(text)):
        parsed = _try_load(block)
        if parsed is not None:
            return _records(parsed)

    start = text.find("[")
    end = text.rfind("]")
    if start != -1 and end > start:
        parsed = _try_load(text[start : end + 1])
        if parsed is not None:
            return _records(parsed)

    LOGGER.warning("Could not extract a JSON array from model output (%s chars)", len(text))
    return []


def _try_load(candidate: str) -> Any | None:
    try:
        return json.loads(candidate.strip())
    except (JSONDecodeError, ValueError):
        return None


def _records(parsed: Any) -> list[dict[str, Any]]:
    if isinstance(parsed, dict):
        parsed = _unwrap(parsed)
    if not isinstance(parsed, list):
        return []
    return [item for item in parsed if isinstance(item, dict)]


def _unwrap(obj: dict[str, Any]) -> list[Any]:
    """Return the wrapped array of ``{"papers": [...]}``-style objects, else ``[obj]``."""
    for key in _WRAPPER_KEYS:
        if isinstance(obj.get(key), list):
            return obj[key]
    # Other keys: only a non-empty list of objects is a payload, not "authors" or "keywords".
    for value in obj.values():
        if isinstance(value, list) and value and all(isinstance(item, dict) for item in value):
            return value
    return [obj]
