"""Structured-output extraction from free-form generated text.

Extraction never raises: the caller gets either ``Parsed(value)`` or
``Fallback(raw_text)`` and branches on the type.
"""

import json
from dataclasses import dataclass
from typing import Any

_decoder = json.JSONDecoder()

_OPENERS = "{["
_CLOSERS = {"{": "}", "[": "]"}
# Comma cut-back points tried before giving up on a truncated value
_MAX_CUTS = 8


@dataclass(frozen=True)
class Parsed:
    value: Any
    repaired: bool = False


@dataclass(frozen=True)
class Fallback:
    raw_text: str


ExtractionResult = Parsed | Fallback


def strip_json_fences(content: str) -> str:
    """Remove markdown code fences wrapping JSON output."""
    content = content.strip()
    if content.startswith("```"):
        first_newline = content.find("\n")
        if first_newline != -1:
            content = content[first_newline + 1 :]
        if content.endswith("```"):
            content = content[:-3].rstrip()
    return content


def _loads_container(text: str) -> Any | None:
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, (dict, list)) else None


def repair_truncated_json(fragment: str) -> Any | None:
    """Decode JSON that was cut off before its closing brackets.

    ``fragment`` must start at an opening bracket. Open strings and brackets
    are closed at the end of the text; when that is not enough (a dangling
    key or ``:``), the text is cut back to the last comma and closed there.
    A value that closes before the end of the text is decoded as is.
    Returns None when nothing decodes.
    """
    if not fragment or fragment[0] not in _OPENERS:
        return None

    stack: list[str] = []
    cuts: list[tuple[int, str]] = []
    in_string = escaped = False
    for index, char in enumerate(fragment):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in _OPENERS:
            stack.append(_CLOSERS[char])
        elif char in "}]":
            if not stack or stack.pop() != char:
                return None
            if not stack:
                return _loads_container(fragment[: index + 1])
        elif char == ",":
            cuts.append((index, "".join(reversed(stack))))

    closing = ('"' if in_string and not escaped else "") + "".join(reversed(stack))
    value = _loads_container(fragment.rstrip() + closing)
    if value is not None:
        return value
    for index, closers in reversed(cuts[-_MAX_CUTS:]):
        value = _loads_container(fragment[:index] + closers)
        if value is not None:
            return value
    return None


def _is_payload(value: Any) -> bool:
    # Lists of scalars are citation-style prose such as "[1]", not output.
    if isinstance(value, dict):
        return True
    return isinstance(value, list) and bool(value) and all(isinstance(v, dict) for v in value)


def extract_json(text: str | None) -> ExtractionResult:
    """Extract the first well-formed JSON object or array from ``text``.

    Candidates are tried in order of position, and the outermost value at
    a position wins. A candidate cut off before its end is repaired with
    ``repair_truncated_json`` instead of descending into its members.
    """
    if not text:
        return Fallback(text or "")

    stripped = strip_json_fences(text)
    value = _loads_container(stripped)
    if value is not None:
        return Parsed(value)

    for start, char in enumerate(stripped):
        if char not in _OPENERS:
            continue
        repaired = False
        try:
            value, _ = _decoder.raw_decode(stripped, start)
        except json.JSONDecodeError:
            value = repair_truncated_json(stripped[start:])
            repaired = value is not None
        if _is_payload(value):
            return Parsed(value, repaired=repaired)

    return Fallback(text)
