"""
Defensive parsing of AI completions.

The AI vendor returns free text that should hold exactly one JSON object,
but it may be wrapped in Markdown fences or cut off at the token ceiling.
``parse_response`` never raises: it returns either ``Candidates`` with the
parsed object or ``Empty`` with the reason parsing gave up.
"""
import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from crawler.errors import ClassificationParseError

_FENCE_START = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END = re.compile(r"\s*```\s*$")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_DANGLING_KEY = re.compile(r',?\s*"[^"\\]*"\s*:\s*$')
_DANGLING_STRING_VALUE = re.compile(r',?\s*"[^"\\]*"\s*:\s*"[^"\\]*$')
_DANGLING_COMMA = re.compile(r",\s*$")


@dataclass(frozen=True)
class Candidates:
    """Successfully parsed payload."""
    data: Dict[str, Any]
    repaired: bool = False

    @property
    def documents(self) -> List[Dict[str, Any]]:
        docs = self.data.get("documents")
        if not isinstance(docs, list):
            return []
        return [d for d in docs if isinstance(d, dict)]


@dataclass(frozen=True)
class Empty:
    """Nothing usable could be recovered."""
    reason: str = ""
    data: Dict[str, Any] = field(default_factory=lambda: {"documents": []})

    @property
    def documents(self) -> List[Dict[str, Any]]:
        return []


ParsedResponse = Union[Candidates, Empty]


def strip_code_fences(text: str) -> str:
    stripped = _FENCE_START.sub("", text.strip())
    return _FENCE_END.sub("", stripped)


def _object_length(text: str) -> Optional[int]:
    """Length of the bracketed value opening ``text``, or None if it never closes."""
    depth = 0
    in_string = False
    escaped = False
    for index, char in enumerate(text):
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
        elif char in "{[":
            depth += 1
        elif char in "}]":
            depth -= 1
            if depth == 0:
                return index + 1
    return None


def extract_json_object(text: str) -> Optional[str]:
    """Slice out the first balanced ``{...}`` object, or run to the end when truncated."""
    start = text.find("{")
    if start == -1:
        return None
    length = _object_length(text[start:])
    if length is None:
        return text[start:]
    return text[start:start + length]


def _closing_sequence(text: str) -> str:
    """Closers for every bracket left open, innermost first, ignoring string contents."""
    stack: List[str] = []
    in_string = False
    escaped = False
    for char in text:
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
        elif char in "{[":
            stack.append("}" if char == "{" else "]")
        elif char in "}]" and stack and stack[-1] == char:
            stack.pop()
    closers = "".join(reversed(stack))
    return ('"' if in_string else "") + closers


def repair_truncated_json(text: str) -> str:
    """Close a JSON document that was cut off mid-structure."""
    repaired = text.strip()
    repaired = _DANGLING_STRING_VALUE.sub("", repaired)
    repaired = _DANGLING_KEY.sub("", repaired)
    repaired = _DANGLING_COMMA.sub("", repaired)
    repaired = repaired + _closing_sequence(repaired)
    return _TRAILING_COMMA.sub(r"\1", repaired)


def _load_object(text: str) -> Dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ClassificationParseError(f"Invalid JSON: {e.msg}", cause=e) from e
    if not isinstance(data, dict):
        raise ClassificationParseError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def parse_response(text: Optional[str]) -> ParsedResponse:
    """Parse an AI completion into a typed result; never raises."""
    if not text or not text.strip():
        return Empty("empty response")

    json_str = extract_json_object(strip_code_fences(text))
    if json_str is None:
        return Empty("no JSON object in response")

    try:
        return Candidates(_load_object(json_str))
    except ClassificationParseError:
        pass

    try:
        data = _load_object(repair_truncated_json(json_str))
        logger.debug("Recovered truncated AI response")
        return Candidates(data, repaired=True)
    except ClassificationParseError as e:
        logger.error(f"Could not parse AI response: {e}")
        return Empty(str(e))
