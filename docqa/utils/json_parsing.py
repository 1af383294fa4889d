"""Tolerant JSON parsing for model responses.

Models are asked for JSON but do not always comply: they wrap output in
markdown fences, prefix it with prose ("Here is the data: {...}"), or
return plain text outright.  :func:`parse_model_json` runs a three-tier
fallback once, in one place, so extraction and QA generation do not each
carry their own copy of the chain:

    1. strict   -- the whole text is valid JSON, or the body of a
                   markdown code fence is
    2. bracket  -- the first balanced top-level ``{...}`` or ``[...]``
    3. raw      -- nothing parsed; the caller gets the raw text back
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)

STRATEGY_STRICT = "strict"
STRATEGY_FENCED = "fenced"
STRATEGY_BRACKET = "bracket"
STRATEGY_RAW = "raw"


@dataclass(frozen=True)
class ParsedJson:
    """Outcome of :func:`parse_model_json`.

    ``value`` is ``None`` when nothing could be parsed; ``raw_text`` always
    holds the original response so callers can fall back to it.
    """

    value: Any
    raw_text: str
    strategy: str

    @property
    def ok(self) -> bool:
        return self.strategy != STRATEGY_RAW


def parse_model_json(text: str) -> ParsedJson:
    """Parse a model response into JSON using the strict/bracket/raw chain."""
    stripped = text.strip()

    try:
        return ParsedJson(json.loads(stripped), text, STRATEGY_STRICT)
    except json.JSONDecodeError:
        pass

    fence_match = _JSON_FENCE_RE.search(stripped)
    if fence_match:
        try:
            return ParsedJson(json.loads(fence_match.group(1).strip()), text, STRATEGY_FENCED)
        except json.JSONDecodeError:
            pass

    for candidate in _balanced_json_candidates(stripped):
        try:
            return ParsedJson(json.loads(candidate), text, STRATEGY_BRACKET)
        except json.JSONDecodeError:
            continue

    return ParsedJson(None, text, STRATEGY_RAW)


def expect_object(parsed: ParsedJson) -> dict[str, Any] | None:
    """Return the parsed value if it is a JSON object, else ``None``."""
    return parsed.value if parsed.ok and isinstance(parsed.value, dict) else None


def expect_array(parsed: ParsedJson) -> list[Any] | None:
    """Return the parsed value if it is a JSON array, else ``None``.

    A single object wrapping one array (``{"pairs": [...]}``) is unwrapped.
    """
    if not parsed.ok:
        return None
    if isinstance(parsed.value, list):
        return parsed.value
    if isinstance(parsed.value, dict):
        arrays = [v for v in parsed.value.values() if isinstance(v, list)]
        if len(arrays) == 1:
            return arrays[0]
    return None


def _balanced_json_candidates(text: str) -> Iterator[str]:
    """Yield balanced top-level JSON object or array spans in *text*, in order.

    The scan is string-aware: brackets inside quoted strings (and escaped
    quotes) do not affect the depth count.
    """
    for start, opener in enumerate(text):
        if opener not in "{[":
            continue
        closer = "}" if opener == "{" else "]"
        depth = 0
        in_string = False
        escaped = False
        for end in range(start, len(text)):
            ch = text[end]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == opener:
                depth += 1
            elif ch == closer:
                depth -= 1
                if depth == 0:
                    yield text[start : end + 1]
                    break
