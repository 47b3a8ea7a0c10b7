"""Pull a JSON object out of free-form model output.

Models wrap JSON in prose or markdown fences unpredictably. Extraction tries
each strategy in turn and raises ``NoJsonFound`` when none yields an object.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Iterator

_FENCED_JSON = re.compile(r"```json\s*(.*?)```", re.DOTALL | re.IGNORECASE)


class NoJsonFound(ValueError):
    """The text contains no parseable JSON object."""


def _fenced_blocks(text: str) -> Iterator[str]:
    for match in _FENCED_JSON.finditer(text):
        yield match.group(1).strip()


def _balanced_spans(text: str) -> Iterator[str]:
    """Yield ``{...}`` spans with balanced braces, skipping braces inside strings."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
            elif ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    yield text[start : i + 1]
                    break
        start = text.find("{", start + 1)


_STRATEGIES: list[Callable[[str], Iterator[str]]] = [_fenced_blocks, _balanced_spans]


def extract_json(text: str) -> dict[str, Any]:
    """Return the first JSON object found in ``text``.

    Tries fenced ```` ```json ```` blocks first, then the first balanced
    ``{...}`` span that parses.

    Raises:
        NoJsonFound: if no candidate parses to a JSON object.
    """
    for strategy in _STRATEGIES:
        for candidate in strategy(text):
            try:
                parsed = json.loads(candidate)
            except json.JSONDecodeError:
                continue
            if isinstance(parsed, dict):
                return parsed
    raise NoJsonFound(f"No JSON object found in model output: {text[:80]!r}")
