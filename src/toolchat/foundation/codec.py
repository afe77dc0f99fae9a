"""JSON codec for tool payloads.

orjson is a core dependency - no fallback to stdlib json.

Usage:
    >>> from toolchat.foundation.codec import dumps, loads, pretty
    >>> dumps({"op": "add", "a": 15})
    '{"op":"add","a":15}'
    >>> loads('{"a": 1}')
    {'a': 1}
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import orjson

if TYPE_CHECKING:
    from toolchat.foundation.errors import JsonValue

_OPTIONS = orjson.OPT_NON_STR_KEYS


def dumps(data: object) -> str:
    """Compact JSON text. Unknown objects fall back to str()."""
    return orjson.dumps(data, default=str, option=_OPTIONS).decode()


def pretty(data: object) -> str:
    """Indented JSON text for prompts and logs."""
    return orjson.dumps(data, default=str, option=_OPTIONS | orjson.OPT_INDENT_2).decode()


def loads(data: str | bytes) -> JsonValue:
    """Parse JSON text. Raises orjson.JSONDecodeError (a ValueError) on bad input."""
    return orjson.loads(data)
