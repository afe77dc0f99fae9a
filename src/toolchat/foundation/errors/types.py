"""JSON type aliases shared across toolchat.

Tool arguments, tool results and schemas are opaque JSON documents to the
orchestration core; these aliases name them without introspecting them.
"""

from __future__ import annotations

from typing import Any, Union

JsonPrimitive = Union[str, int, float, bool, None]
JsonValue = Union[JsonPrimitive, list[Any], dict[str, Any]]  # Any for recursive slots
JsonDict = dict[str, Any]

# JSON schema documents are plain objects
JsonSchema = JsonDict
