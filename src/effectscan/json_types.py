from __future__ import annotations

"""JSON-like value types used for reports and serialized declarations.

Payload builders return these aliases instead of `object`/`Any` so every
artifact that leaves the analysis has an explicitly JSON-compatible shape.
"""

from typing import TypeAlias


JSONScalar: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]
JSONObject: TypeAlias = dict[str, JSONValue]
