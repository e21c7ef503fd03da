"""
Type codec between typed property bags and flat Redis hashes.

Redis hashes only hold strings, so every property is written as text and its
runtime kind is recorded in a parallel type map. The type map travels with
the data (under the reserved ``__types__`` hash field) which makes a stored
record self-describing: it can be hydrated without knowing its schema.

Usage:
    data, types = dehydrate({"name": "apple", "calories": 90})
    hydrate(data, types) == {"name": "apple", "calories": 90}
"""

from __future__ import annotations

import json
import re
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Tuple

TYPES_FIELD = "__types__"

STRING = "string"
NUMBER = "number"
BOOLEAN = "boolean"
DATE = "date"
OBJECT = "object"
ARRAY = "array"
PATTERN = "pattern"
NULL = "null"

KINDS = (STRING, NUMBER, BOOLEAN, DATE, OBJECT, ARRAY, PATTERN, NULL)


def kind_of(value: Any) -> str:
    """
    Return the codec kind for a value.

    Raises
    ------
    TypeError
        If the value is of a kind the codec cannot round-trip.
    """
    if value is None:
        return NULL
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, (int, float)):
        return NUMBER
    if isinstance(value, str):
        return STRING
    if isinstance(value, datetime):
        return DATE
    if isinstance(value, dict):
        return OBJECT
    if isinstance(value, list):
        return ARRAY
    if isinstance(value, re.Pattern):
        return PATTERN
    if isinstance(value, date):
        raise TypeError("Plain dates are not supported; use datetime instead")
    raise TypeError(f"Cannot store value of type {type(value).__name__!r}")


def encode_value(value: Any, kind: str) -> str:
    """Encode a single value of a known kind to its stored text."""
    if kind == NULL:
        return ""
    if kind == BOOLEAN:
        return "true" if value else "false"
    if kind == NUMBER:
        return repr(value)
    if kind == STRING:
        return value
    if kind == DATE:
        return value.isoformat()
    if kind in (OBJECT, ARRAY):
        return json.dumps(value, separators=(",", ":"), sort_keys=False)
    if kind == PATTERN:
        return json.dumps({"pattern": value.pattern, "flags": value.flags})
    raise ValueError(f"Unknown kind {kind!r}")


def decode_value(text: str, kind: str) -> Any:
    """Decode stored text back into a value of the recorded kind."""
    if kind == NULL:
        return None
    if kind == BOOLEAN:
        return text == "true"
    if kind == NUMBER:
        try:
            return int(text)
        except ValueError:
            return float(text)
    if kind == STRING:
        return text
    if kind == DATE:
        return datetime.fromisoformat(text)
    if kind in (OBJECT, ARRAY):
        return json.loads(text)
    if kind == PATTERN:
        spec = json.loads(text)
        return re.compile(spec["pattern"], spec["flags"])
    raise ValueError(f"Unknown kind {kind!r}")


def encode_scalar(value: Any) -> str:
    """String form of a value as used in index keys and sort comparisons."""
    return encode_value(value, kind_of(value))


def dehydrate(props: Mapping[str, Any]) -> Tuple[Dict[str, str], Dict[str, str]]:
    """
    Flatten a property bag into string data plus a type map.

    Returns
    -------
    (data, types)
        ``data`` maps field -> stored text, ``types`` maps field -> kind.
    """
    data: Dict[str, str] = {}
    types: Dict[str, str] = {}
    for field, value in props.items():
        if field == TYPES_FIELD:
            raise ValueError(f"{TYPES_FIELD!r} is a reserved field name")
        kind = kind_of(value)
        types[field] = kind
        data[field] = encode_value(value, kind)
    return data, types


def hydrate(data: Mapping[str, str], types: Mapping[str, str]) -> Dict[str, Any]:
    """
    Rebuild a typed property bag from stored text and its type map.

    Fields without a recorded kind come back as plain strings.
    """
    props: Dict[str, Any] = {}
    for field, text in data.items():
        if field == TYPES_FIELD:
            continue
        props[field] = decode_value(text, types.get(field, STRING))
    return props


def encode_types(types: Mapping[str, str]) -> str:
    return json.dumps(dict(types), separators=(",", ":"))


def decode_types(text: str | None) -> Dict[str, str]:
    if not text:
        return {}
    return json.loads(text)


def decode_hash(raw: Mapping[Any, Any]) -> Dict[str, str]:
    """Normalize a hash reply to str keys and values (clients without decode_responses return bytes)."""
    return {_text(k): _text(v) for k, v in raw.items()}


def decode_list(raw: Any) -> List[str]:
    return [_text(item) for item in raw or ()]


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


def to_hash(props: Mapping[str, Any]) -> Dict[str, str]:
    """Dehydrate ``props`` into the full hash mapping written to Redis."""
    data, types = dehydrate(props)
    data[TYPES_FIELD] = encode_types(types)
    return data


def from_hash(stored: Mapping[str, str]) -> Dict[str, Any]:
    """Hydrate a hash read from Redis, using its embedded type map."""
    return hydrate(stored, decode_types(stored.get(TYPES_FIELD)))


__all__ = [
    "TYPES_FIELD",
    "KINDS",
    "kind_of",
    "encode_value",
    "decode_value",
    "encode_scalar",
    "dehydrate",
    "hydrate",
    "encode_types",
    "decode_types",
    "to_hash",
    "from_hash",
    "decode_hash",
    "decode_list",
]
