"""Type tags, schema validation, and value coercion for task contracts.

Coercion rules per tag:

- ``string``: any value, rendered with ``str``.
- ``integer``: ints, finite floats (truncated toward zero) and numeric text
  (``"42"``, ``" 7 "``, ``"3.9"`` -> 3). Booleans are rejected.
- ``number``: ints and floats, integer- or float-formatted text -> ``float``.
- ``boolean``: booleans and the closed spelling sets below, matched
  case-insensitively after trimming. Numbers are rejected.
- ``array``: lists and tuples only. Text is never split.
- ``map``: mappings only.
- ``any``: str, int, float, bool, None, sequences and mappings of those.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Mapping, Sequence
import math
import os
import re
import threading
from typing import Any

from langop_agent.config.defaults import RUNTIME_DEFAULTS
from langop_agent.constants import IDENTIFIER_PATTERN
from langop_agent.enums import TypeTag

TRUTHY_SPELLINGS: frozenset[str] = frozenset({"true", "t", "yes", "y", "1"})
FALSY_SPELLINGS: frozenset[str] = frozenset({"false", "f", "no", "n", "0"})

_INTEGER_TEXT = re.compile(r"^[+-]?\d+$")
_FLOAT_TEXT = re.compile(r"^[+-]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?$")
_IDENTIFIER = re.compile(IDENTIFIER_PATTERN)
_CACHED_TAGS = frozenset({TypeTag.INTEGER, TypeTag.NUMBER, TypeTag.BOOLEAN})
_MAX_DESCRIBED_LENGTH = 80

TypeSchema = Mapping[str, TypeTag]


class CoercionFailure(ValueError):
    """A value cannot be represented as the requested type tag."""


class _CoercionCache:
    """Bounded LRU memo for text coercions, including failed ones."""

    def __init__(self, max_size: int) -> None:
        self.max_size = max_size
        self._entries: OrderedDict[tuple[str, TypeTag], tuple[bool, Any]] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: tuple[str, TypeTag]) -> tuple[bool, Any] | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return entry

    def put(self, key: tuple[str, TypeTag], entry: tuple[bool, Any]) -> None:
        if self.max_size <= 0:
            return
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def stats(self) -> dict[str, Any]:
        with self._lock:
            total = self.hits + self.misses
            return {
                "size": len(self._entries),
                "max_size": self.max_size,
                "hits": self.hits,
                "misses": self.misses,
                "hit_rate": 0.0 if total == 0 else self.hits / total,
            }


def _initial_cache_size() -> int:
    raw = os.getenv("LANGOP_COERCION_CACHE_SIZE")
    if raw and raw.strip().isdigit():
        return int(raw.strip())
    return int(RUNTIME_DEFAULTS["coercion_cache_size"])  # type: ignore[call-overload]


_cache = _CoercionCache(_initial_cache_size())


def configure_cache(max_size: int) -> None:
    """Replace the coercion cache with an empty one of the given size."""
    global _cache
    _cache = _CoercionCache(max_size)


def cache_stats() -> dict[str, Any]:
    return _cache.stats()


def clear_cache() -> None:
    _cache.clear()


def _describe(value: Any) -> str:
    try:
        text = repr(value)
    except ValueError:
        # Integers past the interpreter's digit limit cannot be rendered.
        text = "<too large to display>"
    if len(text) > _MAX_DESCRIBED_LENGTH:
        text = f"{text[: _MAX_DESCRIBED_LENGTH - 3]}..."
    return f"{text} ({type(value).__name__})"


def coerce_integer(value: Any) -> int:
    if isinstance(value, bool):
        raise CoercionFailure(f"Cannot coerce {_describe(value)} to integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise CoercionFailure(f"Cannot coerce {_describe(value)} to integer")
        return math.trunc(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            if _INTEGER_TEXT.match(text):
                return int(text)
            if _FLOAT_TEXT.match(text):
                parsed = float(text)
                if math.isfinite(parsed):
                    return math.trunc(parsed)
        except (ValueError, OverflowError) as exc:
            raise CoercionFailure(
                f"Cannot coerce {_describe(value)} to integer: {exc}"
            ) from exc
    raise CoercionFailure(f"Cannot coerce {_describe(value)} to integer")


def coerce_number(value: Any) -> float:
    if isinstance(value, bool):
        raise CoercionFailure(f"Cannot coerce {_describe(value)} to number")
    try:
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            text = value.strip()
            if _FLOAT_TEXT.match(text):
                parsed = float(text)
                if math.isfinite(parsed):
                    return parsed
    except (ValueError, OverflowError) as exc:
        raise CoercionFailure(
            f"Cannot coerce {_describe(value)} to number: {exc}"
        ) from exc
    raise CoercionFailure(f"Cannot coerce {_describe(value)} to number")


def coerce_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUTHY_SPELLINGS:
            return True
        if text in FALSY_SPELLINGS:
            return False
    raise CoercionFailure(f"Cannot coerce {_describe(value)} to boolean")


def coerce_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    try:
        return str(value)
    except ValueError as exc:
        raise CoercionFailure(
            f"Cannot coerce {_describe(value)} to string: {exc}"
        ) from exc


def validate_array(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    raise CoercionFailure(f"Expected array, got {type(value).__name__}")


def validate_map(value: Any) -> dict[Any, Any]:
    if isinstance(value, Mapping):
        return dict(value)
    raise CoercionFailure(f"Expected map, got {type(value).__name__}")


def is_any_value(value: Any) -> bool:
    """Whether ``value`` belongs to the closed union accepted for ``any``."""
    if value is None or isinstance(value, (str, bool, int, float)):
        return True
    if isinstance(value, Mapping):
        return all(
            isinstance(key, str) and is_any_value(item) for key, item in value.items()
        )
    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        return all(is_any_value(item) for item in value)
    return False


def validate_any(value: Any) -> Any:
    if is_any_value(value):
        return value
    raise CoercionFailure(
        f"Value of type {type(value).__name__} is not representable as any"
    )


_COERCERS = {
    TypeTag.STRING: coerce_string,
    TypeTag.INTEGER: coerce_integer,
    TypeTag.NUMBER: coerce_number,
    TypeTag.BOOLEAN: coerce_boolean,
    TypeTag.ARRAY: validate_array,
    TypeTag.MAP: validate_map,
    TypeTag.ANY: validate_any,
}


def coerce(value: Any, tag: TypeTag | str) -> Any:
    """Coerce ``value`` to ``tag`` or raise ``CoercionFailure``."""
    resolved = TypeTag.parse(tag)
    cacheable = isinstance(value, str) and resolved in _CACHED_TAGS
    if cacheable:
        cached = _cache.get((value, resolved))
        if cached is not None:
            ok, payload = cached
            if ok:
                return payload
            raise CoercionFailure(payload)
    try:
        result = _COERCERS[resolved](value)
    except CoercionFailure as exc:
        if cacheable:
            _cache.put((value, resolved), (False, str(exc)))
        raise
    if cacheable:
        _cache.put((value, resolved), (True, result))
    return result


def validate_schema(schema: Mapping[str, Any] | None, label: str) -> dict[str, TypeTag]:
    """Validate a field -> tag mapping and return it with parsed tags.

    Raises ``ValueError`` naming the offending key or tag.
    """
    if schema is None:
        return {}
    if not isinstance(schema, Mapping):
        raise ValueError(f"{label} schema must be a mapping, got {type(schema).__name__}")
    validated: dict[str, TypeTag] = {}
    for key, raw_tag in schema.items():
        if not isinstance(key, str) or not _IDENTIFIER.fullmatch(key):
            raise ValueError(f"{label} schema key {key!r} is not a valid identifier")
        try:
            validated[key] = TypeTag.parse(raw_tag)
        except ValueError as exc:
            supported = ", ".join(tag.value for tag in TypeTag)
            raise ValueError(
                f"{label} schema type for '{key}' must be one of {supported}, "
                f"got {raw_tag!r}"
            ) from exc
    return validated


_JSON_SCHEMA_TYPES = {
    TypeTag.STRING: "string",
    TypeTag.INTEGER: "integer",
    TypeTag.NUMBER: "number",
    TypeTag.BOOLEAN: "boolean",
    TypeTag.ARRAY: "array",
    TypeTag.MAP: "object",
}


def schema_to_json(schema: TypeSchema) -> dict[str, Any]:
    """Render a type schema as a JSON Schema object."""
    properties: dict[str, Any] = {}
    for key, tag in schema.items():
        json_type = _JSON_SCHEMA_TYPES.get(tag)
        properties[key] = {"type": json_type} if json_type else {}
    return {
        "type": "object",
        "properties": properties,
        "required": list(schema.keys()),
    }


__all__ = [
    "TRUTHY_SPELLINGS",
    "FALSY_SPELLINGS",
    "CoercionFailure",
    "TypeSchema",
    "coerce",
    "coerce_integer",
    "coerce_number",
    "coerce_boolean",
    "coerce_string",
    "validate_array",
    "validate_map",
    "validate_any",
    "is_any_value",
    "validate_schema",
    "schema_to_json",
    "configure_cache",
    "cache_stats",
    "clear_cache",
]
