"""``{step.field}`` placeholder substitution for workflow parameters.

A placeholder whose step or field cannot be found is left in place as
literal text. It is neither emptied nor reported as an error.
"""

from __future__ import annotations

from collections.abc import Mapping
import re
from typing import Any

FIELD_PLACEHOLDER = re.compile(r"\{(\w+)\.(\w+)\}")
TEMPLATE_PLACEHOLDER = re.compile(r"\{(\w+)(?:\.(\w+))?\}")

_MISSING = object()


def lookup(results: Mapping[str, Any], step: str, field: str | None) -> Any:
    """Return the referenced value or a sentinel when it does not exist."""
    if step not in results:
        return _MISSING
    value = results[step]
    if field is None:
        return _MISSING if value is None else value
    if isinstance(value, Mapping) and value.get(field) is not None:
        return value[field]
    return _MISSING


def _render(value: Any) -> str:
    return value if isinstance(value, str) else str(value)


def interpolate_text(text: str, results: Mapping[str, Any]) -> str:
    """Replace ``{step.field}`` references inside a string."""

    def replace(match: re.Match[str]) -> str:
        found = lookup(results, match.group(1), match.group(2))
        return match.group(0) if found is _MISSING else _render(found)

    return FIELD_PLACEHOLDER.sub(replace, text)


def interpolate_value(value: Any, results: Mapping[str, Any]) -> Any:
    """Interpolate a parameter value, walking nested lists and mappings.

    A string that consists of exactly one placeholder is replaced by the raw
    referenced value, so structured results keep their type.
    """
    if isinstance(value, str):
        whole = FIELD_PLACEHOLDER.fullmatch(value)
        if whole:
            found = lookup(results, whole.group(1), whole.group(2))
            return value if found is _MISSING else found
        return interpolate_text(value, results)
    if isinstance(value, Mapping):
        return {key: interpolate_value(item, results) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [interpolate_value(item, results) for item in value]
    return value


def interpolate_params(params: Mapping[str, Any], results: Mapping[str, Any]) -> dict[str, Any]:
    return {key: interpolate_value(value, results) for key, value in params.items()}


def interpolate_template(template: str, results: Mapping[str, Any]) -> str:
    """Render a prompt template; bare ``{step}`` renders the whole result."""

    def replace(match: re.Match[str]) -> str:
        found = lookup(results, match.group(1), match.group(2))
        return match.group(0) if found is _MISSING else _render(found)

    return TEMPLATE_PLACEHOLDER.sub(replace, template)


__all__ = [
    "FIELD_PLACEHOLDER",
    "TEMPLATE_PLACEHOLDER",
    "interpolate_params",
    "interpolate_template",
    "interpolate_text",
    "interpolate_value",
]
