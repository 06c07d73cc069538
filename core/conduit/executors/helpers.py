"""Small helpers shared by node executors."""

from __future__ import annotations

import json
from typing import Any

from conduit.execution.resolver import render_value

MISSING = object()


def load_json(value: Any) -> Any:
    """Parse ``value`` as JSON if it is a string, else return it unchanged.

    Raises:
        ValueError: If ``value`` is a string that is not valid JSON.
    """
    if isinstance(value, str):
        return json.loads(value)
    return value


def try_load_json(value: Any, default: Any = MISSING) -> Any:
    """Like ``load_json`` but returns ``default`` (or ``value``) on failure."""
    try:
        return load_json(value)
    except ValueError:
        return value if default is MISSING else default


def fill_template(template: str, value: Any) -> str:
    """Replace every ``{{input}}`` in ``template`` with ``value`` as text."""
    return template.replace("{{input}}", render_value(value))


def load_list(value: Any) -> list[Any] | None:
    """``value`` as a list if it is (or parses to) one, else None."""
    parsed = try_load_json(value)
    return parsed if isinstance(parsed, list) else None


def to_number(value: Any) -> float:
    """Numeric coercion; NaN when the value is not numeric."""
    if isinstance(value, bool):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return float("nan")
