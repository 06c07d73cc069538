"""Text tools and transforms."""

from __future__ import annotations

import json
import re
from typing import Any

from conduit.errors import NodeExecutionError
from conduit.execution.resolver import render_value
from conduit.executors.helpers import fill_template, load_json, load_list
from conduit.registry import NodeRequest, register_node_kind
from conduit.sandbox import compile_function

_REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}


def regex_flags(flags: str) -> int:
    """Translate editor flag letters (``gim``) into ``re`` flags. ``g`` is handled by callers."""
    value = 0
    for letter in flags:
        value |= _REGEX_FLAGS.get(letter, 0)
    return value


@register_node_kind("ToolNode")
def execute_tool(request: NodeRequest) -> Any:
    tool_type = request.data.get("toolType") or "passthrough"
    config = request.data.get("config") or {}
    value = request.input

    if tool_type == "json_parse":
        try:
            return load_json(value)
        except ValueError:
            return {"error": "Invalid JSON", "raw": value}

    if tool_type == "json_stringify":
        return json.dumps(value, indent=2, ensure_ascii=False, default=str)

    if tool_type == "regex":
        flags = config.get("flags", "g")
        try:
            pattern = re.compile(config.get("pattern") or ".*", regex_flags(flags))
        except re.error as e:
            raise NodeExecutionError(f"ToolNode: invalid regex: {e}") from e
        text = render_value(value)
        if "g" in flags:
            matches = [m.group(0) for m in pattern.finditer(text)]
        else:
            first = pattern.search(text)
            matches = [first.group(0)] if first else []
        return "\n".join(matches)

    if tool_type == "template":
        return fill_template(config.get("template") or "{{input}}", value)

    # "api" and "passthrough"
    return value


def _walk_path(value: Any, expression: str) -> Any:
    current = load_json(value)
    for part in expression.split("."):
        if current is None:
            break
        if isinstance(current, dict):
            current = current.get(part)
        elif isinstance(current, list) and part.lstrip("-").isdigit():
            index = int(part)
            current = current[index] if -len(current) <= index < len(current) else None
        else:
            current = None
    return current


@register_node_kind("TransformNode")
def execute_transform(request: NodeRequest) -> Any:
    transform_type = request.data.get("transformType") or "template"
    expression = request.data.get("expression") or ""
    value = request.input

    if transform_type == "template":
        return fill_template(expression, value) if expression else value

    if transform_type == "jsonpath":
        try:
            return render_value(_walk_path(value, expression))
        except ValueError:
            return value

    if transform_type == "regex":
        try:
            match = re.search(expression, render_value(value))
        except re.error:
            return value
        return match.group(0) if match else ""

    if transform_type in ("uppercase", "lowercase", "trim"):
        if not isinstance(value, str):
            return value
        if transform_type == "uppercase":
            return value.upper()
        if transform_type == "lowercase":
            return value.lower()
        return value.strip()

    if transform_type == "split":
        return value.split(expression or ",") if isinstance(value, str) else value

    if transform_type == "join":
        items = load_list(value)
        if items is None:
            return value
        return (expression or ", ").join(render_value(item) for item in items)

    if transform_type == "code":
        try:
            fn = compile_function(["input"], expression, filename=f"<transform {request.node_id}>")
            return render_value(fn(value))
        except Exception as e:
            raise NodeExecutionError(f"TransformNode code error: {e}", node_id=request.node_id) from e

    return value
