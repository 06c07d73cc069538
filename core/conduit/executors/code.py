"""Kinds that run user-authored code in the sandbox."""

from __future__ import annotations

import math
from typing import Any

from conduit.errors import NodeExecutionError
from conduit.execution.resolver import render_value
from conduit.executors.helpers import load_list, to_number, try_load_json
from conduit.registry import NodeRequest, register_node_kind
from conduit.sandbox import compile_function, evaluate


@register_node_kind("CodeNode")
def execute_code(request: NodeRequest) -> Any:
    """Run a Python function body with ``input`` and ``context`` bound.

    ``context`` is a snapshot of every output recorded so far, keyed by node id.
    """
    language = request.data.get("language") or "python"
    if language != "python":
        raise NodeExecutionError(f'CodeNode: only Python is supported (got "{language}").')

    code = request.data.get("code") or "return input"
    try:
        fn = compile_function(["input", "context"], code, filename=f"<code {request.node_id}>")
        return fn(request.input, request.context.snapshot())
    except Exception as e:
        raise NodeExecutionError(f"CodeNode execution error: {e}", node_id=request.node_id) from e


def _numeric(value: Any) -> Any:
    if isinstance(value, str):
        number = to_number(value)
        if not math.isnan(number):
            return int(number) if number.is_integer() else number
    return value


@register_node_kind("CalculatorNode")
def execute_calculator(request: NodeRequest) -> Any:
    """Evaluate an arithmetic expression.

    ``input`` is bound to the node input; when the input is an object its keys
    are bound as names too. Numeric strings are treated as numbers.
    """
    expression = request.data.get("expression") or render_value(request.input)
    value = try_load_json(request.input)

    variables: dict[str, Any] = {"input": _numeric(request.input)}
    if isinstance(value, dict):
        variables.update(
            (key, _numeric(item))
            for key, item in value.items()
            if isinstance(key, str) and key.isidentifier() and not key.startswith("_")
        )
    return evaluate(expression, variables, filename=f"<calculator {request.node_id}>")


@register_node_kind("FilterNode")
def execute_filter(request: NodeRequest) -> Any:
    expression = request.data.get("filterExpression") or ""
    if not expression:
        return request.input

    items = load_list(request.input)
    if items is None:
        return request.input

    predicate = compile_function(["item"], expression, filename=f"<filter {request.node_id}>")

    def keep(item: Any) -> bool:
        try:
            return bool(predicate(item))
        except Exception:
            return False

    exclude = request.data.get("filterMode") == "exclude"
    return [item for item in items if keep(item) != exclude]
