"""Branching kinds: they decide which downstream subtrees run.

A branch kind never removes anything from the skip set; it only adds the
targets of the edges it did not take, together with everything below them.
"""

from __future__ import annotations

import re
from typing import Any, Callable

from conduit.config import DEFAULT_LOOP_ITERATIONS
from conduit.domain.models import Edge
from conduit.execution.resolver import render_value
from conduit.executors.helpers import load_json, to_number, try_load_json
from conduit.registry import NodeRequest, register_node_kind
from conduit.sandbox import SandboxError, compile_function, evaluate


def as_text(value: Any) -> str:
    """Text form used for equality tests (``3.0`` compares equal to ``"3"``)."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return render_value(value)


def _field_value(value: Any, field: str | None) -> Any:
    if not field:
        return value
    try:
        parsed = load_json(value)
    except ValueError:
        return value
    if isinstance(parsed, dict):
        return parsed.get(field)
    if isinstance(parsed, list) and field.lstrip("-").isdigit():
        index = int(field)
        return parsed[index] if -len(parsed) <= index < len(parsed) else None
    return None


def _regex_test(pattern: Any, text: str) -> bool:
    try:
        return re.search(str(pattern), text) is not None
    except re.error:
        return False


_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "equals": lambda left, right: as_text(left) == as_text(right),
    "not_equals": lambda left, right: as_text(left) != as_text(right),
    "contains": lambda left, right: as_text(right) in as_text(left),
    "not_contains": lambda left, right: as_text(right) not in as_text(left),
    "greater_than": lambda left, right: to_number(left) > to_number(right),
    "less_than": lambda left, right: to_number(left) < to_number(right),
    "greater_equal": lambda left, right: to_number(left) >= to_number(right),
    "less_equal": lambda left, right: to_number(left) <= to_number(right),
    "regex": lambda left, right: _regex_test(right, as_text(left)),
    "truthy": lambda left, right: bool(left),
    "falsy": lambda left, right: not left,
    "exists": lambda left, right: left is not None,
}
_ALIASES = {
    "==": "equals",
    "!=": "not_equals",
    ">": "greater_than",
    "<": "less_than",
    ">=": "greater_equal",
    "<=": "less_equal",
}


def evaluate_condition(condition: dict[str, Any], value: Any) -> bool:
    """Evaluate one ``{field, operator, value}`` comparison against ``value``.

    Unknown operators test the truthiness of the selected field.
    """
    left = _field_value(value, condition.get("field"))
    operator = condition.get("operator") or "equals"
    compare = _OPERATORS.get(_ALIASES.get(operator, operator))
    if compare is None:
        return bool(left)
    return compare(left, condition.get("value"))


def _skip_handles(request: NodeRequest, should_skip: Callable[[Edge], bool]) -> None:
    for edge in request.outgoing():
        if should_skip(edge):
            request.skip_set.propagate(edge.target, request.edges, include_root=True)


@register_node_kind("ConditionNode")
def execute_condition(request: NodeRequest) -> dict[str, Any]:
    conditions = request.data.get("conditions") or []
    value = request.input

    if conditions:
        result = all(evaluate_condition(condition, value) for condition in conditions)
    else:
        result = bool(value) and value not in ("false", "0")

    branch = "true" if result else "false"
    inactive = "false" if result else "true"
    _skip_handles(request, lambda edge: edge.source_handle == inactive)

    return {"result": result, "branch": branch, "input": value}


# A bare keyword such as "json" or "max" evaluates to a builtin; only data
# results count as an answer to the expression.
_DATA_TYPES = (type(None), bool, int, float, str, bytes, list, tuple, dict, set, frozenset)


def _is_data(value: Any) -> bool:
    return isinstance(value, _DATA_TYPES)


def _route_matches(condition: str, value: Any, filename: str) -> bool:
    try:
        result = evaluate(condition, {"input": value}, filename=filename)
    except Exception:
        pass
    else:
        if _is_data(result):
            return bool(result)
    return isinstance(value, str) and condition.lower() in value.lower()


def _handle_index(handle: str | None) -> int | None:
    try:
        return int(handle) if handle is not None else None
    except ValueError:
        return None


@register_node_kind("RouterNode")
def execute_router(request: NodeRequest) -> dict[str, Any]:
    """Pick the first route whose expression over ``input`` is truthy.

    Route expressions that fail to evaluate, or that name a builtin rather
    than yield data, fall back to a case-insensitive substring test. With no match, every route stays live.
    """
    routes = request.data.get("routes") or []
    value = request.input

    matched = -1
    for index, route in enumerate(routes):
        condition = route.get("condition")
        if not condition:
            continue
        if _route_matches(condition, value, f"<route {request.node_id}:{index}>"):
            matched = index
            break

    if matched != -1:

        def off_route(edge: Edge) -> bool:
            index = _handle_index(edge.source_handle)
            return index is not None and index != matched

        _skip_handles(request, off_route)

    label = "no match"
    if matched >= 0:
        label = routes[matched].get("label") or f"Route {matched}"
    return {"matched_route": label, "matched_index": matched, "input": value}


@register_node_kind("LoopNode")
def execute_loop(request: NodeRequest) -> Any:
    """Collect the input up to ``maxIterations`` times or until the stop rule holds.

    The stop rule is an expression over ``input`` and ``iteration``; when it
    cannot be evaluated, or yields a builtin rather than data, it is treated
    as a substring to look for in the input.
    """
    max_iterations = int(request.data.get("maxIterations") or DEFAULT_LOOP_ITERATIONS)
    stop_condition = request.data.get("stopCondition") or ""
    current = request.input

    predicate = None
    if stop_condition:
        try:
            predicate = compile_function(
                ["input", "iteration"], stop_condition, filename=f"<loop {request.node_id}>"
            )
        except SandboxError:
            predicate = None

    def should_stop(iteration: int) -> bool:
        if not stop_condition:
            return False
        if predicate is not None:
            try:
                result = predicate(current, iteration)
            except Exception:
                pass
            else:
                if _is_data(result):
                    return bool(result)
        return isinstance(current, str) and stop_condition in current

    results = []
    for iteration in range(max_iterations):
        results.append(current)
        if should_stop(iteration):
            break

    return results[0] if len(results) == 1 else results


@register_node_kind("SwitchNode")
def execute_switch(request: NodeRequest) -> Any:
    """Route on one field of the input; a case valued ``*`` is the default."""
    field = request.data.get("switchField") or "value"
    cases = request.data.get("cases") or []
    value = request.input

    parsed = try_load_json(value)
    selected = parsed.get(field) if isinstance(parsed, dict) else None
    test = as_text(selected) if selected is not None else as_text(value)

    matched = -1
    default = -1
    for index, case in enumerate(cases):
        if case.get("value") == "*":
            default = index
            continue
        if as_text(case.get("value")) == test:
            matched = index
            break
    if matched == -1:
        matched = default

    inactive = {f"case-{index}" for index in range(len(cases)) if index != matched}
    _skip_handles(request, lambda edge: edge.source_handle in inactive)
    return value
