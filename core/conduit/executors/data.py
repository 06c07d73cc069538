"""List-shaped data kinds: sort, aggregate, deduplicate, split, merge, wait."""

from __future__ import annotations

import asyncio
import json
import math
from typing import Any

from conduit.execution.cancellation import run_cancellable
from conduit.executors.helpers import load_list, to_number, try_load_json
from conduit.registry import NodeRequest, register_node_kind


def _field(item: Any, field: str | None) -> Any:
    if not field:
        return item
    if isinstance(item, dict):
        return item.get(field)
    return item


def _sort_key(value: Any) -> tuple[int, Any]:
    # Numbers, then strings, then everything else, then missing values.
    if value is None:
        return (3, "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value)
    if isinstance(value, str):
        return (1, value)
    return (2, json.dumps(value, sort_keys=True, default=str))


def _line(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value, default=str)


@register_node_kind("SortNode")
def execute_sort(request: NodeRequest) -> Any:
    items = load_list(request.input)
    if items is None:
        return request.input

    field = request.data.get("sortField") or "value"
    descending = (request.data.get("sortOrder") or "asc") == "desc"
    return sorted(items, key=lambda item: _sort_key(_field(item, field)), reverse=descending)


def _numbers(values: list[Any]) -> list[float]:
    return [n for n in (to_number(v) for v in values) if not math.isnan(n)]


@register_node_kind("AggregateNode")
def execute_aggregate(request: NodeRequest) -> Any:
    items = load_list(request.input)
    if items is None:
        return request.input

    op = request.data.get("aggregateOp") or "concatenate"
    field = request.data.get("aggregateField")
    if field:
        values = [item.get(field) for item in items if isinstance(item, dict)]
        values = [value for value in values if value is not None]
    else:
        values = items

    if op == "sum":
        return sum(_numbers(values))
    if op == "average":
        numbers = _numbers(values)
        return sum(numbers) / len(numbers) if numbers else 0
    if op == "count":
        return len(values)
    if op in ("min", "max"):
        numbers = _numbers(values)
        if not numbers:
            return None
        return min(numbers) if op == "min" else max(numbers)
    return "\n".join(_line(value) for value in values)


@register_node_kind("DeduplicateNode")
def execute_deduplicate(request: NodeRequest) -> Any:
    """Drop repeated items, keeping the first occurrence.

    With ``deduplicateField`` set (and not ``auto``) items are compared on that
    field; otherwise on their whole JSON form.
    """
    items = load_list(request.input)
    if items is None:
        return request.input

    field = request.data.get("deduplicateField")
    if field == "auto":
        field = None

    seen: set[str] = set()
    unique = []
    for item in items:
        key = json.dumps(_field(item, field), sort_keys=True, default=str)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


def _chunk(items: list[Any], count: int) -> list[list[Any]]:
    if not items:
        return []
    size = max(1, math.ceil(len(items) / count))
    return [items[i : i + size] for i in range(0, len(items), size)]


@register_node_kind("SplitNode")
def execute_split(request: NodeRequest) -> Any:
    """Split the input into ``splitCount`` roughly equal groups.

    ``lines`` and ``chunks`` work on text and yield strings; ``items`` works on
    a list (or the input's lines when it is not JSON).
    """
    split_by = request.data.get("splitBy") or "items"
    count = max(1, int(request.data.get("splitCount") or 2))
    value = request.input

    if split_by == "lines":
        lines = str(value).split("\n")
        return ["\n".join(group) for group in _chunk(lines, count)]

    if split_by == "chunks":
        text = str(value)
        if not text:
            return []
        size = math.ceil(len(text) / count)
        return [text[i : i + size] for i in range(0, len(text), size)]

    try:
        items = json.loads(value) if isinstance(value, str) else value
    except ValueError:
        items = value.split("\n")
    if not isinstance(items, list):
        items = [items]

    groups = _chunk(items, count)
    return groups[0] if len(groups) == 1 else groups


def _merge_items(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            # Multiple upstream outputs arrive joined by blank lines.
            return [part for part in value.split("\n\n") if part]
        return parsed if isinstance(parsed, list) else [parsed]
    return [value]


@register_node_kind("MergeNode")
def execute_merge(request: NodeRequest) -> Any:
    mode = request.data.get("mergeMode") or "append"
    items = _merge_items(request.input)

    if mode == "zip":
        columns = []
        for item in items:
            column = try_load_json(item)
            columns.append(column if isinstance(column, list) else [column])
        length = max((len(column) for column in columns), default=0)
        return [
            [column[i] if i < len(column) else None for column in columns]
            for i in range(length)
        ]

    if mode == "merge" and items and all(isinstance(item, dict) for item in items):
        merged: dict[str, Any] = {}
        for item in items:
            merged.update(item)
        return merged

    if mode == "first":
        return next((item for item in items if item is not None and item != ""), "")

    return "\n".join(_line(item) for item in items)


WAIT_UNITS = {"ms": 0.001, "seconds": 1, "minutes": 60}


@register_node_kind("WaitNode")
async def execute_wait(request: NodeRequest) -> Any:
    """Pause, then pass the input through. Stopping the run ends the wait."""
    duration = float(request.data.get("waitDuration") or 1)
    unit = request.data.get("waitUnit") or "seconds"
    await run_cancellable(asyncio.sleep(duration * WAIT_UNITS.get(unit, 0.001)), request.token)
    return request.input
