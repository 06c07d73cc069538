"""Input resolution from upstream producers."""

from __future__ import annotations

import json
from typing import Any, Iterable

from pydantic import BaseModel

from conduit.domain.models import Edge
from conduit.execution.context import ExecutionContext


def render_value(value: Any) -> str:
    """Render any node output as text. Never raises."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, BaseModel):
        try:
            return value.model_dump_json(indent=2)
        except Exception:
            return str(value)
    try:
        return json.dumps(value, indent=2, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(value)


def upstream_outputs(node_id: str, edges: Iterable[Edge], ctx: ExecutionContext) -> list[Any]:
    """Recorded outputs of every node with an edge into ``node_id``, in edge-list order."""
    return [
        ctx.node_outputs[edge.source]
        for edge in edges
        if edge.target == node_id and ctx.has_output(edge.source)
    ]


def resolve(node_id: str, edges: Iterable[Edge], ctx: ExecutionContext) -> Any:
    """Compute a node's effective input.

    - no recorded upstream output: the run's original input
    - exactly one: that value, type preserved
    - several: each rendered to text, joined by a blank line
    """
    outputs = upstream_outputs(node_id, edges, ctx)

    if not outputs:
        return ctx.original_input
    if len(outputs) == 1:
        return outputs[0]
    return "\n\n".join(render_value(output) for output in outputs)
