"""Topological scheduling of agent graphs."""

from __future__ import annotations

from collections import deque
from typing import Iterable

from conduit.domain.models import Edge, Node
from conduit.errors import CycleError


def order(nodes: Iterable[Node], edges: Iterable[Edge]) -> list[str]:
    """Return node ids in a valid execution order (Kahn's algorithm).

    Edges whose source or target is not among ``nodes`` are ignored: graphs
    coming from the editor may be transiently inconsistent.

    Raises:
        CycleError: If the graph contains a cycle. No partial order is returned.
    """
    node_ids = [node.id for node in nodes]
    known = set(node_ids)

    in_degree: dict[str, int] = {node_id: 0 for node_id in node_ids}
    adjacency: dict[str, list[str]] = {node_id: [] for node_id in node_ids}

    for edge in edges:
        if edge.source not in known or edge.target not in known:
            continue
        adjacency[edge.source].append(edge.target)
        in_degree[edge.target] += 1

    queue = deque(node_id for node_id in in_degree if in_degree[node_id] == 0)
    ordered: list[str] = []

    while queue:
        current = queue.popleft()
        ordered.append(current)
        for successor in adjacency[current]:
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                queue.append(successor)

    if len(ordered) != len(in_degree):
        raise CycleError()

    return ordered
