"""Tests for topological scheduling.

These tests verify:
- Every node appears once and edges are respected
- Ties keep node-list order
- Dangling edges are ignored
- Cycles are rejected without a partial order
"""

from __future__ import annotations

import pytest

from conduit.errors import CycleError
from conduit.execution.scheduler import order
from conftest import edge, node


def _respects(sequence, edges):
    position = {node_id: i for i, node_id in enumerate(sequence)}
    return all(position[e.source] < position[e.target] for e in edges)


class TestOrder:
    def test_linear_chain(self):
        nodes = [node("c", "OutputNode"), node("b", "LLMNode"), node("a", "InputNode")]
        edges = [edge("a", "b"), edge("b", "c")]

        assert order(nodes, edges) == ["a", "b", "c"]

    def test_diamond_is_a_valid_permutation(self):
        nodes = [node(n, "ToolNode") for n in ("a", "b", "c", "d")]
        edges = [edge("a", "b"), edge("a", "c"), edge("b", "d"), edge("c", "d")]

        sequence = order(nodes, edges)

        assert sorted(sequence) == ["a", "b", "c", "d"]
        assert _respects(sequence, edges)
        assert sequence[0] == "a"
        assert sequence[-1] == "d"

    def test_independent_nodes_keep_list_order(self):
        nodes = [node("x", "InputNode"), node("y", "InputNode"), node("z", "InputNode")]

        assert order(nodes, []) == ["x", "y", "z"]

    def test_empty_graph(self):
        assert order([], []) == []

    def test_dangling_edges_are_ignored(self):
        nodes = [node("a", "InputNode"), node("b", "OutputNode")]
        edges = [edge("a", "b"), edge("ghost", "b"), edge("a", "missing")]

        assert order(nodes, edges) == ["a", "b"]

    def test_parallel_edges_counted_once_each(self):
        nodes = [node("a", "InputNode"), node("b", "OutputNode")]
        edges = [edge("a", "b"), edge("a", "b")]

        assert order(nodes, edges) == ["a", "b"]


class TestCycles:
    def test_two_node_cycle(self):
        nodes = [node("a", "ToolNode"), node("b", "ToolNode")]
        edges = [edge("a", "b"), edge("b", "a")]

        with pytest.raises(CycleError):
            order(nodes, edges)

    def test_self_loop(self):
        with pytest.raises(CycleError):
            order([node("a", "ToolNode")], [edge("a", "a")])

    def test_cycle_downstream_of_valid_prefix(self):
        nodes = [node(n, "ToolNode") for n in ("in", "a", "b")]
        edges = [edge("in", "a"), edge("a", "b"), edge("b", "a")]

        with pytest.raises(CycleError) as exc_info:
            order(nodes, edges)

        assert "cycle" in str(exc_info.value)
