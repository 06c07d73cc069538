"""Tests for the skip set and execution context."""

from __future__ import annotations

from conduit.execution.context import ExecutionContext, SkipSet
from conftest import edge


class TestSkipSet:
    def test_add_is_idempotent(self):
        skip = SkipSet()
        skip.add("a")
        skip.add("a")

        assert len(skip) == 1
        assert "a" in skip

    def test_propagate_excludes_root_by_default(self):
        edges = [edge("a", "b"), edge("b", "c")]
        skip = SkipSet()

        skip.propagate("a", edges)

        assert "a" not in skip
        assert set(skip) == {"b", "c"}

    def test_propagate_includes_root_for_branches(self):
        edges = [edge("a", "b"), edge("b", "c")]
        skip = SkipSet()

        skip.propagate("b", edges, include_root=True)

        assert set(skip) == {"b", "c"}

    def test_propagate_twice_equals_once(self):
        edges = [edge("a", "b"), edge("a", "c"), edge("b", "d"), edge("c", "d"), edge("d", "e")]
        once = SkipSet()
        once.propagate("a", edges)

        twice = SkipSet()
        twice.propagate("a", edges)
        twice.propagate("a", edges)

        assert set(once) == set(twice) == {"b", "c", "d", "e"}

    def test_already_skipped_nodes_are_not_walked(self):
        # "b" is skipped already, so its children are left alone.
        edges = [edge("a", "b"), edge("b", "c")]
        skip = SkipSet(["b"])

        skip.propagate("a", edges)

        assert "c" not in skip

    def test_never_shrinks(self):
        skip = SkipSet(["x"])
        skip.propagate("y", [])

        assert "x" in skip

    def test_repr_lists_ids(self):
        assert repr(SkipSet(["b", "a"])) == "SkipSet(['a', 'b'])"


class TestExecutionContext:
    def test_record_and_snapshot(self):
        ctx = ExecutionContext(agent_id="a", execution_id="e", original_input="hi")
        ctx.record("n1", {"k": 1})

        snapshot = ctx.snapshot()
        snapshot["n2"] = "changed"

        assert ctx.has_output("n1")
        assert not ctx.has_output("n2")

    def test_none_is_a_recorded_output(self):
        ctx = ExecutionContext(agent_id="a", execution_id="e", original_input="hi")
        ctx.record("n1", None)

        assert ctx.has_output("n1")
