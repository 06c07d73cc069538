"""Per-run state: node outputs and the skip set."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator

from conduit.domain.models import Edge


class SkipSet:
    """Node ids whose execution is suppressed for the rest of a run.

    The set only grows: there is no way to remove an id once added.
    """

    def __init__(self, initial: Iterable[str] = ()) -> None:
        self._ids: set[str] = set(initial)

    def add(self, node_id: str) -> None:
        self._ids.add(node_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __repr__(self) -> str:
        return f"SkipSet({sorted(self._ids)})"

    def propagate(self, root: str, edges: Iterable[Edge], *, include_root: bool = False) -> None:
        """Skip everything reachable from ``root`` along outgoing edges.

        A node already in the set is not walked again, so re-merging diamonds
        are visited once. ``include_root`` is used for branch decisions, where
        the root itself is the unreached target; a failed node is not skipped
        because it already ran.
        """
        edge_list = list(edges)
        if include_root:
            self._ids.add(root)

        stack = [root]
        while stack:
            current = stack.pop()
            for edge in edge_list:
                if edge.source == current and edge.target not in self._ids:
                    self._ids.add(edge.target)
                    stack.append(edge.target)


@dataclass
class ExecutionContext:
    """Context for one ``execute()`` call. Never shared across runs."""

    agent_id: str
    execution_id: str
    original_input: Any
    node_outputs: dict[str, Any] = field(default_factory=dict)
    skip_set: SkipSet = field(default_factory=SkipSet)

    def record(self, node_id: str, output: Any) -> None:
        self.node_outputs[node_id] = output

    def has_output(self, node_id: str) -> bool:
        return node_id in self.node_outputs

    def snapshot(self) -> dict[str, Any]:
        """Shallow copy of the outputs, handed to user code."""
        return dict(self.node_outputs)
