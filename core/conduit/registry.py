"""Node kind registry and dispatch.

This module provides:
- A registry mapping node kinds (e.g. "LLMNode") to executor functions
- ``dispatch``, which runs the executor for a node and normalizes its failures
- The request/response types executors work with

Design:
- Each kind has one executor: (NodeRequest) -> output | NodeOutput
- Executors may be sync or async
- New kinds register themselves; the dispatcher is never edited

Example:
    @register_node_kind("ShoutNode")
    def execute_shout(request: NodeRequest) -> str:
        return str(request.input).upper()
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Union

from conduit.domain.models import Edge, TokenUsage
from conduit.errors import (
    ExecutionCancelledError,
    NodeExecutionError,
    UnsupportedNodeKindError,
)

if TYPE_CHECKING:
    from conduit.config import RunSettings
    from conduit.execution.cancellation import CancellationToken
    from conduit.execution.context import ExecutionContext, SkipSet
    from conduit.ports import AgentInvoker, Collaborators


@dataclass
class NodeRequest:
    """Everything an executor may need for one node."""

    node_id: str
    kind: str
    data: dict[str, Any]
    input: Any
    context: "ExecutionContext"
    edges: list[Edge]
    collaborators: "Collaborators"
    token: "CancellationToken"
    credentials: Mapping[str, str] = field(default_factory=dict)
    settings: "RunSettings | None" = None
    invoker: "AgentInvoker | None" = None

    @property
    def original_input(self) -> Any:
        return self.context.original_input

    @property
    def skip_set(self) -> "SkipSet":
        return self.context.skip_set

    @property
    def agent_id(self) -> str:
        return self.context.agent_id

    @property
    def execution_id(self) -> str:
        return self.context.execution_id

    def outgoing(self) -> list[Edge]:
        return [edge for edge in self.edges if edge.source == self.node_id]


@dataclass(frozen=True, slots=True)
class NodeOutput:
    """Executor result carrying token usage alongside the output."""

    output: Any
    tokens: TokenUsage = field(default_factory=TokenUsage)


NodeExecutor = Callable[[NodeRequest], Union[Any, Awaitable[Any]]]


class NodeKindRegistry:
    """Registry of node kind executors.

    Example:
        registry = NodeKindRegistry()

        @registry.register_executor("EchoNode")
        def run_echo(request: NodeRequest) -> Any:
            return request.input

        output = await registry.dispatch("EchoNode", request)
    """

    def __init__(self) -> None:
        self._executors: dict[str, NodeExecutor] = {}

    def register(self, kind: str, executor: NodeExecutor) -> None:
        """Register an executor for a node kind.

        Args:
            kind: Node kind tag (e.g., "LLMNode")
            executor: Function taking a NodeRequest
        """
        self._executors[kind] = executor

    def register_executor(self, kind: str) -> Callable[[NodeExecutor], NodeExecutor]:
        """Decorator for registering an executor."""
        def decorator(executor: NodeExecutor) -> NodeExecutor:
            self.register(kind, executor)
            return executor
        return decorator

    def has_kind(self, kind: str) -> bool:
        return kind in self._executors

    def kinds(self) -> list[str]:
        return sorted(self._executors)

    async def dispatch(self, kind: str, request: NodeRequest) -> NodeOutput:
        """Run the executor for ``kind``.

        Returns:
            NodeOutput with the executor's output and token usage

        Raises:
            UnsupportedNodeKindError: If no executor is registered for ``kind``
            NodeExecutionError: For any failure inside the executor
            ExecutionCancelledError: If the run was stopped while the node ran
        """
        executor = self._executors.get(kind)
        if executor is None:
            raise UnsupportedNodeKindError(kind)

        try:
            result = executor(request)
            if inspect.isawaitable(result):
                result = await result
        except (NodeExecutionError, ExecutionCancelledError):
            raise
        except Exception as e:
            raise NodeExecutionError(f"{kind}: {e}", node_id=request.node_id) from e

        if isinstance(result, NodeOutput):
            return result
        return NodeOutput(output=result)


# Global registry instance
_global_registry = NodeKindRegistry()


def register_node_kind(kind: str) -> Callable[[NodeExecutor], NodeExecutor]:
    """Decorator to register a node kind executor in the global registry.

    Example:
        @register_node_kind("ShoutNode")
        def execute_shout(request: NodeRequest) -> str:
            return str(request.input).upper()
    """
    return _global_registry.register_executor(kind)


def has_node_kind(kind: str) -> bool:
    return _global_registry.has_kind(kind)


def get_global_registry() -> NodeKindRegistry:
    """Get the global registry, with every built-in kind loaded."""
    import conduit.executors  # noqa: F401

    return _global_registry
