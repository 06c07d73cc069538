"""Error taxonomy for agent execution."""

from __future__ import annotations


class ConduitError(RuntimeError):
    """Base class for engine errors."""


class CycleError(ConduitError):
    """Raised at scheduling time when the graph contains a cycle."""

    def __init__(self, message: str = "Agent flow contains a cycle; topological sort is not possible.") -> None:
        super().__init__(message)


class UnsupportedNodeKindError(ConduitError):
    """Raised when a node's kind has no registered executor."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"Unknown node type: {kind}")
        self.kind = kind


class NodeExecutionError(ConduitError):
    """Raised when a single node fails. Never aborts sibling branches."""

    def __init__(self, message: str, *, node_id: str | None = None) -> None:
        super().__init__(message)
        self.node_id = node_id


class ProviderError(ConduitError):
    """Raised by a provider router when a text-generation call fails."""


class TransportError(ConduitError):
    """Raised by a mail transport when a message cannot be delivered."""


class ExecutionCancelledError(ConduitError):
    """Raised when a run (or an in-flight request) is stopped by the user."""

    def __init__(self, message: str = "Execution was stopped by user.") -> None:
        super().__init__(message)
