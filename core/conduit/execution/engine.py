"""Execution engine with graph-based node orchestration."""

from __future__ import annotations

import sys
import uuid
from typing import Any, Mapping

from conduit.config import RunSettings
from conduit.domain.models import AgentGraph, Node, RunResult
from conduit.errors import ConduitError, CycleError, ExecutionCancelledError
from conduit.execution import resolver, scheduler
from conduit.execution.cancellation import Execution, ExecutionRegistry
from conduit.execution.context import ExecutionContext
from conduit.execution.tracing import Tracer
from conduit.ports import Collaborators, ProgressEvent
from conduit.registry import NodeKindRegistry, NodeRequest, get_global_registry


def new_execution_id() -> str:
    return f"exec_{uuid.uuid4().hex[:12]}"


class AgentEngine:
    """Runs agent graphs node by node in topological order.

    This engine:
    1. Orders the graph's nodes (a cycle fails the run before any node runs)
    2. Resolves each node's input from its upstream outputs
    3. Dispatches the node to the executor registered for its kind
    4. Records a trace entry; a failed node skips everything downstream of it
    5. Returns the final output together with the trace and run metrics

    One engine can serve many concurrent runs. Each call to ``execute`` owns
    its context and skip set; only the collaborators are shared.
    """

    def __init__(
        self,
        collaborators: Collaborators | None = None,
        registry: NodeKindRegistry | None = None,
    ) -> None:
        self.collaborators = collaborators or Collaborators()
        self._registry = registry
        self.executions = ExecutionRegistry()

    @property
    def registry(self) -> NodeKindRegistry:
        if self._registry is None:
            self._registry = get_global_registry()
        return self._registry

    def stop(self, execution_id: str | None = None) -> bool:
        """Stop one run, or every live run when ``execution_id`` is None.

        Returns:
            False if nothing was running under that id.
        """
        return self.executions.cancel(execution_id)

    def active_executions(self) -> list[str]:
        return self.executions.active_ids()

    async def execute(
        self,
        agent_graph: AgentGraph | Mapping[str, Any],
        input: Any,
        credentials: Mapping[str, str] | None = None,
        settings: RunSettings | Mapping[str, Any] | None = None,
        execution_id: str | None = None,
    ) -> RunResult:
        """Execute an agent graph.

        Args:
            agent_graph: The graph, or its dict form (``{nodes, edges}`` or ``{flow: ...}``)
            input: The run's original input
            credentials: Secrets for providers and transports. Never logged.
            settings: Run-level defaults for generative kinds
            execution_id: Id to register the run under (generated when omitted)

        Returns:
            RunResult. ``success`` is False only when the graph cannot be
            scheduled or the run was stopped; node failures are reported in
            the trace.

        Raises:
            ValueError: If ``execution_id`` is already in use by a live run
        """
        graph = agent_graph if isinstance(agent_graph, AgentGraph) else AgentGraph.model_validate(agent_graph)
        if settings is not None and not isinstance(settings, RunSettings):
            settings = RunSettings.model_validate(settings)
        execution_id = execution_id or new_execution_id()

        execution = self.executions.register(execution_id)
        try:
            return await self._run(graph, input, credentials or {}, settings, execution)
        finally:
            self.executions.deregister(execution_id, execution)

    async def _run(
        self,
        graph: AgentGraph,
        original_input: Any,
        credentials: Mapping[str, str],
        settings: RunSettings | None,
        execution: Execution,
    ) -> RunResult:
        sys.stderr.write(f"[ENGINE] Starting execution {execution.id} of agent {graph.id}\n")
        sys.stderr.flush()

        tracer = Tracer()
        node_count = len(graph.nodes)

        try:
            sequence = scheduler.order(graph.nodes, graph.edges)
        except CycleError as e:
            sys.stderr.write(f"[ENGINE] {execution.id}: {e}\n")
            sys.stderr.flush()
            self._emit("error", {"execution_id": execution.id, "error": str(e)})
            return RunResult(
                success=False,
                status="failed",
                execution_id=execution.id,
                output=None,
                trace=[],
                metrics=tracer.metrics(node_count),
                error=str(e),
            )

        sys.stderr.write(f"[ENGINE] Execution order: {sequence}\n")
        sys.stderr.flush()

        ctx = ExecutionContext(
            agent_id=graph.id,
            execution_id=execution.id,
            original_input=original_input,
        )
        nodes = graph.node_map()

        for node_id in sequence:
            if execution.token.cancelled:
                return self._cancelled(execution, tracer, node_count)

            if node_id in ctx.skip_set:
                sys.stderr.write(f"[ENGINE] Skipping node: {node_id}\n")
                sys.stderr.flush()
                continue

            node = nodes[node_id]
            node_input = resolver.resolve(node_id, graph.edges, ctx)
            self._emit("step", self._step_payload(execution, node, status="running", input=node_input))

            sys.stderr.write(f"[ENGINE] Executing node: {node_id} ({node.kind})\n")
            sys.stderr.flush()

            span = tracer.start(node, node_input)
            request = NodeRequest(
                node_id=node_id,
                kind=node.kind,
                data=dict(node.data),
                input=node_input,
                context=ctx,
                edges=graph.edges,
                collaborators=self.collaborators,
                token=execution.token,
                credentials=credentials,
                settings=settings,
                invoker=self,
            )

            try:
                result = await self.registry.dispatch(node.kind, request)
            except ExecutionCancelledError as e:
                tracer.failed(span, e)
                return self._cancelled(execution, tracer, node_count)
            except ConduitError as e:
                entry = tracer.failed(span, e)
                sys.stderr.write(f"[ENGINE] Node {node_id} failed: {entry.error}\n")
                sys.stderr.flush()
                # Independent branches keep running; only this node's descendants stop.
                ctx.skip_set.propagate(node_id, graph.edges)
                self._emit(
                    "step",
                    self._step_payload(execution, node, status="failed", error=entry.error),
                )
                continue

            entry = tracer.completed(span, result.output, result.tokens)
            ctx.record(node_id, result.output)
            sys.stderr.write(
                f"[ENGINE] Node {node_id} completed in {entry.duration_ms:.0f}ms, "
                f"output type: {type(result.output).__name__}\n"
            )
            sys.stderr.flush()
            self._emit(
                "step",
                self._step_payload(
                    execution,
                    node,
                    status="completed",
                    output=result.output,
                    duration_ms=entry.duration_ms,
                    tokens_in=entry.tokens_in,
                    tokens_out=entry.tokens_out,
                ),
            )

        if execution.token.cancelled:
            return self._cancelled(execution, tracer, node_count)

        output = self._final_output(graph, sequence, ctx)
        metrics = tracer.metrics(node_count)
        self._emit("complete", {"execution_id": execution.id, "output": output, "metrics": metrics})

        sys.stderr.write(
            f"[ENGINE] Execution {execution.id} completed: "
            f"{metrics.success_count} ok, {metrics.fail_count} failed\n"
        )
        sys.stderr.flush()

        return RunResult(
            success=True,
            status="completed",
            execution_id=execution.id,
            output=output,
            trace=tracer.entries,
            metrics=metrics,
        )

    @staticmethod
    def _final_output(graph: AgentGraph, sequence: list[str], ctx: ExecutionContext) -> Any:
        """The last Output node (in node-list order) that produced a value.

        Graphs without Output nodes yield the last scheduled node's output.
        """
        output_ids = [node.id for node in graph.nodes if node.kind == "OutputNode"]
        if output_ids:
            for node_id in reversed(output_ids):
                if ctx.has_output(node_id):
                    return ctx.node_outputs[node_id]
            return None
        if not sequence:
            return None
        return ctx.node_outputs.get(sequence[-1])

    def _cancelled(self, execution: Execution, tracer: Tracer, node_count: int) -> RunResult:
        error = str(ExecutionCancelledError())
        sys.stderr.write(f"[ENGINE] Execution {execution.id} cancelled\n")
        sys.stderr.flush()
        self._emit("error", {"execution_id": execution.id, "error": error})
        return RunResult(
            success=False,
            status="cancelled",
            execution_id=execution.id,
            output=None,
            trace=tracer.entries,
            metrics=tracer.metrics(node_count),
            error=error,
        )

    @staticmethod
    def _step_payload(execution: Execution, node: Node, *, status: str, **extra: Any) -> dict[str, Any]:
        payload = {
            "execution_id": execution.id,
            "node_id": node.id,
            "kind": node.kind,
            "label": node.label,
            "status": status,
        }
        payload.update(extra)
        return payload

    def _emit(self, event: ProgressEvent, payload: dict[str, Any]) -> None:
        sink = self.collaborators.progress
        if sink is None:
            return
        try:
            sink.emit(event, payload)
        except Exception as e:
            sys.stderr.write(f"[ENGINE] Progress sink failed on {event}: {e}\n")
            sys.stderr.flush()
