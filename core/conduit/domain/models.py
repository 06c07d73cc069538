"""Pydantic domain models for agent graphs and run results.

These models are the stable contract between the editor (which authors graphs),
the engine (which executes them), and callers (which consume traces).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Node(BaseModel):
    """A processing step in an agent graph."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., description="Stable unique identifier")
    kind: str = Field(..., alias="type", description="Node kind tag (e.g. 'LLMNode')")
    data: dict[str, Any] = Field(default_factory=dict, description="Kind-specific configuration")

    @property
    def label(self) -> str:
        return self.data.get("label") or self.kind


class Edge(BaseModel):
    """A directed data-flow edge between two nodes."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str | None = Field(default=None, description="Edge id")
    source: str = Field(..., description="Source node id")
    target: str = Field(..., description="Target node id")
    source_handle: str | None = Field(
        default=None,
        alias="sourceHandle",
        description="Branch selector on the source (true/false, route index, case-N)",
    )


class AgentGraph(BaseModel):
    """An agent definition: nodes plus edges. Must be acyclic to run."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default="agent", description="Agent id")
    name: str | None = Field(default=None, description="Display name")
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _unwrap_flow(cls, value: Any) -> Any:
        # Editors store the graph as {"id": ..., "flow": {"nodes": [...], "edges": [...]}}.
        if isinstance(value, dict) and "flow" in value and "nodes" not in value:
            flow = value.get("flow") or {}
            value = {k: v for k, v in value.items() if k != "flow"}
            value["nodes"] = flow.get("nodes", [])
            value["edges"] = flow.get("edges", [])
        return value

    def node_map(self) -> dict[str, Node]:
        return {node.id: node for node in self.nodes}


class Artifact(BaseModel):
    """A persisted generated file, consumable by downstream nodes."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Artifact id (art_...)")
    path: str = Field(..., description="Absolute path on disk")
    filename: str = Field(..., description="Resolved filename")
    mime_type: str = Field(default="application/octet-stream")
    kind: str = Field(default="unknown", description="pdf, docx, html, video, ...")


class TokenUsage(BaseModel):
    """Token counts reported by a provider."""

    model_config = ConfigDict(frozen=True)

    input: int = 0
    output: int = 0


class ProviderConfig(BaseModel):
    """Resolved configuration for a single provider call."""

    model_config = ConfigDict(frozen=True)

    model: str
    system_prompt: str = ""
    temperature: float | None = None
    max_tokens: int | None = None


class ProviderResult(BaseModel):
    """Normalized provider response."""

    model_config = ConfigDict(frozen=True)

    text: str = ""
    tokens: TokenUsage = Field(default_factory=TokenUsage)


TraceStatus = Literal["completed", "failed"]
RunStatus = Literal["completed", "failed", "cancelled"]


class TraceEntry(BaseModel):
    """Observability record of a single node's execution outcome."""

    model_config = ConfigDict(frozen=True)

    node_id: str
    kind: str
    label: str
    input: Any = None
    output: Any = None
    started_at: datetime
    ended_at: datetime
    duration_ms: float = 0.0
    tokens_in: int = 0
    tokens_out: int = 0
    status: TraceStatus = "completed"
    error: str | None = None


class RunMetrics(BaseModel):
    """Aggregate metrics over one run."""

    model_config = ConfigDict(frozen=True)

    total_duration_ms: float = 0.0
    total_tokens_in: int = 0
    total_tokens_out: int = 0
    node_count: int = 0
    success_count: int = 0
    fail_count: int = 0


class RunResult(BaseModel):
    """Result of ``AgentEngine.execute``.

    ``success`` is False only when the run hit a scheduling-level fatal error or
    was cancelled; individual node failures show up in per-entry status.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    status: RunStatus
    execution_id: str
    output: Any = None
    trace: list[TraceEntry] = Field(default_factory=list)
    metrics: RunMetrics = Field(default_factory=RunMetrics)
    error: str | None = None
