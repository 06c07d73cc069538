"""Shared fakes and builders for Conduit tests."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Mapping

import pytest

from conduit.domain.models import AgentGraph, Edge, Node, ProviderConfig, ProviderResult, TokenUsage
from conduit.execution.cancellation import CancellationToken
from conduit.execution.context import ExecutionContext
from conduit.library.memory import MemoryStore
from conduit.library.progress import RecordingProgressSink
from conduit.ports import Collaborators, MailMessage
from conduit.registry import NodeRequest


class FakeProviderRouter:
    """Echoes (or transforms) the prompt and reports fixed token counts."""

    def __init__(
        self,
        reply: Callable[[str, ProviderConfig], str] | str | None = None,
        tokens: TokenUsage = TokenUsage(input=10, output=5),
        error: Exception | None = None,
        delay: float = 0,
    ) -> None:
        self.reply = reply
        self.tokens = tokens
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, ProviderConfig, str, Mapping[str, str]]] = []

    async def call(
        self,
        provider: str,
        config: ProviderConfig,
        text: str,
        credentials: Mapping[str, str],
    ) -> ProviderResult:
        self.calls.append((provider, config, text, credentials))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if callable(self.reply):
            answer = self.reply(text, config)
        elif self.reply is not None:
            answer = self.reply
        else:
            answer = f"LLM({text})"
        return ProviderResult(text=answer, tokens=self.tokens)


class FakeDocumentBuilder:
    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []

    async def pdf(self, text: str, options: Mapping[str, Any]) -> bytes:
        self.calls.append(("pdf", text))
        return b"%PDF-1.4 " + text.encode()

    async def docx(self, text: str, options: Mapping[str, Any]) -> bytes:
        self.calls.append(("docx", text))
        return b"PK docx " + text.encode()

    async def html(self, markdown: str, options: Mapping[str, Any]) -> str:
        self.calls.append(("html", markdown))
        return "<p>" + markdown.replace("\n", "</p><p>") + "</p>"

    async def video(self, sources: Mapping[str, Any], options: Mapping[str, Any]) -> bytes:
        self.calls.append(("video", dict(sources)))
        return b"mp4"


class FakeMailTransport:
    def __init__(self, error: Exception | None = None) -> None:
        self.sent: list[MailMessage] = []
        self.error = error

    async def send(self, message: MailMessage) -> str:
        if self.error is not None:
            raise self.error
        self.sent.append(message)
        return f"<msg-{len(self.sent)}@test>"


def node(node_id: str, kind: str, **data: Any) -> Node:
    return Node(id=node_id, type=kind, data=data)


def edge(source: str, target: str, handle: str | None = None) -> Edge:
    return Edge(id=f"{source}->{target}", source=source, target=target, sourceHandle=handle)


def graph(nodes: list[Node], edges: list[Edge] = (), agent_id: str = "agent-1") -> AgentGraph:
    return AgentGraph(id=agent_id, nodes=list(nodes), edges=list(edges))


def chain(*nodes: Node) -> list[Edge]:
    return [edge(a.id, b.id) for a, b in zip(nodes, nodes[1:])]


def make_request(
    kind: str,
    data: dict[str, Any] | None = None,
    input: Any = "",
    *,
    node_id: str = "n1",
    edges: list[Edge] = (),
    outputs: dict[str, Any] | None = None,
    collaborators: Collaborators | None = None,
    original_input: Any = None,
    token: CancellationToken | None = None,
    credentials: Mapping[str, str] | None = None,
    settings: Any = None,
    invoker: Any = None,
) -> NodeRequest:
    ctx = ExecutionContext(
        agent_id="agent-1",
        execution_id="exec-1",
        original_input=input if original_input is None else original_input,
        node_outputs=dict(outputs or {}),
    )
    return NodeRequest(
        node_id=node_id,
        kind=kind,
        data=dict(data or {}),
        input=input,
        context=ctx,
        edges=list(edges),
        collaborators=collaborators or Collaborators(),
        token=token or CancellationToken(),
        credentials=credentials or {},
        settings=settings,
        invoker=invoker,
    )


@pytest.fixture
def provider():
    return FakeProviderRouter()


@pytest.fixture
def progress():
    return RecordingProgressSink()


@pytest.fixture
def collaborators(provider, progress, tmp_path):
    from conduit.library.agents import InMemoryAgentStore
    from conduit.library.artifacts import FileArtifactStore

    return Collaborators(
        provider_router=provider,
        artifact_store=FileArtifactStore(tmp_path / "artifacts"),
        agent_store=InMemoryAgentStore(),
        mail_transport=FakeMailTransport(),
        document_builder=FakeDocumentBuilder(),
        progress=progress,
        memory_store=MemoryStore(),
    )

