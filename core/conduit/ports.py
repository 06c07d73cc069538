"""Collaborator protocols the engine depends on.

The engine never imports a concrete provider, store or transport. Callers hand
it a ``Collaborators`` bundle; defaults live in ``conduit.library``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Literal, Mapping, Protocol, runtime_checkable

import httpx

from conduit.domain.models import AgentGraph, Artifact, ProviderConfig, ProviderResult, RunResult

if TYPE_CHECKING:
    from conduit.config import RunSettings
    from conduit.library.memory import MemoryStore

ProgressEvent = Literal["step", "complete", "error"]


@runtime_checkable
class ProviderRouter(Protocol):
    async def call(
        self,
        provider: str,
        config: ProviderConfig,
        text: str,
        credentials: Mapping[str, str],
    ) -> ProviderResult:
        """Run one text-generation call. Raises ``ProviderError`` on failure."""
        ...


@runtime_checkable
class ArtifactStore(Protocol):
    def save(
        self,
        *,
        agent_id: str,
        execution_id: str,
        node_id: str,
        node_kind: str,
        filename: str,
        content: bytes | str,
        mime_type: str,
    ) -> Artifact:
        """Persist a generated file and return its reference."""
        ...


@runtime_checkable
class AgentStore(Protocol):
    def find_by_id(self, agent_id: str) -> AgentGraph | None:
        ...


@dataclass(frozen=True, slots=True)
class MailAttachment:
    filename: str
    path: str


@dataclass(frozen=True, slots=True)
class MailMessage:
    to: str
    subject: str
    html: str
    cc: str | None = None
    bcc: str | None = None
    attachments: tuple[MailAttachment, ...] = ()


@runtime_checkable
class MailTransport(Protocol):
    async def send(self, message: MailMessage) -> str:
        """Deliver ``message`` and return its message id. Raises ``TransportError``."""
        ...


@runtime_checkable
class ProgressSink(Protocol):
    def emit(self, event: ProgressEvent, payload: dict[str, Any]) -> None:
        ...


@runtime_checkable
class DocumentBuilder(Protocol):
    """Renders text into document formats. Rendering internals live elsewhere."""

    async def pdf(self, text: str, options: Mapping[str, Any]) -> bytes:
        ...

    async def docx(self, text: str, options: Mapping[str, Any]) -> bytes:
        ...

    async def html(self, markdown: str, options: Mapping[str, Any]) -> str:
        """Convert markdown to an HTML fragment."""
        ...

    async def video(self, sources: Mapping[str, Any], options: Mapping[str, Any]) -> bytes:
        ...


@runtime_checkable
class AgentInvoker(Protocol):
    """The engine's own ``execute`` signature, used for sub-agent calls."""

    async def execute(
        self,
        agent_graph: AgentGraph,
        input: Any,
        credentials: Mapping[str, str] | None = None,
        settings: "RunSettings | None" = None,
        execution_id: str | None = None,
    ) -> RunResult:
        ...


def _default_memory_store() -> "MemoryStore":
    from conduit.library.memory import MemoryStore

    return MemoryStore()


@dataclass
class Collaborators:
    """External services available to node executors."""

    provider_router: ProviderRouter | None = None
    artifact_store: ArtifactStore | None = None
    agent_store: AgentStore | None = None
    mail_transport: MailTransport | None = None
    document_builder: DocumentBuilder | None = None
    progress: ProgressSink | None = None
    memory_store: "MemoryStore" = field(default_factory=_default_memory_store)
    http_client_factory: Callable[[], httpx.AsyncClient] = httpx.AsyncClient
