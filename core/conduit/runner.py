"""Conduit agent runner.

This module provides a convenience layer over ``AgentEngine`` for scripts and
the CLI:
- Loading agent graphs from JSON files
- Building default collaborators (LangChain provider router, file artifacts,
  JSON or in-memory agent store)
- Reading settings and credentials from the environment

Design principles:
- The engine never touches the filesystem or environment; this module does
- Load errors are reported as exceptions, run errors as ``RunResult``
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Mapping

from pydantic import ValidationError

from conduit.config import RunSettings
from conduit.domain.models import AgentGraph, RunResult
from conduit.execution.engine import AgentEngine
from conduit.library.agents import InMemoryAgentStore, JsonAgentStore
from conduit.library.artifacts import FileArtifactStore
from conduit.library.credentials import CredentialBag
from conduit.library.llm import LangChainProviderRouter
from conduit.ports import Collaborators, ProgressSink

DEFAULT_ARTIFACTS_DIR = "artifacts"


class AgentFileError(ValueError):
    """Raised when an agent file cannot be read or is not a valid graph."""


def load_agent_file(file_path: str | Path) -> AgentGraph:
    """Load an agent graph from a JSON file.

    The file may hold the graph itself (``{nodes, edges}``), the editor's
    ``{flow: {nodes, edges}}`` shape, or a ``{"agents": [...]}`` store with a
    single agent.

    Raises:
        FileNotFoundError: If the file does not exist
        AgentFileError: If the file is not valid JSON or not a valid graph
    """
    file_path = Path(file_path)
    sys.stderr.write(f"[RUNNER] Loading agent file: {file_path}\n")
    sys.stderr.flush()

    if not file_path.exists():
        raise FileNotFoundError(f"Agent file not found: {file_path}")

    try:
        raw = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise AgentFileError(f"Invalid JSON in {file_path}: {e}") from e

    if isinstance(raw, dict) and "agents" in raw and "nodes" not in raw and "flow" not in raw:
        agents = raw.get("agents") or []
        if len(agents) != 1:
            raise AgentFileError(f"{file_path} holds {len(agents)} agents; expected exactly one")
        raw = agents[0]

    if isinstance(raw, dict) and "id" not in raw:
        raw = {**raw, "id": file_path.stem}

    try:
        return AgentGraph.model_validate(raw)
    except ValidationError as e:
        raise AgentFileError(f"Invalid agent graph in {file_path}: {e}") from e


def default_collaborators(
    *,
    artifacts_dir: str | Path | None = None,
    agents_file: str | Path | None = None,
    progress: ProgressSink | None = None,
) -> Collaborators:
    """Collaborators for running outside a host application.

    Mail is sent through SMTP settings found in the run's credentials; no
    document builder is installed, so document kinds fail until one is supplied.
    """
    return Collaborators(
        provider_router=LangChainProviderRouter(),
        artifact_store=FileArtifactStore(artifacts_dir or DEFAULT_ARTIFACTS_DIR),
        agent_store=JsonAgentStore(agents_file) if agents_file else InMemoryAgentStore(),
        progress=progress,
    )


class AgentRunner:
    """Runs agent files with environment-derived settings and credentials.

    Example:
        ```python
        runner = AgentRunner()
        result = await runner.run_agent_file("examples/summarize.json", "Some text")
        print(result.output if result.success else result.error)
        ```
    """

    def __init__(
        self,
        *,
        collaborators: Collaborators | None = None,
        settings: RunSettings | None = None,
        credentials: Mapping[str, str] | None = None,
    ) -> None:
        self.engine = AgentEngine(collaborators or default_collaborators())
        self.settings = settings if settings is not None else RunSettings.from_env()
        self.credentials = credentials if credentials is not None else CredentialBag.from_env()

    async def run_agent(self, agent: AgentGraph, input: Any = "") -> RunResult:
        sys.stderr.write(f"[RUNNER] Running agent {agent.id} ({len(agent.nodes)} nodes)\n")
        sys.stderr.flush()
        return await self.engine.execute(agent, input, credentials=self.credentials, settings=self.settings)

    async def run_agent_file(self, file_path: str | Path, input: Any = "") -> RunResult:
        """Load and run an agent file.

        Raises:
            FileNotFoundError: If the file does not exist
            AgentFileError: If the file is not a valid graph
        """
        return await self.run_agent(load_agent_file(file_path), input)


def run_agent_sync(
    file_path: str | Path,
    input: Any = "",
    *,
    collaborators: Collaborators | None = None,
    settings: RunSettings | None = None,
    credentials: Mapping[str, str] | None = None,
) -> RunResult:
    """Synchronous wrapper for running an agent file.

    Example:
        ```python
        result = run_agent_sync("examples/summarize.json", "Some text")
        print(result.output if result.success else result.error)
        ```
    """
    runner = AgentRunner(collaborators=collaborators, settings=settings, credentials=credentials)
    return asyncio.run(runner.run_agent_file(file_path, input))
