"""Agent stores used to look up sub-agent graphs."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from conduit.domain.models import AgentGraph


class InMemoryAgentStore:
    """Agents held in a dict, keyed by id."""

    def __init__(self, agents: Iterable[AgentGraph] = ()) -> None:
        self._agents: dict[str, AgentGraph] = {agent.id: agent for agent in agents}

    def add(self, agent: AgentGraph) -> None:
        self._agents[agent.id] = agent

    def find_by_id(self, agent_id: str) -> AgentGraph | None:
        return self._agents.get(agent_id)


class JsonAgentStore:
    """Agents read from a ``{"agents": [...]}`` JSON file on every lookup."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def find_by_id(self, agent_id: str) -> AgentGraph | None:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            sys.stderr.write(f"[AGENTS] Cannot read {self.path}: {e}\n")
            sys.stderr.flush()
            return None

        for raw in data.get("agents") or []:
            if isinstance(raw, dict) and raw.get("id") == agent_id:
                try:
                    return AgentGraph.model_validate(raw)
                except ValidationError as e:
                    sys.stderr.write(f"[AGENTS] Invalid agent {agent_id}: {e}\n")
                    sys.stderr.flush()
                    return None
        return None
