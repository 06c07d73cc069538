"""Conduit core package.

Executes agent graphs: topological scheduling, per-kind node dispatch, branch
skipping, cancellation and tracing.

Important: the engine pulls in the executor modules (and through them httpx,
BeautifulSoup and RestrictedPython). To keep lightweight imports such as
``conduit.domain.models`` cheap, we avoid importing the engine eagerly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

__version__ = "0.1.0"

__all__ = ["AgentEngine", "Collaborators", "RunSettings", "__version__"]


if TYPE_CHECKING:
    from .config import RunSettings as RunSettings
    from .execution.engine import AgentEngine as AgentEngine
    from .ports import Collaborators as Collaborators


def __getattr__(name: str) -> Any:
    if name == "AgentEngine":
        from .execution.engine import AgentEngine

        return AgentEngine
    if name == "Collaborators":
        from .ports import Collaborators

        return Collaborators
    if name == "RunSettings":
        from .config import RunSettings

        return RunSettings
    raise AttributeError(name)
