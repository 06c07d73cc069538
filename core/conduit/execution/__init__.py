"""Agent execution engine.

This module provides:
- Topological scheduling with cycle rejection
- Input resolution across several upstream producers
- Branch skipping, fault isolation and cooperative cancellation
- Per-node tracing and run metrics

Architecture:
- engine.py: Main execution orchestrator
- scheduler.py: Execution order (Kahn's algorithm)
- resolver.py: A node's input from upstream outputs
- context.py: Per-run outputs and the skip set
- cancellation.py: Cancellation tokens and the live-execution registry
- tracing.py: Trace entries and metrics
"""

from __future__ import annotations

from conduit.execution.engine import AgentEngine
from conduit.execution.context import ExecutionContext, SkipSet

__all__ = ["AgentEngine", "ExecutionContext", "SkipSet"]
