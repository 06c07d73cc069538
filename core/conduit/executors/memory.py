"""Conversation memory kind."""

from __future__ import annotations

from conduit.config import DEFAULT_MEMORY_MESSAGES
from conduit.execution.resolver import render_value
from conduit.library.memory import MemoryStore, render_history
from conduit.registry import NodeRequest, register_node_kind


@register_node_kind("MemoryNode")
def execute_memory(request: NodeRequest) -> str:
    """Append the input to the agent's buffer and return the buffer as text.

    Buffers are keyed by agent id and memory type and outlive the run. An empty
    input reads the buffer without appending.
    """
    store = request.collaborators.memory_store
    key = MemoryStore.key(request.agent_id, request.data.get("memoryType"))
    max_messages = int(request.data.get("maxMessages") or DEFAULT_MEMORY_MESSAGES)

    content = render_value(request.input)
    if content:
        history = store.append(key, content, max_messages=max_messages)
    else:
        history = store.history(key, max_messages=max_messages)
    return render_history(history)
