"""Bounded conversation memory shared across runs."""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass

from conduit.config import DEFAULT_MEMORY_MESSAGES


@dataclass(frozen=True, slots=True)
class MemoryMessage:
    role: str
    content: str
    timestamp: float


class MemoryStore:
    """Keyed ring buffers of messages.

    One store is typically shared by every run in a process. Writers hold a
    lock per call; concurrent runs see last-write-wins ordering.
    """

    def __init__(self) -> None:
        self._buffers: dict[str, deque[MemoryMessage]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key(agent_id: str, memory_type: str | None) -> str:
        return f"{agent_id}:{memory_type or 'buffer'}"

    def append(
        self,
        key: str,
        content: str,
        *,
        role: str = "user",
        max_messages: int = DEFAULT_MEMORY_MESSAGES,
    ) -> list[MemoryMessage]:
        """Append a message (evicting the oldest past ``max_messages``) and return the history."""
        with self._lock:
            buffer = self._resize(key, max_messages)
            buffer.append(MemoryMessage(role=role, content=content, timestamp=time.time()))
            return list(buffer)

    def history(self, key: str, max_messages: int | None = None) -> list[MemoryMessage]:
        with self._lock:
            if max_messages is not None:
                return list(self._resize(key, max_messages))
            return list(self._buffers.get(key, ()))

    def clear(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._buffers.clear()
            else:
                self._buffers.pop(key, None)

    def _resize(self, key: str, max_messages: int) -> deque[MemoryMessage]:
        max_messages = max(1, max_messages)
        buffer = self._buffers.get(key)
        if buffer is None or buffer.maxlen != max_messages:
            # deque(maxlen=...) keeps the newest items when shrinking.
            buffer = deque(buffer or (), maxlen=max_messages)
            self._buffers[key] = buffer
        return buffer


def render_history(messages: list[MemoryMessage]) -> str:
    return "\n".join(f"[{message.role}]: {message.content}" for message in messages)
