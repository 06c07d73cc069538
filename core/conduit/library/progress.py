"""Progress sinks."""

from __future__ import annotations

from typing import Any, Callable

from conduit.ports import ProgressEvent


class NullProgressSink:
    """Discards every event."""

    def emit(self, event: ProgressEvent, payload: dict[str, Any]) -> None:
        return None


class CallbackProgressSink:
    """Forwards events to a callable (e.g. a websocket or IPC bridge)."""

    def __init__(self, callback: Callable[[ProgressEvent, dict[str, Any]], Any]) -> None:
        self._callback = callback

    def emit(self, event: ProgressEvent, payload: dict[str, Any]) -> None:
        self._callback(event, payload)


class RecordingProgressSink:
    """Keeps events in a list, in emission order."""

    def __init__(self) -> None:
        self.events: list[tuple[ProgressEvent, dict[str, Any]]] = []

    def emit(self, event: ProgressEvent, payload: dict[str, Any]) -> None:
        self.events.append((event, payload))

    def of(self, event: ProgressEvent) -> list[dict[str, Any]]:
        return [payload for name, payload in self.events if name == event]
