"""Cooperative cancellation and the registry of live executions."""

from __future__ import annotations

import asyncio
import sys
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, TypeVar

from conduit.errors import ExecutionCancelledError

T = TypeVar("T")


class CancellationToken:
    """A cancellation flag that can be set from any thread.

    The engine checks it at node boundaries; executors doing network I/O
    subscribe to it so that in-flight work is aborted.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        for callback in callbacks:
            callback()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise ExecutionCancelledError()

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register ``callback`` to run on cancel. Returns an unsubscribe function.

        If the token is already cancelled the callback runs immediately.
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)

                def unsubscribe() -> None:
                    with self._lock:
                        if callback in self._callbacks:
                            self._callbacks.remove(callback)

                return unsubscribe
        callback()
        return lambda: None


async def run_cancellable(awaitable: Awaitable[T], token: CancellationToken | None) -> T:
    """Await ``awaitable``, aborting it when ``token`` is cancelled.

    Raises:
        ExecutionCancelledError: If the token fires before the work completes.
    """
    if token is None:
        return await awaitable

    if token.cancelled:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise ExecutionCancelledError()

    loop = asyncio.get_running_loop()
    task = asyncio.ensure_future(awaitable)

    def _abort() -> None:
        loop.call_soon_threadsafe(task.cancel)

    unsubscribe = token.add_callback(_abort)
    try:
        return await task
    except asyncio.CancelledError:
        if token.cancelled:
            raise ExecutionCancelledError() from None
        raise
    finally:
        unsubscribe()


@dataclass
class Execution:
    """A live ``execute()`` call."""

    id: str
    token: CancellationToken = field(default_factory=CancellationToken)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ExecutionRegistry:
    """Thread-safe map of execution id to live ``Execution``."""

    def __init__(self) -> None:
        self._executions: dict[str, Execution] = {}
        self._lock = threading.Lock()

    def register(self, execution_id: str) -> Execution:
        """Register a new live execution.

        Raises:
            ValueError: If ``execution_id`` already belongs to a live execution
        """
        execution = Execution(id=execution_id)
        with self._lock:
            if execution_id in self._executions:
                raise ValueError(f"Execution {execution_id} is already running")
            self._executions[execution_id] = execution
        return execution

    def deregister(self, execution_id: str, execution: Execution | None = None) -> None:
        """Forget ``execution_id``; with ``execution`` given, only if it is still that run."""
        with self._lock:
            current = self._executions.get(execution_id)
            if current is None or (execution is not None and current is not execution):
                return
            del self._executions[execution_id]

    def get(self, execution_id: str) -> Execution | None:
        with self._lock:
            return self._executions.get(execution_id)

    def active_ids(self) -> list[str]:
        with self._lock:
            return list(self._executions)

    def cancel(self, execution_id: str | None = None) -> bool:
        """Cancel one execution, or every execution when ``execution_id`` is None.

        Returns:
            True if at least one token was set.
        """
        with self._lock:
            if execution_id is None:
                targets = list(self._executions.values())
            else:
                match = self._executions.get(execution_id)
                targets = [match] if match else []

        for execution in targets:
            sys.stderr.write(f"[CANCEL] Stopping execution {execution.id}\n")
            sys.stderr.flush()
            execution.token.cancel()

        return bool(targets)

    def __len__(self) -> int:
        with self._lock:
            return len(self._executions)

    def __contains__(self, execution_id: Any) -> bool:
        with self._lock:
            return execution_id in self._executions
