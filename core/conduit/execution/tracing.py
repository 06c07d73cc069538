"""Trace recording and run-level metrics."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from conduit.domain.models import Node, RunMetrics, TokenUsage, TraceEntry


@dataclass
class _Span:
    node: Node
    input: Any
    started_at: datetime
    started: float


@dataclass
class Tracer:
    """Collects trace entries and token totals for one run."""

    entries: list[TraceEntry] = field(default_factory=list)
    tokens_in: int = 0
    tokens_out: int = 0
    _run_started: float = field(default_factory=time.perf_counter)

    def start(self, node: Node, node_input: Any) -> _Span:
        return _Span(
            node=node,
            input=node_input,
            started_at=datetime.now(timezone.utc),
            started=time.perf_counter(),
        )

    def completed(self, span: _Span, output: Any, tokens: TokenUsage | None = None) -> TraceEntry:
        tokens = tokens or TokenUsage()
        self.tokens_in += tokens.input
        self.tokens_out += tokens.output
        return self._finish(span, status="completed", output=output, tokens=tokens)

    def failed(self, span: _Span, error: BaseException) -> TraceEntry:
        message = str(error) or type(error).__name__
        return self._finish(span, status="failed", output=None, tokens=TokenUsage(), error=message)

    def _finish(
        self,
        span: _Span,
        *,
        status: str,
        output: Any,
        tokens: TokenUsage,
        error: str | None = None,
    ) -> TraceEntry:
        entry = TraceEntry(
            node_id=span.node.id,
            kind=span.node.kind,
            label=span.node.label,
            input=span.input,
            output=output,
            started_at=span.started_at,
            ended_at=datetime.now(timezone.utc),
            duration_ms=(time.perf_counter() - span.started) * 1000,
            tokens_in=tokens.input,
            tokens_out=tokens.output,
            status=status,
            error=error,
        )
        self.entries.append(entry)
        return entry

    def metrics(self, node_count: int) -> RunMetrics:
        return RunMetrics(
            total_duration_ms=(time.perf_counter() - self._run_started) * 1000,
            total_tokens_in=self.tokens_in,
            total_tokens_out=self.tokens_out,
            node_count=node_count,
            success_count=sum(1 for entry in self.entries if entry.status == "completed"),
            fail_count=sum(1 for entry in self.entries if entry.status == "failed"),
        )
