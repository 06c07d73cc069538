"""Filesystem artifact store.

Layout::

    <base_dir>/<agent_id>/<execution_id>/<filename>

Filenames may contain ``{{date}}``, ``{{time}}`` and ``{{timestamp}}``
placeholders, resolved at save time.
"""

from __future__ import annotations

import sys
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from conduit.domain.models import Artifact

KIND_BY_NODE = {
    "PDFNode": "pdf",
    "DocxNode": "docx",
    "BlogNode": "html",
    "VideoNode": "video",
    "EmailNode": "email_log",
}


def resolve_filename(template: str, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return (
        template.replace("{{date}}", now.strftime("%Y-%m-%d"))
        .replace("{{time}}", now.strftime("%H-%M-%S"))
        .replace("{{timestamp}}", str(int(time.time() * 1000)))
    )


@dataclass(frozen=True)
class ArtifactRecord:
    """Index entry for a saved artifact."""

    artifact: Artifact
    agent_id: str
    execution_id: str
    node_id: str
    node_kind: str
    size_bytes: int
    created_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)


class FileArtifactStore:
    """Saves artifacts to disk and keeps an in-process index.

    Safe to share between concurrent runs: writes to the index are locked and
    the last write wins.
    """

    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir)
        self._records: list[ArtifactRecord] = []
        self._lock = threading.Lock()

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
        directory = self.base_dir / agent_id / execution_id
        directory.mkdir(parents=True, exist_ok=True)

        resolved = resolve_filename(filename)
        path = directory / resolved
        if isinstance(content, str):
            path.write_text(content, encoding="utf-8")
        else:
            path.write_bytes(bytes(content))

        artifact = Artifact(
            id=f"art_{uuid.uuid4().hex[:12]}",
            path=path.resolve().as_posix(),
            filename=resolved,
            mime_type=mime_type or "application/octet-stream",
            kind=KIND_BY_NODE.get(node_kind, "unknown"),
        )
        record = ArtifactRecord(
            artifact=artifact,
            agent_id=agent_id,
            execution_id=execution_id,
            node_id=node_id,
            node_kind=node_kind,
            size_bytes=path.stat().st_size,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._records.append(record)

        sys.stderr.write(f"[ARTIFACTS] Saved {artifact.id} ({artifact.kind}) -> {artifact.path}\n")
        sys.stderr.flush()
        return artifact

    def list(
        self,
        *,
        agent_id: str | None = None,
        kind: str | None = None,
        execution_id: str | None = None,
    ) -> list[ArtifactRecord]:
        """Matching records, newest first."""
        with self._lock:
            records = list(self._records)
        if agent_id:
            records = [r for r in records if r.agent_id == agent_id]
        if kind:
            records = [r for r in records if r.artifact.kind == kind]
        if execution_id:
            records = [r for r in records if r.execution_id == execution_id]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def delete(self, artifact_id: str) -> bool:
        with self._lock:
            for index, record in enumerate(self._records):
                if record.artifact.id == artifact_id:
                    del self._records[index]
                    break
            else:
                return False
        Path(record.artifact.path).unlink(missing_ok=True)
        return True
