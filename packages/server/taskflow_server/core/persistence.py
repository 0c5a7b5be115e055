"""
Snapshot persistence and store lifecycle.

The store is snapshotted in full after every successful mutation; there is
no delta format. Snapshots are written to a temp file and renamed over the
previous one so readers never see a half-written file.
"""

from __future__ import annotations

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import structlog
from fastapi import Request

from taskflow_server.core.config import Settings
from taskflow_server.services.seed import demo_tasks
from taskflow_server.services.tasks import TaskStore
from taskflow_shared.schemas.tasks import TaskRead, TaskSnapshot

log = structlog.get_logger()


class JsonSnapshotStore:
    """Reads and writes the full task collection as one JSON document."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> Optional[list[TaskRead]]:
        """Tasks from the snapshot file, or None when there is no file yet."""
        if not self.path.exists():
            return None
        snapshot = TaskSnapshot.model_validate_json(self.path.read_text(encoding="utf-8"))
        log.info("snapshot.loaded", path=str(self.path), count=len(snapshot.tasks))
        return snapshot.tasks

    def save(self, tasks: list[TaskRead]) -> None:
        snapshot = TaskSnapshot(saved_at=datetime.now(timezone.utc), tasks=tasks)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(snapshot.model_dump_json(indent=2))
            os.replace(tmp_path, self.path)
        except OSError:
            log.error("snapshot.write_failed", path=str(self.path))
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        log.debug("snapshot.saved", path=str(self.path), count=len(tasks))


def build_store(settings: Settings) -> TaskStore:
    """Create the process-wide store from a snapshot, the demo seed, or nothing."""
    store = TaskStore()
    snapshots = JsonSnapshotStore(settings.snapshot_path) if settings.snapshot_path else None

    initial = snapshots.load() if snapshots else None
    if initial is not None:
        store.load(initial)
    elif settings.seed_demo_data:
        store.load(demo_tasks())
        log.info("task_store.seeded", count=len(store))

    if snapshots:
        store.subscribe(snapshots.save)
    return store


def get_store(request: Request) -> TaskStore:
    """FastAPI dependency for the application's task store."""
    return request.app.state.store
