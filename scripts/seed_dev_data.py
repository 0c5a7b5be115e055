#!/usr/bin/env python3
"""Write a development snapshot file containing the demo task set.

Usage:
    python scripts/seed_dev_data.py [PATH]

PATH defaults to TF_SNAPSHOT_PATH, then ./data/tasks.json. Point the server at
the same file with TF_SNAPSHOT_PATH to start from the seeded board.
"""

import argparse
import sys

from taskflow_server.core.config import get_settings
from taskflow_server.core.persistence import JsonSnapshotStore
from taskflow_server.services.seed import demo_tasks
from taskflow_server.services.tasks import TaskStore

DEFAULT_PATH = "./data/tasks.json"


def seed(path: str, force: bool = False) -> int:
    snapshots = JsonSnapshotStore(path)
    if snapshots.path.exists() and not force:
        print(f"Snapshot already exists: {path} (use --force to overwrite)", file=sys.stderr)
        return 1

    # Round-trip through the store so the file holds normalized, dense orders.
    store = TaskStore(demo_tasks())
    snapshots.save(store.all())
    print(f"Seeded {len(store)} tasks into {path}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed a TaskFlow snapshot with demo tasks")
    parser.add_argument("path", nargs="?", default=get_settings().snapshot_path or DEFAULT_PATH)
    parser.add_argument("--force", action="store_true", help="Overwrite an existing snapshot")
    args = parser.parse_args()
    sys.exit(seed(args.path, force=args.force))


if __name__ == "__main__":
    main()
