"""
Read-only views over the task store.

Each projection reads the store when called and keeps no state of its own,
so results always match the store at the moment of evaluation.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Iterator
from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, Field

from taskflow_server.core.errors import ValidationError
from taskflow_server.services.tasks import TaskStore
from taskflow_shared.schemas.common import (
    KANBAN_COLUMNS,
    PRIORITY_RANK,
    STATUS_RANK,
    TaskPriority,
    TaskStatus,
)
from taskflow_shared.schemas.tasks import AttachmentRead, TaskRead

# Fields a listing can be sorted by. `files` has no meaningful ordering.
SORTABLE_FIELDS = frozenset(TaskRead.model_fields) - {"files"}


class TaskFilter(BaseModel):
    """Task list filter: free-text query plus status/priority membership."""

    query: Optional[str] = None
    statuses: set[TaskStatus] = Field(default_factory=set)
    priorities: set[TaskPriority] = Field(default_factory=set)

    def matches(self, task: TaskRead) -> bool:
        if self.statuses and task.status not in self.statuses:
            return False
        if self.priorities and task.priority not in self.priorities:
            return False
        if self.query:
            needle = self.query.casefold()
            haystacks = (task.title, task.description, task.category or "")
            if not any(needle in text.casefold() for text in haystacks):
                return False
        return True


def by_status(store: TaskStore) -> dict[TaskStatus, list[TaskRead]]:
    """Every column in board order, each sorted by order. Empty columns included."""
    return {status: list(store.get_by_status(status)) for status in KANBAN_COLUMNS}


def column_counts(store: TaskStore) -> dict[TaskStatus, int]:
    return {status: store.count(status) for status in KANBAN_COLUMNS}


def by_due_date(
    store: TaskStore,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> dict[date, list[TaskRead]]:
    """Tasks grouped by due date, dates ascending, optional inclusive bounds.

    Tasks without a due date are left out. Within a day tasks are ordered by
    (order, id).
    """
    groups: dict[date, list[TaskRead]] = defaultdict(list)
    for task in store.all():
        if task.due_date is None:
            continue
        if start is not None and task.due_date < start:
            continue
        if end is not None and task.due_date > end:
            continue
        groups[task.due_date].append(task)
    return {
        day: sorted(groups[day], key=lambda t: (t.order, t.id))
        for day in sorted(groups)
    }


def due_on(store: TaskStore, day: date) -> list[TaskRead]:
    return by_due_date(store, start=day, end=day).get(day, [])


def _sort_value(value: Any) -> Any:
    if isinstance(value, TaskStatus):
        return STATUS_RANK[value]
    if isinstance(value, TaskPriority):
        return PRIORITY_RANK[value]
    if isinstance(value, str):
        return value.casefold()
    return value


def sort_tasks(tasks: Iterable[TaskRead], sort_key: str, descending: bool = False) -> list[TaskRead]:
    """Stable sort on one task field. Tasks without a value go last either way."""
    if sort_key not in SORTABLE_FIELDS:
        raise ValidationError(f"Cannot sort by {sort_key!r}")
    present: list[TaskRead] = []
    missing: list[TaskRead] = []
    for task in tasks:
        (missing if getattr(task, sort_key) is None else present).append(task)
    # reverse=True keeps equal elements in their original relative order
    present.sort(key=lambda t: _sort_value(getattr(t, sort_key)), reverse=descending)
    return present + missing


def filter_and_sort(
    store: TaskStore,
    task_filter: Optional[TaskFilter] = None,
    sort_key: Optional[str] = None,
    descending: bool = False,
) -> Iterator[TaskRead]:
    """Filtered, optionally sorted task listing in board order by default."""
    if sort_key is not None and sort_key not in SORTABLE_FIELDS:
        raise ValidationError(f"Cannot sort by {sort_key!r}")
    tasks: Iterable[TaskRead] = store.all()
    if task_filter is not None:
        tasks = (t for t in tasks if task_filter.matches(t))
    if sort_key is not None:
        tasks = sort_tasks(tasks, sort_key, descending)
    return iter(tasks)


def attachments(store: TaskStore) -> list[AttachmentRead]:
    """Every attached file with its owning task, in board order."""
    return [
        AttachmentRead(task_id=task.id, task_title=task.title, file=f)
        for task in store.all()
        for f in task.files
    ]
