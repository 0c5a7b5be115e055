"""
Task endpoints: CRUD, moves, and the board / calendar / files views.

Each handler performs exactly one store operation. Store errors are mapped
to status codes by the application's error handlers:
NotFoundError -> 404, ValidationError -> 400, ConflictError -> 409.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from taskflow_server.core.persistence import get_store
from taskflow_server.services import projections
from taskflow_server.services.tasks import TaskStore
from taskflow_shared.schemas.common import SortDirection, TaskPriority, TaskStatus
from taskflow_shared.schemas.tasks import (
    AttachmentRead,
    BoardColumn,
    CalendarDay,
    TaskCreate,
    TaskMove,
    TaskRead,
    TaskUpdate,
)

router = APIRouter()


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


@router.get("", response_model=List[TaskRead])
def list_tasks_endpoint(
    q: Optional[str] = None,
    status: Optional[List[TaskStatus]] = Query(None),
    priority: Optional[List[TaskPriority]] = Query(None),
    sort: Optional[str] = None,
    direction: SortDirection = SortDirection.ASCENDING,
    store: TaskStore = Depends(get_store),
):
    """List tasks, optionally filtered by text / status / priority and sorted by a field."""
    task_filter = projections.TaskFilter(
        query=q,
        statuses=set(status or []),
        priorities=set(priority or []),
    )
    return list(
        projections.filter_and_sort(
            store,
            task_filter,
            sort_key=sort,
            descending=direction == SortDirection.DESCENDING,
        )
    )


@router.get("/board", response_model=List[BoardColumn])
def board_endpoint(store: TaskStore = Depends(get_store)):
    """Kanban columns in board order, each sorted by order."""
    return [
        BoardColumn(status=status, tasks=tasks)
        for status, tasks in projections.by_status(store).items()
    ]


@router.get("/calendar", response_model=List[CalendarDay])
def calendar_endpoint(
    start: Optional[date] = None,
    end: Optional[date] = None,
    store: TaskStore = Depends(get_store),
):
    """Tasks grouped by due date, optionally limited to [start, end]."""
    return [
        CalendarDay(day=day, tasks=tasks)
        for day, tasks in projections.by_due_date(store, start, end).items()
    ]


@router.get("/files", response_model=List[AttachmentRead])
def files_endpoint(store: TaskStore = Depends(get_store)):
    """Every attachment across all tasks."""
    return projections.attachments(store)


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------


@router.post("", response_model=TaskRead, status_code=201)
def create_task_endpoint(task_in: TaskCreate, store: TaskStore = Depends(get_store)):
    """Create a task at the end of its column."""
    return store.create(task_in)


@router.get("/{task_id}", response_model=TaskRead)
def get_task_endpoint(task_id: str, store: TaskStore = Depends(get_store)):
    return store.get_by_id(task_id)


@router.api_route("/{task_id}", methods=["PUT", "PATCH"], response_model=TaskRead)
def update_task_endpoint(
    task_id: str,
    task_in: TaskUpdate,
    store: TaskStore = Depends(get_store),
):
    """Update task fields. A status change appends to the new column unless an order is given."""
    return store.update(task_id, task_in)


@router.delete("/{task_id}")
def delete_task_endpoint(
    task_id: str,
    expected_version: Optional[int] = None,
    store: TaskStore = Depends(get_store),
):
    store.delete(task_id, expected_version=expected_version)
    return {"ok": True, "id": task_id}


# ---------------------------------------------------------------------------
# Moves
# ---------------------------------------------------------------------------


@router.post("/{task_id}/move", response_model=TaskRead)
def move_task_endpoint(
    task_id: str,
    body: TaskMove,
    store: TaskStore = Depends(get_store),
):
    """Drag-and-drop: place a task at an index in a column (index past the end appends)."""
    return store.move(task_id, body.to_status, body.order, expected_version=body.expected_version)
