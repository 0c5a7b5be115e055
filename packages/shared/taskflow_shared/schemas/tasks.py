"""Task-related Pydantic schemas shared by the store, the API and snapshot files."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from .common import TaskPriority, TaskStatus


# ---------------------------------------------------------------------------
# Attachments
# ---------------------------------------------------------------------------

class TaskFile(BaseModel):
    """Attachment metadata. Opaque to the store; the url is never dereferenced."""
    id: str
    name: str
    url: str
    size: int = Field(ge=0)  # bytes
    type: str  # MIME type


class AttachmentRead(BaseModel):
    task_id: str
    task_title: str
    file: TaskFile


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------

class TaskBase(BaseModel):
    title: str
    description: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[date] = None
    category: Optional[str] = None
    assigned_to: Optional[str] = None  # user id, not validated
    files: List[TaskFile] = Field(default_factory=list)


class TaskCreate(TaskBase):
    status: TaskStatus = TaskStatus.TODO


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = None
    category: Optional[str] = None
    assigned_to: Optional[str] = None
    files: Optional[List[TaskFile]] = None
    order: Optional[int] = None
    expected_version: Optional[int] = None


class TaskRead(TaskBase):
    id: str
    status: TaskStatus
    order: int = Field(ge=0)
    version: int = 1
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        """Timestamps without an offset are read as UTC."""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


# ---------------------------------------------------------------------------
# Move
# ---------------------------------------------------------------------------

class TaskMove(BaseModel):
    """Request body for POST /tasks/{taskId}/move."""
    to_status: TaskStatus
    order: int
    expected_version: Optional[int] = None


# ---------------------------------------------------------------------------
# Projections
# ---------------------------------------------------------------------------

class BoardColumn(BaseModel):
    status: TaskStatus
    tasks: List[TaskRead] = Field(default_factory=list)


class CalendarDay(BaseModel):
    day: date
    tasks: List[TaskRead] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class TaskSnapshot(BaseModel):
    """Full store contents as written by the snapshot adapter."""
    format_version: int = 1
    saved_at: datetime
    tasks: List[TaskRead] = Field(default_factory=list)
