from enum import Enum
from typing import Optional
from pydantic import BaseModel

class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "inprogress"
    DONE = "done"

class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

class SortDirection(str, Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"

# Kanban lanes, left to right. Also the board order used by list endpoints.
KANBAN_COLUMNS: list["TaskStatus"] = [
    TaskStatus.TODO,
    TaskStatus.IN_PROGRESS,
    TaskStatus.DONE,
]

PRIORITY_RANK: dict["TaskPriority", int] = {
    TaskPriority.LOW: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.HIGH: 2,
}

STATUS_RANK: dict["TaskStatus", int] = {s: i for i, s in enumerate(KANBAN_COLUMNS)}

class ErrorBody(BaseModel):
    code: str
    message: str
    status: int

class APIError(BaseModel):
    error: Optional[ErrorBody] = None
