"""Demo task set loaded into an empty store for local development."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from taskflow_shared.schemas.common import TaskPriority, TaskStatus
from taskflow_shared.schemas.tasks import TaskFile, TaskRead

ALICE = "user-alice-01"
BOB = "user-bob-02"
CHARLIE = "user-charlie-03"

# (id, title, description, status, priority, due in days, category, order, assignee)
_DEMO = [
    ("task-1", "Design homepage UI",
     "Create mockups for the new homepage design, focusing on user experience and modern aesthetics.",
     TaskStatus.TODO, TaskPriority.HIGH, 7, "Work", 0, ALICE),
    ("task-2", "Develop API endpoints",
     "Implement RESTful API endpoints for task management, including CRUD operations.",
     TaskStatus.IN_PROGRESS, TaskPriority.HIGH, 14, "Work", 0, BOB),
    ("task-3", "Write project proposal",
     "Draft the project proposal document, outlining scope, deliverables, and timeline.",
     TaskStatus.DONE, TaskPriority.MEDIUM, None, "Work", 0, None),
    ("task-4", "Grocery Shopping",
     "Buy milk, eggs, bread, and cheese.",
     TaskStatus.TODO, TaskPriority.MEDIUM, None, "Personal", 1, CHARLIE),
    ("task-5", "Book flight tickets",
     "Book flights for the upcoming conference.",
     TaskStatus.IN_PROGRESS, TaskPriority.LOW, 30, "Personal", 1, None),
    ("task-6", "Study for exam",
     "Review notes for Chapter 5 and 6.",
     TaskStatus.TODO, TaskPriority.HIGH, None, "Study", 2, ALICE),
]


def demo_tasks(today: Optional[date] = None, now: Optional[datetime] = None) -> list[TaskRead]:
    """Demo tasks with due dates relative to ``today``."""
    today = today or date.today()
    now = now or datetime.now(timezone.utc)
    tasks = []
    for task_id, title, description, status, priority, due_in, category, order, assignee in _DEMO:
        tasks.append(
            TaskRead(
                id=task_id,
                title=title,
                description=description,
                status=status,
                priority=priority,
                due_date=today + timedelta(days=due_in) if due_in is not None else None,
                category=category,
                assigned_to=assignee,
                order=order,
                created_at=now,
                updated_at=now,
            )
        )
    tasks[0].files.append(
        TaskFile(id="file-1", name="style_guide.pdf", url="#", size=1024 * 500, type="application/pdf")
    )
    return tasks
