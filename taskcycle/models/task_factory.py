"""Task creation factory for taskcycle.

This module centralizes task creation logic so user-created tasks and
engine-spawned occurrences get consistent default values.
"""

import uuid
from datetime import date, datetime
from typing import Optional, Dict, Any, List

from taskcycle.models.task import Task, TaskStatus, Subtask, SubtaskStatus
from taskcycle.models.constants import DEFAULT_RECURRENCE_INTERVAL, FIRST_OCCURRENCE


def create_task_defaults() -> Dict[str, Any]:
    """Get default task values as a dictionary."""
    return {
        "status": TaskStatus.ONGOING,
        "collaborators": [],
        "is_recurring": False,
        "recurrence_interval": DEFAULT_RECURRENCE_INTERVAL,
    }


def new_series_id() -> str:
    """Generate an identifier for a new recurring series."""
    return str(uuid.uuid4())


def create_task_base(
    title: str,
    due_date: Optional[date] = None,
    description: Optional[str] = None,
    priority: Optional[int] = None,
    project_id: Optional[int] = None,
    owner_id: Optional[Any] = None,
    collaborators: Optional[List[Any]] = None,
    file: Optional[str] = None,
    status: Optional[TaskStatus] = None,
) -> Task:
    """Create a non-recurring task with defaults, allowing overrides.

    Args:
        title: Task title (required)
        due_date: Calendar due date
        description: Task description
        priority: Priority 1-10
        project_id: Owning project
        owner_id: Owner employee id
        collaborators: Collaborator employee ids
        file: Attachment reference
        status: Initial status (defaults to ongoing)

    Returns:
        Task object with defaults applied (id is assigned by the store)
    """
    now = datetime.utcnow()
    defaults = create_task_defaults()
    return Task(
        title=title,
        description=description,
        priority=priority,
        project_id=project_id,
        file=file,
        status=status if status is not None else defaults["status"],
        due_date=due_date,
        owner_id=owner_id,
        collaborators=list(collaborators) if collaborators is not None else defaults["collaborators"],
        created_at=now,
        updated_at=now,
        is_recurring=defaults["is_recurring"],
        recurrence_interval=defaults["recurrence_interval"],
    )


def start_series(
    task: Task,
    max_count: Optional[int] = None,
    weekday: Optional[int] = None,
) -> Task:
    """Turn a recurring task template into the first occurrence of a new series."""
    now = datetime.utcnow()
    return task.model_copy(
        update={
            "id": None,
            "status": TaskStatus.ONGOING,
            "is_recurring": True,
            "recurrence_series_id": new_series_id(),
            "recurrence_count": FIRST_OCCURRENCE,
            "recurrence_max_count": max_count,
            "recurrence_weekday": weekday,
            "recurrence_predecessor_id": None,
            "created_at": now,
            "updated_at": now,
        }
    )


def build_successor(predecessor: Task, next_due_date: date) -> Task:
    """Build the next occurrence of a series from its completed predecessor."""
    now = datetime.utcnow()
    return Task(
        title=predecessor.title,
        description=predecessor.description,
        priority=predecessor.priority,
        project_id=predecessor.project_id,
        file=predecessor.file,
        status=TaskStatus.ONGOING,
        due_date=next_due_date,
        owner_id=predecessor.owner_id,
        collaborators=list(predecessor.collaborators),
        created_at=now,
        updated_at=now,
        is_recurring=True,
        recurrence_pattern=predecessor.recurrence_pattern,
        recurrence_interval=predecessor.recurrence_interval,
        recurrence_weekday=predecessor.recurrence_weekday,
        recurrence_end_date=predecessor.recurrence_end_date,
        recurrence_count=(predecessor.recurrence_count or FIRST_OCCURRENCE) + 1,
        recurrence_max_count=predecessor.recurrence_max_count,
        recurrence_series_id=predecessor.recurrence_series_id,
        recurrence_predecessor_id=predecessor.id,
    )


def copy_subtasks(subtasks: List[Subtask], main_task_id: Optional[int] = None) -> List[Subtask]:
    """Copy subtasks for a new occurrence, resetting each to not started.

    `main_task_id` may be left unset when the owning task has not been inserted yet;
    the repository fills it in once the id is known.
    """
    return [
        Subtask(
            main_task_id=main_task_id,
            title=s.title,
            description=s.description,
            priority=s.priority,
            status=SubtaskStatus.NOT_STARTED,
        )
        for s in subtasks
    ]
