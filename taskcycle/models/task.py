"""Task and subtask data models for taskcycle."""

from datetime import date, datetime
from typing import Any, List, Optional
from enum import Enum
from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    """Task status enumeration."""
    UNASSIGNED = "unassigned"
    ONGOING = "ongoing"
    UNDER_REVIEW = "under_review"
    COMPLETED = "completed"


class SubtaskStatus(str, Enum):
    """Subtask status enumeration."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class RecurrencePattern(str, Enum):
    """Supported recurrence patterns."""
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


# Raw recipient identifiers as stored; legacy rows may carry strings.
RecipientRef = Any


class Task(BaseModel):
    """Canonical Task model."""

    id: Optional[int] = Field(None, description="Task identifier (assigned by the store)")
    title: str = Field(..., description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    priority: Optional[int] = Field(None, ge=1, le=10, description="Priority (1-10)")
    project_id: Optional[int] = Field(None, description="Owning project")
    file: Optional[str] = Field(None, description="Attachment reference")
    status: TaskStatus = Field(TaskStatus.ONGOING, description="Task status")
    due_date: Optional[date] = Field(None, description="Calendar due date (no time of day)")
    owner_id: Optional[RecipientRef] = Field(None, description="Owner employee id")
    collaborators: List[RecipientRef] = Field(default_factory=list, description="Collaborator employee ids")
    created_at: Optional[datetime] = Field(None, description="Task creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Task last update timestamp")

    # Recurrence
    is_recurring: bool = Field(False, description="Whether completing this task spawns a successor")
    recurrence_pattern: Optional[str] = Field(
        None, description="Recurrence pattern (see RecurrencePattern); validated when the next occurrence is computed"
    )
    recurrence_interval: int = Field(1, ge=1, description="Every N units of the pattern")
    recurrence_weekday: Optional[int] = Field(
        None, ge=0, le=6, description="Target weekday for weekly/biweekly (Sunday=0)"
    )
    recurrence_end_date: Optional[date] = Field(None, description="No occurrence may fall after this date")
    recurrence_count: Optional[int] = Field(None, ge=1, description="1-based occurrence number of this task")
    recurrence_max_count: Optional[int] = Field(None, ge=1, description="Cap on total occurrences")
    recurrence_series_id: Optional[str] = Field(None, description="Identifier shared by one series")
    recurrence_predecessor_id: Optional[int] = Field(
        None, description="Completed task this occurrence was spawned from"
    )

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


class Subtask(BaseModel):
    """Checklist item belonging to a task."""

    id: Optional[int] = None
    main_task_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    priority: Optional[int] = Field(None, ge=1, le=10)
    status: SubtaskStatus = SubtaskStatus.NOT_STARTED

    class Config:
        use_enum_values = True
