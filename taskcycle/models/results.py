"""Structured results returned by the recurrence and deadline engines."""

from datetime import date, datetime
from typing import Dict, List, Optional
from enum import Enum
from pydantic import BaseModel, Field, computed_field

from taskcycle.models.notification import Notification
from taskcycle.models.task import Task


class CompletionOutcome(str, Enum):
    """What happened when a task completion was processed."""
    NOT_RECURRING = "not_recurring"
    SUCCESSOR_CREATED = "successor_created"
    ALREADY_SPAWNED = "already_spawned"
    SERIES_COMPLETED = "series_completed"


class TerminationReason(str, Enum):
    """Why a series stopped producing occurrences."""
    END_DATE_REACHED = "end_date_reached"
    MAX_COUNT_REACHED = "max_count_reached"


class CompletionResult(BaseModel):
    """Result of processing a completed task."""

    task_id: int
    outcome: CompletionOutcome
    next_task: Optional[Task] = None
    next_due_date: Optional[date] = None
    termination_reason: Optional[TerminationReason] = None
    subtasks_copied: int = 0
    message: str = ""

    class Config:
        use_enum_values = True


class CheckStatus(str, Enum):
    """Overall status of a deadline scan."""
    SKIPPED = "skipped"
    COMPLETED = "completed"
    NO_MATCHING_TASKS = "no_matching_tasks"
    FAILED = "failed"


class OffsetBreakdown(BaseModel):
    """Counts for one upcoming-deadline offset."""

    target_date: date
    tasks: int = 0
    created: int = 0
    duplicates_prevented: int = 0
    failed: int = 0


class DeadlineCheckResult(BaseModel):
    """Result of one upcoming or missed deadline scan."""

    status: CheckStatus
    message: str = ""
    created: int = 0
    duplicates_prevented: int = 0
    failed: int = 0
    skipped_recipients: int = 0
    tasks_matched: int = 0
    per_offset: Dict[int, OffsetBreakdown] = Field(default_factory=dict)
    notifications: List[Notification] = Field(default_factory=list)
    next_check_available: Optional[datetime] = None
    remaining_minutes: Optional[int] = None
    error: Optional[str] = None
    checked_at: datetime

    @computed_field
    @property
    def partial_failure(self) -> bool:
        """True when some items failed but the scan still completed."""
        return self.status != CheckStatus.FAILED and self.failed > 0

    class Config:
        use_enum_values = True


class DeadlineRunResult(BaseModel):
    """Combined result of an upcoming and a missed scan."""

    upcoming: DeadlineCheckResult
    missed: DeadlineCheckResult
    total_created: int
    checked_at: datetime


class ThrottleStatus(BaseModel):
    """Observable state of the deadline-check cooldown."""

    last_run: Optional[datetime] = None
    next_check_available: Optional[datetime] = None
    cooldown_active: bool = False
    remaining_seconds: int = 0
