"""Data models for taskcycle."""

from taskcycle.models.task import Task, TaskStatus, Subtask, SubtaskStatus, RecurrencePattern
from taskcycle.models.notification import Notification, NotificationType
from taskcycle.models.results import (
    CompletionOutcome,
    CompletionResult,
    TerminationReason,
    CheckStatus,
    DeadlineCheckResult,
    DeadlineRunResult,
    OffsetBreakdown,
    ThrottleStatus,
)

__all__ = [
    "Task",
    "TaskStatus",
    "Subtask",
    "SubtaskStatus",
    "RecurrencePattern",
    "Notification",
    "NotificationType",
    "CompletionOutcome",
    "CompletionResult",
    "TerminationReason",
    "CheckStatus",
    "DeadlineCheckResult",
    "DeadlineRunResult",
    "OffsetBreakdown",
    "ThrottleStatus",
]
