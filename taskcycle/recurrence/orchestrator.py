"""Spawn the next occurrence of a recurring task when it is completed.

Recurring tasks are regular task rows carrying recurrence metadata. Completing one
creates a new row with the next due date in the same series; there is no separate
template or history table. Each completed task has at most one successor, enforced by
a unique constraint on `recurrence_predecessor_id`, so duplicate completion triggers
are harmless.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from taskcycle.database.repository import TaskRepository
from taskcycle.database.subtask_repository import SubtaskRepository
from taskcycle.errors import DuplicateSuccessor, TaskNotFound
from taskcycle.models.constants import FIRST_OCCURRENCE
from taskcycle.models.results import CompletionOutcome, CompletionResult
from taskcycle.models.task import Task
from taskcycle.models.task_factory import build_successor, copy_subtasks, start_series
from taskcycle.recurrence.calculator import WEEKDAY_PATTERNS, next_occurrence, parse_pattern
from taskcycle.recurrence.calendar_math import WEEKDAY_NAMES, format_date, today, utc_now
from taskcycle.recurrence.continuation import termination_reason

logger = logging.getLogger(__name__)


class RecurrenceOrchestrator:
    """Reacts to task completion by creating the successor occurrence."""

    def __init__(self, db: Session, now: Optional[Callable[[], datetime]] = None):
        self.task_repo = TaskRepository(db)
        self.subtask_repo = SubtaskRepository(db)
        self._now = now or utc_now

    def on_task_completed(self, task_id: int) -> CompletionResult:
        """Create the next occurrence for a completed recurring task.

        Raises:
            TaskNotFound: if the task does not exist
            InvalidPattern: if the stored recurrence pattern is unknown
            StoreWriteFailure: if the successor could not be persisted
        """
        task = self.task_repo.get(task_id)
        if task is None:
            raise TaskNotFound(task_id)

        if not task.is_recurring:
            logger.debug(f"Task {task_id} is not recurring, no action needed")
            return CompletionResult(
                task_id=task_id,
                outcome=CompletionOutcome.NOT_RECURRING,
                message="Task is not recurring",
            )

        existing = self.task_repo.get_successor(task_id)
        if existing is not None:
            logger.info(f"Task {task_id} already has successor {existing.id}, skipping duplicate trigger")
            return self._already_spawned(task_id, existing)

        logger.info(f"Recurring task completed: {task.title} (due: {task.due_date})")

        pattern = parse_pattern(task.recurrence_pattern)
        weekday = task.recurrence_weekday if pattern in WEEKDAY_PATTERNS else None
        if weekday is not None:
            logger.debug(f"Using stored weekday preference: {WEEKDAY_NAMES[weekday]}")

        current_due = task.due_date or today(now=self._now())
        next_due = next_occurrence(current_due, pattern, task.recurrence_interval, weekday)
        current_occurrence = task.recurrence_count or FIRST_OCCURRENCE

        reason = termination_reason(
            next_due,
            task.recurrence_end_date,
            task.recurrence_max_count,
            current_occurrence,
        )
        if reason is not None:
            logger.info(
                f"Recurrence completed for series {task.recurrence_series_id} at occurrence "
                f"{current_occurrence} ({reason.value})"
            )
            return CompletionResult(
                task_id=task_id,
                outcome=CompletionOutcome.SERIES_COMPLETED,
                termination_reason=reason,
                message="Recurrence series completed",
            )

        successor = build_successor(task, next_due)
        subtasks = copy_subtasks(self.subtask_repo.list_by_task(task_id))
        try:
            created, created_subtasks = self.task_repo.create_successor(successor, subtasks)
        except DuplicateSuccessor:
            # Lost a race with a concurrent trigger for the same completion.
            existing = self.task_repo.get_successor(task_id)
            if existing is None:
                raise
            return self._already_spawned(task_id, existing)

        logger.info(
            f"Created next recurring task {created.id}: {created.title} "
            f"(due: {format_date(next_due)}, occurrence {created.recurrence_count}"
            f"{f' of {created.recurrence_max_count}' if created.recurrence_max_count else ''}, "
            f"{len(created_subtasks)} subtasks copied)"
        )
        return CompletionResult(
            task_id=task_id,
            outcome=CompletionOutcome.SUCCESSOR_CREATED,
            next_task=created,
            next_due_date=next_due,
            subtasks_copied=len(created_subtasks),
            message="Next recurring task created successfully",
        )

    def create_recurring_task(
        self,
        task: Task,
        max_count: Optional[int] = None,
        weekday: Optional[int] = None,
    ) -> Task:
        """Create the first occurrence of a new recurring series.

        Args:
            task: Task carrying title, due date and recurrence pattern/interval/end date
            max_count: Cap on total occurrences (None for unlimited)
            weekday: Weekday preference (Sunday=0) kept by every later weekly/biweekly occurrence

        Raises:
            InvalidPattern: if the task has no valid recurrence pattern
        """
        pattern = parse_pattern(task.recurrence_pattern)
        first = start_series(task, max_count=max_count, weekday=weekday).model_copy(
            update={"recurrence_pattern": pattern.value}
        )
        created = self.task_repo.create(first)
        logger.info(
            f"Created recurring task {created.id}: {created.title} (due: {created.due_date}) - occurrence 1"
            f"{f' of {max_count}' if max_count else ''}"
        )
        if weekday is not None:
            logger.info(f"Series {created.recurrence_series_id} will recur on {WEEKDAY_NAMES[weekday]}")
        return created

    def get_series(self, series_id: str) -> List[Task]:
        """All occurrences of a series ordered by due date."""
        return self.task_repo.get_series(series_id)

    def _already_spawned(self, task_id: int, successor: Task) -> CompletionResult:
        return CompletionResult(
            task_id=task_id,
            outcome=CompletionOutcome.ALREADY_SPAWNED,
            next_task=successor,
            next_due_date=successor.due_date,
            message="Next recurring task already exists",
        )
