"""Deadline notifications: upcoming (N days ahead) and missed (overdue) reminders.

Each scan is a batch over independent (task, recipient) pairs. A failure on one pair is
logged and counted and the scan moves on; the result reports partial failure instead of
aborting. Duplicate suppression is a read-then-write against the notification store,
backed by the store's unique index on unread rows for concurrent scans.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Callable, Optional, Sequence

from sqlalchemy.orm import Session

from taskcycle.database.notification_repository import NotificationRepository
from taskcycle.database.repository import TaskRepository
from taskcycle.errors import DuplicateNotification, StoreReadFailure
from taskcycle.models.constants import (
    MISSED_DEADLINE_DAY_OFFSET,
    NOTIFICATION_CATEGORY_DEADLINE,
    UPCOMING_DEADLINE_OFFSETS,
)
from taskcycle.models.notification import Notification, NotificationType
from taskcycle.models.results import (
    CheckStatus,
    DeadlineCheckResult,
    DeadlineRunResult,
    OffsetBreakdown,
    ThrottleStatus,
)
from taskcycle.models.task import Task
from taskcycle.notifications.recipients import resolve_recipients
from taskcycle.notifications.throttle import InvocationThrottle
from taskcycle.recurrence.calendar_math import format_date, today, utc_now

logger = logging.getLogger(__name__)

CREATED = "created"
DUPLICATE = "duplicate"


def upcoming_title(task: Task, days: int) -> str:
    return f"{days} days before {task.title} is due"


def upcoming_description(task: Task, days: int) -> str:
    return (
        f'Your task "{task.title}" is due in {days} day{"s" if days > 1 else ""} '
        f"({format_date(task.due_date)}). Please make sure to complete it on time."
    )


def missed_title(task: Task) -> str:
    return f"Overdue: {task.title} deadline has passed"


def missed_description(task: Task) -> str:
    return (
        f'Your task "{task.title}" was due on {format_date(task.due_date)} and is now overdue. '
        f"Please complete it as soon as possible."
    )


class DeadlineEvaluator:
    """Scans task due dates and emits idempotent deadline notifications."""

    def __init__(
        self,
        db: Session,
        throttle: InvocationThrottle,
        now: Optional[Callable[[], datetime]] = None,
        offsets: Sequence[int] = UPCOMING_DEADLINE_OFFSETS,
    ):
        self.task_repo = TaskRepository(db)
        self.notification_repo = NotificationRepository(db)
        self.throttle = throttle
        self._now = now or utc_now
        self.offsets = tuple(sorted(offsets))

    def check_upcoming(self, force: bool = False) -> DeadlineCheckResult:
        """Notify owners and collaborators of tasks due in each configured offset.

        Gated by the cooldown unless `force` is set.
        """
        if not self.throttle.should_run(force):
            remaining = self.throttle.remaining()
            status = self.throttle.status()
            logger.debug(f"Deadline check skipped due to cooldown ({remaining} remaining)")
            return DeadlineCheckResult(
                status=CheckStatus.SKIPPED,
                message="Deadline check skipped due to cooldown",
                next_check_available=status.next_check_available,
                remaining_minutes=math.ceil(remaining.total_seconds() / 60),
                checked_at=self._now(),
            )

        now = self._now()
        result = DeadlineCheckResult(status=CheckStatus.COMPLETED, checked_at=now)
        failed_queries = 0

        for days in self.offsets:
            target_date = today(days, now=now)
            breakdown = OffsetBreakdown(target_date=target_date)
            result.per_offset[days] = breakdown
            try:
                tasks = self.task_repo.query_due_on(target_date)
            except StoreReadFailure as e:
                logger.error(f"Error fetching tasks due in {days} days: {e}")
                failed_queries += 1
                breakdown.failed += 1
                result.failed += 1
                continue

            if not tasks:
                logger.debug(f"No tasks found due in {days} days ({format_date(target_date)})")
                continue

            logger.info(f"Found {len(tasks)} tasks due in {days} days")
            breakdown.tasks = len(tasks)
            result.tasks_matched += len(tasks)

            for task in tasks:
                self._notify_recipients(
                    task,
                    NotificationType.UPCOMING_DEADLINE,
                    day_offset=days,
                    title=upcoming_title(task, days),
                    description=upcoming_description(task, days),
                    result=result,
                    breakdown=breakdown,
                )

        if failed_queries == len(self.offsets):
            result.status = CheckStatus.FAILED
            result.error = "Failed to fetch tasks for every deadline offset"
        elif result.tasks_matched == 0 and result.failed == 0:
            result.status = CheckStatus.NO_MATCHING_TASKS
        result.message = f"Deadline check completed. Created {result.created} notifications."
        logger.info(
            f"Upcoming deadline check: {result.created} created, {result.duplicates_prevented} duplicates "
            f"prevented, {result.failed} failed, {result.skipped_recipients} recipients skipped"
        )
        return result

    def check_missed(self) -> DeadlineCheckResult:
        """Notify owners and collaborators of every overdue, unfinished task.

        Not throttled. One unread "Deadline Missed" notification per task and recipient,
        however long the task stays overdue; re-runs refresh its sent_at.
        """
        now = self._now()
        try:
            tasks = self.task_repo.query_overdue(today(0, now=now))
        except StoreReadFailure as e:
            logger.error(f"Error fetching overdue tasks: {e}")
            return DeadlineCheckResult(
                status=CheckStatus.FAILED,
                message="Missed deadline check failed",
                error=str(e),
                checked_at=now,
            )

        if not tasks:
            return DeadlineCheckResult(
                status=CheckStatus.NO_MATCHING_TASKS,
                message="No overdue tasks found",
                checked_at=now,
            )

        result = DeadlineCheckResult(
            status=CheckStatus.COMPLETED,
            tasks_matched=len(tasks),
            checked_at=now,
        )
        for task in tasks:
            self._notify_recipients(
                task,
                NotificationType.DEADLINE_MISSED,
                day_offset=MISSED_DEADLINE_DAY_OFFSET,
                title=missed_title(task),
                description=missed_description(task),
                result=result,
            )

        result.message = f"Missed deadline check completed. Created {result.created} notifications."
        logger.info(
            f"Missed deadline check: {result.created} created, {result.duplicates_prevented} duplicates "
            f"prevented, {result.failed} failed"
        )
        return result

    def run_deadline_checks(self, force: bool = False) -> DeadlineRunResult:
        """Run the upcoming and missed checks together (manual trigger)."""
        upcoming = self.check_upcoming(force)
        missed = self.check_missed()
        return DeadlineRunResult(
            upcoming=upcoming,
            missed=missed,
            total_created=upcoming.created + missed.created,
            checked_at=self._now(),
        )

    def get_status(self) -> ThrottleStatus:
        return self.throttle.status()

    def _notify_recipients(
        self,
        task: Task,
        notification_type: NotificationType,
        *,
        day_offset: int,
        title: str,
        description: str,
        result: DeadlineCheckResult,
        breakdown: Optional[OffsetBreakdown] = None,
    ) -> None:
        counters = [c for c in (result, breakdown) if c is not None]
        try:
            recipients = resolve_recipients(task)
        except Exception as e:
            logger.error(f"Failed to resolve recipients of task {task.id}: {type(e).__name__}: {str(e)}")
            for c in counters:
                c.failed += 1
            return

        result.skipped_recipients += recipients.skipped
        if not recipients.emp_ids:
            logger.warning(f"Task {task.id} ({task.title}) has no valid recipients, skipping deadline notification")
            return

        for emp_id in recipients.emp_ids:
            try:
                outcome = self._notify(task, emp_id, notification_type, day_offset, title, description, result)
            except Exception as e:
                logger.error(
                    f"Failed to notify emp {emp_id} about task {task.id} ({notification_type.value}): "
                    f"{type(e).__name__}: {str(e)}"
                )
                for c in counters:
                    c.failed += 1
                continue

            for c in counters:
                if outcome == CREATED:
                    c.created += 1
                else:
                    c.duplicates_prevented += 1

    def _notify(
        self,
        task: Task,
        emp_id: int,
        notification_type: NotificationType,
        day_offset: int,
        title: str,
        description: str,
        result: DeadlineCheckResult,
    ) -> str:
        existing = self.notification_repo.find_unread(task.id, emp_id, notification_type, day_offset)
        if existing is not None:
            logger.debug(
                f"Duplicate notification prevented for task {task.id}, emp {emp_id}, "
                f"{notification_type.value} ({day_offset} days)"
            )
            if notification_type == NotificationType.DEADLINE_MISSED:
                self.notification_repo.touch_sent_at(existing.id, self._now().replace(tzinfo=None))
            return DUPLICATE

        sent_at = self._now().replace(tzinfo=None)
        try:
            created = self.notification_repo.create(
                Notification(
                    emp_id=emp_id,
                    task_id=task.id,
                    type=notification_type,
                    notification_category=NOTIFICATION_CATEGORY_DEADLINE,
                    title=title,
                    description=description,
                    day_offset=day_offset,
                    read=False,
                    created_at=sent_at,
                    sent_at=sent_at,
                )
            )
        except DuplicateNotification:
            # A concurrent scan inserted the same reminder between our read and write.
            logger.warning(f"Concurrent duplicate prevented for task {task.id}, emp {emp_id}, {title!r}")
            return DUPLICATE

        result.notifications.append(created)
        return CREATED
