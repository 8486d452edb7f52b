"""Repository layer for task database operations."""

import logging
from datetime import date, datetime
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from taskcycle.errors import DuplicateSuccessor, StoreReadFailure, StoreWriteFailure, TaskNotFound
from taskcycle.models.task import Task, TaskStatus, Subtask
from taskcycle.database.models import TaskDB, SubtaskDB, enum_to_value

logger = logging.getLogger(__name__)


class TaskRepository:
    """Repository for Task database operations."""

    def __init__(self, db: Session):
        self.db = db

    def _query_tasks(self, description: str, *criteria, order_by=None) -> List[Task]:
        try:
            query = self.db.query(TaskDB).filter(*criteria)
            if order_by is not None:
                query = query.order_by(*order_by)
            return [task_db.to_pydantic() for task_db in query.all()]
        except SQLAlchemyError as e:
            logger.error(f"Failed to query {description}: {type(e).__name__}: {str(e)}")
            raise StoreReadFailure(f"Failed to query {description}") from e

    def create(self, task: Task) -> Task:
        """Create a new task."""
        try:
            task_db = TaskDB.from_pydantic(task)
            self.db.add(task_db)
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Created task {task_db.id}: {task.title[:50]}")
            return task_db.to_pydantic()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create task {task.title[:50]}: {type(e).__name__}: {str(e)}")
            raise StoreWriteFailure(f"Failed to create task {task.title[:50]!r}") from e

    def get(self, task_id: int) -> Optional[Task]:
        """Get task by ID."""
        try:
            task_db = self.db.query(TaskDB).filter(TaskDB.id == task_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load task {task_id}: {type(e).__name__}: {str(e)}")
            raise StoreReadFailure(f"Failed to load task {task_id}") from e
        return task_db.to_pydantic() if task_db else None

    def update_status(self, task_id: int, status: TaskStatus) -> Task:
        """Set the status of a task."""
        task_db = self.db.query(TaskDB).filter(TaskDB.id == task_id).first()
        if not task_db:
            raise TaskNotFound(task_id)

        task_db.status = enum_to_value(status)
        task_db.updated_at = datetime.utcnow()
        try:
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Updated task {task_id} status to {task_db.status}")
            return task_db.to_pydantic()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update task {task_id}: {type(e).__name__}: {str(e)}")
            raise StoreWriteFailure(f"Failed to update task {task_id}") from e

    def query_due_on(self, target_date: date) -> List[Task]:
        """Get non-completed tasks due exactly on the given date."""
        return self._query_tasks(
            f"tasks due on {target_date.isoformat()}",
            TaskDB.due_date == target_date,
            TaskDB.status != TaskStatus.COMPLETED.value,
            order_by=(TaskDB.id,),
        )

    def query_overdue(self, today: date) -> List[Task]:
        """Get non-completed tasks whose due date is before today."""
        return self._query_tasks(
            f"tasks overdue before {today.isoformat()}",
            TaskDB.due_date < today,
            TaskDB.status != TaskStatus.COMPLETED.value,
            order_by=(TaskDB.due_date, TaskDB.id),
        )

    def get_successor(self, predecessor_id: int) -> Optional[Task]:
        """Get the occurrence spawned from a completed task, if any."""
        tasks = self._query_tasks(
            f"successor of task {predecessor_id}",
            TaskDB.recurrence_predecessor_id == predecessor_id,
        )
        return tasks[0] if tasks else None

    def get_series(self, series_id: str) -> List[Task]:
        """Get all occurrences of a recurring series ordered by due date."""
        return self._query_tasks(
            f"series {series_id}",
            TaskDB.recurrence_series_id == series_id,
            order_by=(TaskDB.due_date, TaskDB.recurrence_count),
        )

    def create_successor(self, task: Task, subtasks: List[Subtask]) -> Tuple[Task, List[Subtask]]:
        """Insert a spawned occurrence and its copied subtasks in one transaction.

        Raises DuplicateSuccessor if the predecessor already has a successor or the
        occurrence number is taken in the series.
        """
        try:
            task_db = TaskDB.from_pydantic(task)
            self.db.add(task_db)
            self.db.flush()
            subtasks_db = []
            for subtask in subtasks:
                subtask_db = SubtaskDB.from_pydantic(subtask)
                subtask_db.main_task_id = task_db.id
                self.db.add(subtask_db)
                subtasks_db.append(subtask_db)
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(
                f"Created occurrence {task_db.recurrence_count} of series {task_db.recurrence_series_id} "
                f"as task {task_db.id} with {len(subtasks_db)} subtasks"
            )
            return task_db.to_pydantic(), [s.to_pydantic() for s in subtasks_db]
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(
                f"Successor of task {task.recurrence_predecessor_id} already exists: {type(e).__name__}"
            )
            raise DuplicateSuccessor(
                f"Successor of task {task.recurrence_predecessor_id} already exists"
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Failed to create successor of task {task.recurrence_predecessor_id}: "
                f"{type(e).__name__}: {str(e)}"
            )
            raise StoreWriteFailure(f"Failed to create successor of task {task.recurrence_predecessor_id}") from e
