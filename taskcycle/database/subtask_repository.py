"""Repository for Subtask database operations."""

import logging
from typing import List

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from taskcycle.errors import StoreReadFailure, StoreWriteFailure
from taskcycle.models.task import Subtask
from taskcycle.database.models import SubtaskDB

logger = logging.getLogger(__name__)


class SubtaskRepository:
    def __init__(self, db: Session):
        self.db = db

    def list_by_task(self, task_id: int) -> List[Subtask]:
        try:
            rows = (
                self.db.query(SubtaskDB)
                .filter(SubtaskDB.main_task_id == task_id)
                .order_by(SubtaskDB.id)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to list subtasks of task {task_id}: {type(e).__name__}: {str(e)}")
            raise StoreReadFailure(f"Failed to list subtasks of task {task_id}") from e
        return [row.to_pydantic() for row in rows]

    def create(self, subtask: Subtask) -> Subtask:
        return self.insert_many([subtask])[0]

    def insert_many(self, subtasks: List[Subtask]) -> List[Subtask]:
        rows = [SubtaskDB.from_pydantic(s) for s in subtasks]
        if not rows:
            return []
        try:
            self.db.add_all(rows)
            self.db.commit()
            for row in rows:
                self.db.refresh(row)
            logger.debug(f"Inserted {len(rows)} subtasks")
            return [row.to_pydantic() for row in rows]
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to insert subtasks: {type(e).__name__}: {str(e)}")
            raise StoreWriteFailure("Failed to insert subtasks") from e
