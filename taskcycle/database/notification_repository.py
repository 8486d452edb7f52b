"""Repository for Notification database operations."""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from taskcycle.errors import DuplicateNotification, StoreReadFailure, StoreWriteFailure
from taskcycle.models.notification import Notification, NotificationType
from taskcycle.database.models import NotificationDB, enum_to_value

logger = logging.getLogger(__name__)


class NotificationRepository:
    """Repository for Notification database operations.

    The partial unique index on unread rows is the authority on duplicates; `find_unread`
    lets callers skip the write in the common case.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_unread(
        self,
        task_id: int,
        emp_id: int,
        notification_type: NotificationType,
        day_offset: int = 0,
    ) -> Optional[Notification]:
        """Return the unread notification for a dedup key, if one exists."""
        try:
            row = (
                self.db.query(NotificationDB)
                .filter(
                    NotificationDB.task_id == task_id,
                    NotificationDB.emp_id == emp_id,
                    NotificationDB.type == enum_to_value(notification_type),
                    NotificationDB.day_offset == day_offset,
                    NotificationDB.read.is_(False),
                )
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(
                f"Failed to look up notification for task {task_id}, emp {emp_id}: {type(e).__name__}: {str(e)}"
            )
            raise StoreReadFailure(f"Failed to look up notification for task {task_id}, emp {emp_id}") from e
        return row.to_pydantic() if row else None

    def create(self, notification: Notification) -> Notification:
        """Insert a notification.

        Raises DuplicateNotification when an unread row with the same dedup key exists.
        """
        try:
            row = NotificationDB.from_pydantic(notification)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Created notification {row.id} for emp {row.emp_id}: {row.title[:50]}")
            return row.to_pydantic()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateNotification(
                f"Unread {enum_to_value(notification.type)!r} notification already exists "
                f"for task {notification.task_id}, emp {notification.emp_id}"
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create notification: {type(e).__name__}: {str(e)}")
            raise StoreWriteFailure("Failed to create notification") from e

    def touch_sent_at(self, notification_id: int, sent_at: Optional[datetime] = None) -> bool:
        """Refresh sent_at on an existing notification."""
        row = self._first(
            f"notification {notification_id}",
            NotificationDB.id == notification_id,
        )
        if row is None:
            return False
        row.sent_at = sent_at or datetime.utcnow()
        return self._commit(f"refresh sent_at of notification {notification_id}")

    def list_for_employee(self, emp_id: int, unread_only: bool = False) -> List[Notification]:
        try:
            query = self.db.query(NotificationDB).filter(NotificationDB.emp_id == emp_id)
            if unread_only:
                query = query.filter(NotificationDB.read.is_(False))
            rows = query.order_by(desc(NotificationDB.created_at), desc(NotificationDB.id)).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to list notifications of emp {emp_id}: {type(e).__name__}: {str(e)}")
            raise StoreReadFailure(f"Failed to list notifications of emp {emp_id}") from e
        return [row.to_pydantic() for row in rows]

    def unread_count(self, emp_id: int) -> int:
        try:
            return (
                self.db.query(NotificationDB)
                .filter(NotificationDB.emp_id == emp_id, NotificationDB.read.is_(False))
                .count()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to count unread notifications of emp {emp_id}: {type(e).__name__}: {str(e)}")
            raise StoreReadFailure(f"Failed to count unread notifications of emp {emp_id}") from e

    def mark_read(self, notification_id: int, emp_id: int) -> Optional[Notification]:
        """Mark one of the employee's notifications as read."""
        row = self._first(
            f"notification {notification_id} of emp {emp_id}",
            NotificationDB.id == notification_id,
            NotificationDB.emp_id == emp_id,
        )
        if row is None:
            return None
        if not row.read:
            row.read = True
            row.read_at = datetime.utcnow()
            self._commit(f"mark notification {notification_id} read")
            self.db.refresh(row)
        return row.to_pydantic()

    def mark_all_read(self, emp_id: int) -> int:
        """Mark every unread notification of an employee as read; returns rows updated."""
        try:
            affected = (
                self.db.query(NotificationDB)
                .filter(NotificationDB.emp_id == emp_id, NotificationDB.read.is_(False))
                .update(
                    {NotificationDB.read: True, NotificationDB.read_at: datetime.utcnow()},
                    synchronize_session=False,
                )
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to mark notifications of emp {emp_id} read: {type(e).__name__}: {str(e)}")
            raise StoreWriteFailure(f"Failed to mark notifications of emp {emp_id} read") from e
        self._commit(f"mark all notifications of emp {emp_id} read")
        return int(affected)

    def _first(self, description: str, *criteria) -> Optional[NotificationDB]:
        try:
            return self.db.query(NotificationDB).filter(*criteria).first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load {description}: {type(e).__name__}: {str(e)}")
            raise StoreReadFailure(f"Failed to load {description}") from e

    def _commit(self, action: str) -> bool:
        try:
            self.db.commit()
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {action}: {type(e).__name__}: {str(e)}")
            raise StoreWriteFailure(f"Failed to {action}") from e
