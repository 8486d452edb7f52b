"""SQLAlchemy database models for taskcycle."""

from datetime import datetime
from typing import Any, Optional, Union, TypeVar, Type
from sqlalchemy import (
    Column,
    String,
    Integer,
    Boolean,
    Date,
    DateTime,
    JSON,
    ForeignKey,
    Index,
    UniqueConstraint,
    text,
)

from taskcycle.database.database import Base
from taskcycle.models.task import TaskStatus, SubtaskStatus
from taskcycle.models.notification import NotificationType

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T, None]) -> Optional[str]:
    """Convert enum to string value (handles both enum and string).

    Args:
        enum_obj: Enum instance or string value

    Returns:
        String value of the enum, the string itself if already a string, or None
    """
    if enum_obj is None:
        return None
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def value_to_enum(value: str, enum_class: Type[T], default: T) -> T:
    """Convert string to enum with fallback to default.

    Args:
        value: String value to convert
        enum_class: Enum class to convert to
        default: Default enum value if conversion fails

    Returns:
        Enum instance, or default if conversion fails
    """
    if not value:
        return default
    try:
        return enum_class(value)
    except (ValueError, AttributeError):
        return default


def normalize_recipient_ref(value: Any) -> Any:
    """Normalize a stored recipient reference once, at the store boundary.

    Numeric strings become ints; anything else is passed through untouched so
    recipient resolution can count and drop it.
    """
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return value


class TaskDB(Base):
    """Database model for Task."""

    __tablename__ = "tasks"
    __table_args__ = (
        # One successor per completed predecessor (NULLs do not participate).
        UniqueConstraint("recurrence_predecessor_id", name="uq_task_recurrence_predecessor"),
        # Occurrence numbers are never re-used within a series.
        UniqueConstraint("recurrence_series_id", "recurrence_count", name="uq_task_series_occurrence"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Basic fields
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    priority = Column(Integer, nullable=True)
    project_id = Column(Integer, nullable=True, index=True)
    file = Column(String, nullable=True)
    status = Column(String, nullable=False, default=TaskStatus.ONGOING.value, index=True)
    due_date = Column(Date, nullable=True, index=True)

    # Ownership
    owner_id = Column(String, nullable=True, index=True)
    collaborators = Column(JSON, nullable=False, default=list)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Recurrence
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurrence_pattern = Column(String, nullable=True)
    recurrence_interval = Column(Integer, nullable=False, default=1)
    recurrence_weekday = Column(Integer, nullable=True)
    recurrence_end_date = Column(Date, nullable=True)
    recurrence_count = Column(Integer, nullable=True)
    recurrence_max_count = Column(Integer, nullable=True)
    recurrence_series_id = Column(String, nullable=True, index=True)
    recurrence_predecessor_id = Column(Integer, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from taskcycle.models.task import Task

        return Task(
            id=self.id,
            title=self.title,
            description=self.description,
            priority=self.priority,
            project_id=self.project_id,
            file=self.file,
            status=value_to_enum(self.status, TaskStatus, TaskStatus.ONGOING),
            due_date=self.due_date,
            owner_id=normalize_recipient_ref(self.owner_id),
            collaborators=[normalize_recipient_ref(c) for c in (self.collaborators or [])],
            created_at=self.created_at,
            updated_at=self.updated_at,
            is_recurring=bool(self.is_recurring),
            recurrence_pattern=self.recurrence_pattern,
            recurrence_interval=self.recurrence_interval or 1,
            recurrence_weekday=self.recurrence_weekday,
            recurrence_end_date=self.recurrence_end_date,
            recurrence_count=self.recurrence_count,
            recurrence_max_count=self.recurrence_max_count,
            recurrence_series_id=self.recurrence_series_id,
            recurrence_predecessor_id=self.recurrence_predecessor_id,
        )

    @classmethod
    def from_pydantic(cls, task):
        """Create database model from Pydantic model."""
        # Pydantic with use_enum_values=True returns strings
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            priority=task.priority,
            project_id=task.project_id,
            file=task.file,
            status=enum_to_value(task.status),
            due_date=task.due_date,
            owner_id=str(task.owner_id) if task.owner_id is not None else None,
            collaborators=list(task.collaborators),
            created_at=task.created_at or datetime.utcnow(),
            updated_at=task.updated_at or datetime.utcnow(),
            is_recurring=task.is_recurring,
            recurrence_pattern=enum_to_value(task.recurrence_pattern),
            recurrence_interval=task.recurrence_interval,
            recurrence_weekday=task.recurrence_weekday,
            recurrence_end_date=task.recurrence_end_date,
            recurrence_count=task.recurrence_count,
            recurrence_max_count=task.recurrence_max_count,
            recurrence_series_id=task.recurrence_series_id,
            recurrence_predecessor_id=task.recurrence_predecessor_id,
        )


class SubtaskDB(Base):
    """Database model for Subtask."""

    __tablename__ = "subtasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    main_task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    priority = Column(Integer, nullable=True)
    status = Column(String, nullable=False, default=SubtaskStatus.NOT_STARTED.value)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from taskcycle.models.task import Subtask
        return Subtask(
            id=self.id,
            main_task_id=self.main_task_id,
            title=self.title,
            description=self.description,
            priority=self.priority,
            status=value_to_enum(self.status, SubtaskStatus, SubtaskStatus.NOT_STARTED),
        )

    @classmethod
    def from_pydantic(cls, subtask):
        """Create database model from Pydantic model."""
        return cls(
            id=subtask.id,
            main_task_id=subtask.main_task_id,
            title=subtask.title,
            description=subtask.description,
            priority=subtask.priority,
            status=enum_to_value(subtask.status),
        )


class NotificationDB(Base):
    """Database model for Notification."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    emp_id = Column(Integer, nullable=False, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True, index=True)
    type = Column(String, nullable=False)
    notification_category = Column(String, nullable=False, default="deadline")
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    day_offset = Column(Integer, nullable=False, default=0)
    read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    sent_at = Column(DateTime, nullable=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from taskcycle.models.notification import Notification
        return Notification(
            id=self.id,
            emp_id=self.emp_id,
            task_id=self.task_id,
            type=value_to_enum(self.type, NotificationType, NotificationType.GENERAL),
            notification_category=self.notification_category,
            title=self.title,
            description=self.description,
            day_offset=self.day_offset or 0,
            read=bool(self.read),
            read_at=self.read_at,
            created_at=self.created_at,
            sent_at=self.sent_at,
        )

    @classmethod
    def from_pydantic(cls, notification):
        """Create database model from Pydantic model."""
        now = datetime.utcnow()
        return cls(
            id=notification.id,
            emp_id=notification.emp_id,
            task_id=notification.task_id,
            type=enum_to_value(notification.type),
            notification_category=notification.notification_category,
            title=notification.title,
            description=notification.description,
            day_offset=notification.day_offset,
            read=notification.read,
            read_at=notification.read_at,
            created_at=notification.created_at or now,
            sent_at=notification.sent_at or now,
        )


# At most one unread notification per dedup key. Read rows do not participate, so the
# same event may notify again once the previous reminder has been read.
Index(
    "uq_notifications_unread_key",
    NotificationDB.task_id,
    NotificationDB.emp_id,
    NotificationDB.type,
    NotificationDB.day_offset,
    unique=True,
    sqlite_where=text("read = 0"),
    postgresql_where=text("read = false"),
)
