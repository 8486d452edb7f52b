"""Notification data model for taskcycle."""

from datetime import datetime
from typing import Optional
from enum import Enum
from pydantic import BaseModel, Field

from taskcycle.models.constants import NOTIFICATION_CATEGORY_DEADLINE


class NotificationType(str, Enum):
    """Notification type enumeration."""
    UPCOMING_DEADLINE = "Upcoming Deadline"
    DEADLINE_MISSED = "Deadline Missed"
    GENERAL = "General"


class Notification(BaseModel):
    """Recipient-facing event record.

    At most one unread notification may exist per (task_id, emp_id, type, day_offset).
    """

    id: Optional[int] = None
    emp_id: int = Field(..., description="Recipient employee id")
    task_id: Optional[int] = Field(None, description="Task the notification is about")
    type: NotificationType = Field(..., description="Notification type")
    notification_category: str = Field(NOTIFICATION_CATEGORY_DEADLINE)
    title: str
    description: Optional[str] = None
    day_offset: int = Field(0, ge=0, description="Days-before-due for upcoming reminders, 0 otherwise")
    read: bool = False
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
