"""Tests for NotificationRepository and the unread uniqueness index."""

import pytest
from datetime import datetime

from sqlalchemy.exc import OperationalError

from taskcycle.errors import DuplicateNotification, StoreReadFailure, StoreWriteFailure
from taskcycle.models.notification import Notification, NotificationType


def _notification(task_id, emp_id=1, **overrides):
    fields = {
        "emp_id": emp_id,
        "task_id": task_id,
        "type": NotificationType.UPCOMING_DEADLINE,
        "title": "3 days before Test Task is due",
        "day_offset": 3,
    }
    fields.update(overrides)
    return Notification(**fields)


class TestNotificationRepository:
    def test_create_and_find_unread(self, notification_repository, make_task):
        task = make_task()
        created = notification_repository.create(_notification(task.id))

        assert created.id is not None
        assert created.created_at is not None
        assert created.sent_at is not None
        found = notification_repository.find_unread(task.id, 1, NotificationType.UPCOMING_DEADLINE, 3)
        assert found.id == created.id
        assert notification_repository.find_unread(task.id, 1, NotificationType.UPCOMING_DEADLINE, 1) is None
        assert notification_repository.find_unread(task.id, 2, NotificationType.UPCOMING_DEADLINE, 3) is None
        assert notification_repository.find_unread(task.id, 1, NotificationType.DEADLINE_MISSED, 3) is None

    def test_unread_duplicate_is_rejected_by_index(self, notification_repository, make_task):
        task = make_task()
        notification_repository.create(_notification(task.id))

        with pytest.raises(DuplicateNotification):
            notification_repository.create(_notification(task.id, title="different wording"))

        # The session is still usable after the rollback
        assert notification_repository.unread_count(1) == 1

    def test_same_key_allowed_once_previous_is_read(self, notification_repository, make_task):
        task = make_task()
        first = notification_repository.create(_notification(task.id))
        notification_repository.mark_read(first.id, 1)

        second = notification_repository.create(_notification(task.id))

        assert second.id != first.id
        assert notification_repository.unread_count(1) == 1

    def test_different_offsets_do_not_collide(self, notification_repository, make_task):
        task = make_task()
        notification_repository.create(_notification(task.id, day_offset=7))
        notification_repository.create(_notification(task.id, day_offset=3))
        notification_repository.create(_notification(task.id, day_offset=1))
        assert notification_repository.unread_count(1) == 3

    def test_touch_sent_at(self, notification_repository, make_task):
        task = make_task()
        created = notification_repository.create(_notification(task.id))
        later = datetime(2030, 1, 1, 8, 0)

        assert notification_repository.touch_sent_at(created.id, later) is True
        assert notification_repository.list_for_employee(1)[0].sent_at == later
        assert notification_repository.touch_sent_at(9999, later) is False

    def test_mark_read_is_scoped_to_employee(self, notification_repository, make_task):
        task = make_task()
        created = notification_repository.create(_notification(task.id, emp_id=1))

        assert notification_repository.mark_read(created.id, 2) is None
        marked = notification_repository.mark_read(created.id, 1)
        assert marked.read is True
        assert marked.read_at is not None

    def test_list_and_mark_all_read(self, notification_repository, make_task):
        task = make_task()
        notification_repository.create(_notification(task.id, day_offset=7))
        notification_repository.create(_notification(task.id, day_offset=3))
        notification_repository.create(_notification(task.id, emp_id=2))

        assert len(notification_repository.list_for_employee(1)) == 2
        assert notification_repository.mark_all_read(1) == 2
        assert notification_repository.unread_count(1) == 0
        assert notification_repository.list_for_employee(1, unread_only=True) == []
        assert notification_repository.unread_count(2) == 1


def _broken_query(*args, **kwargs):
    raise OperationalError("SELECT", {}, Exception("disk I/O error"))


class TestNotificationRepositoryStoreFailures:
    """Database errors surface as store failures, never as raw SQLAlchemy errors."""

    @pytest.mark.parametrize(
        "call",
        [
            lambda repo: repo.touch_sent_at(1),
            lambda repo: repo.list_for_employee(1),
            lambda repo: repo.unread_count(1),
            lambda repo: repo.mark_read(1, 1),
            lambda repo: repo.find_unread(1, 1, NotificationType.DEADLINE_MISSED),
        ],
    )
    def test_reads_raise_store_read_failure(self, notification_repository, monkeypatch, call):
        monkeypatch.setattr(notification_repository.db, "query", _broken_query)
        with pytest.raises(StoreReadFailure):
            call(notification_repository)

    def test_mark_all_read_raises_store_write_failure(self, notification_repository, monkeypatch):
        monkeypatch.setattr(notification_repository.db, "query", _broken_query)
        with pytest.raises(StoreWriteFailure):
            notification_repository.mark_all_read(1)
