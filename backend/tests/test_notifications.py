"""
Tests for services/notifications.py
"""
import pytest

from gayatri.core.errors import NotFoundError
from gayatri.models.brand import Brand
from gayatri.models.notification import Notification
from gayatri.models.user import UserRole
from gayatri.services import notifications


class TestNotify:
    """Best-effort writes never take the caller's work down with them."""

    def test_failed_insert_keeps_callers_changes(self, db, make):
        user = make.user(UserRole.BRAND)
        db.add(Brand(name="Side Project", user_id=user.id))

        # title is NOT NULL, so the insert fails inside its savepoint
        result = notifications.notify(db, user.id, None, "message")
        db.commit()

        assert result is None
        assert db.query(Brand).filter(Brand.name == "Side Project").count() == 1
        assert db.query(Notification).count() == 0

    def test_missing_user_writes_nothing(self, db):
        assert notifications.notify(db, None, "Title", "message") is None
        assert db.query(Notification).count() == 0

    def test_notify_many_continues_past_failure(self, db, make):
        first = make.user(UserRole.BRAND)
        second = make.user(UserRole.BRAND)

        ok = notifications.notify(db, first.id, None, "message")
        sent = notifications.notify_many(
            db, [first.id, second.id, second.id, None], "Hello", "message"
        )
        db.commit()

        assert ok is None
        assert sent == 2
        assert db.query(Notification).count() == 2


class TestNotificationInbox:
    """Tests for listing and marking notifications."""

    def test_unread_count_and_mark_all_read(self, db, make):
        user = make.user(UserRole.BRAND)
        for i in range(3):
            notifications.notify(db, user.id, f"Title {i}", "message")
        db.commit()

        assert notifications.unread_count(db, user.id) == 3
        assert len(notifications.list_notifications(db, user.id, unread_only=True)) == 3

        assert notifications.mark_all_read(db, user.id) == 3
        assert notifications.unread_count(db, user.id) == 0
        assert notifications.list_notifications(db, user.id, unread_only=True) == []

    def test_cannot_mark_someone_elses_notification(self, db, make):
        owner = make.user(UserRole.BRAND)
        other = make.user(UserRole.BRAND)
        notification = notifications.notify(db, owner.id, "Title", "message")
        db.commit()

        with pytest.raises(NotFoundError):
            notifications.mark_read(db, other.id, notification.id)

        assert notifications.mark_read(db, owner.id, notification.id).is_read is True
