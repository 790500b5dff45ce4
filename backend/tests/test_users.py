"""
Tests for account and admin user management in services/users.py
"""
import pytest

from gayatri.core.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
)
from gayatri.models.influencer import Influencer
from gayatri.models.notification import Notification, NotificationType
from gayatri.models.user import AuditLog, User, UserRole
from gayatri.services import users as user_service

from conftest import PASSWORD, auth_headers


class TestAdminUserManagement:
    """Tests for update_user, delete_user and list_users."""

    def test_admin_cannot_downgrade_own_role(self, db, make):
        admin = make.admin()

        with pytest.raises(PermissionDeniedError):
            user_service.update_user(db, admin, admin.id, role="BRAND")

        db.refresh(admin)
        assert admin.role == UserRole.ADMIN

    def test_role_change_notifies_and_audits(self, db, make):
        admin = make.admin()
        user = make.user(UserRole.BRAND)

        updated = user_service.update_user(db, admin, user.id, role="influencer")

        assert updated.role == UserRole.INFLUENCER
        assert db.query(Influencer).filter(Influencer.user_id == user.id).count() == 1

        notification = db.query(Notification).filter(Notification.user_id == user.id).one()
        assert notification.type == NotificationType.ROLE_UPDATE
        assert notification.message == "Your role has been changed from Brand to Influencer"

        entry = db.query(AuditLog).filter(AuditLog.action == "USER_UPDATE").one()
        assert entry.user_id == admin.id
        assert entry.target_id == user.id
        assert "role: Influencer" in entry.message

    def test_plain_edit_audits_without_notification(self, db, make):
        admin = make.admin()
        user = make.user(UserRole.BRAND)

        user_service.update_user(db, admin, user.id, name="  Renamed  ")

        db.refresh(user)
        assert user.name == "Renamed"
        assert db.query(Notification).count() == 0
        assert db.query(AuditLog).filter(AuditLog.action == "USER_UPDATE").count() == 1

    def test_email_taken_by_another_user_conflicts(self, db, make):
        admin = make.admin()
        first = make.user(UserRole.BRAND)
        second = make.user(UserRole.BRAND)

        with pytest.raises(ConflictError):
            user_service.update_user(db, admin, second.id, email=first.email.upper())

    def test_admin_cannot_delete_self(self, db, make):
        admin = make.admin()

        with pytest.raises(PermissionDeniedError):
            user_service.delete_user(db, admin, admin.id)

        assert db.query(User).filter(User.id == admin.id).count() == 1

    def test_delete_writes_audit_log(self, db, make):
        admin = make.admin()
        user = make.user(UserRole.BRAND)
        email = user.email
        user_id = user.id

        user_service.delete_user(db, admin, user_id)

        with pytest.raises(NotFoundError):
            user_service.get_user(db, user_id)
        entry = user_service.list_audit_logs(db)[0]
        assert entry.action == "USER_DELETE"
        assert entry.target_id == user_id
        assert entry.message == f"Deleted user {email}"

    def test_list_users_ordered_by_name_descending(self, db, make):
        admin = make.admin()
        make.user(UserRole.BRAND, name="Bima")
        make.user(UserRole.BRAND, name="Citra")
        make.user(UserRole.INFLUENCER, name="Ayu")

        names = [u.name for u in user_service.list_users(db, exclude_user_id=admin.id)]

        assert names == ["Citra", "Bima", "Ayu"]

    def test_delete_self_through_api_is_403(self, client, make):
        admin = make.admin()

        res = client.delete(f"/api/users/{admin.id}", headers=auth_headers(admin))

        assert res.status_code == 403
        assert res.json()["success"] is False


class TestChangePassword:
    """Tests for change_password."""

    def test_confirm_mismatch_rejected(self, db, make):
        user = make.user(UserRole.BRAND)

        with pytest.raises(ServiceError, match="do not match"):
            user_service.change_password(db, user, PASSWORD, "new-password-1", "new-password-2")

    def test_wrong_current_password_rejected(self, db, make):
        user = make.user(UserRole.BRAND)

        with pytest.raises(AuthenticationError):
            user_service.change_password(
                db, user, "not-the-password", "new-password-1", "new-password-1"
            )

    def test_short_new_password_rejected(self, db, make):
        user = make.user(UserRole.BRAND)

        with pytest.raises(ServiceError, match="at least"):
            user_service.change_password(db, user, PASSWORD, "short", "short")

    def test_new_password_used_for_login(self, db, make):
        user = make.user(UserRole.BRAND)

        user_service.change_password(db, user, PASSWORD, "new-password-1", "new-password-1")

        assert user_service.authenticate(db, user.email, "new-password-1").id == user.id
        with pytest.raises(AuthenticationError):
            user_service.authenticate(db, user.email, PASSWORD)
