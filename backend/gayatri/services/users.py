from __future__ import annotations

import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..core.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
)
from ..core.security import hash_password, verify_password
from ..models.influencer import Influencer
from ..models.notification import NotificationType
from ..models.user import AuditLog, User, UserRole
from .notifications import notify

logger = logging.getLogger(__name__)
settings = get_settings()

MIN_NAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 8

# Roles a user may pick for themselves; ADMIN is granted by another admin only
SELF_ASSIGNABLE_ROLES = (UserRole.BRAND, UserRole.INFLUENCER)

DASHBOARD_PATHS: Dict[UserRole, str] = {
    UserRole.ADMIN: "/admin/dashboard",
    UserRole.BRAND: "/brand/dashboard",
    UserRole.INFLUENCER: "/kol/dashboard",
}

ROLE_DISPLAY_NAMES: Dict[UserRole, str] = {
    UserRole.ADMIN: "Administrator",
    UserRole.BRAND: "Brand",
    UserRole.INFLUENCER: "Influencer",
}


def dashboard_path(role: UserRole | None) -> str:
    if role is None:
        return "/settings"
    return DASHBOARD_PATHS.get(role, "/settings")


def role_display_name(role: UserRole | None) -> str:
    if role is None:
        return "No Role"
    return ROLE_DISPLAY_NAMES.get(role, "No Role")


def parse_role(value: str | UserRole | None) -> Optional[UserRole]:
    """Accept a role name in any case; raise for unknown names."""
    if value is None or isinstance(value, UserRole):
        return value
    try:
        return UserRole(value.strip().upper())
    except ValueError:
        raise ServiceError(f"Invalid role: {value}")


def _normalize_email(email: str) -> str:
    return email.lower().strip()


def _validate_password(password: str) -> None:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ServiceError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == _normalize_email(email)).first()


def ensure_influencer_profile(db: Session, user: User) -> Influencer:
    influencer = db.query(Influencer).filter(Influencer.user_id == user.id).first()
    if influencer is None:
        influencer = Influencer(user_id=user.id)
        db.add(influencer)
        db.flush()
    return influencer


def write_audit_log(
    db: Session,
    action: str,
    message: str,
    actor_id: int | None,
    target_id: int | None = None,
) -> AuditLog:
    entry = AuditLog(action=action, message=message, user_id=actor_id, target_id=target_id)
    db.add(entry)
    return entry


def list_audit_logs(db: Session, limit: int = 100, offset: int = 0) -> List[AuditLog]:
    safe_limit = max(1, min(limit, 500))
    return (
        db.query(AuditLog)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset(offset)
        .limit(safe_limit)
        .all()
    )


# ---------------------------------------------------------------------------
# Self-service account operations
# ---------------------------------------------------------------------------

def signup(db: Session, name: str, email: str, password: str, role: str | UserRole) -> User:
    name = (name or "").strip()
    if len(name) < MIN_NAME_LENGTH:
        raise ServiceError(f"Name must be at least {MIN_NAME_LENGTH} characters long")
    _validate_password(password)

    parsed_role = parse_role(role)
    if parsed_role not in SELF_ASSIGNABLE_ROLES:
        raise ServiceError("Role must be BRAND or INFLUENCER")

    if get_user_by_email(db, email):
        raise ConflictError("Email already registered")

    user = User(
        name=name,
        email=_normalize_email(email),
        password_hash=hash_password(password),
        role=parsed_role,
    )
    db.add(user)
    db.flush()
    if parsed_role == UserRole.INFLUENCER:
        ensure_influencer_profile(db, user)
    db.commit()
    db.refresh(user)

    logger.info("User signed up", extra={"user_id": user.id, "step": "signup"})
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        # Same message for unknown email and wrong password
        raise AuthenticationError("Invalid email or password")
    return user


def assign_own_role(db: Session, user: User, role: str | UserRole) -> User:
    parsed_role = parse_role(role)
    if parsed_role not in SELF_ASSIGNABLE_ROLES:
        raise PermissionDeniedError("You can only choose the BRAND or INFLUENCER role")
    if user.role == UserRole.ADMIN:
        raise PermissionDeniedError("Administrators cannot change their own role")

    user.role = parsed_role
    if parsed_role == UserRole.INFLUENCER:
        ensure_influencer_profile(db, user)
    db.commit()
    db.refresh(user)
    return user


def update_profile(
    db: Session,
    user: User,
    name: str | None = None,
    current_password: str | None = None,
    new_password: str | None = None,
) -> User:
    if name is not None:
        name = name.strip()
        if len(name) < MIN_NAME_LENGTH:
            raise ServiceError(f"Name must be at least {MIN_NAME_LENGTH} characters long")
        user.name = name

    if new_password:
        if not current_password or not verify_password(current_password, user.password_hash):
            raise AuthenticationError("Current password is incorrect")
        _validate_password(new_password)
        user.password_hash = hash_password(new_password)

    db.commit()
    db.refresh(user)
    return user


def change_password(
    db: Session,
    user: User,
    current_password: str,
    new_password: str,
    confirm_password: str,
) -> None:
    if new_password != confirm_password:
        raise ServiceError("Passwords do not match")
    if not verify_password(current_password, user.password_hash):
        raise AuthenticationError("Current password is incorrect")
    _validate_password(new_password)
    user.password_hash = hash_password(new_password)
    db.commit()


# ---------------------------------------------------------------------------
# Admin user management
# ---------------------------------------------------------------------------

def list_users(db: Session, exclude_user_id: int | None = None) -> List[User]:
    q = db.query(User)
    if exclude_user_id is not None:
        q = q.filter(User.id != exclude_user_id)
    return q.order_by(User.name.desc(), User.id.desc()).all()


def create_user(
    db: Session,
    admin: User,
    name: str,
    email: str,
    password: str,
    role: str | UserRole | None = None,
) -> User:
    if get_user_by_email(db, email):
        raise ConflictError("Email already registered")
    _validate_password(password)
    parsed_role = parse_role(role)

    user = User(
        name=(name or "").strip() or None,
        email=_normalize_email(email),
        password_hash=hash_password(password),
        role=parsed_role,
    )
    db.add(user)
    db.flush()
    if parsed_role == UserRole.INFLUENCER:
        ensure_influencer_profile(db, user)
    write_audit_log(
        db,
        "USER_CREATE",
        f"Created user {user.email} with role {role_display_name(parsed_role)}",
        actor_id=admin.id,
        target_id=user.id,
    )
    db.commit()
    db.refresh(user)
    return user


def update_user(
    db: Session,
    admin: User,
    user_id: int,
    name: str | None = None,
    email: str | None = None,
    role: str | UserRole | None = None,
) -> User:
    user = get_user(db, user_id)
    parsed_role = parse_role(role) if role is not None else None

    if (
        user.id == admin.id
        and parsed_role is not None
        and parsed_role != UserRole.ADMIN
    ):
        raise PermissionDeniedError("You cannot downgrade your own admin role")

    if email is not None and _normalize_email(email) != user.email:
        if get_user_by_email(db, email):
            raise ConflictError("Email already registered")
        user.email = _normalize_email(email)
    if name is not None:
        user.name = name.strip()

    role_changed = parsed_role is not None and parsed_role != user.role
    if role_changed:
        previous = role_display_name(user.role)
        user.role = parsed_role
        if parsed_role == UserRole.INFLUENCER:
            ensure_influencer_profile(db, user)
        notify(
            db,
            user.id,
            "Role Updated",
            f"Your role has been changed from {previous} to {role_display_name(parsed_role)}",
            type=NotificationType.ROLE_UPDATE,
            data={"role": parsed_role.value},
        )

    write_audit_log(
        db,
        "USER_UPDATE",
        f"Updated user {user.email}"
        + (f" (role: {role_display_name(user.role)})" if role_changed else ""),
        actor_id=admin.id,
        target_id=user.id,
    )
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, admin: User, user_id: int) -> None:
    if user_id == admin.id:
        raise PermissionDeniedError("You cannot delete your own account")
    user = get_user(db, user_id)
    email = user.email
    db.delete(user)
    write_audit_log(db, "USER_DELETE", f"Deleted user {email}", actor_id=admin.id, target_id=user_id)
    db.commit()
    logger.info("User deleted", extra={"user_id": user_id, "step": "delete_user"})


def seed_admin(db: Session) -> Optional[User]:
    """
    Create the bootstrap admin account from ADMIN_EMAIL / ADMIN_PASSWORD.

    Existing accounts are promoted to ADMIN but their password is left alone.
    """
    if not settings.ADMIN_PASSWORD:
        logger.warning("ADMIN_PASSWORD not set; skipping admin seed", extra={"step": "seed"})
        return None

    user = get_user_by_email(db, settings.ADMIN_EMAIL)
    if user is None:
        user = User(
            name=settings.ADMIN_NAME,
            email=_normalize_email(settings.ADMIN_EMAIL),
            password_hash=hash_password(settings.ADMIN_PASSWORD),
            role=UserRole.ADMIN,
        )
        db.add(user)
    else:
        user.role = UserRole.ADMIN
    db.commit()
    db.refresh(user)
    logger.info("Admin account seeded", extra={"user_id": user.id, "step": "seed"})
    return user
