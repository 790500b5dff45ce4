from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import NotFoundError
from ..models.notification import Notification, NotificationType
from ..models.user import User, UserRole

logger = logging.getLogger(__name__)


def notify(
    db: Session,
    user_id: int | None,
    title: str,
    message: str,
    type: NotificationType = NotificationType.SYSTEM,
    data: Optional[Dict[str, Any]] = None,
) -> Optional[Notification]:
    """
    Best-effort notification write. The row is inserted inside a savepoint so
    a failed insert is rolled back on its own and the caller's pending work
    still commits. The caller commits.

    Returns None when nothing was written.
    """
    if user_id is None:
        return None
    # flush the caller's own changes outside the guarded block
    db.flush()
    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=type,
        data=data,
    )
    try:
        with db.begin_nested():
            db.add(notification)
            db.flush()
        return notification
    except SQLAlchemyError:
        logger.exception(
            "Failed to create notification",
            extra={"user_id": user_id, "step": "notify"},
        )
        return None


def notify_many(
    db: Session,
    user_ids: Iterable[int | None],
    title: str,
    message: str,
    type: NotificationType = NotificationType.SYSTEM,
    data: Optional[Dict[str, Any]] = None,
) -> int:
    """Notify each distinct user once; returns how many were written."""
    sent = 0
    seen: set[int] = set()
    for uid in user_ids:
        if uid is None or uid in seen:
            continue
        seen.add(uid)
        if notify(db, uid, title, message, type=type, data=data) is not None:
            sent += 1
    return sent


def admin_user_ids(db: Session) -> List[int]:
    return [
        row.id
        for row in db.query(User.id).filter(User.role == UserRole.ADMIN).all()
    ]


def list_notifications(
    db: Session, user_id: int, unread_only: bool = False, limit: int = 50
) -> List[Notification]:
    safe_limit = max(1, min(limit, 100))
    q = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        q = q.filter(Notification.is_read.is_(False))
    return q.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(safe_limit).all()


def unread_count(db: Session, user_id: int) -> int:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count()
    )


def mark_read(db: Session, user_id: int, notification_id: int) -> Notification:
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if not notification:
        raise NotFoundError("Notification not found")
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification


def mark_all_read(db: Session, user_id: int) -> int:
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.commit()
    return updated
