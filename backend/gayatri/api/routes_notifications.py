from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.db import get_db
from ..models.user import User
from ..schemas.platform import NotificationOut
from ..services import notifications as notification_service
from .deps import get_current_user, ok

router = APIRouter(tags=["notifications"])


@router.get("/notifications")
def list_notifications(
    unread_only: bool = False,
    limit: int = 50,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    items = notification_service.list_notifications(db, user.id, unread_only=unread_only, limit=limit)
    return {
        "unread": notification_service.unread_count(db, user.id),
        "items": [NotificationOut.model_validate(n).model_dump() for n in items],
    }


@router.post("/notifications/{notification_id}/read")
def mark_read(
    notification_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    notification = notification_service.mark_read(db, user.id, notification_id)
    return ok("Notification marked as read", NotificationOut.model_validate(notification).model_dump())


@router.post("/notifications/read-all")
def mark_all_read(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    updated = notification_service.mark_all_read(db, user.id)
    return ok(f"{updated} notification(s) marked as read", {"updated": updated})
