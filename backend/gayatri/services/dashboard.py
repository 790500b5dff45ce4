from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.campaign import Campaign, CampaignStatus, CampaignType
from ..models.user import User, UserRole
from .mou import mou_statistics


def admin_statistics(db: Session, now: datetime | None = None) -> Dict[str, Any]:
    users = {role.value: 0 for role in UserRole}
    users["NONE"] = 0
    for role, count in db.query(User.role, func.count(User.id)).group_by(User.role).all():
        users[role.value if role else "NONE"] = count

    campaigns = {status.value: 0 for status in CampaignStatus}
    for status, count in (
        db.query(Campaign.status, func.count(Campaign.id)).group_by(Campaign.status).all()
    ):
        campaigns[status.value] = count

    pending_direct = (
        db.query(Campaign)
        .filter(Campaign.type == CampaignType.DIRECT, Campaign.status == CampaignStatus.PENDING)
        .count()
    )

    return {
        "users": {"total": sum(users.values()), "by_role": users},
        "campaigns": {
            "total": sum(campaigns.values()),
            "by_status": campaigns,
            "pending_direct_review": pending_direct,
        },
        "mous": mou_statistics(db, now=now),
    }
