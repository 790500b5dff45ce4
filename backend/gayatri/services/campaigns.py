"""
Campaign lifecycle.

    PENDING  -> ACTIVE | REJECTED | CANCELLED
    ACTIVE   -> COMPLETED | CANCELLED
    REJECTED, COMPLETED, CANCELLED are terminal

Starting a campaign promotes its pending invitations and records baseline
metric snapshots; completing it records final snapshots and closes the
active invitations.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.errors import InvalidStateError, NotFoundError, PermissionDeniedError, ServiceError
from ..models.brand import Brand
from ..models.campaign import (
    Campaign,
    CampaignInvitation,
    CampaignStatus,
    CampaignType,
    InvitationStatus,
)
from ..models.influencer import Influencer
from ..models.mou import MOU, MOUStatus
from ..models.notification import NotificationType
from ..models.platform import SnapshotPhase
from ..models.user import User, UserRole
from .brands import get_owned_brand
from .metrics import capture_and_create_snapshots
from .notifications import admin_user_ids, notify, notify_many

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[CampaignStatus, FrozenSet[CampaignStatus]] = {
    CampaignStatus.PENDING: frozenset(
        {CampaignStatus.ACTIVE, CampaignStatus.REJECTED, CampaignStatus.CANCELLED}
    ),
    CampaignStatus.ACTIVE: frozenset({CampaignStatus.COMPLETED, CampaignStatus.CANCELLED}),
    CampaignStatus.REJECTED: frozenset(),
    CampaignStatus.COMPLETED: frozenset(),
    CampaignStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    s for s, targets in ALLOWED_TRANSITIONS.items() if not targets
)

# MOU statuses that lapse once their expiry date passes
EXPIRABLE_MOU_STATUSES = (MOUStatus.APPROVED, MOUStatus.ACTIVE, MOUStatus.AMENDED)


def can_transition(current: CampaignStatus, target: CampaignStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


# ---------------------------------------------------------------------------
# Lookup & access
# ---------------------------------------------------------------------------

def get_campaign(db: Session, campaign_id: int, for_update: bool = False) -> Campaign:
    q = db.query(Campaign).filter(Campaign.id == campaign_id)
    if for_update:
        q = q.with_for_update()
    campaign = q.first()
    if not campaign:
        raise NotFoundError("Campaign not found")
    return campaign


def brand_owner_id(db: Session, campaign: Campaign) -> Optional[int]:
    brand = db.query(Brand).filter(Brand.id == campaign.brand_id).first()
    return brand.user_id if brand else None


def is_campaign_owner(db: Session, user: User, campaign: Campaign) -> bool:
    return user.role == UserRole.BRAND and brand_owner_id(db, campaign) == user.id


def influencer_invitation(
    db: Session, user: User, campaign_id: int
) -> Optional[CampaignInvitation]:
    return (
        db.query(CampaignInvitation)
        .join(Influencer, Influencer.id == CampaignInvitation.influencer_id)
        .filter(
            CampaignInvitation.campaign_id == campaign_id,
            Influencer.user_id == user.id,
        )
        .first()
    )


def ensure_campaign_access(db: Session, user: User, campaign: Campaign) -> None:
    """Admins see everything, brands their own campaigns, influencers those they are invited to."""
    if user.role == UserRole.ADMIN:
        return
    if user.role == UserRole.BRAND and brand_owner_id(db, campaign) == user.id:
        return
    if user.role == UserRole.INFLUENCER and influencer_invitation(db, user, campaign.id):
        return
    raise PermissionDeniedError("You do not have access to this campaign")


def ensure_campaign_manager(db: Session, user: User, campaign: Campaign) -> None:
    if user.role == UserRole.ADMIN or is_campaign_owner(db, user, campaign):
        return
    raise PermissionDeniedError("Only the brand owner or an admin can manage this campaign")


def get_campaign_for_user(db: Session, user: User, campaign_id: int) -> Campaign:
    campaign = get_campaign(db, campaign_id)
    ensure_campaign_access(db, user, campaign)
    return campaign


def participant_user_ids(db: Session, campaign: Campaign) -> List[int]:
    """Brand owner plus every influencer with an accepted invitation."""
    ids: List[int] = []
    owner = brand_owner_id(db, campaign)
    if owner is not None:
        ids.append(owner)
    rows = (
        db.query(Influencer.user_id)
        .join(CampaignInvitation, CampaignInvitation.influencer_id == Influencer.id)
        .filter(
            CampaignInvitation.campaign_id == campaign.id,
            CampaignInvitation.status.in_(
                [InvitationStatus.ACTIVE, InvitationStatus.COMPLETED]
            ),
        )
        .all()
    )
    ids.extend(r.user_id for r in rows)
    return ids


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

def _clean_platform_selections(selections: Sequence[Dict[str, Any]] | None) -> List[Dict[str, Any]]:
    """Keep only selections naming both a platform and a service."""
    cleaned: List[Dict[str, Any]] = []
    for sel in selections or []:
        platform_id = sel.get("platformId") or sel.get("platform_id")
        service_id = sel.get("serviceId") or sel.get("service_id")
        if not platform_id or not service_id:
            continue
        cleaned.append(
            {
                "platformId": platform_id,
                "serviceId": service_id,
                "quantity": int(sel.get("quantity") or 1),
            }
        )
    return cleaned


def _validate_dates(start_date: datetime, end_date: datetime) -> None:
    if end_date < start_date:
        raise ServiceError("End date must be on or after the start date")


def create_campaign(
    db: Session,
    user: User,
    brand_id: int,
    name: str,
    type: CampaignType,
    start_date: datetime,
    end_date: datetime,
    goal: str | None = None,
    budget: float | None = None,
    target_audience: str | None = None,
    categories: Sequence[int] | None = None,
    platform_selections: Sequence[Dict[str, Any]] | None = None,
    self_service_data: Dict[str, Any] | None = None,
    influencer_ids: Sequence[int] | None = None,
    invitation_message: str | None = None,
    mou_required: bool = True,
) -> Campaign:
    if user.role != UserRole.BRAND:
        raise PermissionDeniedError("Only brands can create campaigns")
    brand = get_owned_brand(db, user, brand_id)

    name = (name or "").strip()
    if not name:
        raise ServiceError("Campaign name is required")
    _validate_dates(start_date, end_date)

    campaign = Campaign(
        name=name,
        goal=goal,
        type=type,
        status=CampaignStatus.PENDING,
        brand_id=brand.id,
        start_date=start_date,
        end_date=end_date,
        mou_required=mou_required,
    )

    if type == CampaignType.DIRECT:
        campaign.direct_data = {
            "budget": budget,
            "targetAudience": target_audience,
            "categories": list(categories or []),
            "platformSelections": _clean_platform_selections(platform_selections),
        }
    else:
        campaign.self_service_data = dict(self_service_data or {})

    db.add(campaign)
    db.flush()

    if type == CampaignType.DIRECT:
        notify_many(
            db,
            admin_user_ids(db),
            "New Campaign Submitted",
            f"{brand.name} submitted the direct campaign '{campaign.name}' for review",
            data={"campaignId": campaign.id, "action": "review"},
        )
    elif influencer_ids:
        # local import: invitations imports this module
        from .invitations import create_invitations

        create_invitations(db, campaign, influencer_ids, invitation_message)

    db.commit()
    db.refresh(campaign)
    logger.info(
        "Campaign created",
        extra={"campaign_id": campaign.id, "user_id": user.id, "step": "create_campaign"},
    )
    return campaign


def list_campaigns(
    db: Session,
    user: User,
    status: CampaignStatus | None = None,
    type: CampaignType | None = None,
) -> List[Campaign]:
    q = db.query(Campaign)
    if user.role == UserRole.BRAND:
        q = q.join(Brand, Brand.id == Campaign.brand_id).filter(Brand.user_id == user.id)
    elif user.role == UserRole.INFLUENCER:
        q = (
            q.join(CampaignInvitation, CampaignInvitation.campaign_id == Campaign.id)
            .join(Influencer, Influencer.id == CampaignInvitation.influencer_id)
            .filter(Influencer.user_id == user.id)
        )
    elif user.role != UserRole.ADMIN:
        return []

    if status is not None:
        q = q.filter(Campaign.status == status)
    if type is not None:
        q = q.filter(Campaign.type == type)
    return q.order_by(Campaign.created_at.desc(), Campaign.id.desc()).all()


def update_campaign(
    db: Session,
    user: User,
    campaign_id: int,
    name: str | None = None,
    goal: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    direct_data: Dict[str, Any] | None = None,
    self_service_data: Dict[str, Any] | None = None,
    mou_required: bool | None = None,
) -> Campaign:
    campaign = get_campaign(db, campaign_id, for_update=True)
    ensure_campaign_manager(db, user, campaign)
    if campaign.status in TERMINAL_STATUSES:
        raise InvalidStateError(f"Cannot edit a {campaign.status.value.lower()} campaign")

    if name is not None:
        if not name.strip():
            raise ServiceError("Campaign name is required")
        campaign.name = name.strip()
    if goal is not None:
        campaign.goal = goal
    if start_date is not None:
        campaign.start_date = start_date
    if end_date is not None:
        campaign.end_date = end_date
    _validate_dates(campaign.start_date, campaign.end_date)

    if direct_data is not None and campaign.type == CampaignType.DIRECT:
        merged = dict(campaign.direct_data or {})
        merged.update(direct_data)
        merged["platformSelections"] = _clean_platform_selections(merged.get("platformSelections"))
        campaign.direct_data = merged
    if self_service_data is not None and campaign.type == CampaignType.SELF_SERVICE:
        campaign.self_service_data = dict(self_service_data)
    if mou_required is not None:
        campaign.mou_required = mou_required

    db.commit()
    db.refresh(campaign)
    return campaign


def delete_campaign(db: Session, user: User, campaign_id: int) -> None:
    campaign = get_campaign(db, campaign_id)
    ensure_campaign_manager(db, user, campaign)
    if campaign.status == CampaignStatus.ACTIVE:
        raise InvalidStateError("Stop the campaign before deleting it")
    db.query(CampaignInvitation).filter(
        CampaignInvitation.campaign_id == campaign_id
    ).delete(synchronize_session=False)
    db.delete(campaign)
    db.commit()


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------

def _set_invitations(
    db: Session, campaign_id: int, from_status: InvitationStatus, to_status: InvitationStatus
) -> int:
    return (
        db.query(CampaignInvitation)
        .filter(
            CampaignInvitation.campaign_id == campaign_id,
            CampaignInvitation.status == from_status,
        )
        .update({CampaignInvitation.status: to_status}, synchronize_session=False)
    )


def activate_campaign(
    db: Session,
    campaign: Campaign,
    promote_pending: bool = True,
    now: datetime | None = None,
) -> None:
    """Move a campaign to ACTIVE and take baseline snapshots. Caller commits."""
    if not can_transition(campaign.status, CampaignStatus.ACTIVE):
        raise InvalidStateError(
            f"Cannot start a campaign that is {campaign.status.value.lower()}"
        )
    campaign.status = CampaignStatus.ACTIVE
    if promote_pending:
        _set_invitations(db, campaign.id, InvitationStatus.PENDING, InvitationStatus.ACTIVE)
    db.flush()
    capture_and_create_snapshots(db, campaign.id, SnapshotPhase.BASELINE, now=now)


def complete_campaign(
    db: Session,
    campaign: Campaign,
    title: str,
    message: str,
    now: datetime | None = None,
) -> None:
    """Move an ACTIVE campaign to COMPLETED. Caller commits."""
    if not can_transition(campaign.status, CampaignStatus.COMPLETED):
        raise InvalidStateError(
            f"Cannot complete a campaign that is {campaign.status.value.lower()}"
        )
    # Final snapshots need the invitations still ACTIVE
    capture_and_create_snapshots(db, campaign.id, SnapshotPhase.FINAL, now=now)
    _set_invitations(db, campaign.id, InvitationStatus.ACTIVE, InvitationStatus.COMPLETED)
    campaign.status = CampaignStatus.COMPLETED
    notify(
        db,
        brand_owner_id(db, campaign),
        title,
        message,
        data={"campaignId": campaign.id, "action": "completed"},
    )


def update_campaign_status(
    db: Session, user: User, campaign_id: int, new_status: CampaignStatus
) -> Campaign:
    campaign = get_campaign(db, campaign_id, for_update=True)
    ensure_campaign_manager(db, user, campaign)

    if campaign.status == new_status:
        raise InvalidStateError(f"Campaign is already {new_status.value.lower()}")
    if not can_transition(campaign.status, new_status):
        raise InvalidStateError(
            f"Cannot change campaign status from {campaign.status.value} to {new_status.value}"
        )

    if new_status == CampaignStatus.ACTIVE:
        activate_campaign(db, campaign)
    elif new_status == CampaignStatus.COMPLETED:
        complete_campaign(
            db,
            campaign,
            "Campaign Stopped",
            f"Campaign '{campaign.name}' has been stopped",
        )
    else:
        campaign.status = new_status
        if new_status in (CampaignStatus.CANCELLED, CampaignStatus.REJECTED):
            _set_invitations(db, campaign.id, InvitationStatus.PENDING, InvitationStatus.REJECTED)
            if new_status == CampaignStatus.CANCELLED:
                _set_invitations(db, campaign.id, InvitationStatus.ACTIVE, InvitationStatus.COMPLETED)

    db.commit()
    db.refresh(campaign)
    logger.info(
        "Campaign status changed to %s",
        new_status.value,
        extra={"campaign_id": campaign.id, "user_id": user.id, "step": "campaign_status"},
    )
    return campaign


# ---------------------------------------------------------------------------
# Admin review of DIRECT campaigns
# ---------------------------------------------------------------------------

def list_direct_campaigns(db: Session, pending_only: bool = False) -> List[Campaign]:
    q = db.query(Campaign).filter(Campaign.type == CampaignType.DIRECT)
    if pending_only:
        q = q.filter(Campaign.status == CampaignStatus.PENDING)
    return q.order_by(Campaign.created_at.desc(), Campaign.id.desc()).all()


def _get_pending_direct(db: Session, campaign_id: int) -> Campaign:
    campaign = get_campaign(db, campaign_id, for_update=True)
    if campaign.type != CampaignType.DIRECT:
        raise InvalidStateError("Only direct campaigns are reviewed by an admin")
    if campaign.status != CampaignStatus.PENDING:
        raise InvalidStateError("Campaign is not pending review")
    return campaign


def approve_direct_campaign(db: Session, admin: User, campaign_id: int) -> Campaign:
    campaign = _get_pending_direct(db, campaign_id)
    activate_campaign(db, campaign)
    notify(
        db,
        brand_owner_id(db, campaign),
        "Campaign Approved",
        f"Your campaign '{campaign.name}' has been approved",
        type=NotificationType.CAMPAIGN_APPROVAL,
        data={"campaignId": campaign.id, "action": "approved"},
    )
    db.commit()
    db.refresh(campaign)
    logger.info(
        "Direct campaign approved",
        extra={"campaign_id": campaign.id, "user_id": admin.id, "step": "approve_direct"},
    )
    return campaign


def reject_direct_campaign(db: Session, admin: User, campaign_id: int, reason: str) -> Campaign:
    if not (reason or "").strip():
        raise ServiceError("A rejection reason is required")
    campaign = _get_pending_direct(db, campaign_id)
    campaign.status = CampaignStatus.REJECTED
    campaign.rejection_reason = reason.strip()
    _set_invitations(db, campaign.id, InvitationStatus.PENDING, InvitationStatus.REJECTED)
    notify(
        db,
        brand_owner_id(db, campaign),
        "Campaign Rejected",
        f"Your campaign '{campaign.name}' was rejected: {campaign.rejection_reason}",
        type=NotificationType.CAMPAIGN_REJECTION,
        data={"campaignId": campaign.id, "action": "rejected"},
    )
    db.commit()
    db.refresh(campaign)
    logger.info(
        "Direct campaign rejected",
        extra={"campaign_id": campaign.id, "user_id": admin.id, "step": "reject_direct"},
    )
    return campaign


# ---------------------------------------------------------------------------
# Expiry
# ---------------------------------------------------------------------------

def _complete_expired(db: Session, campaign: Campaign, now: datetime) -> None:
    complete_campaign(
        db,
        campaign,
        "Campaign Completed",
        f"Campaign '{campaign.name}' has reached its end date and is now completed",
        now=now,
    )


def check_campaign_expiry(db: Session, campaign_id: int, now: datetime | None = None) -> bool:
    """Complete one campaign if it is ACTIVE and past its end date."""
    now = now or datetime.utcnow()
    campaign = get_campaign(db, campaign_id, for_update=True)
    if campaign.status != CampaignStatus.ACTIVE or campaign.end_date >= now:
        return False
    _complete_expired(db, campaign, now)
    db.commit()
    return True


def expire_mous(db: Session, now: datetime) -> int:
    return (
        db.query(MOU)
        .filter(MOU.status.in_(EXPIRABLE_MOU_STATUSES), MOU.expiry_date < now)
        .update({MOU.status: MOUStatus.EXPIRED}, synchronize_session=False)
    )


def update_expired_campaigns(db: Session, now: datetime | None = None) -> Dict[str, Any]:
    """
    Complete every ACTIVE campaign whose end date has passed and expire
    signed MOUs past their expiry date. Commits once for the whole batch.
    """
    now = now or datetime.utcnow()
    expired = (
        db.query(Campaign)
        .filter(Campaign.status == CampaignStatus.ACTIVE, Campaign.end_date < now)
        .with_for_update()
        .all()
    )
    for campaign in expired:
        _complete_expired(db, campaign, now)

    expired_mous = expire_mous(db, now)
    db.commit()

    return {
        "updated": len(expired),
        "campaign_ids": [c.id for c in expired],
        "expired_mous": expired_mous,
    }
