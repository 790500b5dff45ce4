from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Sequence

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
from ..models.notification import NotificationType
from ..models.user import User, UserRole
from .campaigns import (
    activate_campaign,
    brand_owner_id,
    ensure_campaign_access,
    ensure_campaign_manager,
    get_campaign,
)
from .influencers import get_influencer_for_user
from .notifications import notify

logger = logging.getLogger(__name__)

RESPONSES = ("ACCEPTED", "REJECTED")


def create_invitations(
    db: Session,
    campaign: Campaign,
    influencer_ids: Sequence[int],
    message: str | None = None,
) -> List[CampaignInvitation]:
    """
    Invite each influencer once. Already-invited influencers are skipped.
    Rows are added to the session; the caller commits.
    """
    brand = db.query(Brand).filter(Brand.id == campaign.brand_id).first()
    already = {
        row.influencer_id
        for row in db.query(CampaignInvitation.influencer_id)
        .filter(CampaignInvitation.campaign_id == campaign.id)
        .all()
    }

    created: List[CampaignInvitation] = []
    for influencer_id in dict.fromkeys(influencer_ids):
        if influencer_id in already:
            continue
        influencer = db.query(Influencer).filter(Influencer.id == influencer_id).first()
        if influencer is None:
            raise NotFoundError(f"Influencer {influencer_id} not found")

        invitation = CampaignInvitation(
            campaign_id=campaign.id,
            influencer_id=influencer.id,
            brand_id=campaign.brand_id,
            status=InvitationStatus.PENDING,
            message=message,
        )
        db.add(invitation)
        db.flush()
        created.append(invitation)

        notify(
            db,
            influencer.user_id,
            "New Campaign Invitation",
            f"{brand.name if brand else 'A brand'} invited you to join '{campaign.name}'",
            type=NotificationType.INVITATION,
            data={"campaignId": campaign.id, "invitationId": invitation.id, "action": "invited"},
        )
    return created


def send_invitations(
    db: Session,
    user: User,
    campaign_id: int,
    influencer_ids: Sequence[int],
    message: str | None = None,
) -> List[CampaignInvitation]:
    if not influencer_ids:
        raise ServiceError("Select at least one influencer")
    campaign = get_campaign(db, campaign_id)
    ensure_campaign_manager(db, user, campaign)
    if campaign.status not in (CampaignStatus.PENDING, CampaignStatus.ACTIVE):
        raise InvalidStateError(
            f"Cannot invite influencers to a {campaign.status.value.lower()} campaign"
        )

    created = create_invitations(db, campaign, influencer_ids, message)
    db.commit()
    logger.info(
        "Sent %s campaign invitations",
        len(created),
        extra={"campaign_id": campaign.id, "user_id": user.id, "step": "send_invitations"},
    )
    return created


def respond_to_invitation(
    db: Session,
    user: User,
    invitation_id: int,
    response: str,
    message: str | None = None,
) -> CampaignInvitation:
    response = (response or "").upper()
    if response not in RESPONSES:
        raise ServiceError("Response must be ACCEPTED or REJECTED")

    invitation = (
        db.query(CampaignInvitation)
        .filter(CampaignInvitation.id == invitation_id)
        .with_for_update()
        .first()
    )
    if not invitation:
        raise NotFoundError("Invitation not found")

    influencer = get_influencer_for_user(db, user)
    if invitation.influencer_id != influencer.id:
        raise PermissionDeniedError("This invitation is not addressed to you")
    if invitation.status != InvitationStatus.PENDING:
        raise InvalidStateError("Invitation has already been responded to")

    campaign = get_campaign(db, invitation.campaign_id, for_update=True)
    invitation.response_message = message
    invitation.responded_at = datetime.utcnow()

    if response == "ACCEPTED":
        invitation.status = InvitationStatus.ACTIVE
        db.flush()
        if (
            campaign.type == CampaignType.SELF_SERVICE
            and campaign.status == CampaignStatus.PENDING
        ):
            activate_campaign(db, campaign, promote_pending=False)
    else:
        invitation.status = InvitationStatus.REJECTED
        db.flush()
        open_invitations = (
            db.query(CampaignInvitation)
            .filter(
                CampaignInvitation.campaign_id == campaign.id,
                CampaignInvitation.status.in_(
                    [InvitationStatus.PENDING, InvitationStatus.ACTIVE]
                ),
            )
            .count()
        )
        if open_invitations == 0 and campaign.status == CampaignStatus.PENDING:
            campaign.status = CampaignStatus.REJECTED

    accepted = response == "ACCEPTED"
    notify(
        db,
        brand_owner_id(db, campaign),
        "Invitation Accepted" if accepted else "Invitation Declined",
        f"{user.name or user.email} {'accepted' if accepted else 'declined'} "
        f"the invitation to '{campaign.name}'",
        type=NotificationType.CAMPAIGN_APPROVAL if accepted else NotificationType.CAMPAIGN_REJECTION,
        data={
            "campaignId": campaign.id,
            "invitationId": invitation.id,
            "action": response.lower(),
        },
    )
    db.commit()
    db.refresh(invitation)
    logger.info(
        "Invitation %s",
        response.lower(),
        extra={"campaign_id": campaign.id, "user_id": user.id, "step": "respond_invitation"},
    )
    return invitation


def list_influencer_invitations(
    db: Session, user: User, status: InvitationStatus | None = None
) -> List[Dict[str, Any]]:
    influencer = get_influencer_for_user(db, user)
    q = (
        db.query(CampaignInvitation, Campaign, Brand)
        .join(Campaign, Campaign.id == CampaignInvitation.campaign_id)
        .join(Brand, Brand.id == CampaignInvitation.brand_id)
        .filter(CampaignInvitation.influencer_id == influencer.id)
    )
    if status is not None:
        q = q.filter(CampaignInvitation.status == status)
    rows = q.order_by(CampaignInvitation.created_at.desc(), CampaignInvitation.id.desc()).all()
    return [
        {
            "id": inv.id,
            "status": inv.status.value,
            "message": inv.message,
            "created_at": inv.created_at,
            "responded_at": inv.responded_at,
            "campaign": {
                "id": campaign.id,
                "name": campaign.name,
                "status": campaign.status.value,
                "type": campaign.type.value,
                "start_date": campaign.start_date,
                "end_date": campaign.end_date,
            },
            "brand": {"id": brand.id, "name": brand.name},
        }
        for inv, campaign, brand in rows
    ]


def list_campaign_influencers(db: Session, user: User, campaign_id: int) -> List[Dict[str, Any]]:
    campaign = get_campaign(db, campaign_id)
    ensure_campaign_access(db, user, campaign)
    rows = (
        db.query(CampaignInvitation, Influencer, User)
        .join(Influencer, Influencer.id == CampaignInvitation.influencer_id)
        .join(User, User.id == Influencer.user_id)
        .filter(CampaignInvitation.campaign_id == campaign_id)
        .order_by(CampaignInvitation.created_at.asc(), CampaignInvitation.id.asc())
        .all()
    )
    # Influencers only see their own row
    if user.role == UserRole.INFLUENCER:
        rows = [r for r in rows if r[2].id == user.id]
    return [
        {
            "invitation_id": inv.id,
            "influencer_id": influencer.id,
            "name": u.name,
            "email": u.email,
            "status": inv.status.value,
            "responded_at": inv.responded_at,
            "mou_creation_requested": inv.mou_creation_requested,
        }
        for inv, influencer, u in rows
    ]
