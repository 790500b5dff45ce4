from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.db import get_db
from ..models.campaign import CampaignStatus, CampaignType, InvitationStatus
from ..models.user import User, UserRole
from ..schemas.campaign import (
    CampaignCreate,
    CampaignOut,
    CampaignStatusUpdate,
    CampaignUpdate,
    InvitationOut,
    InvitationResponse,
    InvitationSend,
)
from ..services import campaigns as campaign_service
from ..services import invitations as invitation_service
from ..services import metrics as metrics_service
from .deps import get_current_user, ok, require_brand, require_influencer, require_roles

router = APIRouter(tags=["campaigns"])


def _out(campaign) -> dict:
    return CampaignOut.model_validate(campaign).model_dump()


@router.post("/campaigns", status_code=201)
def create_campaign(
    payload: CampaignCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_brand),
):
    campaign = campaign_service.create_campaign(
        db,
        user,
        brand_id=payload.brand_id,
        name=payload.name,
        type=payload.type,
        start_date=payload.start_date,
        end_date=payload.end_date,
        goal=payload.goal,
        budget=payload.budget,
        target_audience=payload.target_audience,
        categories=payload.categories,
        platform_selections=[s.model_dump() for s in payload.platform_selections],
        self_service_data=payload.self_service_data,
        influencer_ids=payload.influencer_ids,
        invitation_message=payload.invitation_message,
        mou_required=payload.mou_required,
    )
    return ok("Campaign created", _out(campaign))


@router.get("/campaigns")
def list_campaigns(
    status: CampaignStatus | None = None,
    type: CampaignType | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return [_out(c) for c in campaign_service.list_campaigns(db, user, status=status, type=type)]


@router.get("/campaigns/{campaign_id}")
def get_campaign(
    campaign_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _out(campaign_service.get_campaign_for_user(db, user, campaign_id))


@router.patch("/campaigns/{campaign_id}")
def update_campaign(
    campaign_id: int,
    payload: CampaignUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.ADMIN, UserRole.BRAND)),
):
    campaign = campaign_service.update_campaign(
        db, user, campaign_id, **payload.model_dump(exclude_unset=True)
    )
    return ok("Campaign updated", _out(campaign))


@router.delete("/campaigns/{campaign_id}")
def delete_campaign(
    campaign_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.ADMIN, UserRole.BRAND)),
):
    campaign_service.delete_campaign(db, user, campaign_id)
    return ok("Campaign deleted")


@router.patch("/campaigns/{campaign_id}/status")
def update_campaign_status(
    campaign_id: int,
    payload: CampaignStatusUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.ADMIN, UserRole.BRAND)),
):
    campaign = campaign_service.update_campaign_status(db, user, campaign_id, payload.status)
    return ok(f"Campaign is now {campaign.status.value.lower()}", _out(campaign))


@router.post("/campaigns/{campaign_id}/check-expiry")
def check_campaign_expiry(
    campaign_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    campaign_service.get_campaign_for_user(db, user, campaign_id)
    completed = campaign_service.check_campaign_expiry(db, campaign_id)
    return ok("Campaign completed" if completed else "Campaign has not expired", {"completed": completed})


@router.get("/campaigns/{campaign_id}/metrics")
def campaign_metrics(
    campaign_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    campaign_service.get_campaign_for_user(db, user, campaign_id)
    return metrics_service.campaign_metrics(db, campaign_id)


# Invitations

@router.post("/campaigns/{campaign_id}/invitations", status_code=201)
def send_invitations(
    campaign_id: int,
    payload: InvitationSend,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.ADMIN, UserRole.BRAND)),
):
    created = invitation_service.send_invitations(
        db, user, campaign_id, payload.influencer_ids, payload.message
    )
    return ok(
        f"{len(created)} invitation(s) sent",
        [InvitationOut.model_validate(i).model_dump() for i in created],
    )


@router.get("/campaigns/{campaign_id}/influencers")
def list_campaign_influencers(
    campaign_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return invitation_service.list_campaign_influencers(db, user, campaign_id)


@router.get("/invitations")
def list_my_invitations(
    status: InvitationStatus | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_influencer),
):
    return invitation_service.list_influencer_invitations(db, user, status=status)


@router.post("/invitations/{invitation_id}/respond")
def respond_to_invitation(
    invitation_id: int,
    payload: InvitationResponse,
    db: Session = Depends(get_db),
    user: User = Depends(require_influencer),
):
    invitation = invitation_service.respond_to_invitation(
        db, user, invitation_id, payload.response, payload.message
    )
    verb = "accepted" if payload.response == "ACCEPTED" else "declined"
    return ok(f"Invitation {verb}", InvitationOut.model_validate(invitation).model_dump())
