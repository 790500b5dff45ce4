"""
Tests for campaign lifecycle and invitations

Covers creation, status transitions, direct-campaign review, invitation
responses and the expiry sweep.
"""
from datetime import datetime, timedelta

import pytest

from gayatri.core.errors import InvalidStateError, PermissionDeniedError, ServiceError
from gayatri.models.campaign import (
    CampaignInvitation,
    CampaignStatus,
    CampaignType,
    InvitationStatus,
)
from gayatri.models.mou import MOUStatus
from gayatri.models.notification import Notification, NotificationType
from gayatri.models.platform import InfluencerPlatformMetric, SnapshotPhase
from gayatri.models.user import UserRole
from gayatri.services import campaigns as campaign_service
from gayatri.services import invitations as invitation_service
from gayatri.services import mou as mou_service


def _titles(db, user):
    return [n.title for n in db.query(Notification).filter(Notification.user_id == user.id)]


class TestTransitions:
    """Tests for the campaign transition table."""

    @pytest.mark.parametrize(
        "current,target",
        [
            (CampaignStatus.PENDING, CampaignStatus.ACTIVE),
            (CampaignStatus.PENDING, CampaignStatus.REJECTED),
            (CampaignStatus.PENDING, CampaignStatus.CANCELLED),
            (CampaignStatus.ACTIVE, CampaignStatus.COMPLETED),
            (CampaignStatus.ACTIVE, CampaignStatus.CANCELLED),
        ],
    )
    def test_allowed(self, current, target):
        assert campaign_service.can_transition(current, target) is True

    @pytest.mark.parametrize(
        "current,target",
        [
            (CampaignStatus.ACTIVE, CampaignStatus.PENDING),
            (CampaignStatus.PENDING, CampaignStatus.COMPLETED),
            (CampaignStatus.COMPLETED, CampaignStatus.ACTIVE),
            (CampaignStatus.REJECTED, CampaignStatus.ACTIVE),
            (CampaignStatus.CANCELLED, CampaignStatus.PENDING),
        ],
    )
    def test_forbidden(self, current, target):
        assert campaign_service.can_transition(current, target) is False

    def test_terminal_statuses(self):
        assert campaign_service.TERMINAL_STATUSES == {
            CampaignStatus.REJECTED,
            CampaignStatus.COMPLETED,
            CampaignStatus.CANCELLED,
        }


class TestCreateCampaign:
    def _dates(self):
        start = datetime.utcnow() + timedelta(days=1)
        return start, start + timedelta(days=14)

    def test_direct_campaign_notifies_admins(self, db, make):
        admin = make.admin()
        owner = make.user(UserRole.BRAND)
        brand = make.brand(owner)
        start, end = self._dates()

        campaign = campaign_service.create_campaign(
            db,
            owner,
            brand.id,
            "Ramadan push",
            CampaignType.DIRECT,
            start,
            end,
            budget=10_000_000,
            platform_selections=[{"platformId": 1, "serviceId": 2, "quantity": 3}],
        )

        assert campaign.status == CampaignStatus.PENDING
        assert campaign.direct_data["budget"] == 10_000_000
        assert "New Campaign Submitted" in _titles(db, admin)

    def test_self_service_campaign_invites(self, db, make):
        owner = make.user(UserRole.BRAND)
        brand = make.brand(owner)
        influencer_user, influencer = make.influencer()
        start, end = self._dates()

        campaign = campaign_service.create_campaign(
            db,
            owner,
            brand.id,
            "Creator collab",
            CampaignType.SELF_SERVICE,
            start,
            end,
            influencer_ids=[influencer.id, influencer.id],
            invitation_message="Join us",
        )

        invitations = db.query(CampaignInvitation).filter(
            CampaignInvitation.campaign_id == campaign.id
        ).all()
        assert len(invitations) == 1
        assert invitations[0].status == InvitationStatus.PENDING
        notification = (
            db.query(Notification).filter(Notification.user_id == influencer_user.id).one()
        )
        assert notification.type == NotificationType.INVITATION

    def test_end_before_start_rejected(self, db, make):
        owner = make.user(UserRole.BRAND)
        brand = make.brand(owner)
        start, _ = self._dates()
        with pytest.raises(ServiceError, match="End date"):
            campaign_service.create_campaign(
                db, owner, brand.id, "Bad", CampaignType.DIRECT, start, start - timedelta(days=1)
            )

    def test_only_brands_create(self, db, make):
        admin = make.admin()
        brand = make.brand()
        start, end = self._dates()
        with pytest.raises(PermissionDeniedError):
            campaign_service.create_campaign(
                db, admin, brand.id, "Nope", CampaignType.DIRECT, start, end
            )


class TestStatusUpdates:
    def test_start_promotes_pending_invitations_and_snapshots(self, db, make):
        owner = make.user(UserRole.BRAND)
        brand = make.brand(owner)
        _, influencer = make.influencer()
        platform = make.platform()
        make.connection(influencer, platform, followers=1_000)
        campaign = make.campaign(brand)
        invitation = make.invitation(campaign, influencer)

        campaign_service.update_campaign_status(db, owner, campaign.id, CampaignStatus.ACTIVE)

        db.refresh(invitation)
        assert invitation.status == InvitationStatus.ACTIVE
        snapshots = db.query(InfluencerPlatformMetric).all()
        assert [(s.phase, s.followers) for s in snapshots] == [(SnapshotPhase.BASELINE, 1_000)]

    def test_same_status_rejected(self, db, make):
        owner = make.user(UserRole.BRAND)
        campaign = make.campaign(make.brand(owner))
        with pytest.raises(InvalidStateError, match="already"):
            campaign_service.update_campaign_status(db, owner, campaign.id, CampaignStatus.PENDING)

    def test_invalid_transition_rejected(self, db, make):
        owner = make.user(UserRole.BRAND)
        campaign = make.campaign(make.brand(owner), status=CampaignStatus.COMPLETED)
        with pytest.raises(InvalidStateError):
            campaign_service.update_campaign_status(db, owner, campaign.id, CampaignStatus.ACTIVE)

    def test_cancel_closes_invitations(self, db, make):
        owner = make.user(UserRole.BRAND)
        campaign = make.campaign(make.brand(owner), status=CampaignStatus.ACTIVE)
        _, first = make.influencer()
        _, second = make.influencer()
        pending = make.invitation(campaign, first)
        active = make.invitation(campaign, second, InvitationStatus.ACTIVE)

        campaign_service.update_campaign_status(db, owner, campaign.id, CampaignStatus.CANCELLED)

        db.refresh(pending)
        db.refresh(active)
        assert pending.status == InvitationStatus.REJECTED
        assert active.status == InvitationStatus.COMPLETED

    def test_other_brand_cannot_manage(self, db, make):
        campaign = make.campaign(make.brand())
        stranger = make.user(UserRole.BRAND)
        with pytest.raises(PermissionDeniedError):
            campaign_service.update_campaign_status(
                db, stranger, campaign.id, CampaignStatus.CANCELLED
            )

    def test_cannot_delete_active_campaign(self, db, make):
        owner = make.user(UserRole.BRAND)
        campaign = make.campaign(make.brand(owner), status=CampaignStatus.ACTIVE)
        with pytest.raises(InvalidStateError):
            campaign_service.delete_campaign(db, owner, campaign.id)


class TestDirectReview:
    def test_approve_activates_and_notifies(self, db, make):
        admin = make.admin()
        owner = make.user(UserRole.BRAND)
        campaign = make.campaign(make.brand(owner), type=CampaignType.DIRECT)

        campaign = campaign_service.approve_direct_campaign(db, admin, campaign.id)

        assert campaign.status == CampaignStatus.ACTIVE
        assert "Campaign Approved" in _titles(db, owner)

    def test_reject_requires_reason(self, db, make):
        admin = make.admin()
        campaign = make.campaign(make.brand(), type=CampaignType.DIRECT)
        with pytest.raises(ServiceError, match="reason"):
            campaign_service.reject_direct_campaign(db, admin, campaign.id, "")

    def test_reject_stores_reason(self, db, make):
        admin = make.admin()
        owner = make.user(UserRole.BRAND)
        campaign = make.campaign(make.brand(owner), type=CampaignType.DIRECT)

        campaign = campaign_service.reject_direct_campaign(db, admin, campaign.id, " Off brand ")

        assert campaign.status == CampaignStatus.REJECTED
        assert campaign.rejection_reason == "Off brand"
        assert "Campaign Rejected" in _titles(db, owner)

    def test_self_service_not_reviewed(self, db, make):
        admin = make.admin()
        campaign = make.campaign(make.brand())
        with pytest.raises(InvalidStateError):
            campaign_service.approve_direct_campaign(db, admin, campaign.id)


class TestInvitationResponses:
    def test_accept_activates_self_service_campaign(self, db, make):
        owner = make.user(UserRole.BRAND)
        campaign = make.campaign(make.brand(owner))
        influencer_user, influencer = make.influencer()
        _, other = make.influencer()
        invitation = make.invitation(campaign, influencer)
        other_invitation = make.invitation(campaign, other)

        invitation = invitation_service.respond_to_invitation(
            db, influencer_user, invitation.id, "accepted", "Happy to join"
        )

        db.refresh(campaign)
        db.refresh(other_invitation)
        assert invitation.status == InvitationStatus.ACTIVE
        assert invitation.responded_at is not None
        assert campaign.status == CampaignStatus.ACTIVE
        # the other influencer still has to answer
        assert other_invitation.status == InvitationStatus.PENDING
        assert "Invitation Accepted" in _titles(db, owner)

    def test_accept_leaves_direct_campaign_pending(self, db, make):
        campaign = make.campaign(make.brand(), type=CampaignType.DIRECT)
        influencer_user, influencer = make.influencer()
        invitation = make.invitation(campaign, influencer)

        invitation_service.respond_to_invitation(db, influencer_user, invitation.id, "ACCEPTED")

        db.refresh(campaign)
        assert campaign.status == CampaignStatus.PENDING

    def test_last_rejection_rejects_campaign(self, db, make):
        campaign = make.campaign(make.brand())
        influencer_user, influencer = make.influencer()
        invitation = make.invitation(campaign, influencer)

        invitation_service.respond_to_invitation(db, influencer_user, invitation.id, "REJECTED")

        db.refresh(campaign)
        assert campaign.status == CampaignStatus.REJECTED

    def test_rejection_with_others_open_keeps_campaign(self, db, make):
        campaign = make.campaign(make.brand())
        influencer_user, influencer = make.influencer()
        _, other = make.influencer()
        invitation = make.invitation(campaign, influencer)
        make.invitation(campaign, other)

        invitation_service.respond_to_invitation(db, influencer_user, invitation.id, "REJECTED")

        db.refresh(campaign)
        assert campaign.status == CampaignStatus.PENDING

    def test_cannot_respond_twice(self, db, make):
        campaign = make.campaign(make.brand())
        influencer_user, influencer = make.influencer()
        invitation = make.invitation(campaign, influencer)
        invitation_service.respond_to_invitation(db, influencer_user, invitation.id, "ACCEPTED")

        with pytest.raises(InvalidStateError):
            invitation_service.respond_to_invitation(db, influencer_user, invitation.id, "REJECTED")

    def test_only_addressee_responds(self, db, make):
        campaign = make.campaign(make.brand())
        _, influencer = make.influencer()
        intruder, _ = make.influencer()
        invitation = make.invitation(campaign, influencer)

        with pytest.raises(PermissionDeniedError):
            invitation_service.respond_to_invitation(db, intruder, invitation.id, "ACCEPTED")

    def test_unknown_response(self, db, make):
        influencer_user, _ = make.influencer()
        with pytest.raises(ServiceError):
            invitation_service.respond_to_invitation(db, influencer_user, 1, "MAYBE")


class TestExpiry:
    def test_sweep_completes_campaigns_and_expires_mous(self, db, make):
        admin = make.admin()
        owner = make.user(UserRole.BRAND)
        brand = make.brand(owner)
        influencer_user, influencer = make.influencer()
        platform = make.platform()
        make.connection(influencer, platform)

        start = datetime.utcnow() - timedelta(days=40)
        expired = make.campaign(brand, start=start, end=start + timedelta(days=30))
        invitation = make.invitation(expired, influencer, InvitationStatus.ACTIVE)
        mou = mou_service.create_mou(db, admin, expired.id, admin_preapproved=True)
        mou_service.submit_for_approval(db, owner, mou.id)
        mou_service.approve_mou(db, influencer_user, mou.id)
        running = make.campaign(brand, status=CampaignStatus.ACTIVE)

        result = campaign_service.update_expired_campaigns(db)

        assert result["updated"] == 1
        assert result["campaign_ids"] == [expired.id]
        assert result["expired_mous"] == 1
        db.refresh(expired)
        db.refresh(running)
        db.refresh(invitation)
        db.refresh(mou)
        assert expired.status == CampaignStatus.COMPLETED
        assert running.status == CampaignStatus.ACTIVE
        assert invitation.status == InvitationStatus.COMPLETED
        assert mou.status == MOUStatus.EXPIRED
        phases = {s.phase for s in db.query(InfluencerPlatformMetric).all()}
        assert SnapshotPhase.FINAL in phases
        assert "Campaign Completed" in _titles(db, owner)

    def test_check_single_campaign(self, db, make):
        start = datetime.utcnow() - timedelta(days=10)
        campaign = make.campaign(
            make.brand(), status=CampaignStatus.ACTIVE, start=start, end=start + timedelta(days=5)
        )

        assert campaign_service.check_campaign_expiry(db, campaign.id) is True
        assert campaign_service.check_campaign_expiry(db, campaign.id) is False
        db.refresh(campaign)
        assert campaign.status == CampaignStatus.COMPLETED
