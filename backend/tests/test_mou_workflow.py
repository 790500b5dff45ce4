"""
Tests for the MOU workflow in services/mou.py

Covers creation, tri-party approval, revision, amendment, MOU requests,
campaign start and the admin overview.
"""
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from gayatri.core.errors import (
    ConflictError,
    InvalidStateError,
    PermissionDeniedError,
    ServiceError,
)
from gayatri.models.campaign import CampaignStatus, InvitationStatus
from gayatri.models.mou import MOU, ApprovalStatus, MOUApproval, MOUStatus
from gayatri.models.notification import Notification
from gayatri.models.user import UserRole
from gayatri.services import mou as mou_service


@pytest.fixture
def deal(db, make):
    """A pending self-service campaign with one accepted invitation."""
    admin = make.admin()
    brand_user = make.user(UserRole.BRAND)
    brand = make.brand(brand_user)
    influencer_user, influencer = make.influencer(name="Kol Creator")
    campaign = make.campaign(brand)
    invitation = make.invitation(campaign, influencer, InvitationStatus.ACTIVE)
    return SimpleNamespace(
        admin=admin,
        brand_user=brand_user,
        brand=brand,
        influencer_user=influencer_user,
        influencer=influencer,
        campaign=campaign,
        invitation=invitation,
    )


def _notifications(db, user, title):
    return db.query(Notification).filter(
        Notification.user_id == user.id, Notification.title == title
    ).all()


class TestCreateMOU:
    """Tests for create_mou and generate_mou_number."""

    def test_brand_creates_draft_from_campaign(self, db, deal):
        mou = mou_service.create_mou(db, deal.brand_user, deal.campaign.id)

        now = datetime.utcnow()
        assert mou.status == MOUStatus.DRAFT
        assert mou.version == 1
        assert mou.mou_number == f"MOU/{now.year:04d}/{now.month:02d}/001"
        assert mou.influencer_id == deal.influencer.id
        assert mou.brand_name == deal.brand.name
        assert mou.influencer_name == "Kol Creator"
        assert mou.payment_terms == mou_service.DEFAULT_PAYMENT_TERMS
        assert float(mou.total_budget) == 5_000_000
        assert mou.effective_date == deal.campaign.start_date
        assert mou.expiry_date == deal.campaign.end_date

    def test_numbers_increase_within_month(self, db, make, deal):
        first = mou_service.create_mou(db, deal.brand_user, deal.campaign.id)
        other = make.campaign(deal.brand)
        make.invitation(other, deal.influencer, InvitationStatus.ACTIVE)
        second = mou_service.create_mou(db, deal.brand_user, other.id)

        assert first.mou_number.endswith("/001")
        assert second.mou_number.endswith("/002")

    def test_taken_number_is_skipped(self, db, make, deal):
        first = mou_service.create_mou(db, deal.brand_user, deal.campaign.id)
        # keeps its number but no longer counts towards this month
        first.created_at = first.created_at - timedelta(days=40)
        db.commit()
        other = make.campaign(deal.brand)
        make.invitation(other, deal.influencer, InvitationStatus.ACTIVE)

        second = mou_service.create_mou(db, deal.brand_user, other.id)

        assert first.mou_number.endswith("/001")
        assert second.mou_number.endswith("/002")
        assert db.query(MOU).count() == 2

    def test_details_override_defaults(self, db, deal):
        mou = mou_service.create_mou(
            db,
            deal.brand_user,
            deal.campaign.id,
            details={"title": "Serum launch", "payment_terms": "100% upfront", "unknown": "x"},
        )
        assert mou.title == "Serum launch"
        assert mou.payment_terms == "100% upfront"

    def test_requires_accepted_invitation(self, db, make, deal):
        campaign = make.campaign(deal.brand)
        make.invitation(campaign, deal.influencer, InvitationStatus.PENDING)

        with pytest.raises(InvalidStateError, match="no accepted influencer"):
            mou_service.create_mou(db, deal.brand_user, campaign.id)

    def test_second_mou_for_campaign_conflicts(self, db, deal):
        mou_service.create_mou(db, deal.brand_user, deal.campaign.id)
        with pytest.raises(ConflictError):
            mou_service.create_mou(db, deal.admin, deal.campaign.id)

    def test_other_brand_cannot_create(self, db, make, deal):
        stranger = make.user(UserRole.BRAND)
        with pytest.raises(PermissionDeniedError):
            mou_service.create_mou(db, stranger, deal.campaign.id)

    def test_influencer_cannot_create(self, db, deal):
        with pytest.raises(PermissionDeniedError):
            mou_service.create_mou(db, deal.influencer_user, deal.campaign.id)

    def test_only_admin_can_preapprove(self, db, deal):
        with pytest.raises(PermissionDeniedError):
            mou_service.create_mou(db, deal.brand_user, deal.campaign.id, admin_preapproved=True)

    def test_admin_preapproval_recorded(self, db, deal):
        mou = mou_service.create_mou(db, deal.admin, deal.campaign.id, admin_preapproved=True)

        assert mou.status == MOUStatus.DRAFT
        assert mou.admin_approval_status == ApprovalStatus.APPROVED
        assert mou.admin_approved_by == deal.admin.id
        approvals = db.query(MOUApproval).filter(MOUApproval.mou_id == mou.id).all()
        assert [a.approver_role for a in approvals] == ["ADMIN"]

    def test_parties_notified(self, db, deal):
        mou_service.create_mou(db, deal.brand_user, deal.campaign.id)
        for user in (deal.brand_user, deal.influencer_user, deal.admin):
            assert len(_notifications(db, user, "MOU Created")) == 1


class TestApprovalFlow:
    """Tests for submit_for_approval and decide_mou."""

    def test_full_approval_activates_campaign(self, db, deal):
        mou = mou_service.create_mou(db, deal.brand_user, deal.campaign.id)

        mou = mou_service.submit_for_approval(db, deal.brand_user, mou.id)
        assert mou.brand_approval_status == ApprovalStatus.APPROVED
        assert mou.status == MOUStatus.PENDING_INFLUENCER
        assert len(_notifications(db, deal.influencer_user, "MOU Awaiting Your Approval")) == 1

        mou = mou_service.approve_mou(db, deal.influencer_user, mou.id, comments="Looks good")
        assert mou.status == MOUStatus.PENDING_ADMIN
        assert len(_notifications(db, deal.admin, "MOU Awaiting Your Approval")) == 1

        mou = mou_service.approve_mou(db, deal.admin, mou.id)
        assert mou.status == MOUStatus.APPROVED

        db.refresh(deal.campaign)
        assert deal.campaign.status == CampaignStatus.ACTIVE
        roles = [
            a.approver_role
            for a in db.query(MOUApproval)
            .filter(MOUApproval.mou_id == mou.id)
            .order_by(MOUApproval.id)
        ]
        assert roles == ["BRAND", "INFLUENCER", "ADMIN"]

    def test_admin_submission_leaves_brand_pending(self, db, deal):
        mou = mou_service.create_mou(db, deal.admin, deal.campaign.id)
        mou = mou_service.submit_for_approval(db, deal.admin, mou.id)
        assert mou.status == MOUStatus.PENDING_BRAND

    def test_preapproved_mou_needs_brand_and_influencer(self, db, deal):
        mou = mou_service.create_mou(db, deal.admin, deal.campaign.id, admin_preapproved=True)
        mou = mou_service.submit_for_approval(db, deal.brand_user, mou.id)
        assert mou.status == MOUStatus.PENDING_INFLUENCER

        mou = mou_service.approve_mou(db, deal.influencer_user, mou.id)
        assert mou.status == MOUStatus.APPROVED

    def test_only_drafts_can_be_submitted(self, db, deal):
        mou = mou_service.create_mou(db, deal.brand_user, deal.campaign.id)
        mou_service.submit_for_approval(db, deal.brand_user, mou.id)
        with pytest.raises(InvalidStateError):
            mou_service.submit_for_approval(db, deal.brand_user, mou.id)

    def test_cannot_decide_on_draft(self, db, deal):
        mou = mou_service.create_mou(db, deal.brand_user, deal.campaign.id)
        with pytest.raises(InvalidStateError, match="not awaiting approval"):
            mou_service.approve_mou(db, deal.influencer_user, mou.id)

    def test_party_decides_once(self, db, deal):
        mou = mou_service.create_mou(db, deal.brand_user, deal.campaign.id)
        mou_service.submit_for_approval(db, deal.brand_user, mou.id)
        mou_service.approve_mou(db, deal.influencer_user, mou.id)

        with pytest.raises(InvalidStateError, match="already approved"):
            mou_service.approve_mou(db, deal.influencer_user, mou.id)

    def test_rejection_needs_reason(self, db, deal):
        mou = mou_service.create_mou(db, deal.brand_user, deal.campaign.id)
        mou_service.submit_for_approval(db, deal.brand_user, mou.id)
        with pytest.raises(ServiceError, match="reason"):
            mou_service.reject_mou(db, deal.influencer_user, mou.id, reason="  ")

    def test_rejection_is_final(self, db, deal):
        mou = mou_service.create_mou(db, deal.brand_user, deal.campaign.id)
        mou_service.submit_for_approval(db, deal.brand_user, mou.id)

        mou = mou_service.reject_mou(db, deal.influencer_user, mou.id, reason="Fee too low")
        assert mou.status == MOUStatus.REJECTED
        assert mou.influencer_rejection_reason == "Fee too low"
        assert mou.rejected_by == deal.influencer_user.id
        assert len(_notifications(db, deal.brand_user, "MOU Rejected")) == 1

        with pytest.raises(InvalidStateError):
            mou_service.approve_mou(db, deal.admin, mou.id)

    def test_outsider_has_no_access(self, db, make, deal):
        mou = mou_service.create_mou(db, deal.brand_user, deal.campaign.id)
        mou_service.submit_for_approval(db, deal.brand_user, mou.id)
        other_user, _ = make.influencer()

        with pytest.raises(PermissionDeniedError):
            mou_service.approve_mou(db, other_user, mou.id)

    def test_bulk_decision_reports_each_mou(self, db, make, deal):
        ready = mou_service.create_mou(db, deal.brand_user, deal.campaign.id)
        mou_service.submit_for_approval(db, deal.brand_user, ready.id)
        mou_service.approve_mou(db, deal.influencer_user, ready.id)

        other = make.campaign(deal.brand)
        make.invitation(other, deal.influencer, InvitationStatus.ACTIVE)
        draft = mou_service.create_mou(db, deal.brand_user, other.id)

        result = mou_service.bulk_decide(db, deal.admin, [ready.id, draft.id], ApprovalStatus.APPROVED)

        assert result["processed"] == 2
        assert result["succeeded"] == 1
        assert result["failed"] == 1
        by_id = {r["id"]: r for r in result["results"]}
        assert by_id[ready.id]["status"] == "APPROVED"
        assert by_id[draft.id]["success"] is False


def _signed_mou(db, deal):
    mou = mou_service.create_mou(db, deal.admin, deal.campaign.id, admin_preapproved=True)
    mou_service.submit_for_approval(db, deal.brand_user, mou.id)
    return mou_service.approve_mou(db, deal.influencer_user, mou.id)


class TestRevisionsAndAmendments:
    """Tests for revise_mou and create_amendment."""

    def test_revision_creates_new_draft_version(self, db, deal):
        mou = mou_service.create_mou(db, deal.brand_user, deal.campaign.id)
        mou_service.submit_for_approval(db, deal.brand_user, mou.id)

        revision = mou_service.revise_mou(
            db, deal.admin, mou.id, {"total_budget": 7_500_000}, revision_notes="Budget raised"
        )

        assert revision.version == 2
        assert revision.parent_mou_id == mou.id
        assert revision.mou_number == mou.mou_number
        assert revision.status == MOUStatus.DRAFT
        assert revision.brand_approval_status == ApprovalStatus.PENDING
        assert float(revision.total_budget) == 7_500_000
        assert mou_service.current_mou(db, deal.campaign.id).id == revision.id
        versions = mou_service.list_versions(db, deal.brand_user, mou.id)
        assert [v.version for v in versions] == [1, 2]

    def test_only_latest_version_revisable(self, db, deal):
        mou = mou_service.create_mou(db, deal.brand_user, deal.campaign.id)
        mou_service.revise_mou(db, deal.admin, mou.id, {"title": "v2"})
        with pytest.raises(InvalidStateError, match="latest"):
            mou_service.revise_mou(db, deal.admin, mou.id, {"title": "v3"})

    def test_unknown_fields_rejected(self, db, deal):
        mou = mou_service.create_mou(db, deal.brand_user, deal.campaign.id)
        with pytest.raises(ServiceError, match="mou_number"):
            mou_service.revise_mou(db, deal.admin, mou.id, {"mou_number": "X"})

    def test_signed_mou_not_revisable(self, db, deal):
        mou = _signed_mou(db, deal)
        with pytest.raises(InvalidStateError, match="amendments"):
            mou_service.revise_mou(db, deal.admin, mou.id, {"title": "changed"})

    def test_amendments_numbered_and_mark_mou(self, db, deal):
        mou = _signed_mou(db, deal)

        first = mou_service.create_amendment(db, deal.admin, mou.id, "Extra story", "Adds one story")
        second = mou_service.create_amendment(db, deal.admin, mou.id, "Extend", "Two more weeks")

        assert (first.amendment_number, second.amendment_number) == (1, 2)
        db.refresh(mou)
        assert mou.status == MOUStatus.AMENDED
        assert len(mou_service.list_amendments(db, deal.influencer_user, mou.id)) == 2

    def test_draft_cannot_be_amended(self, db, deal):
        mou = mou_service.create_mou(db, deal.brand_user, deal.campaign.id)
        with pytest.raises(InvalidStateError):
            mou_service.create_amendment(db, deal.admin, mou.id, "Title", "Description")


class TestMOURequestsAndStart:
    """Tests for request_mou_creation and approve_campaign_start."""

    def test_influencer_requests_mou(self, db, deal):
        invitation = mou_service.request_mou_creation(
            db, deal.influencer_user, deal.campaign.id, deal.invitation.id
        )

        assert invitation.mou_creation_requested is True
        assert invitation.mou_requested_by == deal.influencer_user.id
        assert len(_notifications(db, deal.admin, "MOU Requested")) == 1
        assert len(_notifications(db, deal.brand_user, "MOU Requested")) == 1
        assert _notifications(db, deal.influencer_user, "MOU Requested") == []

        needing = mou_service.list_campaigns_needing_mou(db, deal.brand_user)
        assert [row["campaign_id"] for row in needing] == [deal.campaign.id]

    def test_request_only_once(self, db, deal):
        mou_service.request_mou_creation(db, deal.brand_user, deal.campaign.id, deal.invitation.id)
        with pytest.raises(InvalidStateError, match="already been requested"):
            mou_service.request_mou_creation(db, deal.brand_user, deal.campaign.id, deal.invitation.id)

    def test_urgent_admin_request_allows_start(self, db, deal):
        mou_service.request_mou_creation(
            db, deal.admin, deal.campaign.id, deal.invitation.id, urgent=True
        )
        db.refresh(deal.campaign)
        assert deal.campaign.can_start_without_mou is True

        campaign = mou_service.approve_campaign_start(db, deal.admin, deal.campaign.id)
        assert campaign.status == CampaignStatus.ACTIVE

    def test_start_without_signed_mou_needs_force(self, db, deal):
        with pytest.raises(InvalidStateError) as exc_info:
            mou_service.approve_campaign_start(db, deal.admin, deal.campaign.id)
        assert exc_info.value.extra == {"requires_force": True}

        campaign = mou_service.approve_campaign_start(db, deal.admin, deal.campaign.id, force=True)
        assert campaign.status == CampaignStatus.ACTIVE
        started = _notifications(db, deal.influencer_user, "Campaign Started")
        assert "without a signed MOU" in started[0].message

    def test_start_after_full_approval_activates_mou(self, db, deal):
        mou = mou_service.create_mou(db, deal.brand_user, deal.campaign.id)
        mou_service.submit_for_approval(db, deal.brand_user, mou.id)
        mou_service.approve_mou(db, deal.influencer_user, mou.id)
        mou = mou_service.approve_mou(db, deal.admin, mou.id)
        db.refresh(deal.campaign)
        assert mou.status == MOUStatus.APPROVED
        assert deal.campaign.status == CampaignStatus.ACTIVE

        campaign = mou_service.approve_campaign_start(db, deal.admin, deal.campaign.id)

        db.refresh(mou)
        assert campaign.status == CampaignStatus.ACTIVE
        assert mou.status == MOUStatus.ACTIVE
        assert len(_notifications(db, deal.influencer_user, "Campaign Started")) == 1

    def test_finished_campaign_cannot_start(self, db, deal):
        deal.campaign.status = CampaignStatus.COMPLETED
        db.commit()

        with pytest.raises(InvalidStateError, match="completed"):
            mou_service.approve_campaign_start(db, deal.admin, deal.campaign.id, force=True)

    def test_status_summary(self, db, deal):
        status = mou_service.check_campaign_mou_status(db, deal.brand_user, deal.campaign.id)
        assert status["mou_exists"] is False
        assert status["campaign_can_start"] is False

        _signed_mou(db, deal)
        status = mou_service.check_campaign_mou_status(db, deal.brand_user, deal.campaign.id)
        assert status["mou_status"] == "APPROVED"
        assert status["approval_status"] == {
            "brand": "APPROVED",
            "influencer": "APPROVED",
            "admin": "APPROVED",
        }


class TestTemplatesAndStatistics:
    def test_single_default_template(self, db, deal):
        first = mou_service.create_template(db, deal.admin, is_default=True, name="Standard")
        second = mou_service.create_template(
            db, deal.admin, is_default=True, name="Premium", payment_terms_template="Net 30"
        )
        db.refresh(first)

        assert first.is_default is False
        assert second.is_default is True
        assert mou_service.default_template(db).id == second.id

        mou = mou_service.create_mou(db, deal.brand_user, deal.campaign.id)
        assert mou.payment_terms == "Net 30"

    def test_template_needs_name(self, db, deal):
        with pytest.raises(ServiceError):
            mou_service.create_template(db, deal.admin, name=" ")

    def test_statistics(self, db, make, deal):
        _signed_mou(db, deal)
        other = make.campaign(deal.brand)
        make.invitation(other, deal.influencer, InvitationStatus.ACTIVE)
        mou_service.create_mou(db, deal.brand_user, other.id)

        stats = mou_service.mou_statistics(db)

        assert stats["total"] == 2
        assert stats["approved"] == 1
        assert stats["draft"] == 1
        assert stats["approval_rate"] == 100.0
        assert stats["recent"] == 2
        assert len(stats["monthly_trend"]) == 12
        assert stats["monthly_trend"][-1]["count"] == 2

    def test_listing_returns_latest_versions(self, db, deal):
        mou = mou_service.create_mou(db, deal.brand_user, deal.campaign.id)
        revision = mou_service.revise_mou(db, deal.admin, mou.id, {"title": "v2"})

        assert [m.id for m in mou_service.list_mous(db, deal.influencer_user)] == [revision.id]
