"""
Pure status rules for MOUs.

Nothing here touches the database; the workflow in ``services/mou.py`` feeds
model values in and writes the results back.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from ..models.campaign import CampaignStatus
from ..models.mou import ApprovalStatus, MOUStatus
from ..models.user import UserRole

# Order in which parties are expected to sign
APPROVAL_ORDER = ("brand", "influencer", "admin")

PENDING_STATUS_FOR_PARTY: Dict[str, MOUStatus] = {
    "brand": MOUStatus.PENDING_BRAND,
    "influencer": MOUStatus.PENDING_INFLUENCER,
    "admin": MOUStatus.PENDING_ADMIN,
}

PARTY_FOR_ROLE: Dict[UserRole, str] = {
    UserRole.BRAND: "brand",
    UserRole.INFLUENCER: "influencer",
    UserRole.ADMIN: "admin",
}

AWAITING_APPROVAL = frozenset(PENDING_STATUS_FOR_PARTY.values())

# Statuses after which the approval flags are frozen
FINAL_STATUSES = frozenset(
    {
        MOUStatus.APPROVED,
        MOUStatus.REJECTED,
        MOUStatus.ACTIVE,
        MOUStatus.EXPIRED,
        MOUStatus.AMENDED,
    }
)

# Statuses of a signed agreement
SIGNED_STATUSES = frozenset({MOUStatus.APPROVED, MOUStatus.ACTIVE, MOUStatus.AMENDED})


def aggregate_mou_status(
    current: MOUStatus,
    brand: ApprovalStatus,
    influencer: ApprovalStatus,
    admin: ApprovalStatus,
) -> MOUStatus:
    """
    Derive the MOU status from the three party approvals.

    - any REJECTED -> REJECTED
    - all APPROVED -> APPROVED
    - a DRAFT stays DRAFT until it is submitted
    - otherwise PENDING_<first party still pending>, in APPROVAL_ORDER
    """
    approvals = {"brand": brand, "influencer": influencer, "admin": admin}

    if ApprovalStatus.REJECTED in approvals.values():
        return MOUStatus.REJECTED
    if all(v == ApprovalStatus.APPROVED for v in approvals.values()):
        return MOUStatus.APPROVED
    if current == MOUStatus.DRAFT:
        return MOUStatus.DRAFT

    for party in APPROVAL_ORDER:
        if approvals[party] == ApprovalStatus.PENDING:
            return PENDING_STATUS_FOR_PARTY[party]
    # unreachable: no REJECTED, not all APPROVED -> at least one PENDING
    return current


def party_for_role(role: UserRole | None) -> Optional[str]:
    if role is None:
        return None
    return PARTY_FOR_ROLE.get(role)


def is_fully_signed(mou) -> bool:
    return (
        mou.brand_approval_status == ApprovalStatus.APPROVED
        and mou.influencer_approval_status == ApprovalStatus.APPROVED
        and mou.admin_approval_status == ApprovalStatus.APPROVED
    )


@dataclass
class MOURequestStatus:
    has_mou: bool
    mou_creation_requested: bool
    is_fully_signed: bool
    can_request_mou: bool
    can_start_without_mou: bool
    mou_status: Optional[MOUStatus]

    def as_dict(self) -> Dict[str, object]:
        return {
            "has_mou": self.has_mou,
            "mou_creation_requested": self.mou_creation_requested,
            "is_fully_signed": self.is_fully_signed,
            "can_request_mou": self.can_request_mou,
            "can_start_without_mou": self.can_start_without_mou,
            "mou_status": self.mou_status.value if self.mou_status else None,
        }


def compute_mou_request_status(campaign, mou, invitations: Iterable) -> MOURequestStatus:
    """Summarise where a campaign stands with respect to its MOU."""
    requested = any(inv.mou_creation_requested for inv in invitations)
    has_mou = mou is not None
    can_request = (
        bool(campaign.mou_required)
        and not has_mou
        and not requested
        and campaign.status not in (CampaignStatus.COMPLETED, CampaignStatus.CANCELLED)
    )
    return MOURequestStatus(
        has_mou=has_mou,
        mou_creation_requested=requested,
        is_fully_signed=is_fully_signed(mou) if has_mou else False,
        can_request_mou=can_request,
        can_start_without_mou=bool(campaign.can_start_without_mou),
        mou_status=mou.status if has_mou else None,
    )


def campaign_can_start(campaign, mou) -> bool:
    if not campaign.mou_required or campaign.can_start_without_mou:
        return True
    return mou is not None and mou.status in SIGNED_STATUSES
