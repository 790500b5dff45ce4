"""
MOU workflow: creation, submission, tri-party approval, revision,
amendment, templates and the admin overview.

State rules (status aggregation, who signs for which role) live in
``mou_status``; this module applies them to rows under a row lock and takes
care of side effects such as notifications and starting the campaign.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
)
from ..models.brand import Brand
from ..models.campaign import Campaign, CampaignInvitation, CampaignStatus, InvitationStatus
from ..models.influencer import Influencer
from ..models.mou import MOU, MOUAmendment, MOUApproval, MOUStatus, MOUTemplate, ApprovalStatus
from ..models.notification import NotificationType
from ..models.platform import Platform, Service
from ..models.user import User, UserRole
from .campaigns import (
    activate_campaign,
    brand_owner_id,
    can_transition,
    ensure_campaign_access,
    get_campaign,
    influencer_invitation,
    is_campaign_owner,
    participant_user_ids,
)
from .mou_status import (
    AWAITING_APPROVAL,
    PENDING_STATUS_FOR_PARTY,
    SIGNED_STATUSES,
    aggregate_mou_status,
    campaign_can_start,
    compute_mou_request_status,
    party_for_role,
)
from .notifications import admin_user_ids, notify, notify_many

logger = logging.getLogger(__name__)

MOU_NUMBER_ATTEMPTS = 3
DEFAULT_PAYMENT_TERMS = "50% advance, 50% upon completion"

# Fields an admin may change when issuing a new version
REVISABLE_FIELDS = (
    "title",
    "description",
    "brand_representative",
    "campaign_objective",
    "campaign_scope",
    "deliverable_details",
    "effective_date",
    "expiry_date",
    "total_budget",
    "payment_terms",
    "payment_schedule",
    "terms_and_conditions",
    "cancellation_clause",
    "confidentiality_clause",
    "intellectual_property_clause",
)

# Revisions carry these over unchanged from the previous version
_SNAPSHOT_FIELDS = (
    "mou_number",
    "campaign_id",
    "brand_id",
    "influencer_id",
    "brand_name",
    "brand_email",
    "influencer_name",
    "influencer_email",
)

TEMPLATE_FIELDS = (
    "name",
    "description",
    "terms_and_conditions",
    "cancellation_clause",
    "confidentiality_clause",
    "intellectual_property_clause",
    "payment_terms_template",
    "minimum_budget",
    "applicable_platforms",
    "is_active",
)


# ---------------------------------------------------------------------------
# Lookup & access
# ---------------------------------------------------------------------------

def get_mou(db: Session, mou_id: int, for_update: bool = False) -> MOU:
    q = db.query(MOU).filter(MOU.id == mou_id)
    if for_update:
        q = q.with_for_update()
    mou = q.first()
    if not mou:
        raise NotFoundError("MOU not found")
    return mou


def current_mou(db: Session, campaign_id: int) -> Optional[MOU]:
    """Latest version of the campaign's MOU, if any."""
    return (
        db.query(MOU)
        .filter(MOU.campaign_id == campaign_id)
        .order_by(MOU.version.desc(), MOU.id.desc())
        .first()
    )


def _influencer_user_id(db: Session, influencer_id: int) -> Optional[int]:
    influencer = db.query(Influencer).filter(Influencer.id == influencer_id).first()
    return influencer.user_id if influencer else None


def _brand_user_id(db: Session, brand_id: int) -> Optional[int]:
    brand = db.query(Brand).filter(Brand.id == brand_id).first()
    return brand.user_id if brand else None


def has_mou_access(db: Session, user: User, mou: MOU) -> bool:
    if user.role == UserRole.ADMIN:
        return True
    if user.role == UserRole.BRAND:
        return _brand_user_id(db, mou.brand_id) == user.id
    if user.role == UserRole.INFLUENCER:
        return _influencer_user_id(db, mou.influencer_id) == user.id
    return False


def get_mou_for_user(db: Session, user: User, mou_id: int, for_update: bool = False) -> MOU:
    mou = get_mou(db, mou_id, for_update=for_update)
    if not has_mou_access(db, user, mou):
        raise PermissionDeniedError("You do not have access to this MOU")
    return mou


def mou_party_user_ids(db: Session, mou: MOU) -> List[int]:
    return [
        uid
        for uid in (_brand_user_id(db, mou.brand_id), _influencer_user_id(db, mou.influencer_id))
        if uid is not None
    ]


def _notify_parties(
    db: Session,
    mou: MOU,
    title: str,
    message: str,
    type: NotificationType = NotificationType.SYSTEM,
    action: str | None = None,
    include_admins: bool = True,
) -> None:
    user_ids = mou_party_user_ids(db, mou)
    if include_admins:
        user_ids += admin_user_ids(db)
    notify_many(
        db,
        user_ids,
        title,
        message,
        type=type,
        data={"mouId": mou.id, "campaignId": mou.campaign_id, "action": action},
    )


def _party_user_ids(db: Session, mou: MOU, party: str) -> List[int]:
    if party == "brand":
        uid = _brand_user_id(db, mou.brand_id)
        return [uid] if uid is not None else []
    if party == "influencer":
        uid = _influencer_user_id(db, mou.influencer_id)
        return [uid] if uid is not None else []
    return admin_user_ids(db)


def _log_approval(
    db: Session, mou: MOU, user: User, status: ApprovalStatus, comments: str | None
) -> None:
    db.add(
        MOUApproval(
            mou_id=mou.id,
            approver_id=user.id,
            approver_role=user.role.value if user.role else "NONE",
            status=status,
            comments=comments,
        )
    )


# ---------------------------------------------------------------------------
# Numbering, preview, creation
# ---------------------------------------------------------------------------

def _month_bounds(now: datetime) -> tuple[datetime, datetime]:
    start = datetime(now.year, now.month, 1)
    if now.month == 12:
        end = datetime(now.year + 1, 1, 1)
    else:
        end = datetime(now.year, now.month + 1, 1)
    return start, end


def generate_mou_number(db: Session, now: datetime | None = None, offset: int = 0) -> str:
    """``MOU/YYYY/MM/NNN`` where NNN counts first versions created this month."""
    now = now or datetime.utcnow()
    start, end = _month_bounds(now)
    count = (
        db.query(func.count(MOU.id))
        .filter(MOU.version == 1, MOU.created_at >= start, MOU.created_at < end)
        .scalar()
    ) or 0
    return f"MOU/{now.year:04d}/{now.month:02d}/{count + 1 + offset:03d}"


def _insert_numbered(db: Session, mou: MOU, now: datetime) -> None:
    """
    Insert a first-version MOU under the next free number. A number taken by
    a concurrent insert fails the unique (mou_number, version) constraint and
    the next one is tried.
    """
    for attempt in range(MOU_NUMBER_ATTEMPTS):
        mou.mou_number = generate_mou_number(db, now, offset=attempt)
        try:
            with db.begin_nested():
                db.add(mou)
                db.flush()
            return
        except IntegrityError:
            logger.warning(
                "MOU number %s already taken",
                mou.mou_number,
                extra={"campaign_id": mou.campaign_id, "step": "create_mou"},
            )
    raise ConflictError("Could not allocate an MOU number, please try again")


def default_template(db: Session) -> Optional[MOUTemplate]:
    return (
        db.query(MOUTemplate)
        .filter(MOUTemplate.is_default.is_(True), MOUTemplate.is_active.is_(True))
        .first()
    )


def _deliverables_for(db: Session, campaign: Campaign) -> List[Dict[str, Any]]:
    selections = (campaign.direct_data or {}).get("platformSelections") or []
    deliverables: List[Dict[str, Any]] = []
    for sel in selections:
        platform = db.query(Platform).filter(Platform.id == sel.get("platformId")).first()
        service = db.query(Service).filter(Service.id == sel.get("serviceId")).first()
        deliverables.append(
            {
                "platform": platform.name if platform else None,
                "service": service.name if service else None,
                "quantity": sel.get("quantity", 1),
            }
        )
    return deliverables


def _budget_for(campaign: Campaign) -> float:
    budget = (campaign.direct_data or {}).get("budget")
    if budget is None:
        budget = (campaign.self_service_data or {}).get("budget")
    try:
        return float(budget) if budget is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


def generate_mou_preview(db: Session, user: User, campaign_id: int) -> Dict[str, Any]:
    """Draft MOU content built from the campaign and the default template."""
    campaign = get_campaign(db, campaign_id)
    ensure_campaign_access(db, user, campaign)
    brand = db.query(Brand).filter(Brand.id == campaign.brand_id).first()
    brand_user = db.query(User).filter(User.id == brand.user_id).first() if brand else None
    template = default_template(db)

    influencers = (
        db.query(User)
        .join(Influencer, Influencer.user_id == User.id)
        .join(CampaignInvitation, CampaignInvitation.influencer_id == Influencer.id)
        .filter(
            CampaignInvitation.campaign_id == campaign.id,
            CampaignInvitation.status == InvitationStatus.ACTIVE,
        )
        .all()
    )

    return {
        "title": f"MOU - {campaign.name}",
        "campaign": {
            "id": campaign.id,
            "name": campaign.name,
            "goal": campaign.goal,
            "type": campaign.type.value,
        },
        "brand": {
            "name": brand.name if brand else None,
            "email": brand_user.email if brand_user else None,
        },
        "influencers": [{"name": u.name, "email": u.email} for u in influencers],
        "effective_date": campaign.start_date,
        "expiry_date": campaign.end_date,
        "total_budget": _budget_for(campaign),
        "payment_terms": (template.payment_terms_template if template else None)
        or DEFAULT_PAYMENT_TERMS,
        "deliverables": _deliverables_for(db, campaign),
        "terms_and_conditions": template.terms_and_conditions if template else None,
        "cancellation_clause": template.cancellation_clause if template else None,
        "confidentiality_clause": template.confidentiality_clause if template else None,
        "intellectual_property_clause": template.intellectual_property_clause if template else None,
        "template_id": template.id if template else None,
    }


def _active_invitation(
    db: Session, campaign_id: int, influencer_id: int | None
) -> Optional[CampaignInvitation]:
    q = db.query(CampaignInvitation).filter(
        CampaignInvitation.campaign_id == campaign_id,
        CampaignInvitation.status == InvitationStatus.ACTIVE,
    )
    if influencer_id is not None:
        q = q.filter(CampaignInvitation.influencer_id == influencer_id)
    return q.order_by(CampaignInvitation.id.asc()).first()


def create_mou(
    db: Session,
    user: User,
    campaign_id: int,
    influencer_id: int | None = None,
    admin_preapproved: bool = False,
    details: Dict[str, Any] | None = None,
) -> MOU:
    """
    Draft a new MOU for a campaign with an accepted invitation.

    ``details`` may override any of REVISABLE_FIELDS; everything else is
    taken from the campaign and the default template.
    """
    if user.role not in (UserRole.ADMIN, UserRole.BRAND):
        raise PermissionDeniedError("Only admins and brands can create MOUs")
    if admin_preapproved and user.role != UserRole.ADMIN:
        raise PermissionDeniedError("Only admins can create pre-approved MOUs")

    campaign = get_campaign(db, campaign_id, for_update=True)
    if user.role == UserRole.BRAND and not is_campaign_owner(db, user, campaign):
        raise PermissionDeniedError("You do not own this campaign")
    if campaign.status in (CampaignStatus.COMPLETED, CampaignStatus.CANCELLED, CampaignStatus.REJECTED):
        raise InvalidStateError(f"Cannot create an MOU for a {campaign.status.value.lower()} campaign")

    invitation = _active_invitation(db, campaign.id, influencer_id)
    if invitation is None:
        raise InvalidStateError("Campaign has no accepted influencer invitation")
    if current_mou(db, campaign.id) is not None:
        raise ConflictError("An MOU already exists for this campaign")

    brand = db.query(Brand).filter(Brand.id == campaign.brand_id).first()
    brand_user = db.query(User).filter(User.id == brand.user_id).first()
    influencer_user = (
        db.query(User)
        .join(Influencer, Influencer.user_id == User.id)
        .filter(Influencer.id == invitation.influencer_id)
        .first()
    )
    template = default_template(db)
    now = datetime.utcnow()

    mou = MOU(
        version=1,
        campaign_id=campaign.id,
        brand_id=brand.id,
        influencer_id=invitation.influencer_id,
        title=f"MOU - {campaign.name}",
        brand_name=brand.name,
        brand_email=brand_user.email if brand_user else None,
        influencer_name=(influencer_user.name or influencer_user.email) if influencer_user else "",
        influencer_email=influencer_user.email if influencer_user else None,
        campaign_objective=campaign.goal,
        deliverable_details=_deliverables_for(db, campaign),
        effective_date=campaign.start_date,
        expiry_date=campaign.end_date,
        total_budget=_budget_for(campaign),
        payment_terms=(template.payment_terms_template if template else None) or DEFAULT_PAYMENT_TERMS,
        terms_and_conditions=template.terms_and_conditions if template else None,
        cancellation_clause=template.cancellation_clause if template else None,
        confidentiality_clause=template.confidentiality_clause if template else None,
        intellectual_property_clause=template.intellectual_property_clause if template else None,
        status=MOUStatus.DRAFT,
        created_by=user.id,
        created_at=now,
    )
    for field, value in (details or {}).items():
        if field in REVISABLE_FIELDS and value is not None:
            setattr(mou, field, value)
    if mou.expiry_date < mou.effective_date:
        raise ServiceError("Expiry date must be on or after the effective date")

    if admin_preapproved:
        mou.admin_approval_status = ApprovalStatus.APPROVED
        mou.admin_approved_at = now
        mou.admin_approved_by = user.id

    _insert_numbered(db, mou, now)
    if admin_preapproved:
        _log_approval(db, mou, user, ApprovalStatus.APPROVED, "Created with admin approval")

    _notify_parties(
        db,
        mou,
        "MOU Created",
        f"MOU {mou.mou_number} has been drafted for campaign '{campaign.name}'",
        action="created",
    )
    db.commit()
    db.refresh(mou)
    logger.info(
        "MOU created",
        extra={"mou_id": mou.id, "campaign_id": campaign.id, "user_id": user.id, "step": "create_mou"},
    )
    return mou


# ---------------------------------------------------------------------------
# Approval workflow
# ---------------------------------------------------------------------------

def _set_party_decision(
    mou: MOU,
    party: str,
    decision: ApprovalStatus,
    user: User,
    now: datetime,
    reason: str | None = None,
) -> None:
    setattr(mou, f"{party}_approval_status", decision)
    if decision == ApprovalStatus.APPROVED:
        setattr(mou, f"{party}_approved_at", now)
        setattr(mou, f"{party}_approved_by", user.id)
    else:
        setattr(mou, f"{party}_rejection_reason", reason)
        mou.rejected_at = now
        mou.rejected_by = user.id


def _refresh_status(mou: MOU) -> MOUStatus:
    mou.status = aggregate_mou_status(
        mou.status,
        mou.brand_approval_status,
        mou.influencer_approval_status,
        mou.admin_approval_status,
    )
    return mou.status


def _ensure_can_manage(db: Session, user: User, mou: MOU) -> None:
    if user.role == UserRole.ADMIN:
        return
    if user.role == UserRole.BRAND and _brand_user_id(db, mou.brand_id) == user.id:
        return
    raise PermissionDeniedError("Only the brand owner or an admin can manage this MOU")


def _on_fully_approved(db: Session, mou: MOU) -> None:
    campaign = get_campaign(db, mou.campaign_id, for_update=True)
    if campaign.status == CampaignStatus.PENDING and can_transition(
        campaign.status, CampaignStatus.ACTIVE
    ):
        activate_campaign(db, campaign)
    _notify_parties(
        db,
        mou,
        "MOU Approved",
        f"MOU {mou.mou_number} has been approved by all parties",
        type=NotificationType.CAMPAIGN_APPROVAL,
        action="approved",
    )


def _announce_next_party(db: Session, mou: MOU) -> None:
    for party, pending_status in PENDING_STATUS_FOR_PARTY.items():
        if mou.status == pending_status:
            notify_many(
                db,
                _party_user_ids(db, mou, party),
                "MOU Awaiting Your Approval",
                f"MOU {mou.mou_number} is waiting for your approval",
                data={"mouId": mou.id, "campaignId": mou.campaign_id, "action": "approve"},
            )
            return


def submit_for_approval(db: Session, user: User, mou_id: int) -> MOU:
    mou = get_mou(db, mou_id, for_update=True)
    _ensure_can_manage(db, user, mou)
    if mou.status != MOUStatus.DRAFT:
        raise InvalidStateError("Only draft MOUs can be submitted for approval")

    now = datetime.utcnow()
    if user.role == UserRole.BRAND:
        # Submitting is the brand's signature
        _set_party_decision(mou, "brand", ApprovalStatus.APPROVED, user, now)
        _log_approval(db, mou, user, ApprovalStatus.APPROVED, "Approved on submission")

    # Leave DRAFT first so aggregation picks the next pending party
    mou.status = MOUStatus.PENDING_BRAND
    status = _refresh_status(mou)

    if status == MOUStatus.APPROVED:
        _on_fully_approved(db, mou)
    else:
        _announce_next_party(db, mou)

    db.commit()
    db.refresh(mou)
    logger.info(
        "MOU submitted, status %s",
        mou.status.value,
        extra={"mou_id": mou.id, "user_id": user.id, "step": "submit_mou"},
    )
    return mou


def decide_mou(
    db: Session,
    user: User,
    mou_id: int,
    decision: ApprovalStatus,
    comments: str | None = None,
    reason: str | None = None,
) -> MOU:
    """
    Record one party's decision. The acting party follows from the user's
    role. A party decides once; the MOU must be awaiting approval.
    """
    if decision not in (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED):
        raise ServiceError("Decision must be APPROVED or REJECTED")
    if decision == ApprovalStatus.REJECTED and not (reason or "").strip():
        raise ServiceError("A rejection reason is required")

    mou = get_mou_for_user(db, user, mou_id, for_update=True)
    party = party_for_role(user.role)
    if party is None:
        raise PermissionDeniedError("Your role cannot approve MOUs")
    if mou.status not in AWAITING_APPROVAL:
        raise InvalidStateError(
            f"MOU is not awaiting approval (status {mou.status.value})"
        )
    current = getattr(mou, f"{party}_approval_status")
    if current != ApprovalStatus.PENDING:
        raise InvalidStateError(f"The {party} has already {current.value.lower()} this MOU")

    now = datetime.utcnow()
    _set_party_decision(mou, party, decision, user, now, reason=(reason or "").strip() or None)
    _log_approval(db, mou, user, decision, comments if decision == ApprovalStatus.APPROVED else reason)
    status = _refresh_status(mou)

    if status == MOUStatus.APPROVED:
        _on_fully_approved(db, mou)
    elif status == MOUStatus.REJECTED:
        _notify_parties(
            db,
            mou,
            "MOU Rejected",
            f"MOU {mou.mou_number} was rejected by the {party}: {reason.strip()}",
            type=NotificationType.CAMPAIGN_REJECTION,
            action="rejected",
        )
    else:
        _announce_next_party(db, mou)

    db.commit()
    db.refresh(mou)
    logger.info(
        "MOU %s by %s, status %s",
        decision.value.lower(),
        party,
        mou.status.value,
        extra={"mou_id": mou.id, "user_id": user.id, "step": "decide_mou"},
    )
    return mou


def approve_mou(db: Session, user: User, mou_id: int, comments: str | None = None) -> MOU:
    return decide_mou(db, user, mou_id, ApprovalStatus.APPROVED, comments=comments)


def reject_mou(db: Session, user: User, mou_id: int, reason: str) -> MOU:
    return decide_mou(db, user, mou_id, ApprovalStatus.REJECTED, reason=reason)


def bulk_decide(
    db: Session,
    admin: User,
    mou_ids: Sequence[int],
    decision: ApprovalStatus,
    reason: str | None = None,
) -> Dict[str, Any]:
    """Apply the admin decision to each MOU independently."""
    results: List[Dict[str, Any]] = []
    for mou_id in dict.fromkeys(mou_ids):
        try:
            mou = decide_mou(db, admin, mou_id, decision, reason=reason)
            results.append({"id": mou_id, "success": True, "status": mou.status.value})
        except ServiceError as e:
            db.rollback()
            results.append({"id": mou_id, "success": False, "message": e.message})
    succeeded = sum(1 for r in results if r["success"])
    return {
        "processed": len(results),
        "succeeded": succeeded,
        "failed": len(results) - succeeded,
        "results": results,
    }


# ---------------------------------------------------------------------------
# Revisions & amendments
# ---------------------------------------------------------------------------

def revise_mou(
    db: Session,
    admin: User,
    mou_id: int,
    changes: Dict[str, Any] | None = None,
    revision_notes: str | None = None,
) -> MOU:
    """Issue a new DRAFT version with all approvals reset."""
    mou = get_mou(db, mou_id, for_update=True)
    latest = current_mou(db, mou.campaign_id)
    if latest is not None and latest.id != mou.id:
        raise InvalidStateError("Only the latest MOU version can be revised")
    if mou.status in SIGNED_STATUSES or mou.status == MOUStatus.EXPIRED:
        raise InvalidStateError("Signed MOUs are changed through amendments")

    unknown = set(changes or {}) - set(REVISABLE_FIELDS)
    if unknown:
        raise ServiceError(f"Fields cannot be revised: {', '.join(sorted(unknown))}")

    revision = MOU(
        version=mou.version + 1,
        parent_mou_id=mou.id,
        status=MOUStatus.DRAFT,
        revision_notes=revision_notes,
        created_by=admin.id,
    )
    for field in _SNAPSHOT_FIELDS + REVISABLE_FIELDS:
        setattr(revision, field, getattr(mou, field))
    for field, value in (changes or {}).items():
        setattr(revision, field, value)
    if revision.expiry_date < revision.effective_date:
        raise ServiceError("Expiry date must be on or after the effective date")

    db.add(revision)
    db.flush()
    _notify_parties(
        db,
        revision,
        "MOU Revised",
        f"MOU {revision.mou_number} has a new version (v{revision.version})",
        action="revised",
        include_admins=False,
    )
    db.commit()
    db.refresh(revision)
    logger.info(
        "MOU revised to version %s",
        revision.version,
        extra={"mou_id": revision.id, "user_id": admin.id, "step": "revise_mou"},
    )
    return revision


def create_amendment(
    db: Session,
    admin: User,
    mou_id: int,
    title: str,
    description: str,
    changed_fields: Dict[str, Any] | None = None,
    effective_date: datetime | None = None,
) -> MOUAmendment:
    if not (title or "").strip() or not (description or "").strip():
        raise ServiceError("Amendment title and description are required")
    mou = get_mou(db, mou_id, for_update=True)
    if mou.status not in SIGNED_STATUSES:
        raise InvalidStateError("Only signed MOUs can be amended")

    last_number = (
        db.query(func.max(MOUAmendment.amendment_number))
        .filter(MOUAmendment.mou_id == mou.id)
        .scalar()
    ) or 0
    amendment = MOUAmendment(
        mou_id=mou.id,
        amendment_number=last_number + 1,
        title=title.strip(),
        description=description.strip(),
        changed_fields=changed_fields,
        effective_date=effective_date or datetime.utcnow(),
        created_by=admin.id,
    )
    db.add(amendment)
    mou.status = MOUStatus.AMENDED
    db.flush()
    _notify_parties(
        db,
        mou,
        "MOU Amended",
        f"Amendment #{amendment.amendment_number} was added to MOU {mou.mou_number}",
        action="amended",
        include_admins=False,
    )
    db.commit()
    db.refresh(amendment)
    return amendment


def list_amendments(db: Session, user: User, mou_id: int) -> List[MOUAmendment]:
    get_mou_for_user(db, user, mou_id)
    return (
        db.query(MOUAmendment)
        .filter(MOUAmendment.mou_id == mou_id)
        .order_by(MOUAmendment.amendment_number.asc())
        .all()
    )


def list_versions(db: Session, user: User, mou_id: int) -> List[MOU]:
    mou = get_mou_for_user(db, user, mou_id)
    return (
        db.query(MOU)
        .filter(MOU.campaign_id == mou.campaign_id, MOU.mou_number == mou.mou_number)
        .order_by(MOU.version.asc())
        .all()
    )


def list_approvals(db: Session, user: User, mou_id: int) -> List[MOUApproval]:
    get_mou_for_user(db, user, mou_id)
    return (
        db.query(MOUApproval)
        .filter(MOUApproval.mou_id == mou_id)
        .order_by(MOUApproval.created_at.asc(), MOUApproval.id.asc())
        .all()
    )


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def _unset_other_defaults(db: Session, keep_id: int | None) -> None:
    q = db.query(MOUTemplate).filter(MOUTemplate.is_default.is_(True))
    if keep_id is not None:
        q = q.filter(MOUTemplate.id != keep_id)
    q.update({MOUTemplate.is_default: False}, synchronize_session=False)


def get_template(db: Session, template_id: int) -> MOUTemplate:
    template = db.query(MOUTemplate).filter(MOUTemplate.id == template_id).first()
    if not template:
        raise NotFoundError("Template not found")
    return template


def list_templates(db: Session, active_only: bool = True) -> List[MOUTemplate]:
    q = db.query(MOUTemplate)
    if active_only:
        q = q.filter(MOUTemplate.is_active.is_(True))
    return q.order_by(MOUTemplate.is_default.desc(), MOUTemplate.name.asc()).all()


def create_template(
    db: Session, admin: User, is_default: bool = False, **fields: Any
) -> MOUTemplate:
    if not (fields.get("name") or "").strip():
        raise ServiceError("Template name is required")
    template = MOUTemplate(created_by=admin.id, is_default=is_default)
    for field, value in fields.items():
        if field in TEMPLATE_FIELDS and value is not None:
            setattr(template, field, value)
    db.add(template)
    db.flush()
    if is_default:
        _unset_other_defaults(db, keep_id=template.id)
    db.commit()
    db.refresh(template)
    return template


def update_template(
    db: Session, template_id: int, is_default: bool | None = None, **fields: Any
) -> MOUTemplate:
    template = get_template(db, template_id)
    for field, value in fields.items():
        if field in TEMPLATE_FIELDS and value is not None:
            setattr(template, field, value)
    if is_default is not None:
        template.is_default = is_default
        if is_default:
            _unset_other_defaults(db, keep_id=template.id)
    db.commit()
    db.refresh(template)
    return template


def delete_template(db: Session, template_id: int) -> None:
    template = get_template(db, template_id)
    db.delete(template)
    db.commit()


# ---------------------------------------------------------------------------
# MOU requests & campaign start
# ---------------------------------------------------------------------------

def request_mou_creation(
    db: Session,
    user: User,
    campaign_id: int,
    invitation_id: int,
    urgent: bool = False,
) -> CampaignInvitation:
    campaign = get_campaign(db, campaign_id, for_update=True)
    invitation = (
        db.query(CampaignInvitation)
        .filter(CampaignInvitation.id == invitation_id)
        .with_for_update()
        .first()
    )
    if not invitation or invitation.campaign_id != campaign.id:
        raise NotFoundError("Invitation not found for this campaign")

    is_admin = user.role == UserRole.ADMIN
    is_owner = is_campaign_owner(db, user, campaign)
    own_invitation = influencer_invitation(db, user, campaign.id)
    is_invited = (
        user.role == UserRole.INFLUENCER
        and own_invitation is not None
        and own_invitation.id == invitation.id
    )
    if not (is_admin or is_owner or is_invited):
        raise PermissionDeniedError("You cannot request an MOU for this campaign")

    if invitation.status != InvitationStatus.ACTIVE:
        raise InvalidStateError("The invitation must be accepted before requesting an MOU")
    if current_mou(db, campaign.id) is not None:
        raise ConflictError("An MOU already exists for this campaign")
    if invitation.mou_creation_requested:
        raise InvalidStateError("MOU creation has already been requested")

    invitation.mou_creation_requested = True
    invitation.mou_requested_at = datetime.utcnow()
    invitation.mou_requested_by = user.id
    if urgent and is_admin:
        campaign.can_start_without_mou = True

    recipients = admin_user_ids(db)
    if not is_owner:
        recipients.append(brand_owner_id(db, campaign))
    if not is_invited:
        recipients.append(_influencer_user_id(db, invitation.influencer_id))
    recipients = [uid for uid in recipients if uid != user.id]

    notify_many(
        db,
        recipients,
        "MOU Requested",
        f"{user.name or user.email} requested an MOU for campaign '{campaign.name}'"
        + (" (urgent)" if urgent else ""),
        data={"campaignId": campaign.id, "invitationId": invitation.id, "action": "mou_requested"},
    )
    db.commit()
    db.refresh(invitation)
    logger.info(
        "MOU creation requested",
        extra={"campaign_id": campaign.id, "user_id": user.id, "step": "request_mou"},
    )
    return invitation


def list_campaigns_needing_mou(db: Session, user: User) -> List[Dict[str, Any]]:
    if user.role not in (UserRole.ADMIN, UserRole.BRAND):
        raise PermissionDeniedError("Only admins and brands can view MOU requests")

    q = (
        db.query(Campaign, CampaignInvitation)
        .join(CampaignInvitation, CampaignInvitation.campaign_id == Campaign.id)
        .filter(
            Campaign.mou_required.is_(True),
            CampaignInvitation.status == InvitationStatus.ACTIVE,
            CampaignInvitation.mou_creation_requested.is_(True),
        )
    )
    if user.role == UserRole.BRAND:
        q = q.join(Brand, Brand.id == Campaign.brand_id).filter(Brand.user_id == user.id)

    out: List[Dict[str, Any]] = []
    seen: set[int] = set()
    for campaign, invitation in q.order_by(CampaignInvitation.mou_requested_at.asc()).all():
        if campaign.id in seen or current_mou(db, campaign.id) is not None:
            continue
        seen.add(campaign.id)
        out.append(
            {
                "campaign_id": campaign.id,
                "campaign_name": campaign.name,
                "status": campaign.status.value,
                "invitation_id": invitation.id,
                "influencer_id": invitation.influencer_id,
                "requested_at": invitation.mou_requested_at,
                "can_start_without_mou": campaign.can_start_without_mou,
            }
        )
    return out


def _campaign_invitations(db: Session, campaign_id: int) -> List[CampaignInvitation]:
    return (
        db.query(CampaignInvitation)
        .filter(CampaignInvitation.campaign_id == campaign_id)
        .all()
    )


def compute_campaign_mou_status(db: Session, user: User, campaign_id: int) -> Dict[str, Any]:
    campaign = get_campaign(db, campaign_id)
    ensure_campaign_access(db, user, campaign)
    mou = current_mou(db, campaign.id)
    return compute_mou_request_status(
        campaign, mou, _campaign_invitations(db, campaign.id)
    ).as_dict()


def check_campaign_mou_status(db: Session, user: User, campaign_id: int) -> Dict[str, Any]:
    campaign = get_campaign(db, campaign_id)
    ensure_campaign_access(db, user, campaign)
    mou = current_mou(db, campaign.id)
    requested = any(inv.mou_creation_requested for inv in _campaign_invitations(db, campaign.id))
    return {
        "campaign_id": campaign.id,
        "mou_required": campaign.mou_required,
        "mou_exists": mou is not None,
        "mou_requested": requested,
        "can_start_without_mou": campaign.can_start_without_mou,
        "mou_id": mou.id if mou else None,
        "mou_status": mou.status.value if mou else None,
        "approval_status": {
            "brand": mou.brand_approval_status.value,
            "influencer": mou.influencer_approval_status.value,
            "admin": mou.admin_approval_status.value,
        }
        if mou
        else None,
        "campaign_can_start": campaign_can_start(campaign, mou),
    }


def approve_campaign_start(
    db: Session, admin: User, campaign_id: int, force: bool = False
) -> Campaign:
    """
    Start a campaign and put its approved MOU into effect. When an MOU is
    required it must be approved unless the admin forces the start. A
    campaign already activated by the final MOU approval only has its MOU
    promoted.
    """
    campaign = get_campaign(db, campaign_id, for_update=True)
    if campaign.status not in (CampaignStatus.PENDING, CampaignStatus.ACTIVE):
        raise InvalidStateError(
            f"Cannot start a campaign that is {campaign.status.value.lower()}"
        )

    mou = current_mou(db, campaign.id)
    forced = not campaign_can_start(campaign, mou)
    if forced and not force:
        message = (
            "Campaign requires an MOU before starting"
            if mou is None
            else f"Campaign MOU is not approved yet (status {mou.status.value})"
        )
        raise InvalidStateError(message, extra={"requires_force": True})

    if campaign.status == CampaignStatus.PENDING:
        activate_campaign(db, campaign)
    if mou is not None and mou.status == MOUStatus.APPROVED:
        mou.status = MOUStatus.ACTIVE

    notify_many(
        db,
        participant_user_ids(db, campaign),
        "Campaign Started",
        f"Campaign '{campaign.name}' has started"
        + (" without a signed MOU" if forced else ""),
        type=NotificationType.CAMPAIGN_APPROVAL,
        data={"campaignId": campaign.id, "action": "started"},
    )
    db.commit()
    db.refresh(campaign)
    logger.info(
        "Campaign started%s",
        " (forced)" if forced else "",
        extra={"campaign_id": campaign.id, "user_id": admin.id, "step": "approve_campaign_start"},
    )
    return campaign


# ---------------------------------------------------------------------------
# Listings & statistics
# ---------------------------------------------------------------------------

def _latest_only(mous: Iterable[MOU]) -> List[MOU]:
    latest: Dict[int, MOU] = {}
    for mou in mous:
        seen = latest.get(mou.campaign_id)
        if seen is None or mou.version > seen.version:
            latest[mou.campaign_id] = mou
    return sorted(latest.values(), key=lambda m: (m.created_at, m.id), reverse=True)


def list_mous(db: Session, user: User, status: MOUStatus | None = None) -> List[MOU]:
    q = db.query(MOU)
    if user.role == UserRole.BRAND:
        q = q.join(Brand, Brand.id == MOU.brand_id).filter(Brand.user_id == user.id)
    elif user.role == UserRole.INFLUENCER:
        q = q.join(Influencer, Influencer.id == MOU.influencer_id).filter(
            Influencer.user_id == user.id
        )
    elif user.role != UserRole.ADMIN:
        return []
    mous = _latest_only(q.all())
    if status is not None:
        mous = [m for m in mous if m.status == status]
    return mous


def pending_mous_for_user(db: Session, user: User) -> List[MOU]:
    """MOUs currently waiting on this user's party."""
    party = party_for_role(user.role)
    if party is None:
        return []
    return [
        m
        for m in list_mous(db, user)
        if m.status in AWAITING_APPROVAL
        and getattr(m, f"{party}_approval_status") == ApprovalStatus.PENDING
    ]


def mou_statistics(db: Session, now: datetime | None = None) -> Dict[str, Any]:
    now = now or datetime.utcnow()
    rows = db.query(MOU.status, MOU.created_at).all()

    counts: Dict[str, int] = {s.value: 0 for s in MOUStatus}
    for status, _ in rows:
        counts[status.value] += 1

    approved = counts[MOUStatus.APPROVED.value]
    rejected = counts[MOUStatus.REJECTED.value]
    decided = approved + rejected
    approval_rate = round(approved / decided * 100, 2) if decided else 0

    week_ago = now - timedelta(days=7)

    # last 12 months, oldest first
    months: List[str] = []
    year, month = now.year, now.month
    for _ in range(12):
        months.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    months.reverse()
    trend = {m: 0 for m in months}
    for _, created_at in rows:
        key = f"{created_at.year:04d}-{created_at.month:02d}"
        if key in trend:
            trend[key] += 1

    return {
        "total": len(rows),
        "draft": counts[MOUStatus.DRAFT.value],
        "pending": sum(counts[s.value] for s in AWAITING_APPROVAL),
        "approved": approved,
        "rejected": rejected,
        "active": counts[MOUStatus.ACTIVE.value],
        "expired": counts[MOUStatus.EXPIRED.value],
        "amended": counts[MOUStatus.AMENDED.value],
        "recent": sum(1 for _, created_at in rows if created_at >= week_ago),
        "approval_rate": approval_rate,
        "monthly_trend": [{"month": m, "count": trend[m]} for m in months],
    }
