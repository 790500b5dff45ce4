from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.db import get_db
from ..models.mou import ApprovalStatus, MOUStatus
from ..models.user import User, UserRole
from ..schemas.mou import (
    AmendmentCreate,
    AmendmentOut,
    MOUApprovalOut,
    MOUCreate,
    MOUDecision,
    MOUOut,
    MOURequest,
    MOURevision,
)
from ..services import mou as mou_service
from .deps import get_current_user, ok, require_admin, require_roles

router = APIRouter(tags=["mou"])


def _out(mou) -> dict:
    return MOUOut.model_validate(mou).model_dump()


@router.get("/mous")
def list_mous(
    status: MOUStatus | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return [_out(m) for m in mou_service.list_mous(db, user, status=status)]


@router.get("/mous/pending")
def list_pending_mous(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return [_out(m) for m in mou_service.pending_mous_for_user(db, user)]


@router.post("/mous", status_code=201)
def create_mou(
    payload: MOUCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.ADMIN, UserRole.BRAND)),
):
    details = payload.model_dump(
        exclude={"campaign_id", "influencer_id", "admin_preapproved"}, exclude_none=True
    )
    mou = mou_service.create_mou(
        db,
        user,
        payload.campaign_id,
        influencer_id=payload.influencer_id,
        admin_preapproved=payload.admin_preapproved,
        details=details,
    )
    return ok("MOU created", _out(mou))


@router.get("/mous/{mou_id}")
def get_mou(mou_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _out(mou_service.get_mou_for_user(db, user, mou_id))


@router.get("/mous/{mou_id}/versions")
def list_versions(mou_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return [_out(m) for m in mou_service.list_versions(db, user, mou_id)]


@router.get("/mous/{mou_id}/approvals")
def list_approvals(mou_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return [
        MOUApprovalOut.model_validate(a).model_dump()
        for a in mou_service.list_approvals(db, user, mou_id)
    ]


@router.post("/mous/{mou_id}/submit")
def submit_mou(
    mou_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.ADMIN, UserRole.BRAND)),
):
    mou = mou_service.submit_for_approval(db, user, mou_id)
    return ok("MOU submitted for approval", _out(mou))


@router.post("/mous/{mou_id}/decision")
def decide_mou(
    mou_id: int,
    payload: MOUDecision,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    mou = mou_service.decide_mou(
        db,
        user,
        mou_id,
        ApprovalStatus(payload.decision),
        comments=payload.comments,
        reason=payload.reason,
    )
    verb = "approved" if payload.decision == "APPROVED" else "rejected"
    return ok(f"MOU {verb}", _out(mou))


@router.post("/mous/{mou_id}/revise", status_code=201)
def revise_mou(
    mou_id: int,
    payload: MOURevision,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    changes = payload.model_dump(exclude={"revision_notes"}, exclude_none=True)
    mou = mou_service.revise_mou(db, admin, mou_id, changes, payload.revision_notes)
    return ok(f"MOU revised to version {mou.version}", _out(mou))


@router.get("/mous/{mou_id}/amendments")
def list_amendments(mou_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return [
        AmendmentOut.model_validate(a).model_dump()
        for a in mou_service.list_amendments(db, user, mou_id)
    ]


@router.post("/mous/{mou_id}/amendments", status_code=201)
def create_amendment(
    mou_id: int,
    payload: AmendmentCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    amendment = mou_service.create_amendment(
        db,
        admin,
        mou_id,
        payload.title,
        payload.description,
        changed_fields=payload.changed_fields,
        effective_date=payload.effective_date,
    )
    return ok("Amendment added", AmendmentOut.model_validate(amendment).model_dump())


# Campaign-scoped MOU operations

@router.get("/campaigns/{campaign_id}/mou-preview")
def mou_preview(
    campaign_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.ADMIN, UserRole.BRAND)),
):
    return mou_service.generate_mou_preview(db, user, campaign_id)


@router.get("/campaigns/{campaign_id}/mou-status")
def campaign_mou_status(
    campaign_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return {
        **mou_service.check_campaign_mou_status(db, user, campaign_id),
        **mou_service.compute_campaign_mou_status(db, user, campaign_id),
    }


@router.post("/campaigns/{campaign_id}/mou-request")
def request_mou(
    campaign_id: int,
    payload: MOURequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    mou_service.request_mou_creation(
        db, user, campaign_id, payload.invitation_id, urgent=payload.urgent
    )
    return ok("MOU creation requested")


@router.get("/campaigns-needing-mou")
def campaigns_needing_mou(
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.ADMIN, UserRole.BRAND)),
):
    return mou_service.list_campaigns_needing_mou(db, user)
