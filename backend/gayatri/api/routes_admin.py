import logging

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..core.db import get_db
from ..models.mou import ApprovalStatus
from ..models.user import User
from ..schemas.campaign import CampaignOut, RejectRequest
from ..schemas.mou import BulkDecision, CampaignStartRequest, TemplateIn, TemplateOut, TemplateUpdate
from ..services import campaigns as campaign_service
from ..services import mou as mou_service
from ..services import platform_sync
from ..services.caching import cache_delete, cache_key, cached_get
from ..services.dashboard import admin_statistics
from ..services.integrations import get_integrations
from .deps import ok, require_admin

router = APIRouter(prefix="/admin", tags=["admin"])

settings = get_settings()
logger = logging.getLogger(__name__)

STATS_CACHE_KEY = cache_key("admin", "statistics")
MOU_STATS_CACHE_KEY = cache_key("admin", "mou-statistics")


@router.get("/statistics")
async def statistics(
    refresh: bool = False,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    if refresh:
        await cache_delete(STATS_CACHE_KEY)
    else:
        cached = await cached_get(STATS_CACHE_KEY)
        if cached:
            return cached

    stats = await run_in_threadpool(admin_statistics, db)
    await cached_get(STATS_CACHE_KEY, set_value=stats, ttl=settings.STATS_CACHE_TTL_SECONDS)
    return stats


@router.get("/mou-statistics")
async def mou_statistics(db: Session = Depends(get_db), _: User = Depends(require_admin)):
    cached = await cached_get(MOU_STATS_CACHE_KEY)
    if cached:
        return cached

    stats = await run_in_threadpool(mou_service.mou_statistics, db)
    await cached_get(MOU_STATS_CACHE_KEY, set_value=stats, ttl=settings.STATS_CACHE_TTL_SECONDS)
    return stats


# Direct campaign review

@router.get("/campaigns/direct")
def list_direct_campaigns(
    pending_only: bool = False,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    return [
        CampaignOut.model_validate(c).model_dump()
        for c in campaign_service.list_direct_campaigns(db, pending_only=pending_only)
    ]


@router.post("/campaigns/{campaign_id}/approve")
def approve_direct_campaign(
    campaign_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)
):
    campaign = campaign_service.approve_direct_campaign(db, admin, campaign_id)
    return ok("Campaign approved", CampaignOut.model_validate(campaign).model_dump())


@router.post("/campaigns/{campaign_id}/reject")
def reject_direct_campaign(
    campaign_id: int,
    payload: RejectRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    campaign = campaign_service.reject_direct_campaign(db, admin, campaign_id, payload.reason)
    return ok("Campaign rejected", CampaignOut.model_validate(campaign).model_dump())


@router.post("/campaigns/{campaign_id}/start")
def approve_campaign_start(
    campaign_id: int,
    payload: CampaignStartRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    campaign = mou_service.approve_campaign_start(db, admin, campaign_id, force=payload.force)
    return ok("Campaign started", CampaignOut.model_validate(campaign).model_dump())


@router.post("/campaigns/expire")
def expire_campaigns(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    result = campaign_service.update_expired_campaigns(db)
    logger.info(
        "Manual expiry run",
        extra={"user_id": admin.id, "step": "expire_campaigns"},
    )
    return ok(f"{result['updated']} campaign(s) completed", result)


# MOUs

@router.post("/mous/bulk-decision")
def bulk_decision(
    payload: BulkDecision,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    result = mou_service.bulk_decide(
        db, admin, payload.mou_ids, ApprovalStatus(payload.decision), reason=payload.reason
    )
    return ok(f"{result['succeeded']} of {result['processed']} MOU(s) updated", result)


@router.get("/mou-templates")
def list_templates(
    active_only: bool = True, db: Session = Depends(get_db), _: User = Depends(require_admin)
):
    return [
        TemplateOut.model_validate(t).model_dump()
        for t in mou_service.list_templates(db, active_only=active_only)
    ]


@router.post("/mou-templates", status_code=201)
def create_template(
    payload: TemplateIn, db: Session = Depends(get_db), admin: User = Depends(require_admin)
):
    fields = payload.model_dump(exclude={"is_default"})
    template = mou_service.create_template(db, admin, is_default=payload.is_default, **fields)
    return ok("Template created", TemplateOut.model_validate(template).model_dump())


@router.get("/mou-templates/{template_id}")
def get_template(template_id: int, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    return TemplateOut.model_validate(mou_service.get_template(db, template_id)).model_dump()


@router.patch("/mou-templates/{template_id}")
def update_template(
    template_id: int,
    payload: TemplateUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    fields = payload.model_dump(exclude_unset=True)
    is_default = fields.pop("is_default", None)
    template = mou_service.update_template(db, template_id, is_default=is_default, **fields)
    return ok("Template updated", TemplateOut.model_validate(template).model_dump())


@router.delete("/mou-templates/{template_id}")
def delete_template(template_id: int, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    mou_service.delete_template(db, template_id)
    return ok("Template deleted")


# Integrations

@router.post("/connections/tiktok/refresh")
def refresh_tiktok(
    stale_only: bool = False,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    runner = get_integrations()
    summary = runner.run(platform_sync.batch_refresh_tiktok(db, stale_only=stale_only, runner=runner))
    return ok(summary["message"], summary)
