from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.db import get_db
from ..models.user import User, UserRole
from ..schemas.catalog import CategoryOut, InfluencerCategoriesIn
from ..schemas.platform import RateCardIn, RateCardOut
from ..services import influencers as influencer_service
from ..services import metrics as metrics_service
from ..services import rate_cards as rate_card_service
from ..services.campaigns import get_campaign_for_user
from .deps import get_current_user, ok, require_influencer, require_roles

router = APIRouter(tags=["influencers"])


@router.get("/influencers")
def list_influencers(
    category_id: int | None = None,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(UserRole.ADMIN, UserRole.BRAND)),
):
    return influencer_service.list_influencers(db, category_id=category_id)


# Own categories

@router.get("/influencers/me/categories")
def my_categories(db: Session = Depends(get_db), user: User = Depends(require_influencer)):
    influencer = influencer_service.get_influencer_for_user(db, user)
    return [
        CategoryOut.model_validate(c).model_dump()
        for c in influencer_service.list_influencer_categories(db, influencer.id)
    ]


@router.post("/influencers/me/categories/{category_id}", status_code=201)
def add_category(
    category_id: int, db: Session = Depends(get_db), user: User = Depends(require_influencer)
):
    influencer = influencer_service.get_influencer_for_user(db, user)
    category = influencer_service.add_influencer_category(db, influencer, category_id)
    return ok("Category added", CategoryOut.model_validate(category).model_dump())


@router.delete("/influencers/me/categories/{category_id}")
def remove_category(
    category_id: int, db: Session = Depends(get_db), user: User = Depends(require_influencer)
):
    influencer = influencer_service.get_influencer_for_user(db, user)
    influencer_service.remove_influencer_category(db, influencer, category_id)
    return ok("Category removed")


@router.put("/influencers/me/categories")
def replace_categories(
    payload: InfluencerCategoriesIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_influencer),
):
    influencer = influencer_service.get_influencer_for_user(db, user)
    categories = influencer_service.replace_influencer_categories(db, influencer, payload.category_ids)
    return ok(
        "Categories updated",
        [CategoryOut.model_validate(c).model_dump() for c in categories],
    )


# Metrics

@router.get("/influencers/{influencer_id}/growth")
def growth(
    influencer_id: int,
    campaign_id: int | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    _check_influencer_visibility(db, user, influencer_id, campaign_id)
    return metrics_service.growth_metrics(db, influencer_id, campaign_id)


@router.get("/influencers/{influencer_id}/campaigns/{campaign_id}/performance")
def campaign_performance(
    influencer_id: int,
    campaign_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    _check_influencer_visibility(db, user, influencer_id, campaign_id)
    return metrics_service.campaign_performance_summary(db, influencer_id, campaign_id)


@router.get("/influencers/{influencer_id}/top-platforms")
def top_platforms(
    influencer_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    _check_influencer_visibility(db, user, influencer_id, None)
    return metrics_service.top_platforms(db, influencer_id)


def _check_influencer_visibility(
    db: Session, user: User, influencer_id: int, campaign_id: int | None
) -> None:
    """Influencers see themselves; brands and admins see any influencer (scoped to campaigns they can see)."""
    if user.role == UserRole.INFLUENCER:
        influencer_service.resolve_influencer(db, user, influencer_id)
    else:
        influencer_service.get_influencer(db, influencer_id)
    if campaign_id is not None:
        get_campaign_for_user(db, user, campaign_id)


# Rate cards

@router.get("/influencers/{influencer_id}/rate-cards")
def list_rate_cards(
    influencer_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    influencer_service.get_influencer(db, influencer_id)
    return rate_card_service.list_rate_cards(db, influencer_id)


@router.put("/rate-cards")
def upsert_rate_card(
    payload: RateCardIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.ADMIN, UserRole.INFLUENCER)),
):
    card = rate_card_service.upsert_rate_card(
        db, user, payload.influencer_platform_id, payload.service_id, payload.price, payload.notes
    )
    return ok("Rate card saved", RateCardOut.model_validate(card).model_dump())


@router.delete("/rate-cards/{rate_card_id}")
def delete_rate_card(
    rate_card_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.ADMIN, UserRole.INFLUENCER)),
):
    rate_card_service.delete_rate_card(db, user, rate_card_id)
    return ok("Rate card deleted")
