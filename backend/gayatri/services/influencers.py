from __future__ import annotations

from typing import Any, Dict, List, Sequence

from sqlalchemy.orm import Session

from ..core.errors import ConflictError, NotFoundError, PermissionDeniedError
from ..models.influencer import Category, Influencer, InfluencerCategory
from ..models.platform import InfluencerPlatform, Platform
from ..models.user import User, UserRole
from .catalog import get_category


def get_influencer(db: Session, influencer_id: int) -> Influencer:
    influencer = db.query(Influencer).filter(Influencer.id == influencer_id).first()
    if not influencer:
        raise NotFoundError("Influencer not found")
    return influencer


def get_influencer_for_user(db: Session, user: User) -> Influencer:
    influencer = db.query(Influencer).filter(Influencer.user_id == user.id).first()
    if not influencer:
        raise NotFoundError("Influencer profile not found")
    return influencer


def resolve_influencer(db: Session, user: User, influencer_id: int | None = None) -> Influencer:
    """
    Influencers act on their own profile; admins may name any influencer.
    """
    if user.role == UserRole.ADMIN and influencer_id is not None:
        return get_influencer(db, influencer_id)
    if user.role != UserRole.INFLUENCER:
        raise PermissionDeniedError("Only influencers can manage an influencer profile")
    influencer = get_influencer_for_user(db, user)
    if influencer_id is not None and influencer_id != influencer.id:
        raise PermissionDeniedError("You can only manage your own profile")
    return influencer


def influencer_user(db: Session, influencer_id: int) -> User | None:
    return (
        db.query(User)
        .join(Influencer, Influencer.user_id == User.id)
        .filter(Influencer.id == influencer_id)
        .first()
    )


def list_influencers(db: Session, category_id: int | None = None) -> List[Dict[str, Any]]:
    """Directory of influencers with their categories and connected platforms."""
    q = db.query(Influencer, User).join(User, User.id == Influencer.user_id)
    if category_id is not None:
        q = q.join(
            InfluencerCategory, InfluencerCategory.influencer_id == Influencer.id
        ).filter(InfluencerCategory.category_id == category_id)

    out: List[Dict[str, Any]] = []
    for influencer, user in q.order_by(User.name.asc()).all():
        platforms = (
            db.query(InfluencerPlatform, Platform)
            .join(Platform, Platform.id == InfluencerPlatform.platform_id)
            .filter(InfluencerPlatform.influencer_id == influencer.id)
            .all()
        )
        out.append(
            {
                "id": influencer.id,
                "user_id": user.id,
                "name": user.name,
                "email": user.email,
                "categories": [c.name for c in list_influencer_categories(db, influencer.id)],
                "platforms": [
                    {
                        "platform": p.name,
                        "username": ip.username,
                        "followers": ip.followers,
                        "engagement_rate": ip.engagement_rate,
                    }
                    for ip, p in platforms
                ],
            }
        )
    return out


def list_influencer_categories(db: Session, influencer_id: int) -> List[Category]:
    return (
        db.query(Category)
        .join(InfluencerCategory, InfluencerCategory.category_id == Category.id)
        .filter(InfluencerCategory.influencer_id == influencer_id)
        .order_by(Category.name.asc())
        .all()
    )


def add_influencer_category(db: Session, influencer: Influencer, category_id: int) -> Category:
    category = get_category(db, category_id)
    exists = (
        db.query(InfluencerCategory)
        .filter(
            InfluencerCategory.influencer_id == influencer.id,
            InfluencerCategory.category_id == category_id,
        )
        .first()
    )
    if exists:
        raise ConflictError("Category already added")
    db.add(InfluencerCategory(influencer_id=influencer.id, category_id=category_id))
    db.commit()
    return category


def remove_influencer_category(db: Session, influencer: Influencer, category_id: int) -> None:
    deleted = (
        db.query(InfluencerCategory)
        .filter(
            InfluencerCategory.influencer_id == influencer.id,
            InfluencerCategory.category_id == category_id,
        )
        .delete(synchronize_session=False)
    )
    if not deleted:
        raise NotFoundError("Category not assigned to this influencer")
    db.commit()


def replace_influencer_categories(
    db: Session, influencer: Influencer, category_ids: Sequence[int]
) -> List[Category]:
    wanted = list(dict.fromkeys(category_ids))
    for cid in wanted:
        get_category(db, cid)

    db.query(InfluencerCategory).filter(
        InfluencerCategory.influencer_id == influencer.id
    ).delete(synchronize_session=False)
    for cid in wanted:
        db.add(InfluencerCategory(influencer_id=influencer.id, category_id=cid))
    db.commit()
    return list_influencer_categories(db, influencer.id)
