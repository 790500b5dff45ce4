from __future__ import annotations

import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..core.errors import NotFoundError, PermissionDeniedError, ServiceError
from ..models.influencer import Influencer
from ..models.platform import InfluencerPlatform, Platform, RateCard, Service
from ..models.user import User, UserRole

logger = logging.getLogger(__name__)
settings = get_settings()

# Engagement multiplier bounds relative to the baseline engagement rate
MIN_ENGAGEMENT_MULTIPLIER = 0.5
MAX_ENGAGEMENT_MULTIPLIER = 3.0


def compute_auto_price(followers: int, engagement_rate: float) -> int:
    """
    followers x price-per-follower x engagement multiplier, rounded to the
    nearest 1,000 and never below the configured minimum.
    """
    baseline = settings.RATE_CARD_BASELINE_ENGAGEMENT or 1.0
    multiplier = (engagement_rate or 0) / baseline
    multiplier = max(MIN_ENGAGEMENT_MULTIPLIER, min(multiplier, MAX_ENGAGEMENT_MULTIPLIER))

    raw = max(followers or 0, 0) * settings.RATE_CARD_PRICE_PER_FOLLOWER * multiplier
    rounded = int(round(raw / 1000.0)) * 1000
    return max(rounded, settings.RATE_CARD_MINIMUM_PRICE)


def create_rate_cards_if_needed(db: Session, connection: InfluencerPlatform) -> List[RateCard]:
    """
    Add an auto-generated card for every active service of the connection's
    platform that has none yet. Existing cards, manual or automatic, are left
    untouched. The caller commits.
    """
    existing = {
        row.service_id
        for row in db.query(RateCard.service_id)
        .filter(RateCard.influencer_platform_id == connection.id)
        .all()
    }
    services = (
        db.query(Service)
        .filter(Service.platform_id == connection.platform_id, Service.is_active.is_(True))
        .all()
    )
    price = compute_auto_price(connection.followers, connection.engagement_rate)

    created: List[RateCard] = []
    for service in services:
        if service.id in existing:
            continue
        card = RateCard(
            influencer_platform_id=connection.id,
            service_id=service.id,
            price=price,
            currency=settings.RATE_CARD_CURRENCY,
            is_auto_generated=True,
            notes=f"Auto-generated from {connection.followers} followers at "
            f"{connection.engagement_rate}% engagement",
        )
        db.add(card)
        created.append(card)

    if created:
        logger.info(
            "Created %s auto rate cards",
            len(created),
            extra={"step": "rate_cards", "connector": str(connection.platform_id)},
        )
    return created


def list_rate_cards(db: Session, influencer_id: int) -> List[Dict[str, Any]]:
    rows = (
        db.query(RateCard, InfluencerPlatform, Platform, Service)
        .join(InfluencerPlatform, InfluencerPlatform.id == RateCard.influencer_platform_id)
        .join(Platform, Platform.id == InfluencerPlatform.platform_id)
        .outerjoin(Service, Service.id == RateCard.service_id)
        .filter(InfluencerPlatform.influencer_id == influencer_id)
        .order_by(Platform.name.asc(), RateCard.id.asc())
        .all()
    )
    return [
        {
            "id": card.id,
            "influencer_platform_id": connection.id,
            "platform": platform.name,
            "service_id": card.service_id,
            "service": service.name if service else None,
            "price": card.price,
            "currency": card.currency,
            "is_auto_generated": card.is_auto_generated,
            "notes": card.notes,
        }
        for card, connection, platform, service in rows
    ]


def _owned_connection(db: Session, user: User, influencer_platform_id: int) -> InfluencerPlatform:
    connection = (
        db.query(InfluencerPlatform)
        .filter(InfluencerPlatform.id == influencer_platform_id)
        .first()
    )
    if not connection:
        raise NotFoundError("Platform connection not found")
    if user.role == UserRole.ADMIN:
        return connection
    owner = db.query(Influencer).filter(Influencer.id == connection.influencer_id).first()
    if not owner or owner.user_id != user.id:
        raise PermissionDeniedError("You can only manage your own rate cards")
    return connection


def upsert_rate_card(
    db: Session,
    user: User,
    influencer_platform_id: int,
    service_id: int,
    price: int,
    notes: str | None = None,
) -> RateCard:
    if price is None or price <= 0:
        raise ServiceError("Price must be greater than zero")
    connection = _owned_connection(db, user, influencer_platform_id)
    service = db.query(Service).filter(Service.id == service_id).first()
    if not service or service.platform_id != connection.platform_id:
        raise ServiceError("Service does not belong to this platform")

    card = (
        db.query(RateCard)
        .filter(
            RateCard.influencer_platform_id == connection.id,
            RateCard.service_id == service_id,
        )
        .first()
    )
    if card is None:
        card = RateCard(
            influencer_platform_id=connection.id,
            service_id=service_id,
            currency=settings.RATE_CARD_CURRENCY,
        )
        db.add(card)
    card.price = int(price)
    card.notes = notes
    card.is_auto_generated = False
    db.commit()
    db.refresh(card)
    return card


def delete_rate_card(db: Session, user: User, rate_card_id: int) -> None:
    card = db.query(RateCard).filter(RateCard.id == rate_card_id).first()
    if not card:
        raise NotFoundError("Rate card not found")
    _owned_connection(db, user, card.influencer_platform_id)
    db.delete(card)
    db.commit()
