from __future__ import annotations

from typing import List

from sqlalchemy.orm import Session

from ..core.errors import NotFoundError, PermissionDeniedError, ServiceError
from ..models.brand import Brand
from ..models.user import User, UserRole


def get_brand(db: Session, brand_id: int) -> Brand:
    brand = db.query(Brand).filter(Brand.id == brand_id).first()
    if not brand:
        raise NotFoundError("Brand not found")
    return brand


def get_owned_brand(db: Session, user: User, brand_id: int) -> Brand:
    """Return the brand if ``user`` owns it (admins may act on any brand)."""
    brand = get_brand(db, brand_id)
    if user.role != UserRole.ADMIN and brand.user_id != user.id:
        raise PermissionDeniedError("You do not have access to this brand")
    return brand


def list_brands(db: Session, user: User) -> List[Brand]:
    q = db.query(Brand)
    if user.role != UserRole.ADMIN:
        q = q.filter(Brand.user_id == user.id)
    return q.order_by(Brand.created_at.desc(), Brand.id.desc()).all()


def create_brand(db: Session, user: User, name: str) -> Brand:
    name = (name or "").strip()
    if not name:
        raise ServiceError("Brand name is required")
    brand = Brand(name=name, user_id=user.id)
    db.add(brand)
    db.commit()
    db.refresh(brand)
    return brand


def update_brand(db: Session, user: User, brand_id: int, name: str) -> Brand:
    brand = get_owned_brand(db, user, brand_id)
    name = (name or "").strip()
    if not name:
        raise ServiceError("Brand name is required")
    brand.name = name
    db.commit()
    db.refresh(brand)
    return brand


def delete_brand(db: Session, user: User, brand_id: int) -> None:
    brand = get_owned_brand(db, user, brand_id)
    db.delete(brand)
    db.commit()
