"""
Reference data maintained by admins: categories, platforms and the services
(deliverable types) offered on each platform.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.errors import ConflictError, NotFoundError, ServiceError
from ..models.influencer import Category, InfluencerCategory
from ..models.platform import Platform, Service


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

def list_categories(db: Session) -> List[Category]:
    return db.query(Category).order_by(Category.name.asc()).all()


def get_category(db: Session, category_id: int) -> Category:
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        raise NotFoundError("Category not found")
    return category


def create_category(db: Session, name: str, description: str | None = None) -> Category:
    name = (name or "").strip()
    if not name:
        raise ServiceError("Category name is required")
    if db.query(Category).filter(Category.name == name).first():
        raise ConflictError("Category already exists")
    category = Category(name=name, description=description)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def update_category(
    db: Session, category_id: int, name: str | None = None, description: str | None = None
) -> Category:
    category = get_category(db, category_id)
    if name is not None:
        name = name.strip()
        clash = (
            db.query(Category)
            .filter(Category.name == name, Category.id != category_id)
            .first()
        )
        if clash:
            raise ConflictError("Category already exists")
        category.name = name
    if description is not None:
        category.description = description
    db.commit()
    db.refresh(category)
    return category


def delete_category(db: Session, category_id: int) -> None:
    category = get_category(db, category_id)
    db.query(InfluencerCategory).filter(
        InfluencerCategory.category_id == category_id
    ).delete(synchronize_session=False)
    db.delete(category)
    db.commit()


# ---------------------------------------------------------------------------
# Platforms
# ---------------------------------------------------------------------------

def get_platform(db: Session, platform_id: int) -> Platform:
    platform = db.query(Platform).filter(Platform.id == platform_id).first()
    if not platform:
        raise NotFoundError("Platform not found")
    return platform


def get_platform_by_name(db: Session, name: str) -> Optional[Platform]:
    # Platform names are matched case-insensitively ("tiktok" == "TikTok")
    for platform in db.query(Platform).all():
        if platform.name.lower() == name.lower():
            return platform
    return None


def get_or_create_platform(db: Session, name: str) -> Platform:
    platform = get_platform_by_name(db, name)
    if platform is None:
        platform = Platform(name=name)
        db.add(platform)
        db.flush()
    return platform


def list_platforms(db: Session, include_services: bool = False) -> List[Dict]:
    platforms = db.query(Platform).order_by(Platform.name.asc()).all()
    out: List[Dict] = []
    for p in platforms:
        row: Dict = {"id": p.id, "name": p.name, "created_at": p.created_at}
        if include_services:
            row["services"] = [
                {
                    "id": s.id,
                    "name": s.name,
                    "type": s.type,
                    "is_active": s.is_active,
                }
                for s in list_services(db, platform_id=p.id)
            ]
        out.append(row)
    return out


def create_platform(db: Session, name: str) -> Platform:
    name = (name or "").strip()
    if not name:
        raise ServiceError("Platform name is required")
    if get_platform_by_name(db, name):
        raise ConflictError("Platform already exists")
    platform = Platform(name=name)
    db.add(platform)
    db.commit()
    db.refresh(platform)
    return platform


def update_platform(db: Session, platform_id: int, name: str) -> Platform:
    platform = get_platform(db, platform_id)
    name = (name or "").strip()
    existing = get_platform_by_name(db, name)
    if existing and existing.id != platform_id:
        raise ConflictError("Platform already exists")
    platform.name = name
    db.commit()
    db.refresh(platform)
    return platform


def delete_platform(db: Session, platform_id: int) -> None:
    platform = get_platform(db, platform_id)
    db.query(Service).filter(Service.platform_id == platform_id).delete(
        synchronize_session=False
    )
    db.delete(platform)
    db.commit()


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

def get_service(db: Session, service_id: int) -> Service:
    service = db.query(Service).filter(Service.id == service_id).first()
    if not service:
        raise NotFoundError("Service not found")
    return service


def list_services(
    db: Session, platform_id: int | None = None, active_only: bool = False
) -> List[Service]:
    q = db.query(Service)
    if platform_id is not None:
        q = q.filter(Service.platform_id == platform_id)
    if active_only:
        q = q.filter(Service.is_active.is_(True))
    return q.order_by(Service.name.asc()).all()


def _ensure_unique_service_name(
    db: Session, platform_id: int, name: str, exclude_id: int | None = None
) -> None:
    q = db.query(Service).filter(Service.platform_id == platform_id, Service.name == name)
    if exclude_id is not None:
        q = q.filter(Service.id != exclude_id)
    if q.first():
        raise ConflictError("A service with this name already exists for the platform")


def create_service(
    db: Session,
    platform_id: int,
    name: str,
    description: str | None = None,
    type: str = "post",
    is_active: bool = True,
) -> Service:
    get_platform(db, platform_id)
    name = (name or "").strip()
    if not name:
        raise ServiceError("Service name is required")
    _ensure_unique_service_name(db, platform_id, name)
    service = Service(
        platform_id=platform_id,
        name=name,
        description=description,
        type=type,
        is_active=is_active,
    )
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


def update_service(
    db: Session,
    service_id: int,
    name: str | None = None,
    description: str | None = None,
    type: str | None = None,
    is_active: bool | None = None,
) -> Service:
    service = get_service(db, service_id)
    if name is not None:
        name = name.strip()
        _ensure_unique_service_name(db, service.platform_id, name, exclude_id=service_id)
        service.name = name
    if description is not None:
        service.description = description
    if type is not None:
        service.type = type
    if is_active is not None:
        service.is_active = is_active
    db.commit()
    db.refresh(service)
    return service


def toggle_service(db: Session, service_id: int) -> Service:
    service = get_service(db, service_id)
    service.is_active = not service.is_active
    db.commit()
    db.refresh(service)
    return service


def delete_service(db: Session, service_id: int) -> None:
    service = get_service(db, service_id)
    db.delete(service)
    db.commit()
