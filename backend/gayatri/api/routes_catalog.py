from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.db import get_db
from ..models.user import User
from ..schemas.catalog import (
    CategoryIn,
    CategoryOut,
    CategoryUpdate,
    PlatformIn,
    PlatformOut,
    ServiceIn,
    ServiceOut,
    ServiceUpdate,
)
from ..services import catalog
from .deps import get_current_user, ok, require_admin

router = APIRouter(tags=["catalog"])


# Categories

@router.get("/categories")
def list_categories(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return [CategoryOut.model_validate(c).model_dump() for c in catalog.list_categories(db)]


@router.post("/categories", status_code=201)
def create_category(
    payload: CategoryIn, db: Session = Depends(get_db), _: User = Depends(require_admin)
):
    category = catalog.create_category(db, payload.name, payload.description)
    return ok("Category created", CategoryOut.model_validate(category).model_dump())


@router.patch("/categories/{category_id}")
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    category = catalog.update_category(db, category_id, payload.name, payload.description)
    return ok("Category updated", CategoryOut.model_validate(category).model_dump())


@router.delete("/categories/{category_id}")
def delete_category(
    category_id: int, db: Session = Depends(get_db), _: User = Depends(require_admin)
):
    catalog.delete_category(db, category_id)
    return ok("Category deleted")


# Platforms

@router.get("/platforms")
def list_platforms(
    include_services: bool = False,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return catalog.list_platforms(db, include_services=include_services)


@router.post("/platforms", status_code=201)
def create_platform(
    payload: PlatformIn, db: Session = Depends(get_db), _: User = Depends(require_admin)
):
    platform = catalog.create_platform(db, payload.name)
    return ok("Platform created", PlatformOut.model_validate(platform).model_dump())


@router.patch("/platforms/{platform_id}")
def update_platform(
    platform_id: int,
    payload: PlatformIn,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    platform = catalog.update_platform(db, platform_id, payload.name)
    return ok("Platform updated", PlatformOut.model_validate(platform).model_dump())


@router.delete("/platforms/{platform_id}")
def delete_platform(
    platform_id: int, db: Session = Depends(get_db), _: User = Depends(require_admin)
):
    catalog.delete_platform(db, platform_id)
    return ok("Platform deleted")


# Services

@router.get("/services")
def list_services(
    platform_id: int | None = None,
    active_only: bool = False,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return [
        ServiceOut.model_validate(s).model_dump()
        for s in catalog.list_services(db, platform_id=platform_id, active_only=active_only)
    ]


@router.post("/services", status_code=201)
def create_service(
    payload: ServiceIn, db: Session = Depends(get_db), _: User = Depends(require_admin)
):
    service = catalog.create_service(
        db,
        payload.platform_id,
        payload.name,
        description=payload.description,
        type=payload.type,
        is_active=payload.is_active,
    )
    return ok("Service created", ServiceOut.model_validate(service).model_dump())


@router.patch("/services/{service_id}")
def update_service(
    service_id: int,
    payload: ServiceUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    service = catalog.update_service(db, service_id, **payload.model_dump(exclude_unset=True))
    return ok("Service updated", ServiceOut.model_validate(service).model_dump())


@router.post("/services/{service_id}/toggle")
def toggle_service(
    service_id: int, db: Session = Depends(get_db), _: User = Depends(require_admin)
):
    service = catalog.toggle_service(db, service_id)
    state = "activated" if service.is_active else "deactivated"
    return ok(f"Service {state}", ServiceOut.model_validate(service).model_dump())


@router.delete("/services/{service_id}")
def delete_service(
    service_id: int, db: Session = Depends(get_db), _: User = Depends(require_admin)
):
    catalog.delete_service(db, service_id)
    return ok("Service deleted")
