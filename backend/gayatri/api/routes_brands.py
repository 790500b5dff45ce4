from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.db import get_db
from ..models.user import User, UserRole
from ..schemas.catalog import BrandIn, BrandOut
from ..services import brands as brand_service
from .deps import get_current_user, ok, require_brand, require_roles

router = APIRouter(tags=["brands"])


@router.get("/brands")
def list_brands(
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.ADMIN, UserRole.BRAND)),
):
    return [BrandOut.model_validate(b).model_dump() for b in brand_service.list_brands(db, user)]


@router.post("/brands", status_code=201)
def create_brand(
    payload: BrandIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_brand),
):
    brand = brand_service.create_brand(db, user, payload.name)
    return ok("Brand created", BrandOut.model_validate(brand).model_dump())


@router.get("/brands/{brand_id}")
def get_brand(
    brand_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    brand = brand_service.get_owned_brand(db, user, brand_id)
    return BrandOut.model_validate(brand).model_dump()


@router.patch("/brands/{brand_id}")
def update_brand(
    brand_id: int,
    payload: BrandIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.ADMIN, UserRole.BRAND)),
):
    brand = brand_service.update_brand(db, user, brand_id, payload.name)
    return ok("Brand updated", BrandOut.model_validate(brand).model_dump())


@router.delete("/brands/{brand_id}")
def delete_brand(
    brand_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.ADMIN, UserRole.BRAND)),
):
    brand_service.delete_brand(db, user, brand_id)
    return ok("Brand deleted")
