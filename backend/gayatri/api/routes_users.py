from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.db import get_db
from ..models.user import User
from ..schemas.auth import AdminUserCreate, AdminUserUpdate, AuditLogOut, UserOut
from ..services import users as user_service
from .deps import ok, require_admin

router = APIRouter(tags=["users"])


@router.get("/users")
def list_users(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return [
        UserOut.model_validate(u).model_dump()
        for u in user_service.list_users(db, exclude_user_id=admin.id)
    ]


@router.post("/users", status_code=201)
def create_user(
    payload: AdminUserCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = user_service.create_user(
        db, admin, payload.name, payload.email, payload.password, payload.role
    )
    return ok("User created", UserOut.model_validate(user).model_dump())


@router.patch("/users/{user_id}")
def update_user(
    user_id: int,
    payload: AdminUserUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = user_service.update_user(
        db, admin, user_id, name=payload.name, email=payload.email, role=payload.role
    )
    return ok("User updated", UserOut.model_validate(user).model_dump())


@router.delete("/users/{user_id}")
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user_service.delete_user(db, admin, user_id)
    return ok("User deleted")


@router.get("/audit-logs")
def list_audit_logs(
    limit: int = 100,
    offset: int = 0,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    return [
        AuditLogOut.model_validate(entry).model_dump()
        for entry in user_service.list_audit_logs(db, limit=limit, offset=offset)
    ]
