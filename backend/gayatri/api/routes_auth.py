import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..core.db import get_db
from ..core.security import create_access_token
from ..models.user import User
from ..schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RoleAssignRequest,
    SignupRequest,
    TokenOut,
    UserOut,
)
from ..services import users as user_service
from .deps import get_current_user, ok

router = APIRouter(tags=["auth"])

settings = get_settings()
logger = logging.getLogger(__name__)


def _session_payload(user: User, response: Response) -> dict:
    token = create_access_token(user.id, user.role.value if user.role else None)
    response.set_cookie(
        settings.AUTH_COOKIE_NAME,
        token,
        httponly=True,
        samesite="lax",
        secure=settings.ENV.lower() == "prod",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return TokenOut(
        access_token=token,
        user=UserOut.model_validate(user),
        redirect_to=user_service.dashboard_path(user.role),
    ).model_dump()


@router.post("/auth/signup", status_code=201)
def signup(payload: SignupRequest, response: Response, db: Session = Depends(get_db)):
    user = user_service.signup(db, payload.name, payload.email, payload.password, payload.role)
    return ok("Account created", _session_payload(user, response))


@router.post("/auth/login")
def login(payload: LoginRequest, response: Response, db: Session = Depends(get_db)):
    user = user_service.authenticate(db, payload.email, payload.password)
    logger.info("User logged in", extra={"user_id": user.id, "step": "login"})
    return ok("Logged in", _session_payload(user, response))


@router.post("/auth/logout")
def logout(response: Response):
    response.delete_cookie(settings.AUTH_COOKIE_NAME)
    return ok("Logged out")


@router.get("/auth/me")
def me(user: User = Depends(get_current_user)):
    return {
        **UserOut.model_validate(user).model_dump(),
        "role_display_name": user_service.role_display_name(user.role),
        "dashboard": user_service.dashboard_path(user.role),
    }


@router.post("/auth/role")
def assign_role(
    payload: RoleAssignRequest,
    response: Response,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    user = user_service.assign_own_role(db, user, payload.role)
    # Re-issue the session so the new role is in the token
    return ok("Role updated", _session_payload(user, response))


@router.patch("/auth/profile")
def update_profile(
    payload: ProfileUpdateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    user = user_service.update_profile(
        db,
        user,
        name=payload.name,
        current_password=payload.current_password,
        new_password=payload.new_password,
    )
    return ok("Profile updated", UserOut.model_validate(user).model_dump())


@router.post("/auth/change-password")
def change_password(
    payload: ChangePasswordRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    user_service.change_password(
        db, user, payload.current_password, payload.new_password, payload.confirm_password
    )
    return ok("Password changed")
