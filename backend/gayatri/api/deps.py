from typing import Any, Callable

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..core.db import get_db
from ..core.errors import AuthenticationError, PermissionDeniedError
from ..core.security import decode_access_token
from ..models.user import User, UserRole

settings = get_settings()
bearer_scheme = HTTPBearer(auto_error=False)


def ok(message: str, data: Any = None) -> dict:
    """Envelope for successful mutations."""
    body = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return body


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the caller from ``Authorization: Bearer`` or the auth cookie.

    The user row is reloaded on every request so role changes and deletions
    take effect immediately, whatever the token claims.
    """
    token = credentials.credentials if credentials else request.cookies.get(settings.AUTH_COOKIE_NAME)
    if not token:
        raise AuthenticationError("Not authenticated")

    claims = decode_access_token(token)
    if claims is None:
        raise AuthenticationError("Invalid or expired token")

    try:
        user_id = int(claims["sub"])
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid or expired token")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise AuthenticationError("User no longer exists")
    return user


def require_roles(*roles: UserRole) -> Callable[..., User]:
    allowed = frozenset(roles)

    def _dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise PermissionDeniedError("You do not have permission to perform this action")
        return user

    return _dependency


require_admin = require_roles(UserRole.ADMIN)
require_brand = require_roles(UserRole.BRAND)
require_influencer = require_roles(UserRole.INFLUENCER)
