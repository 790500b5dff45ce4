from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.db import get_db
from ..models.user import User
from ..schemas.platform import ConnectionOut, OAuthCallback
from ..services import platform_sync
from ..services.integrations import get_integrations
from .deps import get_current_user, ok, require_influencer

router = APIRouter(tags=["platforms"])


@router.get("/connections")
def list_connections(db: Session = Depends(get_db), user: User = Depends(require_influencer)):
    return platform_sync.list_connections(db, user)


@router.post("/connections/{provider}/authorize")
def authorize(
    provider: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_influencer),
):
    return platform_sync.initiate_auth(db, user, provider)


@router.post("/connections/{provider}/callback")
def oauth_callback(
    provider: str,
    payload: OAuthCallback,
    db: Session = Depends(get_db),
    user: User = Depends(require_influencer),
):
    runner = get_integrations()
    connection = runner.run(
        platform_sync.handle_callback(db, user, provider, payload.code, payload.state, runner=runner)
    )
    return ok("Account connected", ConnectionOut.model_validate(connection).model_dump())


@router.post("/connections/{connection_id}/refresh")
def refresh_connection(
    connection_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    runner = get_integrations()
    connection = runner.run(platform_sync.refresh_connection(db, user, connection_id, runner=runner))
    return ok("Account refreshed", ConnectionOut.model_validate(connection).model_dump())


@router.delete("/connections/{connection_id}")
def disconnect(
    connection_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    platform_sync.disconnect(db, user, connection_id)
    return ok("Account disconnected")
