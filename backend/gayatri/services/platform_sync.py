"""
Influencer platform connections: OAuth authorization, account sync and
periodic refresh.

Network calls run concurrently through the IntegrationRunner; every database
write happens afterwards, sequentially, on the caller's session.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

import httpx
from sqlalchemy.orm import Session
from tenacity import RetryError

from ..core.celery_app import celery_app
from ..core.config import get_settings
from ..core.db import SessionLocal
from ..core.errors import IntegrationError, NotFoundError, PermissionDeniedError, ServiceError
from ..models.platform import InfluencerPlatform, OAuthState, Platform
from ..models.user import User, UserRole
from .catalog import get_or_create_platform, get_platform_by_name
from .influencers import get_influencer_for_user
from .integrations import IntegrationRunner, get_integrations
from .integrations.base import BasePlatformClient, PlatformProfile, TokenSet
from .integrations.oauth import code_challenge_s256, generate_code_verifier, generate_state
from .rate_cards import create_rate_cards_if_needed

logger = logging.getLogger(__name__)
settings = get_settings()

PLATFORM_NAMES = {"tiktok": "TikTok", "instagram": "Instagram"}


def _provider_key(provider: str) -> str:
    key = (provider or "").lower()
    if key not in PLATFORM_NAMES:
        raise ServiceError(f"Unsupported platform: {provider}")
    return key


async def _call(coro, provider: str):
    """Normalise transport failures into IntegrationError."""
    try:
        return await coro
    except RetryError as e:
        raise IntegrationError(f"{PLATFORM_NAMES[provider]} API unavailable, retries exhausted") from e
    except httpx.HTTPError as e:
        raise IntegrationError(f"{PLATFORM_NAMES[provider]} API request failed: {e}") from e


# ---------------------------------------------------------------------------
# OAuth state
# ---------------------------------------------------------------------------

def purge_expired_states(db: Session, now: datetime | None = None) -> int:
    now = now or datetime.utcnow()
    cutoff = now - timedelta(minutes=settings.OAUTH_STATE_TTL_MINUTES)
    return (
        db.query(OAuthState)
        .filter(OAuthState.created_at < cutoff)
        .delete(synchronize_session=False)
    )


def initiate_auth(
    db: Session,
    user: User,
    provider: str,
    runner: IntegrationRunner | None = None,
) -> Dict[str, str]:
    """Store a fresh state (and PKCE verifier) and return the consent URL."""
    if user.role != UserRole.INFLUENCER:
        raise PermissionDeniedError("Only influencers can connect platform accounts")
    key = _provider_key(provider)
    client = (runner or get_integrations()).get(key)
    if not client.is_configured():
        raise ServiceError(f"{PLATFORM_NAMES[key]} integration is not configured")

    purge_expired_states(db)
    state = generate_state()
    verifier = generate_code_verifier() if client.uses_pkce else None
    db.add(
        OAuthState(
            state=state,
            code_verifier=verifier,
            user_id=user.id,
            provider=key,
            redirect_uri=getattr(client, "redirect_uri", None),
        )
    )
    db.commit()

    challenge = code_challenge_s256(verifier) if verifier else None
    return {"auth_url": client.authorization_url(state, challenge), "state": state}


def consume_state(db: Session, user: User, provider: str, state: str) -> OAuthState:
    """Look up the stored state; it must belong to this user and still be fresh."""
    row = db.query(OAuthState).filter(OAuthState.state == state).first()
    if row is None or row.user_id != user.id or row.provider != provider:
        raise ServiceError("Invalid or unknown OAuth state")
    ttl = timedelta(minutes=settings.OAUTH_STATE_TTL_MINUTES)
    if row.created_at < datetime.utcnow() - ttl:
        db.delete(row)
        db.commit()
        raise ServiceError("OAuth state has expired, please try connecting again")
    return row


# ---------------------------------------------------------------------------
# Applying provider data
# ---------------------------------------------------------------------------

def _apply_tokens(connection: InfluencerPlatform, tokens: TokenSet, now: datetime) -> None:
    connection.access_token = tokens["access_token"]
    if tokens.get("refresh_token"):
        connection.refresh_token = tokens["refresh_token"]
    expires_in = tokens.get("expires_in")
    connection.token_expires_at = now + timedelta(seconds=int(expires_in)) if expires_in else None


def _apply_profile(
    connection: InfluencerPlatform, provider: str, profile: PlatformProfile, now: datetime
) -> None:
    connection.username = profile["username"]
    if provider == "tiktok":
        connection.open_id = profile.get("external_id") or connection.open_id
    else:
        connection.ig_user_id = profile.get("external_id") or connection.ig_user_id
    for field in ("followers", "following", "posts", "likes", "comments", "shares", "saves"):
        setattr(connection, field, int(profile.get(field) or 0))
    connection.engagement_rate = float(profile.get("engagement_rate") or 0.0)
    connection.platform_data = dict(profile.get("platform_data") or {})
    connection.last_synced = now


async def handle_callback(
    db: Session,
    user: User,
    provider: str,
    code: str,
    state: str,
    runner: IntegrationRunner | None = None,
) -> InfluencerPlatform:
    """
    Finish the OAuth flow: exchange the code, pull the profile, upsert the
    connection, seed rate cards and discard the state.
    """
    key = _provider_key(provider)
    if not code:
        raise ServiceError("Authorization code is missing")
    influencer = get_influencer_for_user(db, user)
    oauth_state = consume_state(db, user, key, state)
    client = (runner or get_integrations()).get(key)

    tokens = await _call(client.exchange_code(code, oauth_state.code_verifier), key)
    profile = await _call(client.fetch_profile(tokens["access_token"]), key)

    now = datetime.utcnow()
    platform = get_or_create_platform(db, PLATFORM_NAMES[key])
    connection = (
        db.query(InfluencerPlatform)
        .filter(
            InfluencerPlatform.influencer_id == influencer.id,
            InfluencerPlatform.platform_id == platform.id,
        )
        .first()
    )
    if connection is None:
        connection = InfluencerPlatform(influencer_id=influencer.id, platform_id=platform.id)
        db.add(connection)

    if tokens.get("external_id"):
        profile.setdefault("external_id", tokens["external_id"])
    _apply_tokens(connection, tokens, now)
    _apply_profile(connection, key, profile, now)
    db.flush()

    create_rate_cards_if_needed(db, connection)
    db.delete(oauth_state)
    db.commit()
    db.refresh(connection)

    logger.info(
        "Platform account connected",
        extra={"user_id": user.id, "connector": key, "step": "oauth_callback"},
    )
    return connection


# ---------------------------------------------------------------------------
# Connections
# ---------------------------------------------------------------------------

def list_connections(db: Session, user: User) -> List[Dict[str, Any]]:
    influencer = get_influencer_for_user(db, user)
    rows = (
        db.query(InfluencerPlatform, Platform)
        .join(Platform, Platform.id == InfluencerPlatform.platform_id)
        .filter(InfluencerPlatform.influencer_id == influencer.id)
        .order_by(Platform.name.asc())
        .all()
    )
    return [
        {
            "id": connection.id,
            "platform": platform.name,
            "username": connection.username,
            "followers": connection.followers,
            "following": connection.following,
            "posts": connection.posts,
            "engagement_rate": connection.engagement_rate,
            "last_synced": connection.last_synced,
            "platform_data": connection.platform_data,
        }
        for connection, platform in rows
    ]


def _get_connection_for_user(db: Session, user: User, connection_id: int) -> InfluencerPlatform:
    connection = (
        db.query(InfluencerPlatform).filter(InfluencerPlatform.id == connection_id).first()
    )
    if not connection:
        raise NotFoundError("Platform connection not found")
    if user.role != UserRole.ADMIN:
        influencer = get_influencer_for_user(db, user)
        if connection.influencer_id != influencer.id:
            raise PermissionDeniedError("You can only manage your own connections")
    return connection


def disconnect(db: Session, user: User, connection_id: int) -> None:
    connection = _get_connection_for_user(db, user, connection_id)
    db.delete(connection)
    db.commit()
    logger.info(
        "Platform account disconnected",
        extra={"user_id": user.id, "step": "disconnect"},
    )


def _provider_of(db: Session, connection: InfluencerPlatform) -> Optional[str]:
    platform = db.query(Platform).filter(Platform.id == connection.platform_id).first()
    if platform is None:
        return None
    name = platform.name.lower()
    return name if name in PLATFORM_NAMES else None


async def _pull_updates(
    client: BasePlatformClient,
    provider: str,
    access_token: str | None,
    refresh_token: str | None,
    token_expired: bool,
) -> Dict[str, Any]:
    tokens: Optional[TokenSet] = None
    if token_expired:
        if not refresh_token:
            raise IntegrationError("Access token expired and no refresh token is available")
        tokens = await _call(client.refresh_access_token(refresh_token), provider)
        access_token = tokens["access_token"]
    if not access_token:
        raise IntegrationError("Connection has no access token")
    profile = await _call(client.fetch_profile(access_token), provider)
    return {"tokens": tokens, "profile": profile}


async def refresh_connections(
    db: Session,
    connections: Sequence[InfluencerPlatform],
    runner: IntegrationRunner | None = None,
    now: datetime | None = None,
) -> Dict[str, Any]:
    """
    Refresh every connection concurrently; failures are logged and counted
    but never stop the batch. Commits the successful updates.
    """
    runner = runner or get_integrations()
    now = now or datetime.utcnow()

    by_id: Dict[int, InfluencerPlatform] = {}
    providers: Dict[int, str] = {}
    jobs = {}
    for connection in connections:
        provider = _provider_of(db, connection)
        if provider is None:
            continue
        by_id[connection.id] = connection
        providers[connection.id] = provider
        expired = connection.token_expires_at is not None and connection.token_expires_at <= now
        jobs[connection.id] = _pull_updates(
            runner.get(provider),
            provider,
            connection.access_token,
            connection.refresh_token,
            expired,
        )

    outcomes = await runner.gather_settled(jobs)

    results: List[Dict[str, Any]] = []
    for connection_id, outcome in outcomes.items():
        connection = by_id[connection_id]
        if not outcome.ok:
            results.append(
                {"id": connection_id, "success": False, "message": str(outcome.error)}
            )
            continue
        if outcome.value["tokens"] is not None:
            _apply_tokens(connection, outcome.value["tokens"], now)
        _apply_profile(connection, providers[connection_id], outcome.value["profile"], now)
        results.append({"id": connection_id, "success": True})

    db.commit()

    successful = sum(1 for r in results if r["success"])
    failed = len(results) - successful
    logger.info(
        "Platform refresh finished: %s successful, %s failed",
        successful,
        failed,
        extra={"step": "refresh_connections"},
    )
    return {
        "successful": successful,
        "failed": failed,
        "message": f"{successful} successful, {failed} failed",
        "results": results,
    }


async def refresh_connection(
    db: Session,
    user: User,
    connection_id: int,
    runner: IntegrationRunner | None = None,
) -> InfluencerPlatform:
    connection = _get_connection_for_user(db, user, connection_id)
    summary = await refresh_connections(db, [connection], runner=runner)
    if summary["failed"]:
        raise IntegrationError(summary["results"][0]["message"])
    db.refresh(connection)
    return connection


def stale_tiktok_connections(db: Session, now: datetime | None = None) -> List[InfluencerPlatform]:
    now = now or datetime.utcnow()
    platform = get_platform_by_name(db, PLATFORM_NAMES["tiktok"])
    if platform is None:
        return []
    cutoff = now - timedelta(minutes=settings.TIKTOK_STALE_AFTER_MINUTES)
    return (
        db.query(InfluencerPlatform)
        .filter(
            InfluencerPlatform.platform_id == platform.id,
            (InfluencerPlatform.last_synced.is_(None)) | (InfluencerPlatform.last_synced < cutoff),
        )
        .all()
    )


async def batch_refresh_tiktok(
    db: Session,
    stale_only: bool = False,
    runner: IntegrationRunner | None = None,
) -> Dict[str, Any]:
    if stale_only:
        connections = stale_tiktok_connections(db)
    else:
        platform = get_platform_by_name(db, PLATFORM_NAMES["tiktok"])
        connections = (
            db.query(InfluencerPlatform)
            .filter(InfluencerPlatform.platform_id == platform.id)
            .all()
            if platform
            else []
        )
    return await refresh_connections(db, connections, runner=runner)


@celery_app.task(name="gayatri.services.platform_sync.refresh_stale_tiktok_connections")
def refresh_stale_tiktok_connections() -> Dict[str, Any]:
    """Hourly refresh of TikTok connections not synced within the stale window."""
    db: Session = SessionLocal()
    runner = get_integrations()
    try:
        summary = runner.run(batch_refresh_tiktok(db, stale_only=True, runner=runner))
        purge_expired_states(db)
        db.commit()
        return summary
    except Exception:
        db.rollback()
        logger.exception(
            "Error during refresh_stale_tiktok_connections",
            extra={"connector": "tiktok", "step": "refresh_stale"},
        )
        raise
    finally:
        db.close()
