from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
from tenacity import retry, wait_exponential, stop_after_attempt, retry_if_exception_type

from .base import BasePlatformClient, PlatformProfile, TokenSet
from .transport import request_json
from ...core.config import get_settings
from ...core.errors import IntegrationError

settings = get_settings()

AUTHORIZE_URL = "https://api.instagram.com/oauth/authorize"
TOKEN_URL = "https://api.instagram.com/oauth/access_token"
GRAPH_URL = "https://graph.instagram.com"

SCOPES = "user_profile,user_media"
PROFILE_FIELDS = "id,username,account_type,media_count"
MEDIA_FIELDS = "id,media_type,like_count,comments_count,timestamp"


def calculate_engagement_rate(
    media: List[Dict[str, Any]], followers: int, media_count: int
) -> float:
    """
    Average interactions per sampled post as a percentage of followers.

    Personal accounts do not expose a follower count; there the average is
    spread over the whole catalogue instead.
    """
    if not media:
        return 0.0
    interactions = sum(
        (m.get("like_count") or 0) + (m.get("comments_count") or 0) for m in media
    )
    average = interactions / len(media)
    if followers > 0:
        return round(average / followers * 100, 2)
    return round(average / max(media_count, 1), 2)


class InstagramClient(BasePlatformClient):
    name = "instagram"

    def __init__(self) -> None:
        self.client_id = settings.INSTAGRAM_CLIENT_ID
        self.app_secret = settings.INSTAGRAM_APP_SECRET
        self.redirect_uri = settings.INSTAGRAM_REDIRECT_URI
        self.timeout = settings.INSTAGRAM_TIMEOUT_SECONDS
        self.media_sample_size = settings.INSTAGRAM_MEDIA_SAMPLE_SIZE

    def is_configured(self) -> bool:
        return bool(self.client_id and self.app_secret and self.redirect_uri)

    def authorization_url(self, state: str, code_challenge: Optional[str] = None) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": SCOPES,
            "response_type": "code",
            "state": state,
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    @retry(
        wait=wait_exponential(multiplier=1, min=1, max=10),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(httpx.HTTPError),
    )
    async def exchange_code(self, code: str, code_verifier: Optional[str] = None) -> TokenSet:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            body = await request_json(
                client,
                "POST",
                TOKEN_URL,
                provider="Instagram",
                data={
                    "client_id": self.client_id,
                    "client_secret": self.app_secret,
                    "grant_type": "authorization_code",
                    "redirect_uri": self.redirect_uri,
                    "code": code,
                },
            )
        if not body or not body.get("access_token"):
            raise IntegrationError("Instagram token exchange returned no access token")
        return TokenSet(
            access_token=body["access_token"],
            refresh_token=None,
            expires_in=body.get("expires_in"),
            external_id=str(body.get("user_id")) if body.get("user_id") else None,
        )

    @retry(
        wait=wait_exponential(multiplier=1, min=1, max=10),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(httpx.HTTPError),
    )
    async def fetch_profile(self, access_token: str) -> PlatformProfile:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            profile = await request_json(
                client,
                "GET",
                f"{GRAPH_URL}/me",
                provider="Instagram",
                params={"fields": PROFILE_FIELDS, "access_token": access_token},
            )
            media_body = await request_json(
                client,
                "GET",
                f"{GRAPH_URL}/me/media",
                provider="Instagram",
                allow_404=True,
                params={
                    "fields": MEDIA_FIELDS,
                    "limit": self.media_sample_size,
                    "access_token": access_token,
                },
            )

        if not profile or not profile.get("username"):
            raise IntegrationError("Instagram profile is missing a username")
        media = (media_body or {}).get("data") or []
        followers = int(profile.get("followers_count") or 0)
        media_count = int(profile.get("media_count") or 0)

        return PlatformProfile(
            username=profile["username"],
            external_id=profile.get("id"),
            followers=followers,
            following=int(profile.get("follows_count") or 0),
            posts=media_count,
            likes=sum(m.get("like_count") or 0 for m in media),
            comments=sum(m.get("comments_count") or 0 for m in media),
            shares=0,
            saves=0,
            engagement_rate=calculate_engagement_rate(media, followers, media_count),
            platform_data={
                "accountType": profile.get("account_type"),
                "sampledMedia": len(media),
            },
        )
