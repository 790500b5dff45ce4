from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
from tenacity import retry, wait_exponential, stop_after_attempt, retry_if_exception_type

from .base import BasePlatformClient, PlatformProfile, TokenSet
from .transport import request_json
from ...core.config import get_settings
from ...core.errors import IntegrationError

settings = get_settings()
logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://www.tiktok.com/v2/auth/authorize/"
TOKEN_URL = "https://open.tiktokapis.com/v2/oauth/token/"
USER_INFO_URL = "https://open.tiktokapis.com/v2/user/info/"
VIDEO_LIST_URL = "https://open.tiktokapis.com/v2/video/list/"

SCOPES = "user.info.basic,user.info.profile,user.info.stats"
USER_FIELDS = (
    "open_id,union_id,avatar_url,display_name,username,"
    "follower_count,following_count,video_count,bio_description,is_verified"
)
VIDEO_FIELDS = "id,like_count,comment_count,share_count,view_count"
REQUIRED_USER_FIELDS = ("username", "follower_count", "avatar_url", "display_name")


def calculate_engagement_rate(followers: int, videos: List[Dict[str, Any]]) -> float:
    """
    Interactions per video relative to audience size, in percent:
    (likes + comments + shares) / (followers * videos) * 100

    Video objects carry no save count, so saves do not contribute.
    """
    interactions = sum(
        (v.get("like_count") or 0)
        + (v.get("comment_count") or 0)
        + (v.get("share_count") or 0)
        for v in videos
    )
    denominator = max(followers, 1) * max(len(videos), 1)
    return round(interactions / denominator * 100, 2)


def estimate_engagement_rate(followers: int, posts: int) -> float:
    """Rule-of-thumb engagement when no videos could be sampled."""
    if followers < 10_000:
        rate = 7.5
    elif followers < 100_000:
        rate = 5.0
    else:
        rate = 3.0

    # Large back catalogues tend to dilute engagement
    if posts > 100:
        rate *= 0.8
    elif posts > 50:
        rate *= 0.9
    return round(rate, 2)


class TikTokClient(BasePlatformClient):
    name = "tiktok"
    uses_pkce = True

    def __init__(self) -> None:
        self.client_key = settings.TIKTOK_CLIENT_KEY
        self.client_secret = settings.TIKTOK_CLIENT_SECRET
        self.redirect_uri = settings.TIKTOK_REDIRECT_URI
        self.timeout = settings.TIKTOK_TIMEOUT_SECONDS
        self.video_sample_size = settings.TIKTOK_VIDEO_SAMPLE_SIZE

    def is_configured(self) -> bool:
        return bool(self.client_key and self.client_secret and self.redirect_uri)

    def authorization_url(self, state: str, code_challenge: Optional[str] = None) -> str:
        params = {
            "client_key": self.client_key,
            "response_type": "code",
            "scope": SCOPES,
            "redirect_uri": self.redirect_uri,
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    async def _token_request(self, data: Dict[str, Any]) -> TokenSet:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            body = await request_json(
                client,
                "POST",
                TOKEN_URL,
                provider="TikTok",
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        if not body or not body.get("access_token"):
            detail = (body or {}).get("error_description") or (body or {}).get("error")
            raise IntegrationError(f"TikTok token request failed: {detail or 'no access token'}")
        return TokenSet(
            access_token=body["access_token"],
            refresh_token=body.get("refresh_token"),
            expires_in=body.get("expires_in"),
            external_id=body.get("open_id"),
        )

    @retry(
        wait=wait_exponential(multiplier=1, min=1, max=10),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(httpx.HTTPError),
    )
    async def exchange_code(self, code: str, code_verifier: Optional[str] = None) -> TokenSet:
        return await self._token_request(
            {
                "client_key": self.client_key,
                "client_secret": self.client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": self.redirect_uri,
                "code_verifier": code_verifier,
            }
        )

    @retry(
        wait=wait_exponential(multiplier=1, min=1, max=10),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(httpx.HTTPError),
    )
    async def refresh_access_token(self, refresh_token: str) -> TokenSet:
        return await self._token_request(
            {
                "client_key": self.client_key,
                "client_secret": self.client_secret,
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            }
        )

    async def _fetch_user(self, client: httpx.AsyncClient) -> Dict[str, Any]:
        body = await request_json(
            client, "GET", USER_INFO_URL, provider="TikTok", params={"fields": USER_FIELDS}
        )
        user = ((body or {}).get("data") or {}).get("user") or {}
        missing = [f for f in REQUIRED_USER_FIELDS if user.get(f) in (None, "")]
        if missing:
            raise IntegrationError(
                f"TikTok profile is missing required fields: {', '.join(missing)}"
            )
        return user

    async def _fetch_videos(self, client: httpx.AsyncClient) -> List[Dict[str, Any]]:
        """
        Sample recent videos. An app without video access gets a 4xx here;
        the profile then falls back to the estimated engagement rate.
        """
        try:
            body = await request_json(
                client,
                "POST",
                VIDEO_LIST_URL,
                provider="TikTok",
                allow_404=True,
                params={"fields": VIDEO_FIELDS},
                json={"max_count": self.video_sample_size},
            )
        except IntegrationError as exc:
            logger.warning(
                "TikTok video list unavailable: %s",
                exc,
                extra={"connector": "tiktok", "step": "fetch_videos"},
            )
            return []
        if body is None:
            return []
        return ((body.get("data") or {}).get("videos")) or []

    @retry(
        wait=wait_exponential(multiplier=1, min=1, max=10),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(httpx.HTTPError),
    )
    async def fetch_profile(self, access_token: str) -> PlatformProfile:
        headers = {"Authorization": f"Bearer {access_token}"}
        async with httpx.AsyncClient(timeout=self.timeout, headers=headers) as client:
            user = await self._fetch_user(client)
            videos = await self._fetch_videos(client)

        followers = int(user.get("follower_count") or 0)
        posts = int(user.get("video_count") or 0)
        if videos:
            engagement = calculate_engagement_rate(followers, videos)
        else:
            engagement = estimate_engagement_rate(followers, posts)

        return PlatformProfile(
            username=user["username"],
            external_id=user.get("open_id"),
            followers=followers,
            following=int(user.get("following_count") or 0),
            posts=posts,
            likes=sum(v.get("like_count") or 0 for v in videos),
            comments=sum(v.get("comment_count") or 0 for v in videos),
            shares=sum(v.get("share_count") or 0 for v in videos),
            engagement_rate=engagement,
            platform_data={
                "bio": user.get("bio_description"),
                "avatarUrl": user.get("avatar_url"),
                "displayName": user.get("display_name"),
                "isVerified": bool(user.get("is_verified")),
                "followingCount": int(user.get("following_count") or 0),
                "unionId": user.get("union_id"),
                "sampledVideos": len(videos),
            },
        )
