"""
Shared test data for marketplace tests.

Canned platform payloads and the fake platform client used to drive the
OAuth and refresh flows without network access.
"""
from typing import Any, Dict, List, Optional

from gayatri.core.errors import IntegrationError
from gayatri.services.integrations.base import BasePlatformClient, PlatformProfile, TokenSet


# ---------------------------------------------------------------------------
# RFC 7636 appendix B
# ---------------------------------------------------------------------------

PKCE_VERIFIER = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
PKCE_CHALLENGE = "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGg0qM6YZ8"


# ---------------------------------------------------------------------------
# TikTok video samples
# ---------------------------------------------------------------------------

TIKTOK_VIDEOS: List[Dict[str, Any]] = [
    {"id": "1", "like_count": 300, "comment_count": 40, "share_count": 10, "view_count": 9000},
    {"id": "2", "like_count": 150, "comment_count": 20, "share_count": 5, "view_count": 4000},
    {"id": "3", "like_count": 50, "comment_count": 20, "share_count": 5, "view_count": 1000},
]

# 600 interactions over 3 videos at 1,000 followers -> 20.0%
TIKTOK_FOLLOWERS = 1_000
TIKTOK_EXPECTED_ENGAGEMENT = 20.0


# ---------------------------------------------------------------------------
# Instagram media samples
# ---------------------------------------------------------------------------

INSTAGRAM_MEDIA: List[Dict[str, Any]] = [
    {"id": "a", "like_count": 120, "comments_count": 30},
    {"id": "b", "like_count": 80, "comments_count": 20},
]


def make_profile(
    username: str = "creator",
    followers: int = 50_000,
    engagement_rate: float = 4.5,
    external_id: str = "ext-1",
) -> PlatformProfile:
    return PlatformProfile(
        username=username,
        external_id=external_id,
        followers=followers,
        following=120,
        posts=42,
        likes=250_000,
        comments=8_000,
        shares=1_500,
        saves=900,
        engagement_rate=engagement_rate,
        platform_data={"displayName": username.title(), "isVerified": False},
    )


class FakePlatformClient(BasePlatformClient):
    """In-memory stand-in for a platform client; records every call."""

    def __init__(
        self,
        name: str = "tiktok",
        uses_pkce: bool = True,
        profile: Optional[PlatformProfile] = None,
        fail_profile: bool = False,
        configured: bool = True,
    ) -> None:
        self.name = name
        self.uses_pkce = uses_pkce
        self.profile = profile or make_profile()
        self.fail_profile = fail_profile
        self.configured = configured
        self.exchanged: List[Dict[str, Any]] = []
        self.refreshed: List[str] = []
        self.profile_calls: List[str] = []

    def is_configured(self) -> bool:
        return self.configured

    def authorization_url(self, state: str, code_challenge: Optional[str] = None) -> str:
        url = f"https://auth.example.com/{self.name}?state={state}"
        if code_challenge:
            url += f"&code_challenge={code_challenge}"
        return url

    async def exchange_code(self, code: str, code_verifier: Optional[str] = None) -> TokenSet:
        self.exchanged.append({"code": code, "code_verifier": code_verifier})
        return TokenSet(
            access_token=f"access-{code}",
            refresh_token=f"refresh-{code}",
            expires_in=3600,
            external_id="ext-1",
        )

    async def refresh_access_token(self, refresh_token: str) -> TokenSet:
        self.refreshed.append(refresh_token)
        return TokenSet(access_token="access-refreshed", refresh_token=refresh_token, expires_in=3600)

    async def fetch_profile(self, access_token: str) -> PlatformProfile:
        self.profile_calls.append(access_token)
        if self.fail_profile:
            raise IntegrationError(f"{self.name} profile unavailable")
        return PlatformProfile(self.profile)
