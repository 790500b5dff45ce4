from abc import ABC, abstractmethod
from typing import Optional

from ...core.errors import IntegrationError


class TokenSet(dict):
    """access_token, refresh_token, expires_in and the provider account id."""


class PlatformProfile(dict):
    """
    Normalised account view produced by a platform client.

    Keys: username, external_id, followers, following, posts, likes,
    comments, shares, saves, engagement_rate, platform_data.
    """


class BasePlatformClient(ABC):
    name: str
    # Whether authorization uses a PKCE verifier/challenge pair
    uses_pkce: bool = False

    @abstractmethod
    def is_configured(self) -> bool:
        ...

    @abstractmethod
    def authorization_url(self, state: str, code_challenge: Optional[str] = None) -> str:
        ...

    @abstractmethod
    async def exchange_code(self, code: str, code_verifier: Optional[str] = None) -> TokenSet:
        ...

    @abstractmethod
    async def fetch_profile(self, access_token: str) -> PlatformProfile:
        ...

    async def refresh_access_token(self, refresh_token: str) -> TokenSet:
        raise IntegrationError(f"{self.name} does not support token refresh")
