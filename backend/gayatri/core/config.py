from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # core
    ENV: str = "dev"
    API_PREFIX: str = "/api"

    # database & redis
    # Plain strings so sqlite:// (tests) and redis:// URLs are always accepted
    DATABASE_URL: str
    REDIS_URL: str = "redis://localhost:6379/0"

    # auth / security
    SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    AUTH_COOKIE_NAME: str = "auth_token"
    FRONTEND_ORIGIN: str | None = None
    # Explicit debug-only switch for wide-open CORS in non-prod envs
    CORS_ALLOW_ALL_ORIGINS: bool = False

    # seeded admin account
    ADMIN_EMAIL: str = "admin@example.com"
    ADMIN_NAME: str = "Administrator"
    ADMIN_PASSWORD: str | None = None

    # TikTok Open API
    TIKTOK_CLIENT_KEY: str | None = None
    TIKTOK_CLIENT_SECRET: str | None = None
    TIKTOK_REDIRECT_URI: str | None = None
    TIKTOK_TIMEOUT_SECONDS: int = 20
    TIKTOK_VIDEO_SAMPLE_SIZE: int = 20
    # Connections not synced for this long are picked up by the hourly refresh
    TIKTOK_STALE_AFTER_MINUTES: int = 60

    # Instagram Graph API
    INSTAGRAM_CLIENT_ID: str | None = None
    INSTAGRAM_APP_SECRET: str | None = None
    INSTAGRAM_REDIRECT_URI: str | None = None
    INSTAGRAM_TIMEOUT_SECONDS: int = 20
    INSTAGRAM_MEDIA_SAMPLE_SIZE: int = 25

    OAUTH_STATE_TTL_MINUTES: int = 10

    # auto-generated rate cards (IDR)
    RATE_CARD_CURRENCY: str = "IDR"
    RATE_CARD_PRICE_PER_FOLLOWER: float = 10.0
    RATE_CARD_BASELINE_ENGAGEMENT: float = 3.0
    RATE_CARD_MINIMUM_PRICE: int = 100_000

    # admin dashboard statistics cache (seconds)
    STATS_CACHE_TTL_SECONDS: int = 60

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
